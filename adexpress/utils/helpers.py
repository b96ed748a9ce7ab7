import re
from datetime import datetime, timezone

_DISPLAY_ENTITIES = (
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&#x27;', "'"),
    ('&#x2F;', '/'),
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes coming back from the database.

    :param value: Datetime or None.
    :return: Timezone-aware datetime or None.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def sanitize_input(text: str) -> str:
    return text.strip()


def sanitize_for_display(text: str) -> str:
    """
    Decode the HTML entities a stored text may carry, for rendering only.

    :param text: The text to decode.
    :return: The decoded text.
    """
    for entity, char in _DISPLAY_ENTITIES:
        text = text.replace(entity, char)
    return text


def digits_only(phone: str) -> str:
    return re.sub(r'\D', '', phone or '')


def mask_phone(phone: str) -> str:
    """
    Hide the middle of a 10 digit phone number, e.g. ``98****3210``.
    """
    if len(phone) != 10:
        return phone
    return f"{phone[:2]}****{phone[-4:]}"


def format_relative_time(value: datetime, now: datetime | None = None) -> str:
    now = now or utcnow()
    seconds = (ensure_utc(now) - ensure_utc(value)).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return f"{value.day} {value.strftime('%b')}"
