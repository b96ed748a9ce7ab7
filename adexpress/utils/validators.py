"""
Pure validation helpers for ad content and bulk rows.

Nothing in here raises on malformed user input: every check returns a list of
``FieldError`` (empty when the value is fine) or a normalised value / ``None``.
"""

import re
from typing import Mapping, Optional

from adexpress.utils.const import (
    BulkImportConfig,
    CITY_LOOKUP,
    ContentLimits,
    SPAM_PHRASES,
    VALID_CATEGORIES,
    VALID_DURATIONS,
)
from adexpress.utils.exceptions import FieldError
from adexpress.utils.helpers import digits_only

PHONE_PATTERN = re.compile(r'^[6-9]\d{9}$')

SPAM_PATTERNS = (
    re.compile(r'\b(' + '|'.join(re.escape(phrase) for phrase in SPAM_PHRASES) + r')\b', re.IGNORECASE),
    re.compile(r'(.)\1{4,}'),
    re.compile(r'[A-Z]{10,}'),
)

PHONE_MESSAGE = 'Invalid phone number (must be 10 digits starting with 6-9)'
SPAM_MESSAGE = 'Content appears to contain spam'


def validate_phone(phone: str) -> bool:
    """
    Check an already digit-only phone number.

    :param phone: Phone number without punctuation or country code.
    :return: True for exactly 10 digits starting with 6-9.
    """
    if not isinstance(phone, str):
        raise TypeError("phone must be a string")
    return bool(PHONE_PATTERN.match(phone))


def normalize_phone(phone: str) -> str:
    return digits_only(phone)


def detect_spam(text: str) -> bool:
    return any(pattern.search(text) for pattern in SPAM_PATTERNS)


def normalize_category(value: Optional[str]) -> Optional[str]:
    category = (value or '').strip().lower()
    return category if category in VALID_CATEGORIES else None


def normalize_city(value: Optional[str]) -> Optional[str]:
    return CITY_LOOKUP.get((value or '').strip().lower())


def parse_duration(value) -> Optional[int]:
    """
    Turn a raw duration cell into a registered number of days.

    :param value: int, float or string.
    :return: Days, or None when the value is not a registered duration.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, str):
        value = value.strip()
        if not re.fullmatch(r'\d+', value):
            return None
        value = int(value)
    if isinstance(value, int) and value in VALID_DURATIONS:
        return value
    return None


def parse_featured(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    text = str(value if value is not None else '').strip().lower()
    if text not in BulkImportConfig.FEATURED_VALUES:
        return None
    return text in BulkImportConfig.FEATURED_TRUE


def _text_errors(field: str, label: str, text: Optional[str], minimum: int, maximum: int,
                 row: Optional[int] = None) -> list[FieldError]:
    text = (text or '').strip()
    if not text:
        return [FieldError(row=row, field=field, message=f'{label} is required')]

    errors = []
    if len(text) < minimum:
        errors.append(FieldError(row=row, field=field, message=f'{label} must be at least {minimum} characters'))
    if len(text) > maximum:
        errors.append(FieldError(row=row, field=field, message=f'{label} must be at most {maximum} characters'))
    if detect_spam(text):
        errors.append(FieldError(row=row, field=field, message=SPAM_MESSAGE))
    return errors


def validate_title(title: Optional[str], row: Optional[int] = None) -> list[FieldError]:
    return _text_errors('title', 'Title', title, ContentLimits.TITLE_MIN, ContentLimits.TITLE_MAX, row)


def validate_subject(subject: Optional[str], row: Optional[int] = None) -> list[FieldError]:
    return _text_errors('subject', 'Subject', subject, 1, ContentLimits.SUBJECT_MAX, row)


def validate_description(description: Optional[str], row: Optional[int] = None) -> list[FieldError]:
    return _text_errors(
        'description', 'Description', description,
        ContentLimits.DESCRIPTION_MIN, ContentLimits.DESCRIPTION_MAX, row
    )


def validate_phone_field(phone: Optional[str], row: Optional[int] = None) -> list[FieldError]:
    digits = normalize_phone(phone or '')
    if not digits:
        return [FieldError(row=row, field='phone_number', message='Phone number is required')]
    if not validate_phone(digits):
        return [FieldError(row=row, field='phone_number', message=PHONE_MESSAGE)]
    return []


def validate_category(value: Optional[str], row: Optional[int] = None) -> list[FieldError]:
    if not (value or '').strip():
        return [FieldError(row=row, field='category', message='Category is required')]
    if normalize_category(value) is None:
        return [FieldError(
            row=row, field='category',
            message=f"Invalid category. Valid options: {', '.join(VALID_CATEGORIES)}"
        )]
    return []


def validate_city(value: Optional[str], row: Optional[int] = None) -> list[FieldError]:
    if not (value or '').strip():
        return [FieldError(row=row, field='city', message='City is required')]
    if normalize_city(value) is None:
        return [FieldError(row=row, field='city', message='Invalid city name')]
    return []


def validate_duration(value, row: Optional[int] = None) -> list[FieldError]:
    if parse_duration(value) is None:
        return [FieldError(
            row=row, field='duration_days',
            message=f"Invalid duration. Valid options: {', '.join(str(d) for d in VALID_DURATIONS)} days"
        )]
    return []


_FIELD_CHECKS = {
    'title': validate_title,
    'subject': validate_subject,
    'description': validate_description,
    'phone_number': validate_phone_field,
    'category': validate_category,
    'city': validate_city,
    'duration_days': validate_duration,
}


def validate_ad_fields(values: Mapping[str, object], partial: bool = False) -> list[FieldError]:
    """
    Validate the content fields of a single ad submission or edit.

    :param values: Field name to raw value.
    :param partial: Only check the fields present in ``values`` (edits).
    :return: Every violation found, in field order.
    """
    errors = []
    for field, check in _FIELD_CHECKS.items():
        if partial and field not in values:
            continue
        errors.extend(check(values.get(field)))
    return errors


def validate_bulk_row(row: Mapping[str, str], row_number: int) -> list[FieldError]:
    """
    Validate one raw spreadsheet row.

    :param row: Lower-cased header to cell text.
    :param row_number: 1-based row number in the file, the header being row 1.
    :return: Row errors; an empty list means the row may be imported.
    """
    errors = []
    for field in ('title', 'subject', 'description', 'phone_number', 'category', 'city'):
        errors.extend(_FIELD_CHECKS[field](row.get(field), row_number))

    duration = (row.get('duration_days') or '').strip()
    if duration:
        errors.extend(validate_duration(duration, row_number))

    if parse_featured(row.get('is_featured')) is None:
        errors.append(FieldError(row=row_number, field='is_featured', message='Invalid value. Use "yes" or "no"'))

    return errors
