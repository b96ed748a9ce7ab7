from datetime import datetime, timedelta
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from adexpress.utils.enums import AdCategory, ApprovalStatus
from adexpress.utils.exceptions import FieldError
from adexpress.utils.helpers import ensure_utc, sanitize_input
from adexpress.utils.validators import normalize_city, normalize_phone


def translate_validation_error(error: ValidationError, row: Optional[int] = None) -> list[FieldError]:
    """
    Turn a pydantic ValidationError into field errors.

    :param error: The pydantic error.
    :param row: Bulk row number, if any.
    :return: One FieldError per pydantic error.
    """
    messages = []
    for err in error.errors():
        field = str(err['loc'][0]) if err['loc'] else 'value'
        error_type = err['type']
        if error_type in ('int_parsing', 'int_type', 'int_from_float'):
            message = f"The {field} field must be a whole number."
        elif error_type in ('bool_parsing', 'bool_type'):
            message = f"The {field} field must be yes or no."
        elif error_type == 'missing':
            message = f"The {field} field is required."
        elif error_type == 'value_error':
            message = f"The {field} field has an invalid value."
        else:
            message = err['msg']
        messages.append(FieldError(row=row, field=field, message=message))
    return messages


def backfill_approval_status(record: dict) -> dict:
    """
    Records written before moderation existed carry no approval status, they count as approved.
    """
    if not record.get('approval_status'):
        record = {**record, 'approval_status': ApprovalStatus.APPROVED}
    return record


class Ad(BaseModel):
    """
    A classified listing as held in memory and in the local mirror.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    title: str
    subject: str
    description: str
    sub_description: Optional[str] = None
    phone_number: str
    category: AdCategory
    city: str
    location: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    is_active: bool = True
    is_featured: bool = False
    views_count: int = 0
    calls_count: int = 0
    approval_status: ApprovalStatus
    rejection_reason: Optional[str] = None

    @field_validator('created_at', 'expires_at', 'approved_at')
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_publicly_visible(self, now: datetime) -> bool:
        return (
            self.is_active
            and not self.is_expired(now)
            and self.approval_status == ApprovalStatus.APPROVED
        )

    @property
    def duration(self) -> timedelta:
        return self.expires_at - self.created_at

    def to_dict(self) -> dict:
        return self.model_dump(mode='json')


class AdForm(BaseModel):
    """
    Raw submission for a new ad.

    :param title: Title of the ad, 5-100 characters.
    :param subject: Headline, up to 150 characters.
    :param description: Body text, 20-2000 characters.
    :param phone_number: Phone in any punctuation, normalised to digits.
    :param duration_days: One of the registered durations.
    """

    title: str = ''
    subject: str = ''
    description: str = ''
    sub_description: Optional[str] = None
    phone_number: str = ''
    category: str = ''
    city: str = ''
    location: Optional[str] = None
    duration_days: int = 30
    is_featured: bool = False

    @field_validator('title', 'subject', 'description', 'category', 'city', mode='before')
    @classmethod
    def strip_text(cls, v: Any) -> str:
        return sanitize_input(str(v)) if v is not None else ''

    @field_validator('sub_description', 'location', mode='before')
    @classmethod
    def strip_optional(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return sanitize_input(str(v)) or None

    @field_validator('phone_number', mode='before')
    @classmethod
    def phone_digits(cls, v: Any) -> str:
        return normalize_phone(str(v)) if v is not None else ''

    def content(self) -> dict:
        return self.model_dump()


class AdUpdate(BaseModel):
    """
    Partial edit of an ad's content. Unset fields are left untouched.
    """

    title: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    sub_description: Optional[str] = None
    phone_number: Optional[str] = None
    category: Optional[str] = None
    city: Optional[str] = None
    location: Optional[str] = None
    is_featured: Optional[bool] = None

    clearable: ClassVar[tuple[str, ...]] = ('sub_description', 'location')

    @field_validator('title', 'subject', 'description', 'category', 'city', mode='before')
    @classmethod
    def strip_text(cls, v: Any) -> Optional[str]:
        return sanitize_input(str(v)) if v is not None else None

    @field_validator('sub_description', 'location', mode='before')
    @classmethod
    def strip_optional(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return sanitize_input(str(v)) or None

    @field_validator('phone_number', mode='before')
    @classmethod
    def phone_digits(cls, v: Any) -> Optional[str]:
        return normalize_phone(str(v)) if v is not None else None

    def changes(self) -> dict:
        """
        Fields sent by the caller. A blank optional field clears it, other fields
        sent as null are ignored.
        """
        values = self.model_dump(exclude_unset=True)
        return {key: value for key, value in values.items() if value is not None or key in self.clearable}


def canonical_content(values: dict) -> dict:
    """
    Normalise validated content fields to their stored form.
    """
    result = dict(values)
    if result.get('category'):
        result['category'] = AdCategory(result['category'].lower())
    if result.get('city'):
        result['city'] = normalize_city(result['city']) or result['city']
    return result

