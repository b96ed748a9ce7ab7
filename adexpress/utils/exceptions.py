"""
Error taxonomy shared by the validation layer, the lifecycle engine and the bulk importer.
"""

from typing import Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    """
    A single user-correctable problem with one input field.

    :param row: Spreadsheet row the error belongs to, ``None`` for single-ad forms.
    :param field: Field name.
    :param message: Human readable message.
    """

    row: Optional[int] = None
    field: str
    message: str


class ClassifiedsError(Exception):
    """
    Base class of every error raised by the engine.
    """


class ValidationFailed(ClassifiedsError):
    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors) or "Validation failed")


class InvalidArgument(ValidationFailed):
    def __init__(self, field: str, message: str):
        super().__init__([FieldError(field=field, message=message)])


class NotFound(ClassifiedsError):
    def __init__(self, ad_id: str, what: str = "Ad"):
        self.ad_id = ad_id
        super().__init__(f"{what} not found: {ad_id}")


class Forbidden(ClassifiedsError):
    pass


class UnsupportedFormat(ClassifiedsError):
    pass


class EmptyInput(ClassifiedsError):
    pass


class InvalidStage(ClassifiedsError):
    pass


class PersistenceDegraded(ClassifiedsError):
    """
    A durable write failed while the local mirror kept the intended state.
    Logged at the storage boundary, never raised to the caller of a single-ad operation.
    """

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} was not persisted remotely: {cause}")
