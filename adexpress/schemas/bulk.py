from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from adexpress.utils.exceptions import FieldError


class BulkAdRow(BaseModel):
    """
    A validated and normalised spreadsheet row, not yet an ad.
    """

    row: int
    title: str
    subject: str
    description: str
    sub_description: Optional[str] = None
    phone_number: str
    category: str
    city: str
    location: Optional[str] = None
    duration_days: int = 30
    is_featured: bool = False


class ParseResult(BaseModel):
    data: list[BulkAdRow] = Field(default_factory=list)
    errors: list[FieldError] = Field(default_factory=list)
    total_rows: int = 0

    @property
    def error_rows(self) -> set[int]:
        return {error.row for error in self.errors}


class DuplicateEntry(BaseModel):
    row: int
    existing_ad_id: str
    title: str
    phone: str


class DuplicateResult(BaseModel):
    duplicates: list[DuplicateEntry] = Field(default_factory=list)
    clean_data: list[BulkAdRow] = Field(default_factory=list)


class UploadHistoryItem(BaseModel):
    id: str
    timestamp: datetime
    total_uploaded: int
    file_name: str


class ImportReport(BaseModel):
    """
    Outcome of a committed bulk import.
    """

    file_name: str
    uploaded: int = 0
    failed: int = 0
    failed_batches: list[int] = Field(default_factory=list)
    progress: list[int] = Field(default_factory=list)
