from typing import Optional

from pydantic import BaseModel, Field, field_validator

from adexpress.schemas.advertisement import Ad
from adexpress.utils.enums import DateFilter, SortOrder


class AdsFilter(BaseModel):
    """
    Browse criteria. ``'all'`` disables the category or city filter.
    """

    search_query: str = ''
    category: str = 'all'
    city: str = 'all'
    date_filter: DateFilter = DateFilter.ALL
    sort_order: SortOrder = SortOrder.NEWEST

    @field_validator('search_query', mode='before')
    @classmethod
    def strip_query(cls, v: Optional[str]) -> str:
        return (v or '').strip()

    @field_validator('category', 'city', mode='before')
    @classmethod
    def default_all(cls, v: Optional[str]) -> str:
        return (v or '').strip() or 'all'


class SavedSearchForm(BaseModel):
    name: str
    criteria: AdsFilter = AdsFilter()

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace-only.")
        return v.strip()


class OwnerDashboard(BaseModel):
    """
    An owner's ads split the way the dashboard shows them.
    """

    pending: list[Ad] = Field(default_factory=list)
    rejected: list[Ad] = Field(default_factory=list)
    active: list[Ad] = Field(default_factory=list)
    expired: list[Ad] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.pending) + len(self.rejected) + len(self.active) + len(self.expired)
