from datetime import datetime

from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column

from adexpress.database import Base
from adexpress.utils.enums import DateFilter, SortOrder


class SavedSearch(Base):
    """
    SQL model for saved searches.
    A named snapshot of browse criteria, it never touches ad state.
    """

    __tablename__ = "saved_searches"

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True
    )
    owner_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False
    )
    search_query: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=''
    )
    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default='all'
    )
    city: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        default='all'
    )
    date_filter: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=DateFilter.ALL.value
    )
    sort_order: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SortOrder.NEWEST.value
    )
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
