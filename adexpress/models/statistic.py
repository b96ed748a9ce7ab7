from datetime import datetime

from sqlalchemy import JSON, func, Index
from sqlalchemy.orm import Mapped, mapped_column

from adexpress.database import Base


class Statistic(Base):
    __tablename__ = "statistics"

    __table_args__ = (
        Index('idx_statistics_updated_at', 'updated_at'),
    )

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=False  # We only have one row in this table
    )
    total_advertisements: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    pending_advertisements: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    approved_advertisements: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    rejected_advertisements: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    active_advertisements: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    expired_advertisements: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    total_views: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    total_calls: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    popular_categories: Mapped[list] = mapped_column(
        JSON,
        nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    def to_dict(self):
        return {
            'id': self.id,
            'total_advertisements': self.total_advertisements,
            'pending_advertisements': self.pending_advertisements,
            'approved_advertisements': self.approved_advertisements,
            'rejected_advertisements': self.rejected_advertisements,
            'active_advertisements': self.active_advertisements,
            'expired_advertisements': self.expired_advertisements,
            'total_views': self.total_views,
            'total_calls': self.total_calls,
            'popular_categories': self.popular_categories,
        }
