from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, CheckConstraint, Index
from sqlalchemy.orm import mapped_column, Mapped

from adexpress.database import Base
from adexpress.utils.enums import ApprovalStatus
from adexpress.utils.helpers import ensure_utc


class Advertisement(Base):
    """
    SQL model for advertisements.
    Durable copy of a classified listing.
    """

    __tablename__ = "advertisements"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True
    )
    owner_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True
    )
    title: Mapped[str] = mapped_column(
        String(100),
        nullable=False
    )
    subject: Mapped[str] = mapped_column(
        String(150),
        nullable=False
    )
    description: Mapped[str] = mapped_column(
        String(2000),
        nullable=False
    )
    sub_description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True
    )
    phone_number: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True
    )
    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True
    )
    city: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        index=True
    )
    location: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    approved_by: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True
    )
    is_featured: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False
    )
    views_count: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    calls_count: Mapped[int] = mapped_column(
        nullable=False,
        default=0
    )
    # NULL only on rows written before moderation existed, see DatabaseAdStore.migrate().
    approval_status: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
        default=ApprovalStatus.PENDING.value,
        index=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(
        Text,
        nullable=True
    )

    # Constraints
    __table_args__ = (
        CheckConstraint('views_count >= 0', name='check_views_positive'),
        CheckConstraint('calls_count >= 0', name='check_calls_positive'),
        Index('idx_advertisements_title_phone', 'title', 'phone_number'),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'title': self.title,
            'subject': self.subject,
            'description': self.description,
            'sub_description': self.sub_description,
            'phone_number': self.phone_number,
            'category': self.category,
            'city': self.city,
            'location': self.location,
            'created_at': ensure_utc(self.created_at),
            'expires_at': ensure_utc(self.expires_at),
            'approved_at': ensure_utc(self.approved_at),
            'approved_by': self.approved_by,
            'is_active': self.is_active,
            'is_featured': self.is_featured,
            'views_count': self.views_count,
            'calls_count': self.calls_count,
            'approval_status': self.approval_status,
            'rejection_reason': self.rejection_reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Advertisement:
        return cls(**{key: value for key, value in data.items() if key in cls.__table__.columns})
