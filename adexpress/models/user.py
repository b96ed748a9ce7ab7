from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column
from adexpress.database import Base
from datetime import datetime
from adexpress.utils.enums import UserRole


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True
    )
    phone_number: Mapped[str] = mapped_column(
        String(10),
        nullable=True,
        index=True
    )
    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=True
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value
    )
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
