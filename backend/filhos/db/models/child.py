"""Module: child."""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, LargeBinary, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filhos.db.base import Base, utcnow


# Core child profile used by growth records, vaccine records, and reminders.
class Child(Base):
    __tablename__ = "children"

    # Primary Key
    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Basic Info
    name: Mapped[str] = mapped_column(String, nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str] = mapped_column(String, nullable=False, default="unspecified")
    photo_data: Mapped[bytes] = mapped_column(LargeBinary, nullable=True)
    photo_mime_type: Mapped[str] = mapped_column(String, nullable=True)

    # Audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow
    )
