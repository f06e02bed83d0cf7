"""Module: health_event."""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filhos.db.base import Base, utcnow

# An illness or health episode (symptoms, diagnosis, medication).
# Archived episodes stay stored but are hidden from the default listing.
class HealthEvent(Base):
    __tablename__ = "health_records"

    health_event_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("children.child_id", ondelete="CASCADE"),
        nullable=False
    )
    occurred_on: Mapped[date] = mapped_column("date", Date, nullable=False)
    symptoms: Mapped[str] = mapped_column(String, nullable=False)
    diagnosis: Mapped[str] = mapped_column(String, nullable=True)
    medication: Mapped[str] = mapped_column(String, nullable=True)
    notes: Mapped[str] = mapped_column(String, nullable=True)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
