"""Module: vaccination_record."""

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filhos.db.base import Base, utcnow

# A dose a caregiver logged for a child. Never created automatically.
class VaccinationRecord(Base):
    __tablename__ = "vaccine_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("children.child_id", ondelete="CASCADE"),
        nullable=False
    )
    sus_vaccine_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sus_vaccines.id", ondelete="CASCADE"),
        nullable=False
    )

    dose: Mapped[str] = mapped_column(String, nullable=False)
    application_date: Mapped[date] = mapped_column(Date, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=True)
    notes: Mapped[str] = mapped_column(String, nullable=True)
    photo_urls: Mapped[list] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
