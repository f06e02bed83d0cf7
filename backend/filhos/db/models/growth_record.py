"""Module: growth_record."""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filhos.db.base import Base, utcnow

# Weight/height/head measurements captured for children over time.
class GrowthRecord(Base):
    __tablename__ = "growth_records"

    growth_record_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("children.child_id", ondelete="CASCADE"),
        nullable=False
    )
    measured_on: Mapped[date] = mapped_column("date", Date, nullable=False)
    weight: Mapped[float] = mapped_column(Numeric(6, 3), nullable=True)
    height: Mapped[float] = mapped_column(Numeric(5, 1), nullable=True)
    head_circumference: Mapped[float] = mapped_column(Numeric(5, 1), nullable=True)
    notes: Mapped[str] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
