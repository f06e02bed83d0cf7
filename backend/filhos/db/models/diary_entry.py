"""Module: diary_entry."""

import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filhos.db.base import Base, utcnow

class DiaryEntry(Base):
    __tablename__ = "diary_entries"

    entry_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("children.child_id", ondelete="CASCADE"),
        nullable=False
    )
    entry_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    content: Mapped[str] = mapped_column(String, nullable=True)
    photo_urls: Mapped[list] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
