"""Module: caregiver."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filhos.db.base import Base, utcnow

# Links a user account to a child it may see or edit.
class Caregiver(Base):
    __tablename__ = "caregivers"
    __table_args__ = (UniqueConstraint("child_id", "user_id", name="uq_caregivers_child_user"),)

    caregiver_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("children.child_id", ondelete="CASCADE"),
        nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False
    )
    relationship: Mapped[str] = mapped_column(String, nullable=False, default="guardian")
    role: Mapped[str] = mapped_column(String, nullable=False, default="viewer")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
