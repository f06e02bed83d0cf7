"""Module: invite_code."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from filhos.db.base import Base, utcnow

# Short-lived code an owner or editor hands to someone else to share a child.
# Single use: used_by/used_at are set when the code is redeemed.
class InviteCode(Base):
    __tablename__ = "invite_codes"

    invite_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String, unique=True, nullable=False)

    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("children.child_id", ondelete="CASCADE"),
        nullable=False
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False
    )

    relationship: Mapped[str] = mapped_column(String, nullable=False, default="caregiver")
    role: Mapped[str] = mapped_column(String, nullable=False, default="editor")
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    used_by: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=True)
    used_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
