"""Module: base."""

from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase

# Shared SQLAlchemy declarative base that all ORM models inherit from.
# This gives each model access to common metadata for table creation.
class Base(DeclarativeBase):
    pass


# Naive UTC timestamp used for audit columns (DateTime without timezone).
def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)
