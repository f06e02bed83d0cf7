"""Module: init_db."""

from sqlalchemy.engine import Engine

from filhos.db.base import Base

# IMPORTANT: import models so they register with Base.metadata
import filhos.db.models  # noqa: F401


def init_db(bind: Engine) -> None:
    Base.metadata.create_all(bind=bind)
