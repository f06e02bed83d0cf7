"""Module: vaccine_definition."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from filhos.db.base import Base

# National immunization calendar entry. Seeded once, read-only afterwards.
# recommended_doses and age_range are free text kept exactly as published.
class VaccineDefinition(Base):
    __tablename__ = "sus_vaccines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    diseases_prevented: Mapped[str] = mapped_column(String, nullable=False)
    recommended_doses: Mapped[str] = mapped_column(String, nullable=False)
    age_range: Mapped[str] = mapped_column(String, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
