"""Module: vaccine_catalog."""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from filhos.db.models.vaccine_definition import VaccineDefinition

logger = logging.getLogger(__name__)

# Children's calendar of the national immunization programme (SUS).
# Texts are stored verbatim; the schedule parser reads ages out of age_range.
SUS_VACCINES = [
    {
        "name": "BCG",
        "diseases_prevented": "Formas graves de tuberculose",
        "recommended_doses": "Dose única",
        "age_range": "Ao nascer",
    },
    {
        "name": "Hepatite B",
        "diseases_prevented": "Hepatite B",
        "recommended_doses": "Dose ao nascer",
        "age_range": "Ao nascer (primeiras 24h)",
    },
    {
        "name": "Pentavalente",
        "diseases_prevented": "Difteria, tétano, coqueluche, Haemophilus influenzae b e hepatite B",
        "recommended_doses": "1ª, 2ª, 3ª dose",
        "age_range": "2, 4, 6 meses",
    },
    {
        "name": "VIP (Poliomielite inativada)",
        "diseases_prevented": "Poliomielite",
        "recommended_doses": "1ª, 2ª, 3ª dose",
        "age_range": "2, 4, 6 meses",
    },
    {
        "name": "Pneumocócica 10-valente",
        "diseases_prevented": "Pneumonia, otite, meningite e outras doenças pneumocócicas",
        "recommended_doses": "1ª, 2ª dose + Reforço",
        "age_range": "2, 4 meses + reforço 12 meses",
    },
    {
        "name": "Rotavírus humano",
        "diseases_prevented": "Diarreia por rotavírus",
        "recommended_doses": "1ª, 2ª dose",
        "age_range": "2, 4 meses",
    },
    {
        "name": "Meningocócica C",
        "diseases_prevented": "Doença meningocócica C",
        "recommended_doses": "1ª, 2ª dose + Reforço",
        "age_range": "3, 5 meses + reforço 12 meses",
    },
    {
        "name": "COVID-19",
        "diseases_prevented": "Formas graves de COVID-19",
        "recommended_doses": "1ª, 2ª, 3ª dose",
        "age_range": "6, 7, 9 meses",
    },
    {
        "name": "Influenza",
        "diseases_prevented": "Gripe",
        "recommended_doses": "Dose anual",
        "age_range": "6 meses a 5 anos",
    },
    {
        "name": "Febre amarela",
        "diseases_prevented": "Febre amarela",
        "recommended_doses": "Dose inicial, Reforço",
        "age_range": "9 meses + reforço 4 anos",
    },
    {
        "name": "Tríplice viral",
        "diseases_prevented": "Sarampo, caxumba e rubéola",
        "recommended_doses": "1ª dose",
        "age_range": "12 meses",
    },
    {
        "name": "Tetraviral",
        "diseases_prevented": "Sarampo, caxumba, rubéola e varicela",
        "recommended_doses": "Dose única",
        "age_range": "15 meses",
    },
    {
        "name": "Hepatite A",
        "diseases_prevented": "Hepatite A",
        "recommended_doses": "Dose única",
        "age_range": "15 meses",
    },
    {
        "name": "DTP",
        "diseases_prevented": "Difteria, tétano e coqueluche",
        "recommended_doses": "1º reforço, 2º reforço",
        "age_range": "15 meses + reforço 4 anos",
    },
    {
        "name": "Varicela",
        "diseases_prevented": "Varicela (catapora)",
        "recommended_doses": "Dose única",
        "age_range": "4 anos",
    },
    {
        "name": "HPV",
        "diseases_prevented": "Papilomavírus humano",
        "recommended_doses": "Dose única",
        "age_range": "9 a 14 anos",
    },
    {
        "name": "Meningocócica ACWY",
        "diseases_prevented": "Doença meningocócica A, C, W e Y",
        "recommended_doses": "Dose única",
        "age_range": "11 a 14 anos",
    },
]


def initialize_catalog(db: Session) -> int:
    """Insert the calendar when the table is empty. Returns rows inserted."""
    existing = db.execute(select(func.count()).select_from(VaccineDefinition)).scalar_one()
    if existing:
        return 0

    for position, entry in enumerate(SUS_VACCINES):
        db.add(VaccineDefinition(sort_order=position, **entry))
    db.commit()

    logger.info("Seeded vaccine catalog with %d entries", len(SUS_VACCINES))
    return len(SUS_VACCINES)


def get_catalog(db: Session) -> list[VaccineDefinition]:
    initialize_catalog(db)
    return list(
        db.execute(
            select(VaccineDefinition).order_by(VaccineDefinition.sort_order, VaccineDefinition.id)
        ).scalars().all()
    )
