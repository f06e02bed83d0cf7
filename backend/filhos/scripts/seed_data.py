"""Module: seed_data."""

import random
from datetime import date, timedelta

from faker import Faker
from sqlalchemy import select
from sqlalchemy.orm import Session

from filhos.core.config import settings
from filhos.core.security import hash_password
from filhos.db.init_db import init_db
from filhos.db.models.caregiver import Caregiver
from filhos.db.models.child import Child
from filhos.db.models.growth_record import GrowthRecord
from filhos.db.models.user import User
from filhos.db.models.vaccination_record import VaccinationRecord
from filhos.db.session import SessionLocal, engine
from filhos.services.vaccine_catalog import get_catalog
from filhos.services.vaccine_schedule import expected_doses

fake = Faker("pt_BR")

DEMO_PASSWORD = "filhos123"
RELATIONSHIPS = ["mother", "father", "guardian"]
# Share of past-due doses the demo caregivers remembered to log.
RECORD_PROBABILITY = 0.8


def _months_ago(today: date, months: int) -> date:
    year = today.year + (today.month - 1 - months) // 12
    month = (today.month - 1 - months) % 12 + 1
    return date(year, month, min(today.day, 28))


def seed_family(db: Session, catalog, today: date) -> User:
    first_name = fake.first_name()
    last_name = fake.last_name()
    email = f"{first_name.lower()}.{last_name.lower()}.{random.randint(100, 999)}@example.com.br"

    user = User(
        email=email,
        password=hash_password(DEMO_PASSWORD),
        first_name=first_name,
        last_name=last_name,
    )
    db.add(user)
    db.flush()

    for _ in range(random.randint(1, 2)):
        age = random.randint(0, 72)
        birth = _months_ago(today, age)
        child = Child(
            name=fake.first_name(),
            birth_date=birth,
            gender=random.choice(["male", "female", "unspecified"]),
        )
        db.add(child)
        db.flush()

        db.add(
            Caregiver(
                child_id=child.child_id,
                user_id=user.user_id,
                relationship=random.choice(RELATIONSHIPS),
                role="owner",
            )
        )

        for expected in expected_doses(catalog, max_years=settings.dashboard_max_booster_years, up_to_age=age):
            if random.random() > RECORD_PROBABILITY:
                continue
            db.add(
                VaccinationRecord(
                    child_id=child.child_id,
                    sus_vaccine_id=expected.vaccine_id,
                    dose=expected.dose,
                    application_date=birth + timedelta(days=expected.expected_months * 30),
                    location=f"UBS {fake.bairro()}",
                )
            )

        weight, height = 3.3, 49.5
        for month in range(0, age + 1, 3):
            weight += random.uniform(0.3, 0.9)
            height += random.uniform(1.0, 3.0)
            db.add(
                GrowthRecord(
                    child_id=child.child_id,
                    measured_on=birth + timedelta(days=month * 30),
                    weight=round(weight, 3),
                    height=round(height, 1),
                )
            )

    return user


def seed(n_families: int = 10) -> None:
    init_db(engine)
    session = SessionLocal()
    try:
        catalog = get_catalog(session)
        today = date.today()

        existing = session.execute(select(User.user_id).limit(1)).first()
        if existing:
            print("Database already has users, skipping demo families.")
            return

        for _ in range(n_families):
            seed_family(session, catalog, today)
        session.commit()
        print(f"Seeded {n_families} demo families (password: {DEMO_PASSWORD}).")
    finally:
        session.close()


if __name__ == "__main__":
    seed()
