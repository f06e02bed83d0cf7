"""Module: dashboard."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.deps import get_child_for_user, get_current_user, get_db
from filhos.core.config import settings
from filhos.db.models.growth_record import GrowthRecord
from filhos.db.models.user import User
from filhos.db.models.vaccination_record import VaccinationRecord
from filhos.services.child_age import age_in_months
from filhos.services.vaccine_catalog import get_catalog
from filhos.services.vaccine_schedule import vaccine_status

router = APIRouter()


@router.get("/summary")
def dashboard_summary(
    child_id: str = Query(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    months = age_in_months(child.birth_date)

    records = db.execute(
        select(VaccinationRecord).where(VaccinationRecord.child_id == child.child_id)
    ).scalars().all()
    status = vaccine_status(get_catalog(db), records, months, settings.dashboard_max_booster_years)

    latest = db.execute(
        select(GrowthRecord)
        .where(GrowthRecord.child_id == child.child_id)
        .order_by(desc(GrowthRecord.measured_on))
        .limit(1)
    ).scalar_one_or_none()
    growth_count = db.execute(
        select(func.count()).select_from(GrowthRecord).where(GrowthRecord.child_id == child.child_id)
    ).scalar_one()

    return {
        "child_id": str(child.child_id),
        "name": child.name,
        "age_months": months,
        "vaccines": {
            "status": status.status,
            "pending_count": status.pending_count,
            "pending_vaccines": [asdict(p) for p in status.pending_vaccines],
            "records_count": len(records),
        },
        "growth": {
            "records_count": growth_count,
            "latest": None if latest is None else {
                "measured_on": latest.measured_on,
                "weight": float(latest.weight) if latest.weight is not None else None,
                "height": float(latest.height) if latest.height is not None else None,
                "head_circumference": (
                    float(latest.head_circumference) if latest.head_circumference is not None else None
                ),
            },
        },
    }
