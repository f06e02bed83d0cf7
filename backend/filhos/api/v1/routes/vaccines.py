"""Module: vaccines."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from filhos.api.v1.routes.deps import get_child_for_user, get_current_user, get_db, parse_uuid, require_editor
from filhos.core.config import settings
from filhos.db.models.user import User
from filhos.db.models.vaccination_record import VaccinationRecord
from filhos.db.models.vaccine_definition import VaccineDefinition
from filhos.services.child_age import age_in_months
from filhos.services.vaccine_catalog import get_catalog
from filhos.services.vaccine_schedule import (
    pending_doses_by_vaccine,
    reminders_for_child,
    vaccine_status,
)

router = APIRouter()

# Options offered by the vaccine card form. Free text is accepted too.
DOSE_OPTIONS = [
    "Dose única",
    "Dose ao nascer",
    "1ª dose",
    "2ª dose",
    "3ª dose",
    "1º reforço",
    "2º reforço",
    "Reforço",
    "Dose inicial",
]


class VaccineRecordCreatePayload(BaseModel):
    sus_vaccine_id: int
    dose: str
    application_date: date
    location: str | None = None
    notes: str | None = None
    photo_urls: list[str] | None = None


class VaccineRecordUpdatePayload(BaseModel):
    dose: str | None = None
    application_date: date | None = None
    location: str | None = None
    notes: str | None = None
    photo_urls: list[str] | None = None


# -------------------------
# Helpers
# -------------------------
def _record_payload(record: VaccinationRecord) -> dict:
    return {
        "id": str(record.id),
        "child_id": str(record.child_id),
        "sus_vaccine_id": record.sus_vaccine_id,
        "dose": record.dose,
        "application_date": record.application_date,
        "location": record.location,
        "notes": record.notes,
        "photo_urls": record.photo_urls or [],
        "created_at": record.created_at,
    }


def _definition_payload(definition: VaccineDefinition) -> dict:
    return {
        "id": definition.id,
        "name": definition.name,
        "diseases_prevented": definition.diseases_prevented,
        "recommended_doses": definition.recommended_doses,
        "age_range": definition.age_range,
    }


def _child_records(db: Session, child_id) -> list[VaccinationRecord]:
    return list(
        db.execute(
            select(VaccinationRecord)
            .where(VaccinationRecord.child_id == child_id)
            .order_by(desc(VaccinationRecord.application_date))
        ).scalars().all()
    )


def _get_editable_record(db: Session, user: User, record_id: str) -> VaccinationRecord:
    rid = parse_uuid(record_id, "record_id")
    record = db.execute(select(VaccinationRecord).where(VaccinationRecord.id == rid)).scalar_one_or_none()
    if not record:
        raise HTTPException(status_code=404, detail="Vaccine record not found")

    child = get_child_for_user(db, user, str(record.child_id))
    require_editor(db, user, child)
    return record


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


# -------------------------
# Catalog (public)
# -------------------------
@router.get("/vaccines/catalog", summary="National vaccination calendar")
def list_catalog(db: Session = Depends(get_db)):
    return [_definition_payload(d) for d in get_catalog(db)]


@router.get("/vaccines/dose-options", summary="Dose labels offered in the record form")
def list_dose_options():
    return DOSE_OPTIONS


# -------------------------
# Records (carteira vacinal)
# -------------------------
@router.get("/children/{child_id}/vaccine-records", summary="List vaccine records for a child")
def list_records(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    return [_record_payload(r) for r in _child_records(db, child.child_id)]


@router.post("/children/{child_id}/vaccine-records", summary="Log an administered dose", status_code=201)
def create_record(
    child_id: str,
    payload: VaccineRecordCreatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    require_editor(db, user, child)

    definition = db.get(VaccineDefinition, payload.sus_vaccine_id)
    if not definition:
        raise HTTPException(status_code=400, detail="Unknown sus_vaccine_id")

    dose = _clean(payload.dose)
    if not dose:
        raise HTTPException(status_code=400, detail="Dose is required")

    record = VaccinationRecord(
        child_id=child.child_id,
        sus_vaccine_id=definition.id,
        dose=dose,
        application_date=payload.application_date,
        location=_clean(payload.location),
        notes=_clean(payload.notes),
        photo_urls=payload.photo_urls or [],
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return _record_payload(record)


@router.patch("/vaccine-records/{record_id}", summary="Update a vaccine record")
def update_record(
    record_id: str,
    payload: VaccineRecordUpdatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    record = _get_editable_record(db, user, record_id)
    changes = payload.model_dump(exclude_unset=True)

    if "dose" in changes:
        dose = _clean(changes["dose"])
        if not dose:
            raise HTTPException(status_code=400, detail="Dose is required")
        record.dose = dose
    if changes.get("application_date") is not None:
        record.application_date = changes["application_date"]
    if "location" in changes:
        record.location = _clean(changes["location"])
    if "notes" in changes:
        record.notes = _clean(changes["notes"])
    if "photo_urls" in changes:
        record.photo_urls = changes["photo_urls"] or []

    db.commit()
    db.refresh(record)
    return _record_payload(record)


@router.delete("/vaccine-records/{record_id}", summary="Delete a vaccine record", status_code=204)
def delete_record(
    record_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    record = _get_editable_record(db, user, record_id)
    db.delete(record)
    db.commit()
    return Response(status_code=204)


# -------------------------
# Schedule evaluation
# -------------------------
@router.get("/children/{child_id}/vaccine-status", summary="Up-to-date / pending badge")
def get_vaccine_status(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    months = age_in_months(child.birth_date)
    result = vaccine_status(
        get_catalog(db),
        _child_records(db, child.child_id),
        months,
        settings.dashboard_max_booster_years,
    )
    return {"age_months": months, **asdict(result)}


@router.get("/children/{child_id}/pending-vaccines", summary="Past-due doses grouped by vaccine")
def get_pending_vaccines(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    months = age_in_months(child.birth_date)
    grouped = pending_doses_by_vaccine(
        get_catalog(db),
        _child_records(db, child.child_id),
        months,
        settings.dashboard_max_booster_years,
    )
    return [
        {
            "vaccine_id": vaccine_id,
            "vaccine_name": doses[0].vaccine_name,
            "doses": [asdict(d) for d in doses],
        }
        for vaccine_id, doses in grouped.items()
    ]


@router.get("/children/{child_id}/vaccine-reminders", summary="Doses due, upcoming or recently missed")
def get_vaccine_reminders(
    child_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    child = get_child_for_user(db, user, child_id)
    months = age_in_months(child.birth_date)
    reminders = reminders_for_child(
        get_catalog(db),
        _child_records(db, child.child_id),
        months,
        settings.notification_max_booster_years,
    )
    return [{**asdict(r.expected), "type": r.type.value} for r in reminders]
