"""
Module: vaccine_schedule.

The national calendar publishes each vaccine's expected ages as free text
("2, 4 meses + reforço 12 meses") and its doses as a parallel comma-joined
list ("1ª, 2ª dose + Reforço"). The helpers here turn both into aligned
sequences and compare them against what caregivers recorded.

Two evaluation profiles exist and deliberately disagree:

* dashboard (`vaccine_status`): year boosters capped at 6 years, and any
  record of a vaccine counts as covering every dose of it;
* notification (`reminders_for_child`): year boosters capped at 14 years,
  and records are matched dose by dose on their label text.

Nothing here raises on malformed catalog or record data. Inputs are duck
typed: definitions need ``id``, ``name``, ``recommended_doses`` and
``age_range``; records need ``sus_vaccine_id`` and ``dose``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

DASHBOARD_MAX_YEARS = 6
NOTIFICATION_MAX_YEARS = 14

BIRTH_MARKERS = ("Ao nascer", "primeiras 24h")
MONTHS_RE = re.compile(r"(\d+)\s*m[eê]s(?:es)?", re.IGNORECASE)
LEADING_MONTH_LIST_RE = re.compile(r"^(\d+),\s*(\d+),?\s*(\d+)?\s*meses", re.IGNORECASE)
YEARS_RE = re.compile(r"(\d+)\s*anos?", re.IGNORECASE)
# Phrases that force an age into the result even when written loosely.
ANCHOR_AGES = (
    (("12 meses", "reforço 12m"), 12),
    (("15 meses",), 15),
)

ORDINAL_RE = re.compile(r"^\d+\s*[ªºa°]$")
ORDINAL_WITH_NOUN_RE = re.compile(r"^\d+\s*[ªºa°]\s+(\w+)$")

# Caregivers log the first dose of a series under any of these names.
BIRTH_DOSE_SYNONYMS = ("dose ao nascer", "ao nascer", "dose única", "1ª dose", "1a dose")


class MatchMode(str, Enum):
    IDENTITY = "identity"
    LABEL = "label"


class ReminderType(str, Enum):
    UPCOMING = "upcoming"
    DUE = "due"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class ExpectedDose:
    vaccine_id: int
    vaccine_name: str
    dose: str
    expected_months: int


@dataclass(frozen=True)
class PendingStatus:
    status: str
    pending_count: int
    pending_vaccines: list[ExpectedDose] = field(default_factory=list)


@dataclass(frozen=True)
class DoseReminder:
    expected: ExpectedDose
    type: ReminderType


# -------------------------
# Parsing
# -------------------------
def parse_age_range(age_range: str | None, max_years: int = DASHBOARD_MAX_YEARS) -> list[int]:
    """
    Convert a free-text age range into sorted, distinct ages in months.

    >>> parse_age_range("9 meses + reforço 4 anos")
    [9, 48]
    """
    text = age_range or ""
    months: set[int] = set()

    if any(marker in text for marker in BIRTH_MARKERS):
        months.add(0)

    for match in MONTHS_RE.finditer(text):
        value = int(match.group(1))
        if value > 0:
            months.add(value)

    # "2, 4, 6 meses" only names the unit once, after the last number.
    leading = LEADING_MONTH_LIST_RE.match(text)
    if leading:
        months.update(int(group) for group in leading.groups() if group)

    for phrases, age in ANCHOR_AGES:
        if any(phrase in text for phrase in phrases):
            months.add(age)

    for match in YEARS_RE.finditer(text):
        years = int(match.group(1))
        if 1 <= years <= max_years:
            months.add(years * 12)

    return sorted(months)


def split_dose_labels(recommended_doses: str | None) -> list[str]:
    """
    Split a published dose list into ordered labels.

    Commas and "+" both separate labels. Bare ordinals borrow the noun of the
    last label in their group, so "1ª, 2ª dose + Reforço" becomes
    ["1ª dose", "2ª dose", "Reforço"].
    """
    labels: list[str] = []
    for group in (recommended_doses or "").split("+"):
        items = [item.strip() for item in group.split(",") if item.strip()]
        if not items:
            continue

        noun_match = ORDINAL_WITH_NOUN_RE.match(items[-1])
        noun = noun_match.group(1) if noun_match else None
        for item in items:
            if noun and ORDINAL_RE.match(item):
                item = f"{item} {noun}"
            labels.append(item)
    return labels


# -------------------------
# Dose matching
# -------------------------
def _label_for_age(doses: Sequence[str], ages: Sequence[int], age_months: int) -> str | None:
    if len(doses) == 1:
        return doses[0]
    if age_months not in ages:
        return None

    index = ages.index(age_months)
    if index < len(doses):
        return doses[index]
    return doses[0] if doses else None


def dose_for_age(definition: Any, age_months: int, max_years: int = DASHBOARD_MAX_YEARS) -> str | None:
    """Return the dose label a vaccine expects at ``age_months``, or None."""
    doses = split_dose_labels(definition.recommended_doses)
    ages = parse_age_range(definition.age_range, max_years)
    return _label_for_age(doses, ages, age_months)


def expected_doses(
    definitions: Iterable[Any],
    max_years: int,
    up_to_age: int | None = None,
) -> list[ExpectedDose]:
    out: list[ExpectedDose] = []
    for definition in definitions:
        doses = split_dose_labels(definition.recommended_doses)
        ages = parse_age_range(definition.age_range, max_years)

        for age in ages:
            if up_to_age is not None and age > up_to_age:
                continue
            label = _label_for_age(doses, ages, age)
            if label is None:
                continue
            out.append(
                ExpectedDose(
                    vaccine_id=definition.id,
                    vaccine_name=definition.name,
                    dose=label,
                    expected_months=age,
                )
            )
    return out


def labels_match(recorded: str | None, expected: str | None) -> bool:
    rec = (recorded or "").strip().lower()
    exp = (expected or "").strip().lower()
    if not rec or not exp:
        return False

    if rec == exp or rec in exp or exp in rec:
        return True

    rec_birth = any(synonym in rec for synonym in BIRTH_DOSE_SYNONYMS)
    exp_birth = any(synonym in exp for synonym in BIRTH_DOSE_SYNONYMS)
    return rec_birth and exp_birth


def is_dose_recorded(
    records: Iterable[Any],
    vaccine_id: int,
    dose: str,
    mode: MatchMode = MatchMode.LABEL,
) -> bool:
    for record in records:
        if record.sus_vaccine_id != vaccine_id:
            continue
        if mode is MatchMode.IDENTITY or labels_match(record.dose, dose):
            return True
    return False


# -------------------------
# Evaluators
# -------------------------
def vaccine_status(
    definitions: Iterable[Any],
    records: Sequence[Any],
    age_months: int,
    max_years: int = DASHBOARD_MAX_YEARS,
) -> PendingStatus:
    """
    Dashboard badge: which vaccines are behind for a child of this age.

    A vaccine with any record is treated as complete. Each vaccine without
    records contributes a single entry, its earliest past-due dose.
    """
    pending: list[ExpectedDose] = []
    seen: set[int] = set()

    for expected in expected_doses(definitions, max_years, up_to_age=age_months):
        if expected.vaccine_id in seen:
            continue
        if is_dose_recorded(records, expected.vaccine_id, expected.dose, MatchMode.IDENTITY):
            continue
        seen.add(expected.vaccine_id)
        pending.append(expected)

    return PendingStatus(
        status="upToDate" if not pending else "pending",
        pending_count=len(pending),
        pending_vaccines=pending,
    )


def pending_doses_by_vaccine(
    definitions: Iterable[Any],
    records: Sequence[Any],
    age_months: int,
    max_years: int = DASHBOARD_MAX_YEARS,
) -> dict[int, list[ExpectedDose]]:
    """Every past-due dose without a matching label, grouped by vaccine id."""
    grouped: dict[int, list[ExpectedDose]] = {}
    for expected in expected_doses(definitions, max_years, up_to_age=age_months):
        if is_dose_recorded(records, expected.vaccine_id, expected.dose, MatchMode.LABEL):
            continue
        grouped.setdefault(expected.vaccine_id, []).append(expected)
    return grouped


def classify_dose(expected_months: int, age_months: int) -> ReminderType | None:
    diff = expected_months - age_months
    if diff == 0:
        return ReminderType.DUE
    if diff == 1:
        return ReminderType.UPCOMING
    if -2 <= diff <= -1:
        return ReminderType.OVERDUE
    # Too far ahead, or too late for a reminder to be useful.
    return None


def reminders_for_child(
    definitions: Iterable[Any],
    records: Sequence[Any],
    age_months: int,
    max_years: int = NOTIFICATION_MAX_YEARS,
) -> list[DoseReminder]:
    reminders: list[DoseReminder] = []
    for expected in expected_doses(definitions, max_years):
        if is_dose_recorded(records, expected.vaccine_id, expected.dose, MatchMode.LABEL):
            continue
        kind = classify_dose(expected.expected_months, age_months)
        if kind is not None:
            reminders.append(DoseReminder(expected=expected, type=kind))
    return reminders
