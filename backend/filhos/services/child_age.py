"""Module: child_age."""

from datetime import date, datetime


def _coerce_date(value: date | datetime | str | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip()).date()
    except ValueError:
        return None


def age_in_months(birth_date: date | datetime | str | None, today: date | None = None) -> int:
    """
    Whole calendar months between birth and today (day of month ignored).

    Missing, unparseable or future birth dates give 0.
    """
    birth = _coerce_date(birth_date)
    if birth is None:
        return 0

    today = today or date.today()
    months = (today.year - birth.year) * 12 + (today.month - birth.month)
    return max(months, 0)
