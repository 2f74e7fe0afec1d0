"""Installment schedule math: due dates for weekly, biweekly and monthly plans.

Everything here is pure. Index 0 is the first installment and falls on the
start date itself; index i is ``start + i × frequency``. Monthly steps are
calendar months with the day clamped to the target month's length
(Jan 31 + 1 month = Feb 28/29), so due dates are strictly increasing in i.
"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


MONTHLY = "monthly"
BIWEEKLY = "biweekly"
WEEKLY = "weekly"

_DAY_STEPS = {
    BIWEEKLY: 14,
    WEEKLY: 7,
}


def add_months(start: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping the day."""
    return start + relativedelta(months=months)


def due_date(start: date, frequency: str, index: int) -> date:
    """
    Due date of the installment at ``index`` (0-based).

    Raises:
        ValueError: If the frequency is unknown or the index is negative.
    """
    if index < 0:
        raise ValueError(f"Installment index must be >= 0, got {index}")

    if frequency == MONTHLY:
        return add_months(start, index)
    if frequency in _DAY_STEPS:
        return start + timedelta(days=_DAY_STEPS[frequency] * index)
    raise ValueError(f"Unknown frequency: {frequency}")


def due_dates(start: date, frequency: str, count: int, offset: int = 0) -> list[date]:
    """Due dates for installment indices ``offset`` .. ``count - 1``."""
    return [due_date(start, frequency, i) for i in range(offset, count)]


def schedule_end_date(start: date, frequency: str, count: int) -> date:
    """End of the plan: one full period after the last installment starts."""
    return due_date(start, frequency, count)


def is_past_due(due: date, today: date) -> bool:
    """An installment is past due when its date is strictly before today."""
    return due < today


def count_past_due(start: date, frequency: str, count: int, today: date | None = None) -> int:
    """
    Length of the contiguous prefix of due dates strictly before ``today``.

    Due dates are monotonic, so the walk stops at the first date that is
    today or later. A plan starting today or in the future has none.

    Args:
        start: Date of installment 0.
        frequency: "weekly", "biweekly" or "monthly".
        count: Total number of installments.
        today: Reference date (defaults to date.today()).

    Returns:
        Number of installments already due, between 0 and count.
    """
    today = today or date.today()
    if start >= today:
        return 0

    past = 0
    for i in range(count):
        if not is_past_due(due_date(start, frequency, i), today):
            break
        past += 1
    return past
