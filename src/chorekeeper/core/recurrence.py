"""Pure recurrence logic - no I/O dependencies."""

from datetime import datetime, timedelta
from enum import Enum

from dateutil.relativedelta import relativedelta


class RecurrenceRule(Enum):
    """How often an item repeats."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: str | None) -> "RecurrenceRule":
        """Parse a rule name, case-insensitive. Empty means NONE."""
        if not value or not value.strip():
            return cls.NONE
        try:
            return cls(value.strip().lower())
        except ValueError:
            names = ", ".join(r.value for r in cls)
            raise ValueError(f"Unknown recurrence '{value}' (expected one of: {names})")

    def advance(self, from_: datetime) -> datetime | None:
        """Next occurrence after from_, or None for one-off items."""
        return next_occurrence(self, from_)


def _step(rule: RecurrenceRule, periods: int) -> timedelta | relativedelta:
    match rule:
        case RecurrenceRule.DAILY:
            return timedelta(days=periods)
        case RecurrenceRule.WEEKLY:
            return timedelta(weeks=periods)
        case RecurrenceRule.MONTHLY:
            # relativedelta clamps to the last day of shorter months
            return relativedelta(months=periods)
    raise ValueError(f"{rule} has no period")


def next_occurrence(rule: RecurrenceRule, from_: datetime) -> datetime | None:
    """
    Advance one period from a given moment.

    Daily and weekly add fixed days, so the weekday and wall-clock time are
    kept. Monthly adds one calendar month (Jan 31 -> Feb 28/29).

    Pure function - no I/O.
    """
    if rule is RecurrenceRule.NONE:
        return None
    return from_ + _step(rule, 1)


def occurrences(rule: RecurrenceRule, start: datetime, count: int) -> list[datetime]:
    """
    The next `count` occurrences after start.

    Offsets are taken from start rather than chained, so a monthly series
    from Jan 31 gives Feb 28, Mar 31, Apr 30 instead of drifting to the 28th.
    """
    if rule is RecurrenceRule.NONE or count <= 0:
        return []
    return [start + _step(rule, n) for n in range(1, count + 1)]
