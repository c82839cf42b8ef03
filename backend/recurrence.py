"""
Recurrence rules for recurring tasks.

A task stores its rule as a pattern string:
    "daily"                          every working day
    "weekly"                         same weekday as the start date
    "monthly"                        same day of month as the start date
    "monthly:<ordinal>:<weekday>"    e.g. "monthly:third:5" (3rd Friday)

Weekdays are numbered 0 = Sunday .. 6 = Saturday everywhere in this module.
Patterns are parsed once into a rule object; matching never re-parses strings.
"""
from calendar import monthrange
from datetime import date, timedelta
from typing import Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

Ordinal = Literal["first", "second", "third", "fourth", "last"]

# Day-of-month band for each fixed ordinal; "last" is computed
ORDINAL_BANDS = {
    "first": (1, 7),
    "second": (8, 14),
    "third": (15, 21),
    "fourth": (22, 28),
}
ORDINALS = ("first", "second", "third", "fourth", "last")


class Daily(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["daily"] = "daily"

class Weekly(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["weekly"] = "weekly"

class Monthly(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["monthly"] = "monthly"

class MonthlyOrdinal(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["monthly_ordinal"] = "monthly_ordinal"
    ordinal: Ordinal
    weekday: int  # 0 = Sunday .. 6 = Saturday

RecurrenceRule = Union[Daily, Weekly, Monthly, MonthlyOrdinal]


def weekday_number(day: date) -> int:
    """Day of week with 0 = Sunday .. 6 = Saturday."""
    return day.isoweekday() % 7


def parse_recurrence_pattern(pattern: Optional[str]) -> Optional[RecurrenceRule]:
    """
    Parse a stored pattern string into a rule.
    Returns None for anything unrecognized; callers treat that as "never due".
    """
    if not pattern:
        return None

    pattern = pattern.lower().strip()

    if pattern == "daily":
        return Daily()
    if pattern == "weekly":
        return Weekly()
    if pattern == "monthly":
        return Monthly()

    if pattern.startswith("monthly:"):
        parts = pattern.split(":")
        if len(parts) != 3:
            return None
        ordinal = parts[1].strip()
        if ordinal not in ORDINALS:
            return None
        try:
            weekday = int(parts[2].strip())
        except ValueError:
            return None
        if not 0 <= weekday <= 6:
            return None
        return MonthlyOrdinal(ordinal=ordinal, weekday=weekday)

    return None


def format_recurrence_pattern(rule: RecurrenceRule) -> str:
    """Inverse of parse_recurrence_pattern."""
    if isinstance(rule, MonthlyOrdinal):
        return f"monthly:{rule.ordinal}:{rule.weekday}"
    return rule.kind


def is_last_weekday_of_month(day: date) -> bool:
    """True if the same weekday one week later falls in the next month."""
    return day.day + 7 > monthrange(day.year, day.month)[1]


def rule_matches(rule: Optional[RecurrenceRule], day: date, anchor: date) -> bool:
    """
    Check whether a rule is due on a specific date.
    anchor is the recurrence start date; weekly and monthly rules repeat its
    weekday and day of month.
    """
    if rule is None:
        return False

    if isinstance(rule, Daily):
        return True

    if isinstance(rule, Weekly):
        return weekday_number(day) == weekday_number(anchor)

    if isinstance(rule, Monthly):
        # No clamping: an anchor on the 31st never matches a 30-day month
        return day.day == anchor.day

    if isinstance(rule, MonthlyOrdinal):
        if weekday_number(day) != rule.weekday:
            return False
        if rule.ordinal == "last":
            return is_last_weekday_of_month(day)
        low, high = ORDINAL_BANDS[rule.ordinal]
        return low <= day.day <= high

    return False


def pattern_matches_date(pattern: Optional[str], day: date, anchor: date) -> bool:
    """Check a pattern string against a date."""
    return rule_matches(parse_recurrence_pattern(pattern), day, anchor)


def next_due_date(
    rule: Optional[RecurrenceRule],
    anchor: date,
    after: date,
    is_working_day: Callable[[date], bool],
    end: Optional[date] = None,
    limit_days: int = 366,
) -> Optional[date]:
    """
    Find the first working day on or after `after` (and not before the anchor)
    on which the rule is due. Walks forward at most limit_days.
    Returns None if there is none.
    """
    if rule is None:
        return None

    current = max(after, anchor)
    for _ in range(limit_days):
        if end and current > end:
            return None
        if is_working_day(current) and rule_matches(rule, current, anchor):
            return current
        if current == date.max:
            return None
        current += timedelta(days=1)
    return None
