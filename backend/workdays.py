from datetime import date
from typing import Callable, Optional

from recurrence import weekday_number

HolidayLookup = Callable[[date], Optional[str]]

SUNDAY = 0
SATURDAY = 6


def is_working_day(
    day: date,
    treat_saturday_as_holiday: bool,
    holiday_lookup: Optional[HolidayLookup] = None,
) -> bool:
    """
    Check whether recurring entries may be generated on a date.
    Sundays are never working days; Saturdays only when not treated as holidays.
    holiday_lookup returns a holiday name or None; no lookup means no holidays.
    """
    weekday = weekday_number(day)
    if weekday == SUNDAY:
        return False
    if weekday == SATURDAY and treat_saturday_as_holiday:
        return False
    if holiday_lookup is not None and holiday_lookup(day):
        return False
    return True


class WorkdayCalendar:
    """Working-day configuration shared by a generation run."""

    def __init__(self, treat_saturday_as_holiday: bool = True, holiday_lookup: Optional[HolidayLookup] = None):
        self.treat_saturday_as_holiday = treat_saturday_as_holiday
        self.holiday_lookup = holiday_lookup

    def holiday_name(self, day: date) -> Optional[str]:
        if self.holiday_lookup is None:
            return None
        return self.holiday_lookup(day) or None

    def is_working_day(self, day: date) -> bool:
        return is_working_day(day, self.treat_saturday_as_holiday, self.holiday_lookup)
