"""
Italian public holiday calendar.
Fixed-date holidays plus Easter Sunday and Easter Monday.
"""
from datetime import date, timedelta
from typing import Optional

# (month, day) -> holiday name
FIXED_HOLIDAYS = {
    (1, 1): "Capodanno",
    (1, 6): "Epifania",
    (4, 25): "Liberazione",
    (5, 1): "Lavoro",
    (6, 2): "Repubblica",
    (8, 15): "Ferragosto",
    (11, 1): "Ognissanti",
    (12, 8): "Immacolata",
    (12, 25): "Natale",
    (12, 26): "S. Stefano",
}


def easter_sunday(year: int) -> date:
    """Easter Sunday for a Gregorian year (Anonymous Gregorian algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def italian_holiday(day: date) -> Optional[str]:
    """Return the holiday name for a date, or None if it is not a holiday."""
    name = FIXED_HOLIDAYS.get((day.month, day.day))
    if name:
        return name

    easter = easter_sunday(day.year)
    if day == easter:
        return "Pasqua"
    if day == easter + timedelta(days=1):
        return "Lunedì dell'Angelo"

    return None
