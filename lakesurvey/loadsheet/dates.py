"""
Resolution of the free-text date/time cells found in field sheets.

Sheets from different lakes and years write dates in a dozen ways. Every
pattern below is tried in order and the first one that matches and yields a
real calendar date wins. Wall-clock values are taken to be in a fixed UTC-8
offset with no daylight saving and are returned in UTC.

Day/month order for slash dates without a meridiem (and for the day-first
meridiem variant) follows one rule: day first, unless the second number
cannot be a month, in which case the numbers swap. ``05/06/2019 18:00`` is
therefore 5 June.
"""
import re
from datetime import date, datetime, timezone
from typing import Callable, NamedTuple

from lakesurvey.constants.constants import (
    LOCAL_UTC_OFFSET,
    MONTH_ABBREVIATIONS,
    TWO_DIGIT_YEAR_PIVOT,
)
from lakesurvey.exceptions.exceptions import DateParseFailure


class DatePattern(NamedTuple):
    name: str
    regex: re.Pattern
    build: Callable[[re.Match, date], datetime]


def _hour_24(hour: int, meridiem: str) -> int:
    meridiem = meridiem.upper()
    if meridiem == "PM" and hour < 12:
        return hour + 12
    if meridiem == "AM" and hour == 12:
        return 0
    # "16:00 PM" style cells already carry a 24-hour value
    return hour


def _day_first(first: int, second: int) -> tuple[int, int]:
    """Returns ``(day, month)`` for two slash-separated numbers of a day-first date."""
    if first <= 12 < second:
        return second, first
    return first, second


def _full_year(two_digit_year: int) -> int:
    if two_digit_year < TWO_DIGIT_YEAR_PIVOT:
        return 2000 + two_digit_year
    return 1900 + two_digit_year


def _us_meridiem(match, today):
    month, day, year, hour, minute, meridiem = match.groups()
    return datetime(int(year), int(month), int(day), _hour_24(int(hour), meridiem), int(minute))


def _day_first_meridiem(match, today):
    first, second, year, hour, minute, meridiem = match.groups()
    day, month = _day_first(int(first), int(second))
    return datetime(int(year), month, day, _hour_24(int(hour), meridiem), int(minute))


def _month_name(match, today):
    year, month_name, day, hour, minute = match.groups()
    month = MONTH_ABBREVIATIONS.get(month_name.capitalize())
    if month is None:
        raise ValueError(f"unknown month {month_name}")
    return datetime(int(year), month, int(day), int(hour), int(minute))


def _short_year_time(match, today):
    month, day, year, hour, minute = match.groups()
    return datetime(_full_year(int(year)), int(month), int(day), int(hour), int(minute))


def _day_first_time(match, today):
    first, second, year, hour, minute = match.groups()
    day, month = _day_first(int(first), int(second))
    return datetime(int(year), month, day, int(hour), int(minute))


def _iso_date(match, today):
    year, month, day = match.groups()
    return datetime(int(year), int(month), int(day))


def _short_year_date(match, today):
    month, day, year = match.groups()
    return datetime(_full_year(int(year)), int(month), int(day))


def _time_only(match, today):
    # Uses the date of the run, not the date of the sampling visit.
    hour, minute = match.groups()
    return datetime(today.year, today.month, today.day, int(hour), int(minute))


DATE_PATTERNS = [
    DatePattern(
        "MM/DD/YYYY hh:mm AM|PM",
        re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2})\s+(AM|PM)$", re.IGNORECASE),
        _us_meridiem,
    ),
    DatePattern(
        "DD/MM/YYYY hh: mm AM|PM",
        re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):\s*(\d{2})\s+(AM|PM)$", re.IGNORECASE),
        _day_first_meridiem,
    ),
    DatePattern(
        "YYYY/Mon/DD hh:mm",
        re.compile(r"^(\d{4})/([A-Za-z]{3})/(\d{1,2})\s+(\d{1,2}):(\d{2})$"),
        _month_name,
    ),
    DatePattern(
        "M/D/YY h:mm",
        re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})\s+(\d{1,2}):(\d{2})$"),
        _short_year_time,
    ),
    DatePattern(
        "DD/MM/YYYY hh.mm",
        re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2})\.(\d{2})$"),
        _day_first_time,
    ),
    DatePattern(
        "DD/MM/YYYY hh:mm",
        re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2})$"),
        _day_first_time,
    ),
    DatePattern(
        "YYYY-MM-DD",
        re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$"),
        _iso_date,
    ),
    DatePattern(
        "M/D/YY",
        re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$"),
        _short_year_date,
    ),
    DatePattern(
        "HH:MM",
        re.compile(r"^(\d{1,2}):(\d{2})$"),
        _time_only,
    ),
]


def resolve_date(token: str, today: date | None = None) -> datetime:
    """
    Resolves a sheet date/time cell to a UTC instant.

    Parameters
    ----------
    token : str
        The raw cell text. Surrounding double quotes are ignored.
    today : date, optional
        Local date used for time-only cells. Defaults to the current date at the fixed offset.

    Returns
    -------
    datetime
        Timezone aware instant in UTC.

    Raises
    ------
    DateParseFailure
        When no pattern matches or every matching pattern yields an impossible date.

    Examples
    --------
    .. code-block:: python

        resolve_date("03/28/2019 12:45 PM")
        # datetime(2019, 3, 28, 20, 45, tzinfo=timezone.utc)
    """
    text = str(token).strip()
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    text = text.strip()
    if today is None:
        today = datetime.now(LOCAL_UTC_OFFSET).date()
    for pattern in DATE_PATTERNS:
        match = pattern.regex.match(text)
        if not match:
            continue
        try:
            wall_clock = pattern.build(match, today)
        except ValueError:
            continue
        return wall_clock.replace(tzinfo=LOCAL_UTC_OFFSET).astimezone(timezone.utc)
    raise DateParseFailure(token)


def format_instant(instant: datetime | None) -> str | None:
    """
    Formats an instant the way exported records store it, e.g. ``2019-03-28T20:45:00.000Z``.
    """
    if instant is None:
        return None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    instant = instant.astimezone(timezone.utc)
    return instant.strftime("%Y-%m-%dT%H:%M:%S.") + f"{instant.microsecond // 1000:03d}Z"


def parse_instant(text: str | None) -> datetime | None:
    """
    Reads an exported ISO-8601 instant back. Naive values are taken as UTC.

    Raises
    ------
    ValueError
        When the text is not ISO-8601.
    """
    if not text:
        return None
    instant = datetime.fromisoformat(str(text).strip())
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)
