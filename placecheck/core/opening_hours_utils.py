"""
Utilities for parsing venue opening hours and doing wall-clock time arithmetic.
"""

import re
from datetime import datetime
from enum import IntEnum

from placecheck.core.errors import ParseError
from placecheck.core.schemas import TimeRange

# "9:00 AM – 6:00 PM", en-dash or hyphen, any (unicode) whitespace
TIME_RANGE_PATTERN = re.compile(
    r"(\d{1,2}:\d{2}\s*[AP]M)\s*[–\-]\s*(\d{1,2}:\d{2}\s*[AP]M)", re.IGNORECASE
)
WEEKDAY_LABEL_PATTERN = re.compile(r"^[A-Za-z]+:\s*")
AM_PM_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE)
HOUR_MIN_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")

MINUTES_PER_DAY = 24 * 60


class Weekday(IntEnum):
    """Day of week, ordered the way opening-hours lists are indexed."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_datetime(cls, value: datetime) -> "Weekday":
        # datetime.weekday() is Monday=0
        return cls((value.weekday() + 1) % 7)

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def next(self) -> "Weekday":
        return Weekday((self + 1) % 7)

    def previous(self) -> "Weekday":
        return Weekday((self - 1) % 7)


def is_closed_text(day_schedule: str) -> bool:
    return "closed" in day_schedule.lower()


def is_24_hours_text(day_schedule: str) -> bool:
    return "24 hours" in day_schedule.lower()


def convert_to_24h(hour: int, minute: int, meridiem: str) -> str:
    """
    Convert 12-hour time to 24-hour format string.

    Args:
        hour: Hour (1-12)
        minute: Minute (0-59)
        meridiem: "AM" or "PM"

    Returns:
        Time string in HH:MM format (24-hour)

    Raises:
        ParseError: If hour or minute is out of range for a 12-hour clock
    """
    if hour < 1 or hour > 12:
        raise ParseError(f"Invalid hour {hour} in 12-hour time")
    if minute < 0 or minute > 59:
        raise ParseError(f"Invalid minute {minute} in 12-hour time")

    meridiem = meridiem.upper()

    if meridiem == "AM":
        if hour == 12:
            hour = 0
    else:  # PM
        if hour != 12:
            hour += 12

    return f"{hour:02d}:{minute:02d}"


def to_24_hour(time_12h: str) -> str:
    """Convert a string like "9:30 PM" to "21:30"."""
    match = AM_PM_PATTERN.fullmatch(time_12h.strip())
    if not match:
        raise ParseError(f"Could not parse 12-hour time '{time_12h}'")
    return convert_to_24h(int(match.group(1)), int(match.group(2)), match.group(3))


def parse_time_ranges(day_schedule: str) -> list[TimeRange]:
    """
    Extract every opening range from a single day's schedule text.

    Args:
        day_schedule: e.g. "Monday: 11:00 AM – 2:00 PM, 6:00 PM – 10:00 PM"

    Returns:
        One TimeRange per range found, in text order. Empty if nothing parses.

    Raises:
        ParseError: If a range is found but an endpoint is not a valid time
    """
    times_part = WEEKDAY_LABEL_PATTERN.sub("", day_schedule.strip(), count=1)

    ranges = []
    for open_text, close_text in TIME_RANGE_PATTERN.findall(times_part):
        ranges.append(
            TimeRange(
                open=to_24_hour(open_text),
                close=to_24_hour(close_text),
                open_display=open_text,
                close_display=close_text,
            )
        )
    return ranges


def parse_time_to_minutes(time_str: str) -> int:
    """
    Convert time string to minutes since midnight.

    Args:
        time_str: Time in "HH:MM AM/PM" or "HH:MM" format

    Returns:
        Minutes since midnight (0-1439)

    Raises:
        ParseError: If the string is not a valid time
    """
    time_str = time_str.strip()

    # Handle 12-hour format with AM/PM
    if AM_PM_PATTERN.match(time_str):
        return parse_time_to_minutes(to_24_hour(time_str))

    # Handle 24-hour format (HH:MM)
    match = HOUR_MIN_PATTERN.match(time_str)
    if not match:
        raise ParseError(f"Could not parse time string '{time_str}'")

    hour = int(match.group(1))
    minute = int(match.group(2))

    if hour < 0 or hour > 23:
        raise ParseError(f"Invalid hour {hour} in 24-hour format '{time_str}'")
    if minute < 0 or minute > 59:
        raise ParseError(f"Invalid minute {minute} in '{time_str}'")

    return hour * 60 + minute


def format_time(value: datetime) -> str:
    """Format a datetime's wall-clock time as HH:MM."""
    return f"{value.hour:02d}:{value.minute:02d}"


def find_range_containing(ranges: list[TimeRange], time_str: str) -> TimeRange | None:
    """
    Return the first range that contains time_str (inclusive at both ends).

    A range whose close is not after its open (e.g. 6:00 PM – 2:00 AM) runs
    past midnight; only the part on the scheduled day is matched.
    """
    minutes = parse_time_to_minutes(time_str)
    for time_range in ranges:
        open_minutes = parse_time_to_minutes(time_range.open)
        close_minutes = parse_time_to_minutes(time_range.close)
        if close_minutes <= open_minutes:
            close_minutes += MINUTES_PER_DAY
        if open_minutes <= minutes <= close_minutes:
            return time_range
    return None


def minutes_until_close(time_range: TimeRange, time_str: str) -> int:
    """Minutes from time_str until the range closes."""
    minutes = parse_time_to_minutes(time_str)
    open_minutes = parse_time_to_minutes(time_range.open)
    close_minutes = parse_time_to_minutes(time_range.close)
    if close_minutes <= open_minutes:
        close_minutes += MINUTES_PER_DAY
    return close_minutes - minutes
