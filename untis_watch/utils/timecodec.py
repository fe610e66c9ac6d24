"""Conversion of WebUntis compact dates and times"""
from datetime import datetime, tzinfo
from enum import Enum
from typing import Iterable, Optional, Tuple

import pytz

from ..storage.models import TimegridDay


class Edge(Enum):
    """Which boundary of a lesson a timestamp marks"""
    START = "start"
    END = "end"


def get_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    Resolve a timezone name.

    Args:
        name: IANA timezone name (e.g., 'Europe/Berlin'), or None for
            the host's local time

    Returns:
        pytz timezone, or None when no name was given
    """
    if not name:
        return None
    return pytz.timezone(name)


def decode_date(date_num: int) -> Tuple[int, int, int]:
    """
    Split a YYYYMMDD integer into its parts.

    Args:
        date_num: Date such as 20240315

    Returns:
        (year, month, day)
    """
    text = str(date_num)
    if len(text) != 8 or not text.isdigit():
        raise ValueError(f"Invalid date: {date_num!r}")

    year, month, day = int(text[0:4]), int(text[4:6]), int(text[6:8])
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        raise ValueError(f"Invalid date: {date_num!r}")
    return year, month, day


def decode_time(time_num: int) -> Tuple[int, int]:
    """
    Split a compact HMM/HHMM integer into hour and minute.

    800 is 08:00 and 1345 is 13:45; the last two digits are always the minute.
    """
    text = str(time_num)
    if not 3 <= len(text) <= 4 or not text.isdigit():
        raise ValueError(f"Invalid time: {time_num!r}")

    hour, minute = int(text[:-2]), int(text[-2:])
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time: {time_num!r}")
    return hour, minute


def to_timestamp(date_num: int, time_num: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Combine a compact date and time into an aware datetime.

    Args:
        date_num: YYYYMMDD date
        time_num: HMM/HHMM time
        tz: Timezone the school lives in; host local time if None

    Returns:
        Timezone-aware datetime with seconds set to zero
    """
    year, month, day = decode_date(date_num)
    hour, minute = decode_time(time_num)
    naive = datetime(year, month, day, hour, minute, 0)

    if tz is None:
        return naive.astimezone()
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def untis_weekday(timestamp: datetime) -> int:
    """Weekday in WebUntis numbering: Sunday = 1 ... Saturday = 7"""
    return timestamp.isoweekday() % 7 + 1


def discord_timestamp(timestamp: datetime, style: str) -> str:
    """Render a Discord timestamp tag, shown in each reader's own locale"""
    return f"<t:{int(timestamp.timestamp())}:{style}>"


def format_for_display(
    timestamp: datetime,
    edge: Edge,
    timegrid: Optional[Iterable[TimegridDay]] = None
) -> str:
    """
    Describe a lesson boundary by its period name where possible.

    Args:
        timestamp: Start or end of the lesson
        edge: Whether ``timestamp`` is the start or the end
        timegrid: School timegrid, may be None when it could not be fetched

    Returns:
        'lesson <name>' for a timegrid match, otherwise a short time tag
    """
    compact = timestamp.hour * 100 + timestamp.minute
    weekday = untis_weekday(timestamp)

    for day in timegrid or ():
        if day.day != weekday:
            continue
        for unit in day.time_units:
            boundary = unit.start_time if edge is Edge.START else unit.end_time
            if boundary == compact:
                return f"lesson {unit.name}"

    return discord_timestamp(timestamp, "t")
