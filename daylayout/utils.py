from datetime import datetime, date
import re
from loguru import logger
from dateutil import parser as date_parser

from daylayout.settings import DAY_MINUTES, GRID_MINUTES


def to_minutes(hhmm: str) -> int:
    """
    Convert an "HH:MM" string to minutes since midnight.

    "24:00" maps to the end of the day (1440). Integers are taken as minutes
    already, which is what YAML 1.1 makes of an unquoted "10:00".
    """
    if isinstance(hhmm, int) and not isinstance(hhmm, bool):
        if not (0 <= hhmm <= DAY_MINUTES):
            raise ValueError(f"Minutes out of range: {hhmm}")
        return hhmm
    s = str(hhmm).strip()
    if s == "24:00":
        return DAY_MINUTES
    m = re.fullmatch(r'(\d{1,2}):(\d{2})', s)
    if not m:
        logger.error("Invalid HH:MM time {!r}", hhmm)
        raise ValueError(f"Invalid HH:MM time: '{hhmm}'")
    hour, minute = int(m.group(1)), int(m.group(2))
    if not (0 <= hour < 24 and 0 <= minute < 60):
        logger.error("HH:MM time out of range {!r}", hhmm)
        raise ValueError(f"HH:MM time out of range: '{hhmm}'")
    return hour * 60 + minute


def minutes_to_time(minutes: int) -> str:
    """Inverse of to_minutes; 1440 renders as "24:00"."""
    minutes = max(0, min(DAY_MINUTES, int(minutes)))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_end(hhmm):
    # A day that "ends" at 23:59 is treated as running to midnight.
    if isinstance(hhmm, int):
        return DAY_MINUTES if hhmm == 23 * 60 + 59 else hhmm
    return "24:00" if hhmm.strip() == "23:59" else hhmm.strip()


def snap_minutes(minutes: float, grid: int = GRID_MINUTES) -> int:
    """Round to the nearest grid step and clamp into the day."""
    snapped = int(round(minutes / grid)) * grid
    return max(0, min(DAY_MINUTES, snapped))


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def day_key(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def parse_day(s) -> date:
    """
    Accept a date, a datetime, or any string dateutil can read.
    """
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    return date_parser.parse(str(s)).date()
