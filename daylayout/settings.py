import os
import re
from dateutil import tz
from datetime import datetime
from pathlib import Path
from loguru import logger

DAY_MINUTES = 1440


# Date/time  helpers
def today_date():
    return datetime.now(tz=TZ_LOCAL).date()

def _parse_clock(raw: str) -> int:
    """
    Parse a window boundary like "06:00", "6", or "24:00" into minutes of day.
      - Bare integers are whole hours.
      - "24:00" is accepted as the end of the day.
    """
    s = raw.strip()
    if re.fullmatch(r'\d{1,2}', s):
        hour = int(s)
        if not (0 <= hour <= 24):
            logger.error("Hour out of range [0–24]: {!r}", raw)
            raise ValueError(f"Hour out of range: '{raw}'")
        return hour * 60
    m = re.fullmatch(r'(\d{1,2}):(\d{2})', s)
    if not m:
        logger.error("Cannot parse clock time from {!r}.", raw)
        raise ValueError(f"Cannot parse clock time from '{raw}'")
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour == 24 and minute == 0:
        return DAY_MINUTES
    if not (0 <= hour < 24 and 0 <= minute < 60):
        logger.error("Clock time out of range: {!r}", raw)
        raise ValueError(f"Clock time out of range: '{raw}'")
    return hour * 60 + minute


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes")


def _parse_drag_mode(raw: str) -> str:
    mode = raw.strip().lower()
    if mode not in DRAG_MODES:
        logger.error("Unknown drag mode {!r}, expected one of {}.", raw, DRAG_MODES)
        raise ValueError(f"Unknown drag mode: '{raw}'")
    return mode


# Project root
BASE_DIR = Path(__file__).resolve().parent.parent

# File paths
CONFIG_PATH  = Path(os.getenv("APP_CONFIG_PATH", str(BASE_DIR / "day.yaml")))

TIMEZONE = os.getenv("TZ", "UTC")
TZ_LOCAL = tz.gettz(TIMEZONE) or tz.tzutc()

# Visible window
_raw_window_start = os.getenv("TIMELINE_WINDOW_START", "06:00")
_raw_window_end   = os.getenv("TIMELINE_WINDOW_END",   "22:00")

WINDOW_START = _parse_clock(_raw_window_start)
WINDOW_END   = _parse_clock(_raw_window_end)
if WINDOW_END <= WINDOW_START:
    logger.error("Window end {} is not after window start {}.", _raw_window_end, _raw_window_start)
    raise ValueError(f"Window end '{_raw_window_end}' must be after start '{_raw_window_start}'")

# Track geometry (pixels)
HOUR_HEIGHT    = float(os.getenv("TIMELINE_HOUR_HEIGHT", 74.4))
TRACK_LEFT     = float(os.getenv("TIMELINE_TRACK_LEFT", 65))
TRACK_WIDTH    = float(os.getenv("TIMELINE_TRACK_WIDTH", 325))
COLUMN_SPACING = float(os.getenv("TIMELINE_COLUMN_SPACING", 2))

# Drag gesture
DRAG_MODES = ("forward", "single")
GRID_MINUTES       = int(os.getenv("DRAG_GRID_MINUTES", 15))
LONG_PRESS_MS      = int(os.getenv("DRAG_LONG_PRESS_MS", 350))
DOUBLE_TAP_MS      = int(os.getenv("DRAG_DOUBLE_TAP_MS", 300))
LATERAL_CANCEL_PX  = float(os.getenv("DRAG_LATERAL_CANCEL_PX", 15))
DRAG_VISUAL_OFFSET = float(os.getenv("DRAG_VISUAL_OFFSET", 0))
DRAG_MODE          = _parse_drag_mode(os.getenv("DRAG_MODE", "forward"))

# Behavior
DEBUG_LAYERS = _parse_bool(os.getenv("APP_DEBUG_LAYERS", "false"))
