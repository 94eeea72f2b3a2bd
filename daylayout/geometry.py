from __future__ import annotations

from typing import Optional

import daylayout.settings as settings
from daylayout.models import Event, LayoutInfo


def get_track_config(
    window_start: int | None = None,
    window_end: int | None = None,
    hour_height: float | None = None,
    track_left: float | None = None,
    track_width: float | None = None,
) -> dict[str, float]:
    """Pixel geometry of the day track, defaulting to the environment settings."""
    return {
        "window_start":   settings.WINDOW_START if window_start is None else window_start,
        "window_end":     settings.WINDOW_END if window_end is None else window_end,
        "hour_height":    settings.HOUR_HEIGHT if hour_height is None else hour_height,
        "track_left":     settings.TRACK_LEFT if track_left is None else track_left,
        "track_width":    settings.TRACK_WIDTH if track_width is None else track_width,
        "spacing":        settings.COLUMN_SPACING,
        "visual_offset":  settings.DRAG_VISUAL_OFFSET,
    }


def minutes_to_y(minutes: float, track: dict[str, float]) -> float:
    """
    Convert minutes since midnight to a vertical offset from the window top.
    """
    return (minutes - track["window_start"]) / 60 * track["hour_height"]


def y_to_minutes(y: float, track: dict[str, float]) -> float:
    return track["window_start"] + y / track["hour_height"] * 60


def is_visible(ev: Event, track: dict[str, float]) -> bool:
    return ev.end > track["window_start"] and ev.start < track["window_end"]


def event_box(
    ev: Event,
    info: LayoutInfo,
    track: dict[str, float],
) -> Optional[dict[str, float]]:
    """
    Rectangle for one event, clipped to the visible window.

    Returns None for events entirely outside the window.
    """
    if not is_visible(ev, track):
        return None

    visible_start = max(ev.start, track["window_start"])
    visible_end = min(ev.end, track["window_end"])

    col_width = track["track_width"] / info.total_columns
    spacing = track["spacing"] if info.total_columns > 1 else 0

    return {
        "top":    minutes_to_y(visible_start, track),
        "height": (visible_end - visible_start) / 60 * track["hour_height"],
        "left":   track["track_left"] + info.column * col_width + info.column * spacing,
        "width":  max(0.0, info.span * col_width - spacing),
    }
