import yaml
from loguru import logger

import daylayout.settings as settings
from daylayout.geometry import get_track_config
from daylayout.utils import to_minutes, parse_day


def load_config(path=None) -> dict:
    """Load a day scenario and normalize its timeline overrides."""
    path = path or settings.CONFIG_PATH
    with open(path, 'r', encoding='utf-8') as f:
        logger.debug("Loading configuration from {}", path)
        config = yaml.safe_load(f) or {}

    config.setdefault("events", [])
    config.setdefault("gestures", [])
    config["day"] = parse_day(config["day"]) if config.get("day") else settings.today_date()

    timeline = config.get("timeline") or {}
    mode = str(timeline.get("drag_mode", settings.DRAG_MODE)).lower()
    if mode not in settings.DRAG_MODES:
        logger.error("Unknown drag mode {!r} in {}", mode, path)
        raise ValueError(f"Unknown drag mode: '{mode}'")

    window_start = to_minutes(timeline["window_start"]) if "window_start" in timeline else None
    window_end = to_minutes(timeline["window_end"]) if "window_end" in timeline else None
    track = get_track_config(
        window_start=window_start,
        window_end=window_end,
        hour_height=timeline.get("hour_height"),
        track_width=timeline.get("track_width"),
    )
    if track["window_end"] <= track["window_start"]:
        logger.error("Timeline window in {} ends before it starts", path)
        raise ValueError("Timeline window end must be after its start")

    config["timeline"] = {"drag_mode": mode, "track": track}
    return config
