from loguru import logger

from daylayout.drag import DragController
from daylayout.event_processing import apply_time_change


class RecordingWriter:
    """
    Schedule writer that keeps the day's raw entries in memory.

    Single-day overrides and forward schedule changes both move the entry for
    the replayed day; they are kept apart in ``overrides`` and ``schedule``.
    """

    def __init__(self, entries: list[dict]):
        self.entries = list(entries)
        self.overrides = {}
        self.schedule = {}

    def set_time_override(self, event_id, day, start, end):
        logger.info("Override {} on {}: {}–{}", event_id, day, start, end)
        self.overrides[(event_id, day)] = (start, end)
        self.entries = apply_time_change(self.entries, event_id, start, end)

    def update_schedule_from(self, event_id, day, start, end):
        logger.info("Reschedule {} from {}: {}–{}", event_id, day, start, end)
        self.schedule[event_id] = (day, start, end)
        self.entries = apply_time_change(self.entries, event_id, start, end)


def _sample(raw):
    # [at, dy] or [at, dx, dy]
    if len(raw) == 2:
        return raw[0], 0.0, raw[1]
    return raw[0], raw[1], raw[2]


def replay_gesture(controller: DragController, gesture: dict):
    """
    Drive a controller through one scripted gesture.

    ``gesture`` has ``event``, ``press`` (ms), ``moves`` and either
    ``release`` or ``terminate`` (ms). Returns the commit, if any.
    """
    controller.press(str(gesture["event"]), gesture.get("press", 0))
    for raw in gesture.get("moves", []):
        at, dx, dy = _sample(raw)
        controller.tick(at)
        controller.move(dx, dy, at)

    if "terminate" in gesture:
        controller.terminate()
        return None
    at = gesture.get("release")
    if at is None:
        logger.warning("Gesture on {} has no release, terminating", gesture["event"])
        controller.terminate()
        return None
    controller.tick(at)
    return controller.release(at)
