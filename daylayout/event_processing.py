from loguru import logger

from daylayout.models import Event
from daylayout.settings import DAY_MINUTES
from daylayout.utils import to_minutes, normalize_end, minutes_to_time


def _hour_floor(hhmm: str) -> int:
    return to_minutes(hhmm) // 60 * 60


def entry_to_event(entry: dict):
    """
    Turn one raw day entry into a timed Event.

    - start and end: used as given ("23:59" as an end means midnight).
    - start only: a one-hour block from the top of the start hour.
    - end only: the hour leading up to the end.
    - neither: all-day, returns None.
    """
    eid = str(entry["id"])
    title = str(entry.get("title", ""))
    created = entry.get("created")
    created = str(created) if created is not None else None
    start_raw = entry.get("start")
    end_raw = entry.get("end")

    has_start = start_raw not in (None, "")
    has_end = end_raw not in (None, "")

    if not has_start and not has_end:
        return None

    if has_start and has_end:
        start = to_minutes(start_raw)
        end = to_minutes(normalize_end(end_raw))
    elif has_start:
        start = _hour_floor(start_raw)
        end = min(DAY_MINUTES, start + 60)
    else:
        end = to_minutes(normalize_end(end_raw))
        if end == 0:
            logger.warning("Entry {} ends at midnight with no start, treating as all-day.", eid)
            return None
        start = max(0, end // 60 - 1) * 60

    return Event(eid, start, end, title=title, created=created)


def split_all_day_entries(entries: list[dict]) -> tuple:
    """
    Separate all-day entries from timed events; only the latter are laid out.
    """
    all_day, timed = [], []
    seen = set()
    for entry in entries:
        eid = str(entry["id"])
        if eid in seen:
            logger.debug("Skipping duplicate entry {}", eid)
            continue
        seen.add(eid)
        try:
            ev = entry_to_event(entry)
        except ValueError as e:
            logger.warning("Skipping entry {}: {}", eid, e)
            continue
        if ev is None:
            all_day.append(entry)
        else:
            timed.append(ev)
    return all_day, sorted(timed, key=lambda ev: (ev.start, ev.id))


def apply_time_change(entries: list[dict], event_id: str, start: str, end: str) -> list[dict]:
    """Return entries with one event moved to new HH:MM bounds."""
    out = []
    for entry in entries:
        if str(entry["id"]) == event_id:
            entry = {**entry, "start": start, "end": end}
            logger.debug("Moved {} to {}–{}", event_id, start, end)
        out.append(entry)
    return out


def describe(ev: Event) -> str:
    return f"{ev.title or ev.id} [{minutes_to_time(ev.start)}→{minutes_to_time(ev.end)}]"
