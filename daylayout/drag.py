from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol

from loguru import logger

import daylayout.settings as settings
from daylayout.geometry import get_track_config, minutes_to_y, y_to_minutes
from daylayout.layout import calculate_layout
from daylayout.logger import DRAG
from daylayout.models import Event, LayoutInfo, overlaps, pair_key
from daylayout.ranks import RankLedger
from daylayout.utils import clamp, day_key, minutes_to_time, snap_minutes

HAPTIC_LIGHT = "light"
HAPTIC_MEDIUM = "medium"


class ScheduleWriter(Protocol):
    """Where a finished drag is written; both calls take HH:MM strings."""

    def set_time_override(self, event_id: str, day: str, start: str, end: str) -> None:
        ...

    def update_schedule_from(self, event_id: str, day: str, start: str, end: str) -> None:
        ...


class DragState(Enum):
    IDLE = "idle"
    LONG_PRESS_PENDING = "long_press_pending"
    DRAGGING = "dragging"


@dataclass
class PendingPress:
    event_id: str
    pressed_at: int


@dataclass
class DragSession:
    """
    Everything scoped to one active drag.

    ``lock`` holds the pre-drag layout while the dragged event still touches
    one of its original neighbours, and becomes None once it has cleared them.
    """

    origin: Event
    pre_drag: dict[str, LayoutInfo]
    lock: Optional[dict[str, LayoutInfo]]
    initial_overlaps: frozenset
    broken_pairs: set = field(default_factory=set)
    candidate: Optional[int] = None
    has_moved: bool = False
    last_snap: Optional[int] = None

    @property
    def overlap_cleared(self) -> bool:
        return self.lock is None


@dataclass(frozen=True)
class DragCommit:
    event_id: str
    day: str
    start: str
    end: str
    mode: str


class DragController:
    """
    Long-press-to-drag gesture over one day's events.

    The host feeds pointer samples in arrival order with a millisecond clock;
    ``layout()`` returns the layout to draw for the current instant.
    """

    def __init__(
        self,
        events: Iterable[Event],
        *,
        day: date,
        ranks: RankLedger | None = None,
        writer: ScheduleWriter | None = None,
        mode: str | None = None,
        track: dict | None = None,
        haptics: Callable[[str], None] | None = None,
        on_double_tap: Callable[[str], None] | None = None,
    ):
        self.day = day
        self.ranks = ranks if ranks is not None else RankLedger()
        self.writer = writer
        self.mode = mode or settings.DRAG_MODE
        if self.mode not in settings.DRAG_MODES:
            raise ValueError(f"Unknown drag mode: '{self.mode}'")
        self.track = track or get_track_config()
        self.haptics = haptics
        self.on_double_tap = on_double_tap

        self.state = DragState.IDLE
        self.session: Optional[DragSession] = None
        self._press: Optional[PendingPress] = None
        self._last_press: Optional[tuple[str, int]] = None
        self._events: dict[str, Event] = {}
        self.set_events(events)

    # Input feed

    @property
    def events(self) -> list[Event]:
        return list(self._events.values())

    def set_events(self, events: Iterable[Event]) -> None:
        """Replace the day's events, e.g. after an upstream data change."""
        self._events = {ev.id: ev for ev in events}
        self.ranks.observe(self._events.values())
        if self.session and self.session.origin.id not in self._events:
            logger.log(DRAG, "Dragged event {} disappeared, abandoning drag.", self.session.origin.id)
            self._reset()
        if self._press and self._press.event_id not in self._events:
            self._press = None
            self.state = DragState.IDLE

    # Output

    def resting_layout(self) -> dict[str, LayoutInfo]:
        return calculate_layout(self._events.values(), ranks=self.ranks)

    def layout(self) -> dict[str, LayoutInfo]:
        """Layout for the current instant of the gesture, or at rest."""
        session = self.session
        if session is None:
            return self.resting_layout()
        if not session.has_moved:
            # Hold the pressed event where it was until it moves a full grid step.
            frame = calculate_layout(
                self._events.values(),
                dragged_id=session.origin.id,
                stable_layout=session.pre_drag,
                ranks=self.ranks,
                initial_overlaps=session.initial_overlaps,
            )
            held = session.pre_drag.get(session.origin.id)
            if held is not None:
                frame[session.origin.id] = held
            return frame
        return calculate_layout(
            self._candidate_events(),
            dragged_id=session.origin.id,
            stable_layout=session.lock,
            ranks=self.ranks,
            initial_overlaps=session.initial_overlaps,
            broken_pairs=session.broken_pairs,
        )

    # Gesture

    def press(self, event_id: str, now: int) -> None:
        if self.state is not DragState.IDLE:
            logger.log(DRAG, "Ignoring press on {} while {}", event_id, self.state.value)
            return
        if event_id not in self._events:
            logger.log(DRAG, "Ignoring press on unknown event {}", event_id)
            return

        last = self._last_press
        if last and last[0] == event_id and now - last[1] < settings.DOUBLE_TAP_MS:
            self._last_press = None
            logger.log(DRAG, "Double tap on {}", event_id)
            if self.on_double_tap:
                self.on_double_tap(event_id)
            return

        self._last_press = (event_id, now)
        self._press = PendingPress(event_id, now)
        self.state = DragState.LONG_PRESS_PENDING

    def tick(self, now: int) -> None:
        """Advance the clock; activates the drag once the hold delay has passed."""
        press = self._press
        if self.state is DragState.LONG_PRESS_PENDING and press:
            if now - press.pressed_at >= settings.LONG_PRESS_MS:
                self._activate()

    def move(self, dx: float, dy: float, now: int) -> dict[str, LayoutInfo]:
        """
        Pointer sample; ``dx``/``dy`` are the total offsets since the press.
        """
        if self.state is DragState.LONG_PRESS_PENDING:
            press = self._press
            if abs(dx) > settings.LATERAL_CANCEL_PX and abs(dx) > abs(dy):
                logger.log(DRAG, "Lateral motion on {}, long press cancelled", press.event_id)
                self._press = None
                self.state = DragState.IDLE
                return self.layout()
            self.tick(now)

        if self.state is not DragState.DRAGGING:
            return self.layout()

        session = self.session
        candidate = self._pointer_to_minutes(dy)
        session.candidate = candidate

        if not session.has_moved and abs(candidate - session.origin.start) >= settings.GRID_MINUTES:
            session.has_moved = True
            logger.log(DRAG, "{} started moving", session.origin.id)

        if session.has_moved and not session.overlap_cleared:
            self._track_overlaps(session, candidate)

        if session.last_snap is not None and session.last_snap != candidate:
            self._pulse(HAPTIC_MEDIUM if candidate % 60 == 0 else HAPTIC_LIGHT)
        session.last_snap = candidate

        return self.layout()

    def release(self, now: int) -> Optional[DragCommit]:
        if self.state is DragState.LONG_PRESS_PENDING:
            self._press = None
            self.state = DragState.IDLE
            return None
        if self.state is not DragState.DRAGGING:
            logger.log(DRAG, "Ignoring release while idle")
            return None

        session = self.session
        if not session.has_moved or session.candidate is None:
            logger.log(DRAG, "Drag of {} never moved, nothing to commit", session.origin.id)
            self._reset()
            return None

        final_layout = self.layout()
        moved = session.origin.moved_to(session.candidate)
        commit = DragCommit(
            event_id=moved.id,
            day=day_key(self.day),
            start=minutes_to_time(moved.start),
            end=minutes_to_time(moved.end),
            mode=self.mode,
        )

        self.ranks.rerank(final_layout)
        self._events[moved.id] = moved
        self._reset()
        self._pulse(HAPTIC_LIGHT)
        logger.log(DRAG, "Committing {} to {}–{} ({})", commit.event_id, commit.start, commit.end, commit.mode)
        self._write(commit)
        return commit

    def terminate(self) -> None:
        """Host aborted the gesture; drop it without writing anything."""
        if self.state is not DragState.IDLE:
            logger.log(DRAG, "Gesture terminated while {}", self.state.value)
        self._reset()

    # Internals

    def _activate(self) -> None:
        press = self._press
        origin = self._events[press.event_id]
        snapshot = self.resting_layout()
        partners = frozenset(
            other.id for other in self._events.values()
            if other.id != origin.id and overlaps(origin, other)
        )
        self.session = DragSession(
            origin=origin,
            pre_drag=snapshot,
            lock=snapshot,
            initial_overlaps=partners,
        )
        self._press = None
        self.state = DragState.DRAGGING
        self._pulse(HAPTIC_MEDIUM)
        logger.log(DRAG, "Dragging {} (overlapping {})", origin.id, sorted(partners))

    def _pointer_to_minutes(self, dy: float) -> int:
        offset = self.track["visual_offset"]
        # Tops above the window stay negative.
        base_top = minutes_to_y(self.session.origin.start, self.track) + offset
        relative_top = base_top + dy - offset
        snapped = snap_minutes(y_to_minutes(relative_top, self.track))
        # Keep at least one grid step of the day below the start.
        return clamp(snapped, 0, settings.DAY_MINUTES - settings.GRID_MINUTES)

    def _candidate_events(self) -> list[Event]:
        session = self.session
        moved = session.origin.moved_to(session.candidate)
        return [moved if ev.id == moved.id else ev for ev in self._events.values()]

    def _track_overlaps(self, session: DragSession, candidate: int) -> None:
        moved = session.origin.moved_to(candidate)
        overlaps_original = False
        for partner_id in session.initial_overlaps:
            other = self._events.get(partner_id)
            if other is None:
                continue
            if overlaps(moved, other):
                overlaps_original = True
            else:
                session.broken_pairs.add(pair_key(moved.id, partner_id))

        if session.initial_overlaps:
            still_overlapping = overlaps_original
        else:
            still_overlapping = any(
                overlaps(moved, other)
                for other in self._events.values() if other.id != moved.id
            )

        if not still_overlapping:
            session.lock = None
            logger.log(DRAG, "{} cleared its original overlaps at {}", moved.id, minutes_to_time(candidate))

    def _pulse(self, style: str) -> None:
        if self.haptics:
            self.haptics(style)

    def _write(self, commit: DragCommit) -> None:
        if self.writer is None:
            return
        if commit.mode == "single":
            self.writer.set_time_override(commit.event_id, commit.day, commit.start, commit.end)
        else:
            self.writer.update_schedule_from(commit.event_id, commit.day, commit.start, commit.end)

    def _reset(self) -> None:
        self.session = None
        self._press = None
        self.state = DragState.IDLE
