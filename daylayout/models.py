from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from daylayout.settings import DAY_MINUTES


@dataclass(frozen=True)
class Event:
    """A time-bounded item on one day's track, in minutes since midnight."""

    id: str
    start: int
    end: int
    title: str = field(default="", compare=False)
    created: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not (0 <= self.start < DAY_MINUTES):
            raise ValueError(f"start must be within [0, {DAY_MINUTES}): {self.start}")
        if not (self.start < self.end <= DAY_MINUTES):
            raise ValueError(f"end must be after start and at most {DAY_MINUTES}: {self.end}")

    @property
    def duration(self) -> int:
        return self.end - self.start

    def moved_to(self, start: int) -> "Event":
        """Same event at a new start, duration preserved and clipped at midnight."""
        end = min(DAY_MINUTES, start + self.duration)
        return Event(self.id, start, end, title=self.title, created=self.created)


@dataclass
class LayoutInfo:
    column: int
    total_columns: int = 1
    span: int = 1


def overlaps(a: Event, b: Event) -> bool:
    return max(a.start, b.start) < min(a.end, b.end)


def pair_key(a: str, b: str) -> frozenset:
    """Unordered key for a pair of event ids."""
    return frozenset((a, b))
