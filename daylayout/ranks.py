from __future__ import annotations

from typing import Iterable, Mapping

from loguru import logger

from daylayout.logger import DRAG
from daylayout.models import Event, LayoutInfo


class RankLedger:
    """
    Session-long left-to-right priority per event id.

    Entries are appended the first time an id is seen and rewritten in bulk
    after a drag; the ledger never shrinks.
    """

    def __init__(self, ranks: Mapping[str, int] | None = None):
        self._ranks: dict[str, int] = dict(ranks or {})
        self._counter = max(self._ranks.values(), default=0)

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._ranks

    def __len__(self) -> int:
        return len(self._ranks)

    def get(self, event_id: str, default: int = 0) -> int:
        return self._ranks.get(event_id, default)

    def rank(self, event_id: str) -> int:
        """Rank for an id, appending a fresh one at the end if it is unknown."""
        if event_id not in self._ranks:
            self._counter += 1
            self._ranks[event_id] = self._counter
        return self._ranks[event_id]

    def observe(self, events: Iterable[Event]) -> None:
        """Seed unseen events in creation order, ties broken by id."""
        unseen = [ev for ev in events if ev.id not in self._ranks]
        for ev in sorted(unseen, key=lambda ev: (ev.created or "", ev.id)):
            self.rank(ev.id)

    def rerank(self, layout: Mapping[str, LayoutInfo]) -> None:
        """Make the current column order of the visible events the new priority order."""
        ids = sorted(layout, key=lambda eid: (layout[eid].column, self.get(eid)))
        for i, eid in enumerate(ids, start=1):
            self._ranks[eid] = i
        self._counter = max(self._ranks.values(), default=0)
        logger.log(DRAG, "Re-ranked {} events: {}", len(ids), ids)

    def snapshot(self) -> dict[str, int]:
        return dict(self._ranks)
