from __future__ import annotations

from typing import Iterable, Mapping, Optional

from loguru import logger

import daylayout.settings as settings
from daylayout.logger import LAYOUT
from daylayout.models import Event, LayoutInfo, overlaps, pair_key
from daylayout.utils import minutes_to_time


def build_clusters(events: Iterable[Event]) -> list[list[Event]]:
    """
    Partition a day's events into maximal groups connected by overlap.

    Events are swept in start order (longer first on ties); a new cluster
    begins whenever an event starts at or after the running maximum end.
    """
    ordered = sorted(events, key=lambda ev: (ev.start, -ev.duration, ev.id))

    clusters: list[list[Event]] = []
    current: list[Event] = []
    cluster_end = -1
    for ev in ordered:
        if current and ev.start < cluster_end:
            current.append(ev)
            cluster_end = max(cluster_end, ev.end)
            continue
        if current:
            clusters.append(current)
        current = [ev]
        cluster_end = ev.end
    if current:
        clusters.append(current)
    return clusters


def insertion_order(
    cluster: list[Event],
    dragged_id: Optional[str],
    ranks: Mapping[str, int],
) -> list[Event]:
    """Rank, then start, then longest first; the dragged event always goes last."""
    return sorted(
        cluster,
        key=lambda ev: (
            ev.id == dragged_id,
            ranks.get(ev.id, 0),
            ev.start,
            -ev.duration,
            ev.id,
        ),
    )


def _search_floor(
    mover: Event,
    cluster: list[Event],
    stable_layout: Mapping[str, LayoutInfo],
    initial_overlaps: frozenset,
    broken_pairs: frozenset,
) -> int:
    """
    Lowest column the dragged event may take.

    It must sit right of any neighbour it is intruding on: one it did not
    overlap when the drag began, or one it separated from and has since
    re-entered.
    """
    floor = 0
    for other in cluster:
        if other.id == mover.id or not overlaps(mover, other):
            continue
        snap = stable_layout.get(other.id)
        if snap is None:
            continue
        newcomer = other.id not in initial_overlaps
        rejoined = pair_key(mover.id, other.id) in broken_pairs
        if newcomer or rejoined:
            floor = max(floor, snap.column + 1)
    return floor


def assign_columns(
    cluster: list[Event],
    dragged_id: Optional[str] = None,
    stable_layout: Optional[Mapping[str, LayoutInfo]] = None,
    ranks: Optional[Mapping[str, int]] = None,
    initial_overlaps: Iterable[str] = (),
    broken_pairs: Iterable[frozenset] = (),
) -> tuple[dict[str, int], list[list[Event]]]:
    """
    Place every event of one cluster into a column.

    Returns the column per event id and the column occupancy lists.
    """
    ranks = ranks or {}
    stable_layout = stable_layout or {}
    initial_overlaps = frozenset(initial_overlaps)
    broken_pairs = frozenset(broken_pairs)
    dragging = dragged_id is not None

    layers: list[list[Event]] = []
    assignments: dict[str, int] = {}

    def occupy(li: int, ev: Event) -> None:
        while len(layers) <= li:
            layers.append([])
        layers[li].append(ev)
        assignments[ev.id] = li

    order = insertion_order(cluster, dragged_id, ranks)

    # Settled events keep their pre-drag column for as long as a snapshot is held.
    pending = []
    for ev in order:
        snap = stable_layout.get(ev.id)
        if dragging and ev.id != dragged_id and snap is not None:
            occupy(snap.column, ev)
        else:
            pending.append(ev)

    for ev in pending:
        start_col = 0
        if ev.id == dragged_id and stable_layout:
            start_col = _search_floor(ev, cluster, stable_layout, initial_overlaps, broken_pairs)

        for li in range(start_col, len(layers)):
            if not any(overlaps(ev, other) for other in layers[li]):
                occupy(li, ev)
                break
        else:
            occupy(max(start_col, len(layers)), ev)

    return assignments, layers


def compute_spans(
    cluster: list[Event],
    assignments: Mapping[str, int],
    layers: list[list[Event]],
) -> dict[str, LayoutInfo]:
    """Widen each event rightward across columns free at its time."""
    total = len(layers)
    result = {}
    for ev in cluster:
        col = assignments[ev.id]
        span = 1
        for nc in range(col + 1, total):
            if any(other.id != ev.id and overlaps(ev, other) for other in layers[nc]):
                break
            span += 1
        result[ev.id] = LayoutInfo(column=col, total_columns=total, span=span)
    return result


def calculate_layout(
    events: Iterable[Event],
    dragged_id: Optional[str] = None,
    stable_layout: Optional[Mapping[str, LayoutInfo]] = None,
    ranks: Optional[Mapping[str, int]] = None,
    initial_overlaps: Iterable[str] = (),
    broken_pairs: Iterable[frozenset] = (),
) -> dict[str, LayoutInfo]:
    """
    Compute column, column count and span for every event of one day.

    Pure function of its arguments: with no ``dragged_id`` it is the resting
    layout; with a dragged event and a ``stable_layout`` snapshot every other
    event is pinned to its snapshot column.
    """
    initial_overlaps = frozenset(initial_overlaps)
    broken_pairs = frozenset(broken_pairs)

    layout: dict[str, LayoutInfo] = {}
    for cluster in build_clusters(events):
        if len(cluster) == 1:
            layout[cluster[0].id] = LayoutInfo(column=0, total_columns=1, span=1)
            continue

        assignments, layers = assign_columns(
            cluster,
            dragged_id=dragged_id,
            stable_layout=stable_layout,
            ranks=ranks,
            initial_overlaps=initial_overlaps,
            broken_pairs=broken_pairs,
        )
        spans = compute_spans(cluster, assignments, layers)
        layout.update(spans)

        if settings.DEBUG_LAYERS:
            logger.log(LAYOUT, "Cluster of {} over {} columns:", len(cluster), len(layers))
            for ev in sorted(cluster, key=lambda e: (spans[e.id].column, e.start)):
                info = spans[ev.id]
                logger.log(
                    LAYOUT,
                    "  • Column {} (span {}): {} [{}→{}]",
                    info.column, info.span, ev.title or ev.id,
                    minutes_to_time(ev.start), minutes_to_time(ev.end),
                )

    return layout
