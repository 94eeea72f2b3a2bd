import itertools
from datetime import date

import pytest

from daylayout.drag import DragController, DragState, HAPTIC_LIGHT, HAPTIC_MEDIUM
from daylayout.geometry import get_track_config
from daylayout.models import Event, LayoutInfo, overlaps, pair_key
from daylayout.ranks import RankLedger

DAY = date(2026, 10, 19)


class FakeWriter:
    def __init__(self):
        self.calls = []

    def set_time_override(self, event_id, day, start, end):
        self.calls.append(("override", event_id, day, start, end))

    def update_schedule_from(self, event_id, day, start, end):
        self.calls.append(("forward", event_id, day, start, end))


def _m(hhmm: str) -> int:
    h, m = map(int, hhmm.split(":"))
    return h * 60 + m


def _ev(eid, start, end, created=None):
    return Event(eid, _m(start), _m(end), created=created)


def _controller(events, **kwargs):
    # One pixel per minute from midnight keeps pointer offsets readable.
    kwargs.setdefault("track", get_track_config(window_start=0, window_end=1440, hour_height=60))
    kwargs.setdefault("writer", FakeWriter())
    return DragController(events, day=DAY, **kwargs)


def _frame_events(controller):
    session = controller.session
    if session is None or not session.has_moved:
        return controller.events
    moved = session.origin.moved_to(session.candidate)
    return [moved if ev.id == moved.id else ev for ev in controller.events]


def _assert_no_collisions(events, layout):
    def cols(info):
        return set(range(info.column, info.column + info.span))

    for a, b in itertools.combinations(events, 2):
        if overlaps(a, b):
            assert not (cols(layout[a.id]) & cols(layout[b.id])), (a.id, b.id)
    for info in layout.values():
        assert info.column + info.span <= info.total_columns


def _start_drag(controller, event_id, at=0):
    controller.press(event_id, at)
    controller.tick(at + 350)
    assert controller.state is DragState.DRAGGING


@pytest.fixture
def chain():
    return [_ev("A", "09:00", "10:00"), _ev("B", "09:30", "10:30"), _ev("C", "10:15", "10:45")]


def test_long_press_activates_after_hold_delay(chain):
    pulses = []
    controller = _controller(chain, haptics=pulses.append)

    controller.press("A", 0)
    controller.tick(200)
    assert controller.state is DragState.LONG_PRESS_PENDING

    controller.tick(350)
    assert controller.state is DragState.DRAGGING
    assert controller.session.initial_overlaps == frozenset({"B"})
    assert controller.session.lock == controller.resting_layout()
    assert pulses == [HAPTIC_MEDIUM]


def test_lateral_motion_cancels_pending_long_press(chain):
    controller = _controller(chain)

    controller.press("A", 0)
    controller.move(20, 3, 100)
    controller.tick(500)

    assert controller.state is DragState.IDLE
    assert controller.session is None


def test_second_press_within_window_is_a_double_tap(chain):
    taps = []
    controller = _controller(chain, on_double_tap=taps.append)

    controller.press("A", 0)
    controller.release(60)
    controller.press("A", 200)

    assert taps == ["A"]
    assert controller.state is DragState.IDLE


def test_slow_second_press_starts_a_new_long_press(chain):
    taps = []
    controller = _controller(chain, on_double_tap=taps.append)

    controller.press("A", 0)
    controller.release(60)
    controller.press("A", 800)

    assert taps == []
    assert controller.state is DragState.LONG_PRESS_PENDING


def test_sub_grid_motion_holds_layout_and_commits_nothing():
    events = [_ev("A", "09:05", "10:05"), _ev("B", "09:30", "10:30")]
    writer = FakeWriter()
    controller = _controller(events, writer=writer)
    before = controller.resting_layout()
    ranks_before = controller.ranks.snapshot()

    _start_drag(controller, "A")
    frame = controller.move(0, 5, 400)

    assert controller.session.has_moved is False
    assert frame == before
    assert controller.release(500) is None
    assert writer.calls == []
    assert controller.ranks.snapshot() == ranks_before
    assert controller.events == events


def test_drag_into_new_neighbour_opens_third_column(chain):
    controller = _controller(chain)
    before = controller.resting_layout()

    _start_drag(controller, "A")
    controller.move(0, 15, 400)
    controller.move(0, 30, 450)
    frame = controller.move(0, 45, 500)

    assert frame["A"] == LayoutInfo(column=2, total_columns=3, span=1)
    assert frame["B"].column == before["B"].column
    assert frame["C"].column == before["C"].column
    assert controller.session.overlap_cleared is False


def test_other_columns_stay_pinned_while_partner_overlap_remains():
    events = [
        _ev("A", "09:00", "10:00"),
        _ev("B", "09:00", "11:00"),
        _ev("C", "09:30", "10:30"),
        _ev("D", "10:30", "11:30"),
    ]
    controller = _controller(events)
    before = controller.resting_layout()

    _start_drag(controller, "C")
    for i, dy in enumerate((15, 30, 45, 60, 45, 30)):
        frame = controller.move(0, dy, 400 + i * 50)
        assert not controller.session.overlap_cleared
        for eid in ("A", "B", "D"):
            assert frame[eid].column == before[eid].column
        _assert_no_collisions(_frame_events(controller), frame)


def test_event_without_partners_clears_lock_once_it_overlaps_nothing():
    events = [_ev("A", "09:00", "10:00"), _ev("B", "10:30", "11:30")]
    controller = _controller(events)

    _start_drag(controller, "A")
    assert controller.session.initial_overlaps == frozenset()

    frame = controller.move(0, 45, 400)
    assert controller.session.overlap_cleared is False
    assert frame["A"] == LayoutInfo(column=1, total_columns=2, span=1)
    _assert_no_collisions(_frame_events(controller), frame)

    frame = controller.move(0, 0, 450)
    assert controller.session.overlap_cleared is True
    assert frame["A"] == LayoutInfo(column=0, total_columns=1, span=1)


def test_event_starting_above_window_holds_still_without_motion():
    writer = FakeWriter()
    track = get_track_config(window_start=360, window_end=1320, hour_height=60)
    controller = _controller([_ev("early", "05:00", "07:00")], writer=writer, track=track)
    ranks_before = controller.ranks.snapshot()

    _start_drag(controller, "early")
    controller.move(0, 0, 400)

    assert controller.session.has_moved is False
    assert controller.session.candidate == _m("05:00")
    assert controller.release(500) is None
    assert writer.calls == []
    assert controller.ranks.snapshot() == ranks_before


def test_event_starting_above_window_moves_from_its_own_start():
    writer = FakeWriter()
    track = get_track_config(window_start=360, window_end=1320, hour_height=60)
    controller = _controller([_ev("early", "05:00", "07:00")], writer=writer, track=track, mode="single")

    _start_drag(controller, "early")
    controller.move(0, -30, 400)
    commit = controller.release(500)

    assert (commit.start, commit.end) == ("04:30", "06:30")
    assert writer.calls == [("override", "early", "2026-10-19", "04:30", "06:30")]


def test_leaving_all_partners_clears_the_lock():
    events = [_ev("A", "09:00", "10:00"), _ev("B", "09:30", "10:30")]
    controller = _controller(events)

    _start_drag(controller, "A")
    controller.move(0, -15, 400)
    assert controller.session.overlap_cleared is False

    frame = controller.move(0, -60, 450)

    assert controller.session.overlap_cleared is True
    assert pair_key("A", "B") in controller.session.broken_pairs
    assert frame["A"] == frame["B"] == LayoutInfo(column=0, total_columns=1, span=1)


def test_cleared_lock_stays_cleared_when_returning(chain):
    controller = _controller(chain)

    _start_drag(controller, "A")
    controller.move(0, -60, 400)
    frame = controller.move(0, 0, 450)

    assert controller.session.overlap_cleared is True
    assert frame["A"].column != frame["B"].column


def test_release_commits_single_day_override(chain):
    writer = FakeWriter()
    controller = _controller(chain, writer=writer, mode="single")

    _start_drag(controller, "A")
    controller.move(0, 45, 400)
    commit = controller.release(500)

    assert commit.start == "09:45" and commit.end == "10:45"
    assert writer.calls == [("override", "A", "2026-10-19", "09:45", "10:45")]
    assert controller.state is DragState.IDLE
    assert {ev.id: (ev.start, ev.end) for ev in controller.events}["A"] == (585, 645)


def test_release_in_forward_mode_updates_schedule(chain):
    writer = FakeWriter()
    controller = _controller(chain, writer=writer, mode="forward")

    _start_drag(controller, "C")
    controller.move(0, 60, 400)
    controller.release(500)

    assert writer.calls == [("forward", "C", "2026-10-19", "11:15", "11:45")]


def test_drag_near_midnight_keeps_a_positive_duration():
    controller = _controller([_ev("late", "22:30", "23:30")])

    _start_drag(controller, "late")
    controller.move(0, 200, 400)
    commit = controller.release(500)

    assert (commit.start, commit.end) == ("23:45", "24:00")


def test_terminate_discards_pending_change(chain):
    writer = FakeWriter()
    controller = _controller(chain, writer=writer)
    ranks_before = controller.ranks.snapshot()

    _start_drag(controller, "A")
    controller.move(0, 45, 400)
    controller.terminate()

    assert controller.state is DragState.IDLE
    assert writer.calls == []
    assert controller.ranks.snapshot() == ranks_before
    assert controller.events == chain


def test_terminate_during_long_press_returns_to_idle(chain):
    writer = FakeWriter()
    controller = _controller(chain, writer=writer)

    controller.press("A", 0)
    controller.terminate()
    controller.tick(500)

    assert controller.state is DragState.IDLE
    assert controller.session is None
    assert writer.calls == []


def test_dragged_order_survives_unrelated_additions():
    events = [_ev("X", "08:00", "09:00", created="2026-01-01"), _ev("Y", "10:00", "11:00", created="2026-01-02")]
    controller = _controller(events)
    assert controller.ranks.get("X") < controller.ranks.get("Y")

    _start_drag(controller, "X")
    for i, dy in enumerate(range(15, 135, 15)):
        controller.move(0, dy, 400 + i * 50)
    controller.release(1000)

    resting = controller.resting_layout()
    assert resting["Y"].column == 0
    assert resting["X"].column == 1

    controller.set_events(controller.events + [_ev("Z", "15:00", "16:00")])
    resting = controller.resting_layout()
    assert resting["X"].column > resting["Y"].column
    assert resting["Z"] == LayoutInfo(column=0, total_columns=1, span=1)


def test_snap_pulses_follow_grid_and_full_hours():
    pulses = []
    controller = _controller([_ev("A", "09:00", "10:00")], haptics=pulses.append)

    _start_drag(controller, "A")
    controller.move(0, 15, 400)
    controller.move(0, 30, 450)
    controller.move(0, 60, 500)
    controller.move(0, 61, 550)
    controller.release(600)

    assert pulses == [HAPTIC_MEDIUM, HAPTIC_LIGHT, HAPTIC_MEDIUM, HAPTIC_LIGHT]


def test_neighbour_removed_mid_drag_is_tolerated(chain):
    controller = _controller(chain)

    _start_drag(controller, "A")
    controller.move(0, 15, 400)
    controller.set_events([ev for ev in chain if ev.id != "B"])
    frame = controller.move(0, 30, 450)

    assert set(frame) == {"A", "C"}
    assert controller.state is DragState.DRAGGING


def test_dragged_event_removed_mid_drag_ends_the_gesture(chain):
    controller = _controller(chain)

    _start_drag(controller, "A")
    controller.set_events(chain[1:])

    assert controller.state is DragState.IDLE
    assert controller.release(500) is None


def test_new_events_get_appended_ranks():
    ledger = RankLedger({"A": 1, "B": 2})
    controller = _controller([_ev("A", "09:00", "10:00"), _ev("N", "09:00", "10:00")], ranks=ledger)

    assert controller.ranks.get("N") == 3
    assert controller.resting_layout()["N"].column == 1


def test_unknown_drag_mode_is_rejected(chain):
    with pytest.raises(ValueError):
        _controller(chain, mode="sideways")
