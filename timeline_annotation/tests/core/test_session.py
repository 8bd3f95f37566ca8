"""
Tests for AnnotationSession: gestures, keys, selection and review workflow.

The session fixtures map one frame to one pixel, so frames and x
positions are interchangeable while the view is not zoomed.
"""

import pytest

from timeline_annotation.core.annotation import (
    EventType,
    InvalidReferenceError,
    Mode,
    ReviewState,
    Target,
    TargetKind,
)
from timeline_annotation.core.annotation.commands import (
    CreateInstant,
    CreateInterval,
    EditInstantFrame,
    EditIntervalRange,
)
from timeline_annotation.core.annotation.state import DragKind

from ..conftest import channel_target, drag


def interval_target(interval, kind=TargetKind.INTERVAL_BODY):
    return Target(kind, channel_id=interval.channel.id, item_id=interval.id)


def instant_target(instant):
    return Target(TargetKind.INSTANT, channel_id=instant.channel.id, item_id=instant.id)


@pytest.fixture
def interval(interval_session):
    """A [10, 20] interval on channel 1, created by a ctrl-drag."""
    return drag(interval_session, channel_target(1), 10, 20).interval


@pytest.fixture
def instant(session):
    """An instant at frame 50 on channel 1, created by a ctrl-click."""
    drag(session, channel_target(1), 50, 50)
    return session.store.instants(1)[0]


class TestIntervalCreation:
    """Ctrl-drag on an empty channel in interval mode."""

    def test_drag_creates_one_interval(self, interval_session):
        command = drag(interval_session, channel_target(1), 10, 20, steps=[12, 25, 18])

        assert isinstance(command, CreateInterval)
        intervals = interval_session.store.intervals(1)
        assert [(i.start, i.end) for i in intervals] == [(10, 20)]
        assert interval_session.history.undo_depth == 1
        assert interval_session.get_selection().interval is intervals[0]

    def test_single_undo_removes_it(self, interval_session):
        drag(interval_session, channel_target(1), 10, 20)
        interval_session.key_command("undo")
        assert interval_session.store.intervals(1) == []
        assert not interval_session.history.can_undo

    @pytest.mark.parametrize("start,end", [(10, 10), (10, 11), (11, 10)])
    def test_short_drags_create_nothing(self, interval_session, start, end):
        assert drag(interval_session, channel_target(1), start, end) is None
        assert interval_session.store.intervals() == []
        assert interval_session.history.undo_depth == 0

    def test_minimum_length(self, interval_session):
        assert drag(interval_session, channel_target(1), 10, 12) is not None

    def test_backwards_drag_is_normalized(self, interval_session):
        drag(interval_session, channel_target(1), 40, 25)
        interval = interval_session.store.intervals(1)[0]
        assert (interval.start, interval.end) == (25, 40)

    def test_draft_visible_while_dragging(self, interval_session):
        interval_session.pointer_down(channel_target(1), frame=10, modifiers=["ctrl"])
        interval_session.pointer_move(channel_target(1), frame=30, modifiers=["ctrl"])

        layouts = interval_session.get_intervals(1)
        assert len(layouts) == 1
        assert layouts[0].is_draft
        assert (layouts[0].start, layouts[0].end) == (10, 30)
        assert interval_session.store.intervals(1) == []
        assert interval_session.get_intervals(2) == []

    def test_class_applied_to_new_interval(self, interval_session):
        interval_session.key_command("r")
        interval = drag(interval_session, channel_target(1), 10, 20).interval
        assert interval.clazz == "run"

    def test_target_as_dict_and_uppercase_modifier(self, interval_session):
        target = {"kind": "channel", "channel_id": 2}
        interval_session.pointer_down(target, frame=5, modifiers=["CTRL"])
        interval_session.pointer_up(target, frame=9, modifiers=["CTRL"])
        assert [(i.start, i.end) for i in interval_session.store.intervals(2)] == [(5, 9)]

    def test_pointer_positions(self, interval_session):
        interval_session.pointer_down(channel_target(1), x=100.4, modifiers=["ctrl"])
        interval_session.pointer_up(channel_target(1), x=149.6, modifiers=["ctrl"])
        interval = interval_session.store.intervals(1)[0]
        assert (interval.start, interval.end) == (100, 150)

    def test_pointer_needs_a_position(self, interval_session):
        with pytest.raises(ValueError):
            interval_session.pointer_down(channel_target(1))


class TestIntervalEditing:
    """Body move and edge resize."""

    def test_body_move(self, interval_session, interval):
        target = interval_target(interval)
        interval_session.pointer_down(target, frame=15, modifiers=["ctrl"])
        interval_session.pointer_move(target, frame=25, modifiers=["ctrl"])

        # the store is untouched until release
        assert (interval.start, interval.end) == (10, 20)
        layout = interval_session.get_intervals(1)[0]
        assert (layout.start, layout.end) == (20, 30)

        command = interval_session.pointer_up(target, frame=25, modifiers=["ctrl"])
        assert command == EditIntervalRange(
            interval_id=interval.id, start_from=10, end_from=20, start_to=20, end_to=30
        )
        assert (interval.start, interval.end) == (20, 30)

        interval_session.undo()
        assert (interval.start, interval.end) == (10, 20)

    @pytest.mark.parametrize("to,expected", [(2000, (990, 1000)), (-100, (0, 10))])
    def test_body_move_clipped_to_video(self, interval_session, interval, to, expected):
        drag(interval_session, interval_target(interval), 15, to)
        assert (interval.start, interval.end) == expected

    def test_click_on_interval_past_the_end_keeps_it(self, interval_session):
        interval_session.load_snapshot(
            {
                "intervals": [
                    {"id": 1, "start": 990, "end": 1200, "channel": "steps", "channelid": 1}
                ]
            }
        )
        interval = interval_session.store.get_interval(1)
        assert drag(interval_session, interval_target(interval), 995, 995) is None
        assert (interval.start, interval.end) == (990, 1200)
        assert interval_session.history.undo_depth == 0

    def test_interval_past_the_end_still_moves_left(self, interval_session):
        interval_session.load_snapshot(
            {
                "intervals": [
                    {"id": 1, "start": 990, "end": 1200, "channel": "steps", "channelid": 1}
                ]
            }
        )
        interval = interval_session.store.get_interval(1)
        drag(interval_session, interval_target(interval), 995, 900)
        assert (interval.start, interval.end) == (895, 1105)

    def test_body_without_modifier_only_selects(self, interval_session, interval):
        interval_session.clear_selection()
        state = interval_session.pointer_down(interval_target(interval), frame=15)
        assert state.kind is DragKind.SCRUB
        assert interval_session.get_selection().interval is interval

        interval_session.pointer_move(interval_target(interval), frame=40)
        assert interval_session.pointer_up(interval_target(interval), frame=40) is None
        assert (interval.start, interval.end) == (10, 20)

    def test_left_edge(self, interval_session, interval):
        target = interval_target(interval, TargetKind.INTERVAL_LEFT_EDGE)
        drag(interval_session, target, 10, 5, modifiers=())
        assert (interval.start, interval.end) == (5, 20)

    def test_right_edge(self, interval_session, interval):
        target = interval_target(interval, TargetKind.INTERVAL_RIGHT_EDGE)
        drag(interval_session, target, 20, 45, modifiers=())
        assert (interval.start, interval.end) == (10, 45)

    def test_left_edge_past_right_edge_swaps(self, interval_session, interval):
        target = interval_target(interval, TargetKind.INTERVAL_LEFT_EDGE)
        interval_session.pointer_down(target, frame=10)
        interval_session.pointer_move(target, frame=30)
        layout = interval_session.get_intervals(1)[0]
        assert (layout.start, layout.end) == (20, 30)

        interval_session.pointer_up(target, frame=30)
        assert (interval.start, interval.end) == (20, 30)

    def test_right_edge_past_left_edge_swaps(self, interval_session, interval):
        target = interval_target(interval, TargetKind.INTERVAL_RIGHT_EDGE)
        drag(interval_session, target, 20, 4, modifiers=())
        assert (interval.start, interval.end) == (4, 10)

    def test_unchanged_release_adds_no_command(self, interval_session, interval):
        target = interval_target(interval, TargetKind.INTERVAL_RIGHT_EDGE)
        assert drag(interval_session, target, 20, 20, modifiers=(), steps=[30]) is None
        assert interval_session.history.undo_depth == 1

    def test_grouping_follows_edits(self, interval_session, interval):
        other = drag(interval_session, channel_target(1), 15, 30).interval
        assert [layout.size for layout in interval_session.get_intervals(1)] == [2, 2]

        drag(interval_session, interval_target(other), 20, 85)
        layouts = interval_session.get_intervals(1)
        assert [layout.size for layout in layouts] == [1, 1]
        assert [layout.id for layout in layouts] == [interval.id, other.id]


class TestInstants:
    """Ctrl-click creates, ctrl-drag moves."""

    def test_click_creates_without_move_command(self, session, instant):
        assert instant.frame == 50
        assert session.history.undo_depth == 1
        assert session.get_selection().instant is instant

        session.undo()
        assert session.store.instants() == []

    def test_create_and_drag(self, session):
        command = drag(session, channel_target(1), 50, 70, steps=[60])
        assert command == EditInstantFrame(instant_id=1, frame_from=50, frame_to=70)
        assert session.history.undo_depth == 2

        session.undo()
        assert session.store.get_instant(1).frame == 50

    def test_move_existing(self, session, instant):
        target = instant_target(instant)
        session.pointer_down(target, frame=50, modifiers=["ctrl"])
        session.pointer_move(target, frame=60, modifiers=["ctrl"])

        layout = session.get_instants(1)[0]
        assert (layout.frame, layout.is_preview) == (60, True)
        assert instant.frame == 50

        session.pointer_up(target, frame=60, modifiers=["ctrl"])
        assert instant.frame == 60
        assert not session.get_instants(1)[0].is_preview

    def test_drag_lands_on_release_frame(self, session, instant):
        drag(session, instant_target(instant), 52, 80)
        assert instant.frame == 80

    def test_click_without_modifier_selects(self, session, instant):
        session.clear_selection()
        state = session.pointer_down(instant_target(instant), frame=50)
        assert state.kind is DragKind.SCRUB
        assert session.get_selection().instant is instant
        session.pointer_up(instant_target(instant), frame=90)
        assert instant.frame == 50

    def test_class_applied(self, session):
        session.key_command("w")
        drag(session, channel_target(2), 5, 5)
        assert session.store.instants(2)[0].clazz == "walk"


class TestModeGating:
    """Gestures only apply in their own mode."""

    def test_instant_mode_ignores_interval_gestures(self, session):
        interval = session.history.execute(
            CreateInterval(channel_id=1, start=10, end=20)
        ).interval
        for kind in (
            TargetKind.INTERVAL_BODY,
            TargetKind.INTERVAL_LEFT_EDGE,
            TargetKind.INTERVAL_RIGHT_EDGE,
        ):
            drag(session, interval_target(interval, kind), 10, 40)
        assert (interval.start, interval.end) == (10, 20)

    def test_interval_mode_ignores_instant_gestures(self, interval_session):
        instant = interval_session.history.execute(
            CreateInstant(channel_id=1, frame=50)
        ).instant
        drag(interval_session, instant_target(instant), 50, 70)
        assert instant.frame == 50

    def test_ctrl_drag_on_channel_depends_on_mode(self, session):
        drag(session, channel_target(1), 10, 20)
        assert len(session.store.instants(1)) == 1
        assert session.store.intervals(1) == []

        session.key_command("toggle_mode")
        drag(session, channel_target(1), 10, 20)
        assert len(session.store.instants(1)) == 1
        assert len(session.store.intervals(1)) == 1

    def test_mode_change_event(self, session, listener):
        session.events.on(EventType.MODE_CHANGED, listener)
        assert session.toggle_mode() is Mode.INTERVAL
        assert not session.set_mode("interval")
        assert session.set_mode(Mode.INSTANT)
        assert [c.args[0].data["mode"] for c in listener.call_args_list] == [
            "interval",
            "instant",
        ]

    @pytest.mark.parametrize("mode", ["instant", "interval"])
    def test_reference_channel_cannot_be_annotated(self, session, mode):
        session.set_mode(mode)
        state = session.pointer_down(channel_target(0), frame=10, modifiers=["ctrl"])
        assert state.kind is DragKind.SCRUB
        session.pointer_up(channel_target(0), frame=30, modifiers=["ctrl"])
        assert len(session.store) == 0
        assert session.state.current_channel == 1


class TestSelection:
    """At most one selected entity."""

    def test_selection_is_exclusive(self, session, instant, listener):
        interval = session.history.execute(
            CreateInterval(channel_id=2, start=0, end=5)
        ).interval
        session.events.on(EventType.SELECTED, listener)

        session.select_interval(interval.id)
        selection = session.get_selection()
        assert selection.interval is interval
        assert selection.instant is None

        session.select_instant(instant.id)
        assert selection.instant is instant
        assert selection.interval is None

        assert [c.args[0].data for c in listener.call_args_list] == [
            {"instant": None, "interval": interval.id},
            {"instant": instant.id, "interval": None},
        ]

    def test_reselect_emits_nothing(self, session, instant, listener):
        session.events.on(EventType.SELECTED, listener)
        session.select(instant)
        listener.assert_not_called()

    def test_select_unknown(self, session):
        with pytest.raises(InvalidReferenceError):
            session.select_interval(99)
        with pytest.raises(TypeError):
            session.select("nope")

    def test_delete_selection(self, session, instant):
        command = session.delete_selection()
        assert command is not None
        assert session.store.instants() == []
        assert session.get_selection().is_empty

        session.undo()
        assert session.store.get_instant(instant.id) is instant
        assert session.get_selection().is_empty

    def test_delete_without_selection(self, session):
        assert session.delete_selection() is None
        assert session.history.undo_depth == 0

    def test_undo_drops_stale_selection(self, interval_session, interval):
        assert interval_session.get_selection().interval is interval
        interval_session.undo()
        assert interval_session.get_selection().is_empty

    def test_redo_keeps_live_selection(self, interval_session, interval):
        drag(interval_session, interval_target(interval), 15, 25)
        interval_session.undo()
        assert interval_session.get_selection().interval is interval
        interval_session.redo()
        assert interval_session.get_selection().interval is interval
        assert (interval.start, interval.end) == (20, 30)


class TestGestureLifecycle:
    """Open gestures, scrubbing and panning."""

    def test_undo_discards_open_gesture(self, interval_session, interval):
        interval_session.pointer_down(channel_target(1), frame=100, modifiers=["ctrl"])
        interval_session.pointer_move(channel_target(1), frame=150, modifiers=["ctrl"])
        interval_session.key_command("undo")

        assert interval_session.state.drag is None
        assert interval_session.pointer_up(channel_target(1), frame=150) is None
        assert interval_session.store.intervals() == []

    def test_second_pointer_down_discards_first(self, interval_session):
        interval_session.pointer_down(channel_target(1), frame=100, modifiers=["ctrl"])
        interval_session.pointer_down(channel_target(2), frame=300, modifiers=["ctrl"])
        interval_session.pointer_up(channel_target(2), frame=320, modifiers=["ctrl"])

        assert interval_session.store.intervals(1) == []
        assert len(interval_session.store.intervals(2)) == 1

    def test_pointer_up_without_gesture(self, session):
        assert session.pointer_up(channel_target(1), frame=10) is None

    def test_scrub_navigates(self, session, listener):
        session.events.on(EventType.NAVIGATED, listener)
        drag(session, Target(), 100, 150, modifiers=(), steps=[120])

        assert session.state.index_frame == 150
        assert session.state.max_frame == 150
        assert [c.args[0].data["frame"] for c in listener.call_args_list] == [
            100,
            120,
            150,
        ]

    def test_hover_cursor(self, session, listener):
        session.events.on(EventType.VIEW_CHANGED, listener)
        session.pointer_move(frame=42)
        assert session.get_indicators()["cursor"] == 42
        session.pointer_leave()
        assert session.get_indicators()["cursor"] is None
        assert listener.call_count == 2

    def test_pan_with_shift(self, session, listener):
        session.zoom(0.0, 14)
        session.events.on(EventType.VIEW_CHANGED, listener)

        state = session.pointer_down(channel_target(1), x=400.0, modifiers=["shift"])
        assert state.kind is DragKind.PAN
        session.pointer_move(channel_target(1), x=300.0, modifiers=["shift"])
        session.pointer_up(channel_target(1), x=300.0, modifiers=["shift"])

        assert session.transform.offset == pytest.approx(-100.0)
        assert not session.transform.is_panning
        assert len(session.store) == 0
        offsets = [
            c.args[0].data["offset"]
            for c in listener.call_args_list
            if "offset" in c.args[0].data
        ]
        assert offsets == [pytest.approx(-100.0)]

    def test_zoom_during_pan_reanchors(self, session):
        session.zoom(0.0, 14)
        session.pointer_down(channel_target(1), x=400.0, modifiers=["shift"])
        session.pointer_move(channel_target(1), x=300.0, modifiers=["shift"])
        assert session.transform.offset == pytest.approx(-100.0)

        assert session.zoom(300.0, 1)
        zoomed = session.transform.offset
        assert session.transform.is_panning

        session.pointer_move(channel_target(1), x=250.0, modifiers=["shift"])
        assert session.transform.offset == pytest.approx(zoomed - 50.0)

    def test_zoom_changes_resolution(self, session):
        assert session.frame_at(500.0) == 500
        assert session.zoom(500.0, 14)
        assert session.frame_at(500.0) == 500
        assert session.frame_at(1000.0) < 1000


class TestKeys:
    """Key commands resolved by an external keymap."""

    def test_unknown_key(self, session):
        assert not session.key_command("explode")

    def test_channel_cursor_is_clamped(self, session, listener):
        session.events.on(EventType.NAVIGATED, listener)
        session.key_command("channel_up")
        assert session.state.current_channel == 1
        session.key_command("channel_down")
        session.key_command("channel_down")
        assert session.state.current_channel == 2
        assert listener.call_count == 1

    def test_pointer_focuses_channel(self, session):
        session.pointer_down(channel_target(2), frame=3)
        assert session.state.current_channel == 2

    def test_mark_instant(self, session):
        session.frame_changed(42)
        command = session.key_command("mark")
        assert command
        instant = session.store.instants(1)[0]
        assert instant.frame == 42
        assert session.get_selection().instant is instant

    def test_mark_interval(self, interval_session):
        interval_session.frame_changed(30)
        interval_session.mark()
        assert interval_session.get_indicators()["pending_mark"] == 30
        assert interval_session.store.intervals() == []

        interval_session.frame_changed(10)
        command = interval_session.mark()
        assert (command.interval.start, command.interval.end) == (10, 30)
        assert interval_session.get_indicators()["pending_mark"] is None

    def test_mode_change_drops_pending_mark(self, interval_session):
        interval_session.frame_changed(30)
        interval_session.mark()
        interval_session.toggle_mode()
        assert interval_session.state.pending_mark is None

    def test_class_keys_count_changes(self, session):
        assert session.key_command("w")
        assert session.key_command("W")
        assert session.state.current_class == "walk"
        assert session.state.num_class_changes == 1
        session.key_command("r")
        assert session.state.num_class_changes == 2

    def test_class_key_relabels_selection(self, session, instant):
        session.key_command("r")
        assert instant.clazz == "run"
        session.undo()
        assert instant.clazz is None
        # the current class is not part of the undo history
        assert session.state.current_class == "run"


class TestReviewWorkflow:
    """Edit, confirm, then submit."""

    def test_submit_needs_edits(self, session, listener):
        session.events.on(EventType.CONFIRMED, listener)
        session.submit()
        assert session.state.review is ReviewState.IDLE
        listener.assert_not_called()

    def test_confirm_then_submit(self, session, listener):
        states = []
        session.events.on(EventType.STATE_CHANGED, lambda e: states.append(e.data["state"]))
        session.events.on(EventType.CONFIRMED, listener)
        session.events.on(EventType.SUBMITTED, listener)

        drag(session, channel_target(1), 50, 50)
        session.key_command("submit")
        assert session.state.review is ReviewState.CONFIRMED

        # editing after confirming needs another confirmation
        drag(session, channel_target(1), 60, 60)
        assert session.state.review is ReviewState.EDITED
        session.submit()
        session.submit()

        assert session.state.review is ReviewState.SUBMITTED
        assert states == ["edited", "confirm", "edited", "confirm", "submit"]
        events = [c.args[0] for c in listener.call_args_list]
        assert [e.event_type for e in events] == [
            EventType.CONFIRMED,
            EventType.CONFIRMED,
            EventType.SUBMITTED,
        ]
        assert len(events[-1].data["data"]["instants"]) == 2

    def test_submitted_is_terminal(self, interval_session, interval):
        interval_session.submit()
        interval_session.submit()
        assert interval_session.state.review is ReviewState.SUBMITTED

        depth = interval_session.history.undo_depth
        drag(interval_session, channel_target(1), 100, 200)
        drag(interval_session, interval_target(interval, TargetKind.INTERVAL_LEFT_EDGE), 10, 0)
        interval_session.select(interval)
        assert interval_session.undo() is None
        assert interval_session.redo() is None
        assert interval_session.delete_selection() is None
        assert interval_session.mark() is None
        interval_session.mark()
        assert interval_session.set_class("w") is None
        interval_session.submit()

        assert interval_session.history.undo_depth == depth
        assert [(i.start, i.end) for i in interval_session.store.intervals()] == [(10, 20)]
        assert interval_session.state.review is ReviewState.SUBMITTED


class TestPlaybackAndExport:
    """Playback sync, snapshot and load."""

    def test_frame_changed(self, session, listener):
        session.events.on(EventType.VIEW_CHANGED, listener)
        session.frame_changed(120)
        session.frame_changed(50)
        session.frame_changed(5000)
        assert session.get_indicators()["index"] == 1000
        assert session.state.max_frame == 1000
        assert listener.call_count == 3

    def test_max_frame_tracks_furthest(self, session):
        session.frame_changed(120)
        session.frame_changed(50)
        assert session.state.index_frame == 50
        assert session.state.max_frame == 120

    def test_snapshot_metadata(self, session, clock):
        session.key_command("w")
        session.frame_changed(300)
        drag(session, channel_target(1), 7, 7)
        clock.advance(12.5)

        data = session.snapshot()
        assert data["timestamp"] == 1_012_500
        assert data["workingTime"] == 12_500
        assert data["maxFrame"] == 300
        assert data["numClassChanges"] == 1
        assert data["instants"][0]["label"] == "walk"
        assert data["intervals"] == []

    def test_load_snapshot(self, session, listener):
        session.events.on(EventType.EDITED, listener)
        session.load_snapshot(
            {
                "instants": [{"id": 3, "frame": 9, "channel": "falls", "channelid": 2}],
                "intervals": [],
                "maxFrame": 400,
            }
        )
        assert session.store.get_instant(3).channel.name == "falls"
        assert not session.history.can_undo
        assert session.state.max_frame == 400
        assert listener.call_args[0][0].data["action"] == "load"

        created = drag(session, channel_target(1), 1, 1)
        assert created is None
        assert session.store.instants(1)[0].id == 4
