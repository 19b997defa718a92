"""Tests for the playback controller state machine and boundary monitor."""

from unittest.mock import MagicMock

import pytest

from clipmark.devices import PlayerState
from clipmark.errors import DeviceNotReadyError, EmptyPlaylistError
from clipmark.models import Playlist
from clipmark.playback import (
    Finished,
    FrameScheduler,
    Idle,
    PlaybackController,
    PlayingPlaylist,
    PlayingSingle,
)

WATCH_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def segments(store):
    return [
        store.add_segment(WATCH_URL, "A", "10", "20"),
        store.add_segment("https://youtu.be/second", "B", "30", "40"),
        store.add_segment("https://youtu.be/third", "C", "1:00", "1:05"),
    ]


@pytest.fixture
def playlist(store, segments):
    return store.add_playlist("Mix", [s.id for s in segments])


def _mock_device(state="playing", time=0.0) -> MagicMock:
    device = MagicMock()
    device.get_state.return_value = state
    device.get_current_time.return_value = time
    return device


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

class TestNotReady:
    def test_play_segment_rejected(self, store, segments, scheduler):
        device = _mock_device()
        controller = PlaybackController(device, store.get_segment, scheduler)
        with pytest.raises(DeviceNotReadyError):
            controller.play_segment(segments[0])
        assert controller.state == Idle()
        device.load_clip.assert_not_called()

    def test_play_playlist_rejected(self, store, playlist, scheduler):
        controller = PlaybackController(_mock_device(), store.get_segment, scheduler)
        with pytest.raises(DeviceNotReadyError, match="not ready"):
            controller.play_playlist(playlist)
        assert controller.state == Idle()


# ---------------------------------------------------------------------------
# Single segment
# ---------------------------------------------------------------------------

class TestPlaySegment:
    def test_loads_clip_and_arms_monitor(self, controller, device, scheduler, segments):
        state = controller.play_segment(segments[0])
        assert state == PlayingSingle(segments[0])
        assert device.video_id == "dQw4w9WgXcQ"
        assert device.clip == (10, 20)
        assert scheduler.pending

    def test_pauses_at_segment_end(self, controller, device, scheduler, clock, segments):
        controller.play_segment(segments[0])

        scheduler.run_frame()
        assert device.get_state() == PlayerState.PLAYING

        clock.advance(9)
        scheduler.run_frame()
        assert device.get_state() == PlayerState.PLAYING

        clock.advance(1)
        scheduler.run_frame()
        assert device.get_state() == PlayerState.PAUSED
        assert device.get_current_time() == pytest.approx(20.0)
        assert not scheduler.pending
        assert isinstance(controller.state, PlayingSingle)

    def test_run_drives_frames_until_boundary(self, store, device, clock):
        scheduler = FrameScheduler(tick_rate=30.0, clock=clock, sleep=clock.advance)
        controller = PlaybackController(device, store.get_segment, scheduler)
        controller.on_device_ready()
        seg = store.add_segment(WATCH_URL, "Short", "5", "7")

        controller.play_segment(seg)
        frames = scheduler.run()

        assert 55 <= frames <= 65
        assert device.get_state() == PlayerState.PAUSED

    def test_replacing_segment_retires_old_monitor(self, controller, scheduler, segments):
        controller.play_segment(segments[0])
        controller.play_segment(segments[1])
        assert scheduler.run_frame() == 2
        assert scheduler.run_frame() == 1

    def test_now_playing(self, controller, segments):
        controller.play_segment(segments[1])
        assert controller.now_playing() == "B"


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

class TestPlayPlaylist:
    def test_starts_at_first_entry(self, controller, device, playlist, segments):
        state = controller.play_playlist(playlist)
        assert state == PlayingPlaylist(playlist, 0, segments[0])
        assert device.clip == (10, 20)
        assert controller.now_playing() == "Mix - A (1/3)"

    def test_empty_playlist_rejected(self, controller):
        empty = Playlist(id="pl_empty", name="Empty", segment_ids=[], date_created="")
        with pytest.raises(EmptyPlaylistError):
            controller.play_playlist(empty)
        assert controller.state == Idle()

    def test_skips_dangling_first_entry(self, controller, store, segments):
        pl = store.add_playlist("Holes", ["seg_gone", segments[1].id])
        state = controller.play_playlist(pl)
        assert state.index == 1
        assert state.segment == segments[1]

    def test_nothing_resolvable(self, controller, store, segments):
        pl = store.add_playlist("Ghosts", ["seg_gone", "seg_also_gone"])
        with pytest.raises(EmptyPlaylistError, match="no playable segment"):
            controller.play_playlist(pl)
        assert controller.state == Idle()

    def test_play_segment_keeps_playlist_attribution(self, controller, playlist, segments):
        controller.play_playlist(playlist)
        state = controller.play_segment(segments[2])
        assert state == PlayingPlaylist(playlist, 0, segments[2])


class TestAdvance:
    def test_next_twice_then_finished(self, controller, device, playlist):
        controller.play_playlist(playlist)
        controller.advance_next()
        state = controller.advance_next()
        assert state.index == 2

        state = controller.advance_next()
        assert state == Finished(playlist)
        assert device.get_state() == PlayerState.PAUSED
        assert controller.now_playing() == "Mix - finished"

    def test_next_after_finished_is_noop(self, controller, playlist):
        controller.play_playlist(playlist)
        for _ in range(3):
            controller.advance_next()
        assert controller.advance_next() == Finished(playlist)

    def test_next_skips_dangling_entry(self, controller, store, segments):
        pl = store.add_playlist("Holes", [segments[0].id, "seg_gone", segments[2].id])
        controller.play_playlist(pl)
        state = controller.advance_next()
        assert state.index == 2
        assert state.segment == segments[2]

    def test_next_after_segment_deleted(self, controller, store, playlist, segments):
        controller.play_playlist(playlist)
        store.delete_segment(segments[1].id)
        state = controller.advance_next()
        assert state.index == 1
        assert state.segment == segments[2]

    def test_next_outside_playlist_is_noop(self, controller, segments):
        controller.play_segment(segments[0])
        assert controller.advance_next() == PlayingSingle(segments[0])

    def test_previous(self, controller, playlist, segments):
        controller.play_playlist(playlist)
        controller.advance_next()
        controller.advance_next()
        state = controller.advance_previous()
        assert state == PlayingPlaylist(playlist, 1, segments[1])

    def test_previous_at_start_replays_first(self, store, playlist, segments, scheduler):
        device = _mock_device()
        controller = PlaybackController(device, store.get_segment, scheduler)
        controller.on_device_ready()
        controller.play_playlist(playlist)

        state = controller.advance_previous()

        assert state.index == 0
        assert device.load_clip.call_count == 2
        device.load_clip.assert_called_with("dQw4w9WgXcQ", 10, 20)

    def test_previous_outside_playlist_is_noop(self, controller):
        assert controller.advance_previous() == Idle()


class TestBoundaryInPlaylist:
    def test_end_of_segment_advances(self, controller, device, scheduler, clock, playlist, segments):
        controller.play_playlist(playlist)
        clock.advance(10)
        scheduler.run_frame()

        assert controller.state == PlayingPlaylist(playlist, 1, segments[1])
        assert device.video_id == "second"
        assert scheduler.pending

    def test_plays_through_to_finished(self, controller, device, scheduler, clock, playlist):
        controller.play_playlist(playlist)
        for _ in range(200):
            if not scheduler.pending:
                break
            clock.advance(1)
            scheduler.run_frame()

        assert controller.state == Finished(playlist)
        assert device.get_state() == PlayerState.PAUSED


# ---------------------------------------------------------------------------
# Monitor guard conditions
# ---------------------------------------------------------------------------

class TestMonitor:
    def test_waits_while_buffering(self, store, segments, scheduler):
        device = _mock_device(state="buffering", time=10.0)
        controller = PlaybackController(device, store.get_segment, scheduler)
        controller.on_device_ready()
        controller.play_segment(segments[0])

        scheduler.run_frame()
        assert scheduler.pending

        device.get_state.return_value = "playing"
        device.get_current_time.return_value = 20.0
        scheduler.run_frame()
        device.pause.assert_called_once()

    def test_exits_when_user_pauses(self, controller, device, scheduler, segments):
        controller.play_segment(segments[0])
        scheduler.run_frame()
        device.pause()
        scheduler.run_frame()
        assert not scheduler.pending

    def test_state_change_rearms(self, controller, device, scheduler, clock, segments):
        controller.play_segment(segments[0])
        scheduler.run_frame()
        device.pause()
        scheduler.run_frame()

        device.play()
        controller.on_state_change("playing")
        assert scheduler.pending
        clock.advance(15)
        scheduler.run_frame()
        assert device.get_state() == PlayerState.PAUSED

    def test_state_change_does_not_double_arm(self, controller, scheduler, segments):
        controller.play_segment(segments[0])
        controller.on_state_change(PlayerState.PLAYING)
        assert scheduler.run_frame() == 1

    def test_stop_cancels_monitor(self, controller, device, scheduler, segments):
        controller.play_segment(segments[0])
        assert controller.stop() == Idle()
        scheduler.run_frame()
        assert not scheduler.pending
        assert device.get_state() == PlayerState.PAUSED
