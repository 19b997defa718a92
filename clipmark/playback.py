"""Segment-bounded playback: single clips, playlists, and boundary monitoring."""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable

from clipmark.devices import PlaybackDevice, PlayerState
from clipmark.errors import DeviceNotReadyError, EmptyPlaylistError
from clipmark.models import Playlist, Segment

logger = logging.getLogger(__name__)

DEFAULT_TICK_RATE = 60.0

# Device states the monitor waits through before playback has started.
_PENDING_STATES = (PlayerState.UNSTARTED, PlayerState.BUFFERING)


# ---------------------------------------------------------------------------
# Frame scheduling
# ---------------------------------------------------------------------------

class FrameScheduler:
    """Per-frame callback queue driven at a fixed tick rate.

    ``request_frame`` queues a callback for the next frame; a callback that
    wants to keep running must re-request itself.
    """

    def __init__(
        self,
        tick_rate: float = DEFAULT_TICK_RATE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if tick_rate <= 0:
            raise ValueError("tick_rate must be positive")
        self.tick_rate = tick_rate
        self._clock = clock
        self._sleep = sleep
        self._queue: list[Callable[[], None]] = []

    @property
    def pending(self) -> bool:
        return bool(self._queue)

    def request_frame(self, callback: Callable[[], None]) -> None:
        self._queue.append(callback)

    def run_frame(self) -> int:
        """Run the callbacks queued before this frame. Returns how many ran."""
        callbacks, self._queue = self._queue, []
        for callback in callbacks:
            callback()
        return len(callbacks)

    def run(self, max_frames: int | None = None) -> int:
        """Drive frames in real time until the queue drains (or *max_frames*)."""
        interval = 1.0 / self.tick_rate
        frames = 0
        next_tick = self._clock()
        while self._queue and (max_frames is None or frames < max_frames):
            self.run_frame()
            frames += 1
            next_tick += interval
            delay = next_tick - self._clock()
            if delay > 0:
                self._sleep(delay)
        return frames


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PlayingSingle:
    segment: Segment


@dataclass(frozen=True)
class PlayingPlaylist:
    playlist: Playlist
    index: int
    segment: Segment


@dataclass(frozen=True)
class Finished:
    playlist: Playlist


PlaybackState = Idle | PlayingSingle | PlayingPlaylist | Finished


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class PlaybackController:
    """Drives a playback device through single-segment and playlist playback.

    Playlist entries are resolved through *resolve*; ids that no longer
    resolve to a segment are skipped.
    """

    def __init__(
        self,
        device: PlaybackDevice,
        resolve: Callable[[str], Segment | None],
        scheduler: FrameScheduler | None = None,
    ) -> None:
        self.device = device
        self.resolve = resolve
        self.scheduler = scheduler or FrameScheduler()
        self.ready = False
        self.state: PlaybackState = Idle()
        # Bumped whenever a new segment is loaded or playback stops; a monitor
        # whose generation no longer matches ends on its next tick.
        self._generation = 0
        self._monitor_active = False

    # Device events ----------------------------------------------------
    def on_device_ready(self) -> None:
        self.ready = True
        logger.info("Playback device ready")

    def on_state_change(self, state: PlayerState | str) -> None:
        if PlayerState(state) == PlayerState.PLAYING:
            self._arm_monitor()

    # Queries ----------------------------------------------------------
    @property
    def current_segment(self) -> Segment | None:
        if isinstance(self.state, (PlayingSingle, PlayingPlaylist)):
            return self.state.segment
        return None

    @property
    def in_playlist(self) -> bool:
        return isinstance(self.state, PlayingPlaylist)

    def now_playing(self) -> str:
        state = self.state
        if isinstance(state, PlayingPlaylist):
            total = len(state.playlist.segment_ids)
            return f"{state.playlist.name} - {state.segment.name} ({state.index + 1}/{total})"
        if isinstance(state, PlayingSingle):
            return state.segment.name
        if isinstance(state, Finished):
            return f"{state.playlist.name} - finished"
        return ""

    # Transport --------------------------------------------------------
    def play_segment(self, segment: Segment) -> PlaybackState:
        """Load *segment* on the device and start watching for its end.

        Inside playlist traversal the playlist attribution is kept.
        """
        if not self.ready:
            raise DeviceNotReadyError()

        if isinstance(self.state, PlayingPlaylist):
            self.state = replace(self.state, segment=segment)
        else:
            self.state = PlayingSingle(segment)

        self._generation += 1
        self._monitor_active = False
        self.device.load_clip(segment.video_id, segment.start, segment.end)
        logger.info(f"Playing {segment.id} [{segment.start}, {segment.end}]")
        self._arm_monitor()
        return self.state

    def play_playlist(self, playlist: Playlist) -> PlaybackState:
        if not self.ready:
            raise DeviceNotReadyError()
        if not playlist.segment_ids:
            raise EmptyPlaylistError("Cannot play empty playlist")

        found = self._resolve_from(playlist, 0, step=1)
        if found is None:
            raise EmptyPlaylistError("no playable segment")

        index, segment = found
        self.state = PlayingPlaylist(playlist, index, segment)
        return self.play_segment(segment)

    def advance_next(self) -> PlaybackState:
        state = self.state
        if not isinstance(state, PlayingPlaylist):
            logger.debug("advance_next ignored outside playlist playback")
            return state

        found = self._resolve_from(state.playlist, state.index + 1, step=1)
        if found is None:
            return self._finish(state.playlist)

        index, segment = found
        self.state = PlayingPlaylist(state.playlist, index, segment)
        return self.play_segment(segment)

    def advance_previous(self) -> PlaybackState:
        """Step back to the nearest playable entry; at the start, replay the current one."""
        state = self.state
        if not isinstance(state, PlayingPlaylist):
            logger.debug("advance_previous ignored outside playlist playback")
            return state

        found = None
        if state.index > 0:
            found = self._resolve_from(state.playlist, state.index - 1, step=-1)
        index, segment = found if found is not None else (state.index, state.segment)

        self.state = PlayingPlaylist(state.playlist, index, segment)
        return self.play_segment(segment)

    def stop(self) -> PlaybackState:
        """Leave single or playlist playback and pause the device."""
        if isinstance(self.state, Idle):
            return self.state
        self._generation += 1
        self._monitor_active = False
        self.state = Idle()
        self.device.pause()
        logger.info("Playback stopped")
        return self.state

    # Internals --------------------------------------------------------
    def _resolve_from(self, playlist: Playlist, start: int, step: int) -> tuple[int, Segment] | None:
        index = start
        while 0 <= index < len(playlist.segment_ids):
            segment_id = playlist.segment_ids[index]
            segment = self.resolve(segment_id)
            if segment is not None:
                return index, segment
            logger.warning(f"Skipping missing segment {segment_id} in playlist {playlist.id}")
            index += step
        return None

    def _finish(self, playlist: Playlist) -> PlaybackState:
        self._generation += 1
        self._monitor_active = False
        self.state = Finished(playlist)
        self.device.pause()
        logger.info(f"Playlist {playlist.id} finished")
        return self.state

    def _on_boundary(self) -> None:
        if self.in_playlist:
            self.advance_next()
        else:
            self.device.pause()
            logger.debug("Segment end reached, paused")

    def _arm_monitor(self) -> None:
        segment = self.current_segment
        if segment is None or self._monitor_active:
            return

        self._monitor_active = True
        generation = self._generation
        seen_playing = False

        def check() -> None:
            nonlocal seen_playing
            if generation != self._generation:
                return

            state = PlayerState(self.device.get_state())
            if state != PlayerState.PLAYING:
                if not seen_playing and state in _PENDING_STATES:
                    self.scheduler.request_frame(check)
                else:
                    self._monitor_active = False
                return

            seen_playing = True
            if self.device.get_current_time() >= segment.end:
                self._monitor_active = False
                self._on_boundary()
                return
            self.scheduler.request_frame(check)

        self.scheduler.request_frame(check)
