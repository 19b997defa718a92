"""Playback device contract and a clock-driven simulated device."""

import enum
import logging
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class PlayerState(str, enum.Enum):
    UNSTARTED = "unstarted"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    BUFFERING = "buffering"


class PlaybackDevice(Protocol):
    """The embedded video player, as seen by the playback controller."""

    def load_clip(self, video_id: str, start: int, end: int) -> None: ...

    def pause(self) -> None: ...

    def get_current_time(self) -> float: ...

    def get_state(self) -> PlayerState: ...


class SimulatedDevice:
    """A player whose position advances with *clock* while playing.

    It keeps playing past the clip end; stopping there is the boundary
    monitor's job, as with a real embedded player.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        on_ready: Callable[[], None] | None = None,
    ) -> None:
        self._clock = clock
        self.on_ready = on_ready
        self.state = PlayerState.UNSTARTED
        self.video_id: str | None = None
        self.clip: tuple[int, int] | None = None
        self._position = 0.0
        self._resumed_at: float | None = None

    def initialize(self) -> None:
        """Finish start-up and fire the ready callback once."""
        if self.on_ready is not None:
            callback, self.on_ready = self.on_ready, None
            callback()

    def load_clip(self, video_id: str, start: int, end: int) -> None:
        logger.debug(f"Loading {video_id} [{start}, {end}]")
        self.video_id = video_id
        self.clip = (start, end)
        self._position = float(start)
        self._resumed_at = self._clock()
        self.state = PlayerState.PLAYING

    def play(self) -> None:
        if self.video_id is None or self.state == PlayerState.PLAYING:
            return
        self._resumed_at = self._clock()
        self.state = PlayerState.PLAYING

    def pause(self) -> None:
        if self.state == PlayerState.PLAYING:
            self._position = self.get_current_time()
            self._resumed_at = None
            self.state = PlayerState.PAUSED

    def seek(self, seconds: float) -> None:
        self._position = float(seconds)
        if self.state == PlayerState.PLAYING:
            self._resumed_at = self._clock()

    def get_current_time(self) -> float:
        if self.state == PlayerState.PLAYING and self._resumed_at is not None:
            return self._position + (self._clock() - self._resumed_at)
        return self._position

    def get_state(self) -> PlayerState:
        return self.state
