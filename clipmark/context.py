"""Application context: the store, the player controller and the list cursors."""

import logging
from typing import Mapping
from urllib.parse import urlencode, urlsplit, urlunsplit

from clipmark.config import AppConfig
from clipmark.devices import PlaybackDevice
from clipmark.library import LibraryStore
from clipmark.pagination import PaginationCursor
from clipmark.playback import FrameScheduler, PlaybackController, PlaybackState
from clipmark.storage import BlobStorage, FileStorage

logger = logging.getLogger(__name__)

TABS = ("segments", "playlists")


def build_share_url(
    base_url: str,
    segment_id: str | None = None,
    playlist_id: str | None = None,
) -> str:
    """Return *base_url* with a ``segment=`` or ``playlist=`` deep-link query."""
    if (segment_id is None) == (playlist_id is None):
        raise ValueError("Provide exactly one of segment_id or playlist_id")
    query = {"segment": segment_id} if segment_id is not None else {"playlist": playlist_id}
    parts = urlsplit(base_url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), ""))


class AppContext:
    """Everything one session needs, created by the hosting shell and passed around.

    ``device`` may be omitted for shells that never play anything (the HTTP
    API); the playback controller is then unavailable.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        storage: BlobStorage | None = None,
        device: PlaybackDevice | None = None,
        scheduler: FrameScheduler | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = LibraryStore(
            storage if storage is not None else FileStorage(self.config.data_dir),
            key=self.config.storage_key,
            default_user=self.config.default_user,
            default_items_per_page=self.config.items_per_page,
        )
        self.scheduler = scheduler or FrameScheduler(tick_rate=self.config.tick_rate)
        self.controller: PlaybackController | None = None
        if device is not None:
            self.controller = PlaybackController(device, self.store.get_segment, self.scheduler)
        self.cursors: dict[str, PaginationCursor] = {}
        self.active_tab = TABS[0]

    def init(self) -> "AppContext":
        """Load the library and size the list cursors from the profile preferences."""
        self.store.load()
        self.reset_cursors()
        return self

    # Pagination -------------------------------------------------------
    def reset_cursors(self) -> None:
        per_page = self.store.preferences.items_per_page
        self.cursors = {tab: PaginationCursor(per_page) for tab in TABS}

    def switch_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown tab: {tab}")
        self.active_tab = tab
        self.cursors[tab].reset()

    def _items(self, tab: str) -> list:
        return self.store.segments if tab == "segments" else self.store.playlists

    def page_items(self, tab: str | None = None) -> list:
        tab = tab or self.active_tab
        return self.cursors[tab].visible(self._items(tab))

    def load_more(self, tab: str | None = None) -> bool:
        tab = tab or self.active_tab
        cursor = self.cursors[tab]
        total = len(self._items(tab))
        if not cursor.has_more(total, cursor.visible_count(total)):
            return False
        return cursor.load_more()

    # Deep links -------------------------------------------------------
    def handle_shared_link(self, query: Mapping[str, str]) -> PlaybackState | None:
        """Play the segment or playlist named in a deep-link query.

        Unknown ids are ignored. Returns the new playback state, or None when
        nothing was started.
        """
        if self.controller is None:
            raise RuntimeError("No playback device attached")

        segment_id = query.get("segment")
        playlist_id = query.get("playlist")
        if segment_id:
            segment = self.store.get_segment(segment_id)
            if segment is not None:
                logger.info(f"Playing shared segment {segment_id}")
                return self.controller.play_segment(segment)
        elif playlist_id:
            playlist = self.store.get_playlist(playlist_id)
            if playlist is not None:
                self.switch_tab("playlists")
                logger.info(f"Playing shared playlist {playlist_id}")
                return self.controller.play_playlist(playlist)
        return None
