"""Library store: segments, playlists and per-profile preferences."""

import logging
import re
from typing import Any, Callable

from clipmark import codec
from clipmark.errors import ImportFormatError, NotFoundError, ValidationError
from clipmark.models import (
    DEFAULT_ITEMS_PER_PAGE,
    DEFAULT_USER,
    LibraryRoot,
    Playlist,
    Preferences,
    Profile,
    Segment,
    new_id,
    utc_now_iso,
)
from clipmark.storage import BlobStorage
from clipmark.timecode import is_valid_time, parse_time

logger = logging.getLogger(__name__)

STORAGE_KEY = "segmentSaver"

_VIDEO_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/watch\?.*v=([^&\n?#]+)"),
)


def extract_video_id(url: str) -> str | None:
    """Return the video id from a watch, short or embed URL, or None."""
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _validate_segment_fields(url: str, name: str, start: str, end: str) -> tuple[str, str, int, int]:
    """Run the segment validation pipeline, stopping at the first failure."""
    url = _text(url)
    name = _text(name)
    start_s = parse_time(_text(start))
    end_s = parse_time(_text(end))

    if not url:
        raise ValidationError("missing url")
    if not name:
        raise ValidationError("missing name")
    if not is_valid_time(start_s) or start_s < 0:
        raise ValidationError("invalid start")
    if not is_valid_time(end_s) or end_s <= 0:
        raise ValidationError("invalid end")

    video_id = extract_video_id(url)
    if not video_id:
        raise ValidationError("invalid url")
    if start_s >= end_s:
        raise ValidationError("start >= end")

    return video_id, name, int(start_s), int(end_s)


def _validate_playlist_fields(name: str, segment_ids: list[str] | None) -> tuple[str, list[str]]:
    name = _text(name)
    if not name:
        raise ValidationError("missing name")
    if not segment_ids:
        raise ValidationError("no segments selected")
    return name, [str(sid) for sid in segment_ids]


def _find(items: list, item_id: str) -> int:
    for idx, item in enumerate(items):
        if item.id == item_id:
            return idx
    return -1


class LibraryStore:
    """In-memory library for the active profile, persisted as one codec blob.

    Every mutating method updates memory first and then calls :meth:`save`
    before returning.
    """

    def __init__(
        self,
        storage: BlobStorage,
        key: str = STORAGE_KEY,
        default_user: str = DEFAULT_USER,
        default_items_per_page: int = DEFAULT_ITEMS_PER_PAGE,
        now: Callable[[], str] = utc_now_iso,
    ) -> None:
        self.storage = storage
        self.key = key
        self.default_user = default_user
        self.default_items_per_page = default_items_per_page
        self._now = now

        self.current_user = default_user
        self.profiles: dict[str, Profile] = {}
        self.segments: list[Segment] = []
        self.playlists: list[Playlist] = []
        self.preferences = self._default_preferences()
        self.last_updated: str | None = None

    # Internal helpers -------------------------------------------------
    def _default_preferences(self) -> Preferences:
        return Preferences(items_per_page=self.default_items_per_page)

    def _default_profile(self) -> Profile:
        return Profile(preferences=self._default_preferences())

    def _reset_to_default(self) -> None:
        self.profiles = {self.current_user: self._default_profile()}
        self._activate_profile()

    def _activate_profile(self) -> None:
        """Lazily create the current user's profile and load it into memory."""
        if self.current_user not in self.profiles:
            logger.info(f"Creating profile for user {self.current_user!r}")
            self.profiles[self.current_user] = self._default_profile()
        profile = self.profiles[self.current_user]
        self.segments = profile.segments
        self.playlists = profile.playlists
        self.preferences = profile.preferences

    def _sync_profile(self) -> None:
        profile = self.profiles.setdefault(self.current_user, self._default_profile())
        profile.segments = self.segments
        profile.playlists = self.playlists
        profile.preferences = self.preferences

    def _root(self) -> LibraryRoot:
        return LibraryRoot(
            current_user=self.current_user,
            profiles=self.profiles,
            last_updated=self.last_updated,
        )

    # Persistence ------------------------------------------------------
    def load(self) -> None:
        """Populate memory from storage. Unusable data resets to a default profile."""
        blob = self.storage.get(self.key)
        if blob is None:
            self.current_user = self.default_user
            self._reset_to_default()
            return

        data = codec.decode(blob)
        try:
            if data is None:
                raise ValueError("failed to decode stored library")
            root = LibraryRoot.from_dict(data)
            self.current_user = root.current_user
            self.profiles = root.profiles
            self.last_updated = root.last_updated
            self._activate_profile()
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Error loading library, starting fresh: {e}")
            self.current_user = self.default_user
            self.last_updated = None
            self._reset_to_default()
            return

        logger.debug(
            f"Loaded {len(self.segments)} segments, {len(self.playlists)} playlists "
            f"for {self.current_user!r}"
        )

    def save(self) -> None:
        self._sync_profile()
        self.last_updated = self._now()
        self.storage.set(self.key, codec.encode(self._root().to_dict()))

    # Lookups ----------------------------------------------------------
    @property
    def profile(self) -> Profile:
        self._sync_profile()
        return self.profiles[self.current_user]

    def get_segment(self, segment_id: str) -> Segment | None:
        idx = _find(self.segments, segment_id)
        return self.segments[idx] if idx >= 0 else None

    def get_playlist(self, playlist_id: str) -> Playlist | None:
        idx = _find(self.playlists, playlist_id)
        return self.playlists[idx] if idx >= 0 else None

    def playlist_segments(self, playlist: Playlist) -> list[Segment]:
        """Resolve a playlist's ids in order, skipping dangling ones."""
        resolved = (self.get_segment(sid) for sid in playlist.segment_ids)
        return [s for s in resolved if s is not None]

    # Segments ---------------------------------------------------------
    def add_segment(self, url: str, name: str, start: str, end: str) -> Segment:
        video_id, name, start_s, end_s = _validate_segment_fields(url, name, start, end)
        segment = Segment(
            id=new_id("seg"),
            video_id=video_id,
            name=name,
            start=start_s,
            end=end_s,
            date_created=self._now(),
        )
        self.segments.append(segment)
        self.save()
        logger.info(f"Added segment {segment.id} ({segment.name!r})")
        return segment

    def update_segment(self, segment_id: str, url: str, name: str, start: str, end: str) -> Segment:
        idx = _find(self.segments, segment_id)
        if idx < 0:
            raise NotFoundError("segment", segment_id)

        video_id, name, start_s, end_s = _validate_segment_fields(url, name, start, end)
        old = self.segments[idx]
        segment = Segment(
            id=old.id,
            video_id=video_id,
            name=name,
            start=start_s,
            end=end_s,
            date_created=old.date_created,
            date_modified=self._now(),
        )
        self.segments[idx] = segment
        self.save()
        logger.info(f"Updated segment {segment.id}")
        return segment

    def delete_segment(self, segment_id: str) -> None:
        """Remove a segment and every playlist reference to it. Unknown ids are ignored."""
        self.segments[:] = [s for s in self.segments if s.id != segment_id]
        for playlist in self.playlists:
            playlist.segment_ids = [sid for sid in playlist.segment_ids if sid != segment_id]
        self.save()
        logger.info(f"Deleted segment {segment_id}")

    # Playlists --------------------------------------------------------
    def add_playlist(self, name: str, segment_ids: list[str], description: str = "") -> Playlist:
        name, segment_ids = _validate_playlist_fields(name, segment_ids)
        playlist = Playlist(
            id=new_id("pl"),
            name=name,
            description=_text(description),
            segment_ids=segment_ids,
            date_created=self._now(),
        )
        self.playlists.append(playlist)
        self.save()
        logger.info(f"Added playlist {playlist.id} with {len(segment_ids)} segments")
        return playlist

    def update_playlist(
        self, playlist_id: str, name: str, segment_ids: list[str], description: str = ""
    ) -> Playlist:
        idx = _find(self.playlists, playlist_id)
        if idx < 0:
            raise NotFoundError("playlist", playlist_id)

        name, segment_ids = _validate_playlist_fields(name, segment_ids)
        old = self.playlists[idx]
        playlist = Playlist(
            id=old.id,
            name=name,
            description=_text(description),
            segment_ids=segment_ids,
            date_created=old.date_created,
            date_modified=self._now(),
        )
        self.playlists[idx] = playlist
        self.save()
        logger.info(f"Updated playlist {playlist.id}")
        return playlist

    def delete_playlist(self, playlist_id: str) -> None:
        self.playlists[:] = [p for p in self.playlists if p.id != playlist_id]
        self.save()
        logger.info(f"Deleted playlist {playlist_id}")

    # Profile settings -------------------------------------------------
    def rename_user(self, name: str) -> None:
        """Set the profile's display name. Blank names are ignored."""
        name = _text(name)
        if not name:
            return
        self.profile.name = name
        self.save()

    def set_dark_mode(self, enabled: bool) -> None:
        self.preferences.dark_mode = bool(enabled)
        self.save()

    def toggle_dark_mode(self) -> bool:
        self.set_dark_mode(not self.preferences.dark_mode)
        return self.preferences.dark_mode

    def set_items_per_page(self, count: int) -> None:
        if int(count) < 1:
            raise ValidationError("items per page must be at least 1")
        self.preferences.items_per_page = int(count)
        self.save()

    def switch_user(self, user_key: str) -> Profile:
        """Make *user_key* the active profile, creating it on first use."""
        user_key = _text(user_key)
        if not user_key:
            raise ValidationError("missing user")
        self._sync_profile()
        self.current_user = user_key
        self._activate_profile()
        self.save()
        return self.profiles[user_key]

    # Import / export --------------------------------------------------
    def import_merge(self, payload: Any) -> int:
        """Merge an exported document into the library and return the item count.

        A full backup (``profiles`` + ``currentUser``) overwrites profile
        entries by key and switches to the backup's current user; the count is
        the number of items in that profile. A ``segments``/``playlists``
        fragment only appends items whose ids are new, returning how many
        were added. Malformed input raises ImportFormatError before anything
        is merged.
        """
        if not isinstance(payload, dict):
            raise ImportFormatError("Invalid file format")

        if "profiles" in payload and "currentUser" in payload:
            count = self._import_profiles(payload)
        elif "segments" in payload or "playlists" in payload:
            count = self._import_fragment(payload)
        else:
            raise ImportFormatError("Invalid file format")

        self.save()
        logger.info(f"Imported {count} items")
        return count

    def _import_profiles(self, payload: dict) -> int:
        try:
            incoming = LibraryRoot.from_dict(payload)
        except (ValueError, TypeError, KeyError) as e:
            raise ImportFormatError(f"Invalid profile data: {e}") from e

        self._sync_profile()
        self.profiles.update(incoming.profiles)
        self.current_user = incoming.current_user
        self._activate_profile()
        return len(self.segments) + len(self.playlists)

    def _import_fragment(self, payload: dict) -> int:
        raw_segments = payload.get("segments") or []
        raw_playlists = payload.get("playlists") or []
        if not isinstance(raw_segments, list) or not isinstance(raw_playlists, list):
            raise ImportFormatError("segments and playlists must be lists")

        try:
            segments = [Segment.from_dict(s) for s in raw_segments]
            playlists = [Playlist.from_dict(p) for p in raw_playlists]
        except (ValueError, TypeError, KeyError) as e:
            raise ImportFormatError(f"Invalid item in import: {e}") from e

        added = 0
        seen = {s.id for s in self.segments}
        for segment in segments:
            if segment.id not in seen:
                self.segments.append(segment)
                seen.add(segment.id)
                added += 1

        seen = {p.id for p in self.playlists}
        for playlist in playlists:
            if playlist.id not in seen:
                self.playlists.append(playlist)
                seen.add(playlist.id)
                added += 1

        return added

    def export_snapshot(self, full: bool = False) -> dict:
        """Return a JSON-ready copy of the library without touching the store.

        ``full=False`` gives ``{segments, playlists, exportDate}`` for the active
        profile; ``full=True`` gives ``{currentUser, profiles, backupDate}``.
        """
        if not full:
            return {
                "segments": [s.to_dict() for s in self.segments],
                "playlists": [p.to_dict() for p in self.playlists],
                "exportDate": self._now(),
            }

        profiles = {key: p.to_dict() for key, p in self.profiles.items()}
        current = self.profiles.get(self.current_user, self._default_profile())
        profiles[self.current_user] = Profile(
            name=current.name,
            segments=self.segments,
            playlists=self.playlists,
            preferences=self.preferences,
        ).to_dict()
        return {
            "currentUser": self.current_user,
            "profiles": profiles,
            "backupDate": self._now(),
        }

    def clear_all(self) -> None:
        """Drop every profile and start over with an empty one for the current user."""
        self._reset_to_default()
        self.save()
        logger.info("Cleared all library data")
