"""Shared data types used across ClipMark.

Attributes are snake_case; ``to_dict``/``from_dict`` translate to and from the
camelCase keys of the persisted document.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

DEFAULT_USER = "defaultUser"
DEFAULT_PROFILE_NAME = "User"
DEFAULT_ITEMS_PER_PAGE = 10
LIBRARY_VERSION = "1.1.0"


def utc_now_iso() -> str:
    """Current UTC time as ``2024-01-31T12:00:00.000Z``."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def new_id(prefix: str) -> str:
    """Return ``<prefix>_<epoch-ms>_<random>``, e.g. ``seg_1712345678901_k3j9x0a1b``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class Segment:
    """A labeled time range of one external video."""

    id: str
    video_id: str
    name: str
    start: int
    end: int
    date_created: str
    date_modified: str | None = None

    @property
    def duration(self) -> int:
        return self.end - self.start

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "videoId": self.video_id,
            "start": self.start,
            "end": self.end,
            "dateCreated": self.date_created,
        }
        if self.date_modified is not None:
            data["dateModified"] = self.date_modified
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Segment":
        start, end = int(data["start"]), int(data["end"])
        if start < 0 or start >= end:
            raise ValueError(f"invalid segment range [{start}, {end}]")
        return cls(
            id=str(data["id"]),
            video_id=str(data["videoId"]),
            name=str(data["name"]),
            start=start,
            end=end,
            date_created=data.get("dateCreated") or "",
            date_modified=data.get("dateModified"),
        )


@dataclass
class Playlist:
    """A named, ordered sequence of segment ids. Duplicates are allowed."""

    id: str
    name: str
    segment_ids: list[str]
    date_created: str
    description: str = ""
    date_modified: str | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "segmentIds": list(self.segment_ids),
            "dateCreated": self.date_created,
        }
        if self.date_modified is not None:
            data["dateModified"] = self.date_modified
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Playlist":
        segment_ids = data.get("segmentIds", [])
        if not isinstance(segment_ids, list):
            raise TypeError("segmentIds must be a list")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=data.get("description") or "",
            segment_ids=[str(sid) for sid in segment_ids],
            date_created=data.get("dateCreated") or "",
            date_modified=data.get("dateModified"),
        )


@dataclass
class Preferences:
    dark_mode: bool = False
    items_per_page: int = DEFAULT_ITEMS_PER_PAGE

    def to_dict(self) -> dict:
        return {"darkMode": self.dark_mode, "itemsPerPage": self.items_per_page}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Preferences":
        data = data or {}
        items = data.get("itemsPerPage") or DEFAULT_ITEMS_PER_PAGE
        return cls(
            dark_mode=bool(data.get("darkMode", False)),
            items_per_page=max(1, int(items)),
        )


@dataclass
class Profile:
    """One user's library."""

    name: str = DEFAULT_PROFILE_NAME
    segments: list[Segment] = field(default_factory=list)
    playlists: list[Playlist] = field(default_factory=list)
    preferences: Preferences = field(default_factory=Preferences)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "segments": [s.to_dict() for s in self.segments],
            "playlists": [p.to_dict() for p in self.playlists],
            "preferences": self.preferences.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Profile":
        if not isinstance(data, dict):
            raise TypeError("profile must be an object")
        return cls(
            name=data.get("name") or DEFAULT_PROFILE_NAME,
            segments=[Segment.from_dict(s) for s in data.get("segments") or []],
            playlists=[Playlist.from_dict(p) for p in data.get("playlists") or []],
            preferences=Preferences.from_dict(data.get("preferences")),
        )


@dataclass
class LibraryRoot:
    """Top-level persisted document: every profile plus the active user key.

    ``version`` and ``last_updated`` are advisory and never checked on load.
    """

    current_user: str = DEFAULT_USER
    profiles: dict[str, Profile] = field(default_factory=dict)
    version: str = LIBRARY_VERSION
    last_updated: str | None = None

    def to_dict(self) -> dict:
        data = {
            "currentUser": self.current_user,
            "profiles": {key: p.to_dict() for key, p in self.profiles.items()},
            "_version": self.version,
        }
        if self.last_updated is not None:
            data["_lastUpdated"] = self.last_updated
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "LibraryRoot":
        if not isinstance(data, dict):
            raise TypeError("library root must be an object")
        profiles = data.get("profiles") or {}
        if not isinstance(profiles, dict):
            raise TypeError("profiles must be an object")
        current_user = data.get("currentUser") or DEFAULT_USER
        if not isinstance(current_user, str):
            raise TypeError("currentUser must be a string")
        return cls(
            current_user=current_user,
            profiles={str(k): Profile.from_dict(v) for k, v in profiles.items()},
            version=data.get("_version", LIBRARY_VERSION),
            last_updated=data.get("_lastUpdated"),
        )
