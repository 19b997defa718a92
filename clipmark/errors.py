"""Exception types raised by the library and playback engine."""


class ClipMarkError(Exception):
    """Base class for every error ClipMark reports to its callers."""


class ValidationError(ClipMarkError, ValueError):
    """Raised when user input to an add/update operation is malformed."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotFoundError(ClipMarkError, LookupError):
    """Raised when a segment or playlist id does not exist."""

    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class ImportFormatError(ClipMarkError, ValueError):
    pass


class PlaybackError(ClipMarkError):
    pass


class DeviceNotReadyError(PlaybackError):
    def __init__(self) -> None:
        super().__init__("player not ready")


class EmptyPlaylistError(PlaybackError):
    pass
