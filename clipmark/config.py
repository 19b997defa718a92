"""Application settings shared by the CLI and web shells."""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path

from clipmark.library import STORAGE_KEY
from clipmark.models import DEFAULT_ITEMS_PER_PAGE, DEFAULT_USER
from clipmark.playback import DEFAULT_TICK_RATE

MAX_IMPORT_BYTES = 4 * 1024 * 1024  # 4 MB


def _default_data_dir() -> Path:
    return Path.home() / ".clipmark"


@dataclass
class AppConfig:
    """Where the library lives and how the shell presents and plays it."""

    data_dir: Path = field(default_factory=_default_data_dir)
    storage_key: str = STORAGE_KEY
    default_user: str = DEFAULT_USER
    items_per_page: int = DEFAULT_ITEMS_PER_PAGE
    tick_rate: float = DEFAULT_TICK_RATE
    max_import_bytes: int = MAX_IMPORT_BYTES

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir).expanduser()
        if self.items_per_page < 1:
            raise ValueError("items_per_page must be at least 1")
        if self.tick_rate <= 0:
            raise ValueError("tick_rate must be positive")
        if self.max_import_bytes < 1:
            raise ValueError("max_import_bytes must be positive")


def load_config(path: str | Path) -> AppConfig:
    """Load settings from a JSON file. Keys not named here are rejected."""
    path = Path(path)
    data = json.loads(path.read_text())

    if not isinstance(data, dict):
        raise ValueError("Config must be a JSON object")

    known = {f.name for f in fields(AppConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    return AppConfig(**data)
