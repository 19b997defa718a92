"""Versioned text encoding for the persisted library blob.

A tagged blob is ``"C1"`` followed by the base64 of the UTF-8 canonical JSON.
This is a reversible encoding, not compression. Untagged blobs are plain JSON
(legacy data, or the fallback when the transform cannot be applied).
"""

import base64
import binascii
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

VERSION_MARKER = "C1"


def _canonical(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def encode(value: Any) -> str:
    """Serialize *value* into a tagged blob, or untagged JSON if tagging fails."""
    try:
        raw = _canonical(value).encode("utf-8")
    except UnicodeEncodeError as e:
        # Lone surrogates survive only as escaped ASCII JSON.
        logger.warning(f"Blob encoding failed, storing plain JSON: {e}")
        return json.dumps(value, separators=(",", ":"))
    return VERSION_MARKER + base64.b64encode(raw).decode("ascii")


def _parse_plain(blob: str) -> Any:
    try:
        return json.loads(blob)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Stored data is not valid JSON: {e}")
        return None


def decode(blob: str) -> Any | None:
    """Reverse :func:`encode`. Returns None when no attempt yields a value."""
    if not isinstance(blob, str):
        return None

    if not blob.startswith(VERSION_MARKER):
        return _parse_plain(blob)

    try:
        raw = base64.b64decode(blob[len(VERSION_MARKER):], validate=True)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to decode {VERSION_MARKER} blob, trying plain JSON: {e}")
        return _parse_plain(blob)
