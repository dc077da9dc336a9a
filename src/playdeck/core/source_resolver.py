"""
Source Locator Resolution

Turns a Track's opaque source locator into something an engine can open:

- plain paths and ``file://`` URLs resolve to an existing local file
- ``http://`` / ``https://`` URLs pass through when the engine streams
- ``blob:<key>`` handles point at in-memory media registered with a
  ``BlobStore``; they are written to a temporary file which is deleted
  when the Transport releases the source
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from playdeck.core.errors import SourceUnreadable

logger = logging.getLogger(__name__)

BLOB_SCHEME = "blob:"
STREAM_SCHEMES = ("http", "https")


@dataclass
class ResolvedSource:
    """A playable location plus the handle that must be released after use"""
    locator: str
    location: str
    transient: bool = False
    released: bool = False

    def release(self) -> None:
        """Delete the temporary copy of a blob source (no-op for files and URLs)."""
        if self.released:
            return
        self.released = True
        if not self.transient:
            return
        try:
            os.remove(self.location)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not release temporary source %s: %s", self.location, e)


class BlobStore:
    """In-memory media registered under ``blob:`` locators"""

    def __init__(self):
        self._blobs: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def register(self, data: bytes, suffix: str = "") -> str:
        """Store media bytes and return the locator that refers to them."""
        key = uuid.uuid4().hex
        with self._lock:
            self._blobs[key] = (bytes(data), suffix)
        return f"{BLOB_SCHEME}{key}"

    def get(self, locator: str) -> Optional[Tuple[bytes, str]]:
        with self._lock:
            return self._blobs.get(locator[len(BLOB_SCHEME):])

    def revoke(self, locator: str) -> bool:
        with self._lock:
            return self._blobs.pop(locator[len(BLOB_SCHEME):], None) is not None

    def __contains__(self, locator: str) -> bool:
        return self.get(locator) is not None


class SourceResolver:
    """
    Resolves source locators for one engine.

    Args:
        blob_store: Registry backing ``blob:`` locators
        allow_streams: Whether http(s) URLs may be handed to the engine
    """

    def __init__(self, blob_store: Optional[BlobStore] = None, allow_streams: bool = False):
        self._blob_store = blob_store or BlobStore()
        self.allow_streams = allow_streams

    @property
    def blob_store(self) -> BlobStore:
        return self._blob_store

    def resolve(self, locator: str) -> ResolvedSource:
        """
        Resolve a locator.

        Raises:
            SourceUnreadable: If the locator cannot be turned into a playable source
        """
        if not locator:
            raise SourceUnreadable("Track has no source locator")

        if locator.startswith(BLOB_SCHEME):
            return self._resolve_blob(locator)

        parsed = urlparse(locator)
        if parsed.scheme in STREAM_SCHEMES:
            if not self.allow_streams:
                raise SourceUnreadable(f"Output backend cannot open URLs: {locator}")
            return ResolvedSource(locator=locator, location=locator)

        if parsed.scheme == "file":
            path = Path(url2pathname(unquote(parsed.path)))
        else:
            path = Path(locator).expanduser()

        if not path.is_file():
            raise SourceUnreadable(f"File not found: {path}")
        return ResolvedSource(locator=locator, location=str(path))

    def _resolve_blob(self, locator: str) -> ResolvedSource:
        blob = self._blob_store.get(locator)
        if blob is None:
            raise SourceUnreadable(f"Blob handle has been revoked: {locator}")

        data, suffix = blob
        try:
            with tempfile.NamedTemporaryFile(prefix="playdeck-", suffix=suffix, delete=False) as f:
                f.write(data)
        except OSError as e:
            raise SourceUnreadable(f"Could not materialise {locator}: {e}") from e

        return ResolvedSource(locator=locator, location=f.name, transient=True)
