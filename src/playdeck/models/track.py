"""
Track data model
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePath
from typing import Optional
import uuid


class MediaType(Enum):
    """Kind of playable item"""
    AUDIO = "audio"
    VIDEO = "video"

    @classmethod
    def from_path(cls, path: str) -> "MediaType":
        """Guess the media type from a file name or locator"""
        suffix = PurePath(path.split("?", 1)[0]).suffix.lower()
        if suffix in VIDEO_EXTENSIONS:
            return cls.VIDEO
        return cls.AUDIO


VIDEO_EXTENSIONS = frozenset({".mp4", ".mkv", ".webm", ".avi", ".mov", ".m4v"})


@dataclass(frozen=True)
class Track:
    """
    Track data model

    Immutable reference to a playable library item. The playback core only
    holds references to tracks and never changes their fields.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    media_type: MediaType = MediaType.AUDIO
    # Opaque handle: file path, file:// or http(s):// URL, or blob:<key>
    source_locator: str = ""
    thumbnail: Optional[str] = None
    duration_hint_ms: int = 0

    artist: str = ""
    album: str = ""
    added_at: datetime = field(default_factory=datetime.now)

    @property
    def duration_str(self) -> str:
        """Formatted duration hint (m:ss)"""
        total_seconds = self.duration_hint_ms // 1000
        return f"{total_seconds // 60}:{total_seconds % 60:02d}"

    @property
    def display_name(self) -> str:
        """Display name"""
        if self.artist:
            return f"{self.artist} - {self.name}"
        return self.name or "Unknown"

    @property
    def is_video(self) -> bool:
        return self.media_type == MediaType.VIDEO

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'media_type': self.media_type.value,
            'source_locator': self.source_locator,
            'thumbnail': self.thumbnail,
            'duration_ms': self.duration_hint_ms,
            'artist': self.artist,
            'album': self.album,
            'added_at': self.added_at.isoformat() if self.added_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Track':
        """Create Track object from dictionary"""
        added_at = datetime.now()
        if data.get('added_at'):
            try:
                added_at = datetime.fromisoformat(data['added_at'])
            except (ValueError, TypeError):
                pass

        try:
            media_type = MediaType(data.get('media_type') or MediaType.AUDIO.value)
        except ValueError:
            media_type = MediaType.from_path(data.get('source_locator', ''))

        return cls(
            id=data.get('id') or str(uuid.uuid4()),
            name=data.get('name', ''),
            media_type=media_type,
            source_locator=data.get('source_locator', ''),
            thumbnail=data.get('thumbnail'),
            duration_hint_ms=int(data.get('duration_ms') or 0),
            artist=data.get('artist') or '',
            album=data.get('album') or '',
            added_at=added_at,
        )

    @classmethod
    def from_path(cls, file_path: str, **kwargs) -> 'Track':
        """Create a Track for a file path or URL, named after its stem"""
        stem = PurePath(file_path.split("?", 1)[0]).stem
        kwargs.setdefault('name', stem or file_path)
        kwargs.setdefault('media_type', MediaType.from_path(file_path))
        return cls(source_locator=file_path, **kwargs)
