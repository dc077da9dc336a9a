"""
Playlist data model
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional
from datetime import datetime
import uuid


@dataclass
class Playlist:
    """
    Playlist data model

    Songs are stored as an ordered list of track ids; the same track may
    appear more than once.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    cover_path: Optional[str] = None
    track_ids: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def song_count(self) -> int:
        return len(self.track_ids)

    def copy(self) -> 'Playlist':
        """Copy with an independent track id list"""
        return replace(self, track_ids=list(self.track_ids))

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'cover_path': self.cover_path,
            'track_ids': list(self.track_ids),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Playlist':
        """Create Playlist object from dictionary"""
        created_at = datetime.now()
        updated_at = datetime.now()

        if data.get('created_at'):
            try:
                created_at = datetime.fromisoformat(data['created_at'])
            except (ValueError, TypeError):
                pass

        if data.get('updated_at'):
            try:
                updated_at = datetime.fromisoformat(data['updated_at'])
            except (ValueError, TypeError):
                pass

        return cls(
            id=data.get('id') or str(uuid.uuid4()),
            name=data.get('name', ''),
            cover_path=data.get('cover_path'),
            track_ids=list(data.get('track_ids') or []),
            created_at=created_at,
            updated_at=updated_at,
        )
