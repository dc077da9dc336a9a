"""
Database Schema Definitions

Contains all table structure and index definitions.
"""

from __future__ import annotations

# Table structure SQL statements
TABLE_STATEMENTS = [
    # Library items (audio and video)
    """
    CREATE TABLE IF NOT EXISTS library_items (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        media_type TEXT NOT NULL DEFAULT 'audio',
        source_locator TEXT NOT NULL,
        thumbnail TEXT,
        duration_ms INTEGER DEFAULT 0,
        artist TEXT DEFAULT '',
        album TEXT DEFAULT '',
        added_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # Playlists table
    """
    CREATE TABLE IF NOT EXISTS playlists (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        cover_path TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # Ordered playlist contents; a track may appear more than once
    """
    CREATE TABLE IF NOT EXISTS playlist_items (
        playlist_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        track_id TEXT NOT NULL,
        PRIMARY KEY (playlist_id, position),
        FOREIGN KEY (playlist_id) REFERENCES playlists(id) ON DELETE CASCADE
    )
    """,
]

# Index SQL statements
INDEX_STATEMENTS = [
    "CREATE INDEX IF NOT EXISTS idx_library_items_added ON library_items(added_at)",
    "CREATE INDEX IF NOT EXISTS idx_playlist_items_track ON playlist_items(track_id)",
]


def get_all_schema_statements() -> list:
    """Get all schema statements (tables + indexes)"""
    return TABLE_STATEMENTS + INDEX_STATEMENTS
