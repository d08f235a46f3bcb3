"""
Database Package
"""

from soundnest.database.models import (
    Base,
    User,
    Category,
    Song,
    ListeningHistory,
    SongAnalytics,
    UserFavorite,
    CreatorStats,
    Playlist,
    PlaylistSong,
    Album,
    AlbumSong,
    FriendRequest,
    CreatorFollow,
    Notification,
    init_engine,
    init_database,
    SessionLocal,
)

__all__ = [
    "Base",
    "User",
    "Category",
    "Song",
    "ListeningHistory",
    "SongAnalytics",
    "UserFavorite",
    "CreatorStats",
    "Playlist",
    "PlaylistSong",
    "Album",
    "AlbumSong",
    "FriendRequest",
    "CreatorFollow",
    "Notification",
    "init_engine",
    "init_database",
    "SessionLocal",
]
