"""
Response Mapping
One mapping function per entity, shared by every route that returns it
"""

from datetime import datetime
from typing import Dict, List, Optional

from soundnest.database.models import (
    Album, Category, FriendRequest, Notification, Playlist, Song, User
)


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def category_to_dict(category: Optional[Category]) -> Optional[Dict]:
    if category is None:
        return None
    return {
        "id": category.id,
        "name": category.name,
        "color": category.color,
        "description": category.description,
    }


def user_summary(user: Optional[User]) -> Optional[Dict]:
    """Public identity card used wherever another user is embedded"""
    if user is None:
        return None
    return {
        "id": user.user_id,
        "username": user.username,
        "fullName": user.full_name,
        "avatarUrl": user.avatar_url,
    }


def user_profile(user: User, include_private: bool = False) -> Dict:
    profile = {
        "id": user.user_id,
        "username": user.username,
        "fullName": user.full_name,
        "role": user.role,
        "avatarUrl": user.avatar_url,
        "bio": user.bio,
        "createdAt": iso(user.created_at),
    }
    if include_private:
        profile.update({
            "email": user.email,
            "gender": user.gender,
            "updatedAt": iso(user.updated_at),
        })
    return profile


def song_to_dict(song: Song) -> Dict:
    return {
        "id": song.song_id,
        "title": song.title,
        "artist": song.artist,
        "movie": song.movie,
        "category": category_to_dict(song.category),
        "audioUrl": song.audio_url,
        "coverUrl": song.cover_url,
        "lyrics": song.lyrics,
        "duration": song.duration,
        "isPublic": song.is_public,
        "creator": user_summary(song.creator),
        "createdAt": iso(song.created_at),
        "updatedAt": iso(song.updated_at),
    }


def playlist_to_dict(playlist: Playlist, include_songs: bool = False) -> Dict:
    data = {
        "id": playlist.playlist_id,
        "name": playlist.name,
        "description": playlist.description,
        "isPublic": playlist.is_public,
        "coverUrl": playlist.cover_url,
        "creator": user_summary(playlist.creator),
        "songCount": len(playlist.entries),
        "createdAt": iso(playlist.created_at),
        "updatedAt": iso(playlist.updated_at),
    }
    if include_songs:
        data["songs"] = ordered_songs(playlist.entries)
    return data


def album_to_dict(album: Album, total_listens: int = 0) -> Dict:
    return {
        "id": album.album_id,
        "title": album.title,
        "description": album.description,
        "coverUrl": album.cover_url,
        "releaseDate": album.release_date,
        "isPublic": album.is_public,
        "songCount": len(album.entries),
        "totalListens": total_listens,
        "creator": user_summary(album.creator),
        "createdAt": iso(album.created_at),
        "updatedAt": iso(album.updated_at),
    }


def ordered_songs(entries) -> List[Dict]:
    """Songs of playlist/album entries in position order"""
    return [
        song_to_dict(entry.song)
        for entry in sorted(entries, key=lambda e: e.position)
        if entry.song is not None
    ]


def friend_request_to_dict(request: FriendRequest) -> Dict:
    return {
        "id": request.id,
        "senderId": request.sender_id,
        "receiverId": request.receiver_id,
        "sender": user_summary(request.sender),
        "status": request.status,
        "createdAt": iso(request.created_at),
        "updatedAt": iso(request.updated_at),
    }


def notification_to_dict(notification: Notification) -> Dict:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "relatedId": notification.related_id,
        "isRead": notification.is_read,
        "createdAt": iso(notification.created_at),
    }


def pagination(page: int, limit: int, total: int) -> Dict:
    return {"page": page, "limit": limit, "total": total}
