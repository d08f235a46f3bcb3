"""
Playlist Service
User playlists with ordered song entries
"""

import secrets
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.exc import IntegrityError

from soundnest.database.models import Playlist, PlaylistSong, Song, User, SessionLocal, utcnow
from soundnest.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from soundnest.models.serializers import pagination, playlist_to_dict
from soundnest.services.pagination import is_unique_violation, page_bounds

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "is_public", "cover_url")


def _playlist_options():
    return (
        joinedload(Playlist.creator),
        selectinload(Playlist.entries).joinedload(PlaylistSong.song).joinedload(Song.category),
        selectinload(Playlist.entries).joinedload(PlaylistSong.song).joinedload(Song.creator),
    )


class PlaylistService:
    """Service for creating, browsing and editing playlists"""

    def _load(self, db: Session, playlist_id: str) -> Optional[Playlist]:
        return db.query(Playlist).options(*_playlist_options()).populate_existing().filter(
            Playlist.playlist_id == playlist_id
        ).first()

    def _owned(self, db: Session, user_id: str, playlist_id: str) -> Playlist:
        playlist = db.query(Playlist).filter(Playlist.playlist_id == playlist_id).first()
        if not playlist:
            raise NotFoundError("Playlist not found")
        if playlist.creator_id != user_id:
            raise PermissionDeniedError("You can only modify your own playlists")
        return playlist

    def create_playlist(
        self,
        user_id: str,
        name: str,
        description: Optional[str] = None,
        is_public: bool = True,
        cover_url: Optional[str] = None
    ) -> Dict:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Playlist name is required")

        db: Session = SessionLocal()
        try:
            playlist = Playlist(
                playlist_id=f"playlist_{secrets.token_hex(12)}",
                name=name,
                description=description or None,
                creator_id=user_id,
                is_public=bool(is_public),
                cover_url=cover_url or None,
            )
            db.add(playlist)
            db.commit()
            logger.info(f"Playlist created: {name} ({playlist.playlist_id}) by {user_id}")
            return playlist_to_dict(self._load(db, playlist.playlist_id), include_songs=True)
        finally:
            db.close()

    def my_playlists(self, user_id: str) -> List[Dict]:
        db: Session = SessionLocal()
        try:
            playlists = db.query(Playlist).options(*_playlist_options()).filter(
                Playlist.creator_id == user_id
            ).order_by(Playlist.created_at.desc()).all()
            return [playlist_to_dict(p) for p in playlists]
        finally:
            db.close()

    def public_playlists(self, creator_username: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict:
        """Public playlists, newest first, optionally only one user's"""
        page, limit, offset = page_bounds(page, limit)
        db: Session = SessionLocal()
        try:
            query = db.query(Playlist).filter(Playlist.is_public.is_(True))
            if creator_username:
                query = query.join(User, User.user_id == Playlist.creator_id).filter(
                    func.lower(User.username) == creator_username.strip().lower()
                )
            total = query.count()
            playlists = query.options(*_playlist_options()).order_by(
                Playlist.created_at.desc(), Playlist.playlist_id.asc()
            ).offset(offset).limit(limit).all()
            return {
                "playlists": [playlist_to_dict(p) for p in playlists],
                "pagination": pagination(page, limit, total),
            }
        finally:
            db.close()

    def get_public_playlist(self, playlist_id: str) -> Dict:
        """A public playlist with its songs; private playlists are not found"""
        db: Session = SessionLocal()
        try:
            playlist = self._load(db, playlist_id)
            if not playlist or not playlist.is_public:
                raise NotFoundError("Playlist not found")
            return playlist_to_dict(playlist, include_songs=True)
        finally:
            db.close()

    def get_own_playlist(self, user_id: str, playlist_id: str) -> Dict:
        db: Session = SessionLocal()
        try:
            self._owned(db, user_id, playlist_id)
            return playlist_to_dict(self._load(db, playlist_id), include_songs=True)
        finally:
            db.close()

    def update_playlist(self, user_id: str, playlist_id: str, updates: Dict) -> Dict:
        db: Session = SessionLocal()
        try:
            playlist = self._owned(db, user_id, playlist_id)
            changes = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
            if "name" in changes:
                changes["name"] = (changes["name"] or "").strip()
                if not changes["name"]:
                    raise ValidationError("Playlist name cannot be empty")
            for name, value in changes.items():
                setattr(playlist, name, value)
            playlist.updated_at = utcnow()
            db.commit()
            return playlist_to_dict(self._load(db, playlist_id), include_songs=True)
        finally:
            db.close()

    def delete_playlist(self, user_id: str, playlist_id: str) -> Dict:
        db: Session = SessionLocal()
        try:
            playlist = self._owned(db, user_id, playlist_id)
            db.delete(playlist)
            db.commit()
            logger.info(f"Playlist deleted: {playlist_id}")
            return {"success": True, "message": "Playlist deleted successfully"}
        finally:
            db.close()

    def add_song(self, user_id: str, playlist_id: str, song_id: str) -> Dict:
        """
        Append a public song at the next position.

        Raises:
            ConflictError: the song is already in the playlist
        """
        if not song_id:
            raise ValidationError("Song ID is required")

        db: Session = SessionLocal()
        try:
            self._owned(db, user_id, playlist_id)
            song = db.query(Song).filter(Song.song_id == song_id).first()
            if not song or (not song.is_public and song.creator_id != user_id):
                raise NotFoundError("Song not found")

            last_position = db.query(func.max(PlaylistSong.position)).filter(
                PlaylistSong.playlist_id == playlist_id
            ).scalar()
            position = (last_position or 0) + 1

            db.add(PlaylistSong(playlist_id=playlist_id, song_id=song_id, position=position))
            try:
                db.query(Playlist).filter(Playlist.playlist_id == playlist_id).update(
                    {Playlist.updated_at: utcnow()}, synchronize_session=False
                )
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if is_unique_violation(e):
                    raise ConflictError("Song already in playlist")
                raise

            logger.info(f"Song {song_id} added to playlist {playlist_id} at {position}")
            return {"success": True, "message": "Song added to playlist successfully", "position": position}
        finally:
            db.close()

    def remove_song(self, user_id: str, playlist_id: str, song_id: str) -> Dict:
        db: Session = SessionLocal()
        try:
            self._owned(db, user_id, playlist_id)
            removed = db.query(PlaylistSong).filter(
                PlaylistSong.playlist_id == playlist_id,
                PlaylistSong.song_id == song_id
            ).delete(synchronize_session=False)
            db.commit()
            if not removed:
                raise NotFoundError("Song not in playlist")
            return {"success": True, "message": "Song removed from playlist"}
        finally:
            db.close()

    def reorder_songs(self, user_id: str, playlist_id: str, song_ids: List[str]) -> Dict:
        """
        Put the listed songs first, in the given order (positions from 1).

        Entries not listed keep their relative order after them.
        """
        if not isinstance(song_ids, list):
            raise ValidationError("Song IDs array is required")
        if len(set(song_ids)) != len(song_ids):
            raise ValidationError("Song IDs must be unique")

        db: Session = SessionLocal()
        try:
            self._owned(db, user_id, playlist_id)
            entries = db.query(PlaylistSong).filter(
                PlaylistSong.playlist_id == playlist_id
            ).order_by(PlaylistSong.position.asc()).all()
            by_song = {entry.song_id: entry for entry in entries}

            unknown = [song_id for song_id in song_ids if song_id not in by_song]
            if unknown:
                raise ValidationError(f"Songs not in playlist: {', '.join(unknown)}")

            ordered = [by_song[song_id] for song_id in song_ids]
            ordered += [entry for entry in entries if entry.song_id not in set(song_ids)]
            for index, entry in enumerate(ordered, start=1):
                entry.position = index
            db.commit()
            return {"success": True, "message": "Playlist reordered successfully"}
        finally:
            db.close()
