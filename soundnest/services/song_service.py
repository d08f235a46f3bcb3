"""
Song Service
Song upload, catalogue browsing and creator-owned song management
"""

import os
import re
import secrets
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError

from soundnest.config import Settings
from soundnest.database.models import Category, Song, SongAnalytics, SessionLocal, utcnow
from soundnest.errors import NotFoundError, PermissionDeniedError, UpstreamError, ValidationError
from soundnest.models.serializers import category_to_dict, pagination, song_to_dict
from soundnest.services.analytics_service import refresh_creator_stats
from soundnest.services.pagination import like_pattern, page_bounds
from soundnest.services.storage_service import StorageService

logger = logging.getLogger(__name__)

SONGS_BUCKET = "songs"
SORT_FIELDS = ("created_at", "title", "artist", "popularity")
EDITABLE_FIELDS = ("title", "artist", "movie", "category_id", "lyrics", "cover_url", "is_public", "duration")


def _audio_extension(filename: Optional[str]) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    return ext if re.match(r"^\.[a-z0-9]{1,5}$", ext) else ".mp3"


def _song_options():
    return (joinedload(Song.category), joinedload(Song.creator))


class SongService:
    """Service for songs and categories"""

    def __init__(self, settings: Settings, storage: StorageService):
        self.settings = settings
        self.storage = storage

    def _resolve_category(self, db: Session, category) -> Optional[int]:
        """Category id from an id or a name; None clears it"""
        if category is None or category == "":
            return None
        query = db.query(Category)
        if isinstance(category, int) or str(category).isdigit():
            found = query.filter(Category.id == int(category)).first()
        else:
            found = query.filter(func.lower(Category.name) == str(category).strip().lower()).first()
        if not found:
            raise ValidationError("Unknown category")
        return found.id

    def upload_song(
        self,
        creator_id: str,
        title: str,
        artist: str,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        category=None,
        movie: Optional[str] = None,
        lyrics: Optional[str] = None,
        duration: Optional[float] = None,
        is_public: bool = True,
        cover_url: Optional[str] = None
    ) -> Dict:
        """
        Store an audio file and create its song row.

        The blob is written first; if the row cannot be inserted the blob is
        removed again before the error is raised.

        Args:
            creator_id: Uploading content creator
            title: Song title
            artist: Performing artist
            data: Raw audio bytes
            filename: Original file name, used for the extension
            content_type: MIME type reported by the client, must be audio/*

        Returns:
            The created song
        """
        title = (title or "").strip()
        artist = (artist or "").strip()
        if not title or not artist:
            raise ValidationError("Title and artist are required")
        if not data:
            raise ValidationError("Audio file is required")
        if not (content_type or "").startswith("audio/"):
            raise ValidationError("Only audio files are allowed")
        if len(data) > self.settings.max_audio_bytes:
            limit_mb = self.settings.max_audio_bytes // (1024 * 1024)
            raise ValidationError(f"Audio file exceeds the {limit_mb}MB limit")

        song_id = f"song_{secrets.token_hex(12)}"
        audio_path = f"{creator_id}/{song_id}{_audio_extension(filename)}"

        db: Session = SessionLocal()
        try:
            category_id = self._resolve_category(db, category)

            self.storage.upload(SONGS_BUCKET, audio_path, data, content_type)
            try:
                song = Song(
                    song_id=song_id,
                    title=title,
                    artist=artist,
                    movie=movie or None,
                    category_id=category_id,
                    creator_id=creator_id,
                    audio_url=self.storage.get_public_url(SONGS_BUCKET, audio_path),
                    audio_path=audio_path,
                    cover_url=cover_url or None,
                    lyrics=lyrics or None,
                    duration=float(duration or 0),
                    is_public=bool(is_public),
                )
                db.add(song)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error saving song {song_id}, removing uploaded audio: {e}")
                self.storage.remove(SONGS_BUCKET, [audio_path])
                raise UpstreamError("Failed to save song")

            refresh_creator_stats(db, creator_id)
            db.commit()

            song = db.query(Song).options(*_song_options()).filter(Song.song_id == song_id).first()
            logger.info(f"Song uploaded: {title} by {artist} ({song_id}, {len(data)} bytes)")
            return song_to_dict(song)
        finally:
            db.close()

    def list_songs(
        self,
        search: Optional[str] = None,
        category=None,
        creator_id: Optional[str] = None,
        sort: str = "created_at",
        order: str = "desc",
        page: int = 1,
        limit: int = 20
    ) -> Dict:
        """
        Public catalogue with search, filters, sorting and pagination.

        Search is a case-insensitive substring match on title, artist and movie.
        """
        page, limit, offset = page_bounds(page, limit)
        if sort not in SORT_FIELDS:
            raise ValidationError(f"sort must be one of: {', '.join(SORT_FIELDS)}")
        if order not in ("asc", "desc"):
            raise ValidationError("order must be asc or desc")

        db: Session = SessionLocal()
        try:
            query = db.query(Song).filter(Song.is_public.is_(True))
            if search and search.strip():
                pattern = like_pattern(search.strip())
                query = query.filter(
                    Song.title.ilike(pattern, escape="\\")
                    | Song.artist.ilike(pattern, escape="\\")
                    | Song.movie.ilike(pattern, escape="\\")
                )
            if category not in (None, ""):
                query = query.filter(Song.category_id == self._resolve_category(db, category))
            if creator_id:
                query = query.filter(Song.creator_id == creator_id)

            total = query.count()

            if sort == "popularity":
                plays = db.query(
                    SongAnalytics.song_id.label("song_id"),
                    func.sum(SongAnalytics.play_count).label("plays")
                ).group_by(SongAnalytics.song_id).subquery()
                query = query.outerjoin(plays, plays.c.song_id == Song.song_id)
                key = func.coalesce(plays.c.plays, 0)
            else:
                key = getattr(Song, sort)
            query = query.order_by(key.asc() if order == "asc" else key.desc(), Song.song_id.asc())

            songs = query.options(*_song_options()).offset(offset).limit(limit).all()
            return {
                "songs": [song_to_dict(s) for s in songs],
                "pagination": pagination(page, limit, total),
            }
        finally:
            db.close()

    def get_song(self, song_id: str, viewer_id: Optional[str] = None) -> Dict:
        """A public song, or a private one when the viewer owns it"""
        db: Session = SessionLocal()
        try:
            song = db.query(Song).options(*_song_options()).filter(Song.song_id == song_id).first()
            if not song or (not song.is_public and song.creator_id != viewer_id):
                raise NotFoundError("Song not found")
            return song_to_dict(song)
        finally:
            db.close()

    def _owned_song(self, db: Session, user_id: str, song_id: str) -> Song:
        song = db.query(Song).filter(Song.song_id == song_id).first()
        if not song:
            raise NotFoundError("Song not found")
        if song.creator_id != user_id:
            raise PermissionDeniedError("You can only modify your own songs")
        return song

    def update_song(self, user_id: str, song_id: str, updates: Dict) -> Dict:
        """Update metadata of an owned song; unknown fields are ignored"""
        db: Session = SessionLocal()
        try:
            song = self._owned_song(db, user_id, song_id)

            changes = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
            for name in ("title", "artist"):
                if name in changes:
                    changes[name] = (changes[name] or "").strip()
                    if not changes[name]:
                        raise ValidationError(f"{name.capitalize()} cannot be empty")
            if "category_id" in changes:
                changes["category_id"] = self._resolve_category(db, changes["category_id"])
            if "duration" in changes and changes["duration"] is not None:
                if float(changes["duration"]) < 0:
                    raise ValidationError("duration cannot be negative")

            for name, value in changes.items():
                setattr(song, name, value)
            song.updated_at = utcnow()
            db.commit()

            song = db.query(Song).options(*_song_options()).populate_existing().filter(Song.song_id == song_id).first()
            logger.info(f"Song updated: {song_id} ({', '.join(changes) or 'no changes'})")
            return song_to_dict(song)
        finally:
            db.close()

    def delete_song(self, user_id: str, song_id: str) -> Dict:
        """Delete an owned song, then its stored audio"""
        db: Session = SessionLocal()
        try:
            song = self._owned_song(db, user_id, song_id)
            audio_path = song.audio_path

            db.delete(song)
            db.commit()

            if audio_path:
                self.storage.remove(SONGS_BUCKET, [audio_path])

            refresh_creator_stats(db, user_id)
            db.commit()

            logger.info(f"Song deleted: {song_id}")
            return {"success": True, "message": "Song deleted successfully"}
        finally:
            db.close()

    def songs_by_creator(
        self,
        creator_id: str,
        viewer_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Dict:
        """A creator's songs, newest first; private ones only for the creator"""
        page, limit, offset = page_bounds(page, limit)
        db: Session = SessionLocal()
        try:
            query = db.query(Song).filter(Song.creator_id == creator_id)
            if viewer_id != creator_id:
                query = query.filter(Song.is_public.is_(True))
            total = query.count()
            songs = query.options(*_song_options()).order_by(
                Song.created_at.desc(), Song.song_id.asc()
            ).offset(offset).limit(limit).all()
            return {
                "songs": [song_to_dict(s) for s in songs],
                "pagination": pagination(page, limit, total),
            }
        finally:
            db.close()

    def stream_url(self, song_id: str, viewer_id: Optional[str] = None) -> Dict:
        """Short-lived signed URL for a song's audio"""
        db: Session = SessionLocal()
        try:
            song = db.query(Song).filter(Song.song_id == song_id).first()
            if not song or (not song.is_public and song.creator_id != viewer_id):
                raise NotFoundError("Song not found")
            if not song.audio_path:
                raise NotFoundError("Song has no audio")
            ttl = self.settings.signed_url_ttl
            return {
                "songId": song_id,
                "url": self.storage.create_signed_url(SONGS_BUCKET, song.audio_path, ttl),
                "expiresIn": ttl,
            }
        finally:
            db.close()

    def list_categories(self) -> List[Dict]:
        db: Session = SessionLocal()
        try:
            return [category_to_dict(c) for c in db.query(Category).order_by(Category.name.asc()).all()]
        finally:
            db.close()
