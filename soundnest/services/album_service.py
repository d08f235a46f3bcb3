"""
Album Service
Creator albums; song counts and listen totals come from the album's entries
"""

import secrets
from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.exc import IntegrityError

from soundnest.database.models import Album, AlbumSong, Song, SongAnalytics, SessionLocal, utcnow
from soundnest.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from soundnest.models.serializers import album_to_dict, ordered_songs, pagination
from soundnest.services.pagination import is_unique_violation, like_pattern, page_bounds

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "cover_url", "release_date", "is_public")


def _album_options():
    return (
        joinedload(Album.creator),
        selectinload(Album.entries).joinedload(AlbumSong.song).joinedload(Song.category),
        selectinload(Album.entries).joinedload(AlbumSong.song).joinedload(Song.creator),
    )


def album_listens(db: Session, album_ids: Iterable[str]) -> Dict[str, int]:
    """Summed play counts of each album's songs"""
    album_ids = list(album_ids)
    if not album_ids:
        return {}
    rows = db.query(
        AlbumSong.album_id,
        func.coalesce(func.sum(SongAnalytics.play_count), 0)
    ).outerjoin(
        SongAnalytics, SongAnalytics.song_id == AlbumSong.song_id
    ).filter(AlbumSong.album_id.in_(album_ids)).group_by(AlbumSong.album_id).all()
    return {album_id: int(total or 0) for album_id, total in rows}


class AlbumService:
    """Service for creator albums"""

    def _load(self, db: Session, album_id: str) -> Optional[Album]:
        return db.query(Album).options(*_album_options()).populate_existing().filter(
            Album.album_id == album_id
        ).first()

    def _owned(self, db: Session, creator_id: str, album_id: str) -> Album:
        album = db.query(Album).filter(Album.album_id == album_id).first()
        if not album:
            raise NotFoundError("Album not found")
        if album.creator_id != creator_id:
            raise PermissionDeniedError("You can only modify your own albums")
        return album

    def _to_dicts(self, db: Session, albums: List[Album]) -> List[Dict]:
        listens = album_listens(db, [a.album_id for a in albums])
        return [album_to_dict(a, listens.get(a.album_id, 0)) for a in albums]

    def creator_albums(self, creator_id: str) -> List[Dict]:
        db: Session = SessionLocal()
        try:
            albums = db.query(Album).options(*_album_options()).filter(
                Album.creator_id == creator_id
            ).order_by(Album.created_at.desc()).all()
            return self._to_dicts(db, albums)
        finally:
            db.close()

    def create_album(
        self,
        creator_id: str,
        title: str,
        description: Optional[str] = None,
        cover_url: Optional[str] = None,
        release_date: Optional[str] = None,
        is_public: bool = True
    ) -> Dict:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")

        db: Session = SessionLocal()
        try:
            album = Album(
                album_id=f"album_{secrets.token_hex(12)}",
                title=title,
                description=description or None,
                cover_url=cover_url or None,
                release_date=release_date or None,
                creator_id=creator_id,
                is_public=bool(is_public),
            )
            db.add(album)
            db.commit()
            logger.info(f"Album created: {title} ({album.album_id}) by {creator_id}")
            return album_to_dict(self._load(db, album.album_id))
        finally:
            db.close()

    def update_album(self, creator_id: str, album_id: str, updates: Dict) -> Dict:
        db: Session = SessionLocal()
        try:
            album = self._owned(db, creator_id, album_id)
            changes = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
            if "title" in changes:
                changes["title"] = (changes["title"] or "").strip()
                if not changes["title"]:
                    raise ValidationError("Title cannot be empty")
            for name, value in changes.items():
                setattr(album, name, value)
            album.updated_at = utcnow()
            db.commit()
            return self._to_dicts(db, [self._load(db, album_id)])[0]
        finally:
            db.close()

    def delete_album(self, creator_id: str, album_id: str) -> Dict:
        db: Session = SessionLocal()
        try:
            album = self._owned(db, creator_id, album_id)
            db.delete(album)
            db.commit()
            logger.info(f"Album deleted: {album_id}")
            return {"success": True, "message": "Album deleted successfully"}
        finally:
            db.close()

    def add_song(self, creator_id: str, album_id: str, song_id: str) -> Dict:
        """Append one of the creator's own songs to the album"""
        if not song_id:
            raise ValidationError("Song ID is required")

        db: Session = SessionLocal()
        try:
            self._owned(db, creator_id, album_id)
            song = db.query(Song).filter(Song.song_id == song_id).first()
            if not song:
                raise NotFoundError("Song not found")
            if song.creator_id != creator_id:
                raise PermissionDeniedError("You can only add your own songs to an album")

            last_position = db.query(func.max(AlbumSong.position)).filter(
                AlbumSong.album_id == album_id
            ).scalar()
            position = (last_position or 0) + 1

            db.add(AlbumSong(album_id=album_id, song_id=song_id, position=position))
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if is_unique_violation(e):
                    raise ConflictError("Song already in album")
                raise

            return {"success": True, "albumId": album_id, "songId": song_id, "position": position}
        finally:
            db.close()

    def remove_song(self, creator_id: str, album_id: str, song_id: str) -> Dict:
        db: Session = SessionLocal()
        try:
            self._owned(db, creator_id, album_id)
            removed = db.query(AlbumSong).filter(
                AlbumSong.album_id == album_id,
                AlbumSong.song_id == song_id
            ).delete(synchronize_session=False)
            db.commit()
            if not removed:
                raise NotFoundError("Song not in album")
            return {"success": True, "message": "Song removed from album"}
        finally:
            db.close()

    def search_albums(self, q: str, page: int = 1, limit: int = 20) -> Dict:
        """Public albums whose title or description contains q, most listened first"""
        if not q or not q.strip():
            raise ValidationError("Search query is required")
        page, limit, offset = page_bounds(page, limit)

        db: Session = SessionLocal()
        try:
            pattern = like_pattern(q.strip())
            albums = db.query(Album).options(*_album_options()).filter(
                Album.is_public.is_(True),
                Album.title.ilike(pattern, escape="\\") | Album.description.ilike(pattern, escape="\\")
            ).all()

            listens = album_listens(db, [a.album_id for a in albums])
            albums.sort(key=lambda a: (-listens.get(a.album_id, 0), a.title.lower(), a.album_id))
            window = albums[offset:offset + limit]
            return {
                "albums": [album_to_dict(a, listens.get(a.album_id, 0)) for a in window],
                "pagination": pagination(page, limit, len(albums)),
            }
        finally:
            db.close()

    def album_songs(self, album_id: str, viewer_id: Optional[str] = None) -> Dict:
        """Songs of a public album (or the viewer's own) in track order"""
        db: Session = SessionLocal()
        try:
            album = self._load(db, album_id)
            if not album or (not album.is_public and album.creator_id != viewer_id):
                raise NotFoundError("Album not found")
            songs = [
                song for song in ordered_songs(album.entries)
                if song["isPublic"] or album.creator_id == viewer_id
            ]
            return {
                "album": {
                    "id": album.album_id,
                    "title": album.title,
                    "description": album.description,
                    "coverUrl": album.cover_url,
                },
                "songs": songs,
            }
        finally:
            db.close()
