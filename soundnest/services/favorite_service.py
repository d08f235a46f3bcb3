"""
Favorite Service
Liked songs. A favorite row's existence is the only source of truth for
"is liked"; creator favorite totals are recomputed from these rows.
"""

from typing import Dict, List
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError

from soundnest.database.models import Category, Song, UserFavorite, SessionLocal
from soundnest.errors import ConflictError, NotFoundError, ValidationError
from soundnest.models.serializers import iso, pagination, song_to_dict
from soundnest.services.analytics_service import refresh_creator_stats
from soundnest.services.pagination import is_unique_violation, page_bounds

logger = logging.getLogger(__name__)


def _favorite_to_dict(favorite: UserFavorite) -> Dict:
    return {
        "id": favorite.id,
        "song": song_to_dict(favorite.song),
        "favoritedAt": iso(favorite.created_at),
    }


class FavoriteService:
    """Service for managing a listener's favorite songs"""

    def _query_favorites(self, db: Session, user_id: str):
        return db.query(UserFavorite).join(Song, Song.song_id == UserFavorite.song_id).options(
            joinedload(UserFavorite.song).joinedload(Song.category),
            joinedload(UserFavorite.song).joinedload(Song.creator)
        ).filter(UserFavorite.user_id == user_id)

    def list_favorites(self, user_id: str, page: int = 1, limit: int = 20) -> Dict:
        page, limit, offset = page_bounds(page, limit)
        db: Session = SessionLocal()
        try:
            query = self._query_favorites(db, user_id)
            total = query.count()
            favorites = query.order_by(
                UserFavorite.created_at.desc(), UserFavorite.id.desc()
            ).offset(offset).limit(limit).all()
            return {
                "favorites": [_favorite_to_dict(f) for f in favorites],
                "pagination": pagination(page, limit, total),
            }
        finally:
            db.close()

    def add_favorite(self, user_id: str, song_id: str) -> Dict:
        """
        Like a public song.

        Raises:
            NotFoundError: song missing or private
            ConflictError: the song is already a favorite
        """
        if not song_id:
            raise ValidationError("songId is required")

        db: Session = SessionLocal()
        try:
            song = db.query(Song).filter(Song.song_id == song_id, Song.is_public.is_(True)).first()
            if not song:
                raise NotFoundError("Song not found")

            favorite = UserFavorite(user_id=user_id, song_id=song_id)
            db.add(favorite)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if is_unique_violation(e):
                    raise ConflictError("Song already in favorites")
                raise

            refresh_creator_stats(db, song.creator_id)
            db.commit()

            logger.info(f"Favorite added: {user_id} -> {song_id}")
            return {"id": favorite.id, "songId": song_id, "favoritedAt": iso(favorite.created_at)}
        finally:
            db.close()

    def remove_favorite(self, user_id: str, song_id: str) -> Dict:
        """Unlike a song; removing a song that is not a favorite is a no-op"""
        db: Session = SessionLocal()
        try:
            favorite = db.query(UserFavorite).filter(
                UserFavorite.user_id == user_id,
                UserFavorite.song_id == song_id
            ).first()
            if favorite is None:
                return {"success": True, "removed": False}

            creator_id = db.query(Song.creator_id).filter(Song.song_id == song_id).scalar()
            db.delete(favorite)
            db.commit()
            if creator_id:
                refresh_creator_stats(db, creator_id)
                db.commit()

            logger.info(f"Favorite removed: {user_id} -> {song_id}")
            return {"success": True, "removed": True}
        finally:
            db.close()

    def is_favorite(self, user_id: str, song_id: str) -> bool:
        db: Session = SessionLocal()
        try:
            return db.query(UserFavorite.id).filter(
                UserFavorite.user_id == user_id,
                UserFavorite.song_id == song_id
            ).first() is not None
        finally:
            db.close()

    def favorites_by_category(self, user_id: str, category_name: str) -> List[Dict]:
        db: Session = SessionLocal()
        try:
            category = db.query(Category).filter(func.lower(Category.name) == category_name.strip().lower()).first()
            if not category:
                raise NotFoundError("Category not found")
            favorites = self._query_favorites(db, user_id).filter(
                Song.category_id == category.id
            ).order_by(UserFavorite.created_at.desc()).all()
            return [_favorite_to_dict(f) for f in favorites]
        finally:
            db.close()

    def favorites_by_creator(self, user_id: str, creator_id: str) -> List[Dict]:
        db: Session = SessionLocal()
        try:
            favorites = self._query_favorites(db, user_id).filter(
                Song.creator_id == creator_id
            ).order_by(UserFavorite.created_at.desc()).all()
            return [_favorite_to_dict(f) for f in favorites]
        finally:
            db.close()

    def count_favorites(self, user_id: str) -> int:
        db: Session = SessionLocal()
        try:
            return db.query(UserFavorite).filter(UserFavorite.user_id == user_id).count()
        finally:
            db.close()
