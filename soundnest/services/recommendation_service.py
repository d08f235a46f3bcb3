"""
Recommendation Service
"For you" songs, albums and playlists built from a listener's plays,
favorites and follows
"""

from typing import Dict, List, Set, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from soundnest.database.models import (
    Album, AlbumSong, CreatorFollow, Playlist, PlaylistSong, Song, SongAnalytics, UserFavorite, SessionLocal
)
from soundnest.models.serializers import album_to_dict, playlist_to_dict, song_to_dict
from soundnest.services import analytics_aggregator as aggregator
from soundnest.services.album_service import album_listens
from soundnest.services.pagination import page_bounds

logger = logging.getLogger(__name__)


class RecommendationService:
    """Service for generating recommendations from listening behaviour"""

    def _taste(self, db: Session, user_id: str) -> Tuple[Dict[int, int], Set[str], Set[str]]:
        """
        Category affinity, played song ids and creators the user engages with.

        Returns:
            (affinity, listened, creator_ids)
        """
        played = db.query(Song.category_id, SongAnalytics.play_count, Song.song_id, Song.creator_id).select_from(
            SongAnalytics
        ).join(Song, Song.song_id == SongAnalytics.song_id).filter(SongAnalytics.listener_id == user_id).all()

        favorites = db.query(Song.category_id, Song.creator_id).join(
            UserFavorite, UserFavorite.song_id == Song.song_id
        ).filter(UserFavorite.user_id == user_id).all()

        followed = db.query(CreatorFollow.creator_id).filter(CreatorFollow.follower_id == user_id).all()

        affinity = aggregator.category_affinity(
            ((category_id, plays) for category_id, plays, _, _ in played),
            (category_id for category_id, _ in favorites)
        )
        listened = {song_id for _, _, song_id, _ in played}
        creators = {creator_id for _, _, _, creator_id in played}
        creators.update(creator_id for _, creator_id in favorites)
        creators.update(creator_id for (creator_id,) in followed)
        return affinity, listened, creators

    def recommend_songs(self, user_id: str, limit: int = 10) -> List[Dict]:
        """
        Public songs the user has not played, favouring the categories they
        listen to and like, then overall popularity.
        """
        _, limit, _ = page_bounds(1, limit)
        db: Session = SessionLocal()
        try:
            affinity, listened, _ = self._taste(db, user_id)

            plays = db.query(
                SongAnalytics.song_id.label("song_id"),
                func.sum(SongAnalytics.play_count).label("plays")
            ).group_by(SongAnalytics.song_id).subquery()

            rows = db.query(Song.song_id, Song.category_id, func.coalesce(plays.c.plays, 0)).outerjoin(
                plays, plays.c.song_id == Song.song_id
            ).filter(
                Song.is_public.is_(True),
                Song.creator_id != user_id
            ).all()

            ranked = aggregator.for_you(
                (aggregator.Candidate(song_id, category_id, int(total or 0)) for song_id, category_id, total in rows),
                affinity,
                listened,
                limit
            )
            if not ranked:
                return []

            songs = {
                song.song_id: song
                for song in db.query(Song).options(
                    joinedload(Song.category),
                    joinedload(Song.creator)
                ).filter(Song.song_id.in_([c.song_id for c in ranked])).all()
            }
            logger.info(f"Recommended {len(ranked)} songs for {user_id} ({len(affinity)} affine categories)")
            return [song_to_dict(songs[c.song_id]) for c in ranked if c.song_id in songs]
        finally:
            db.close()

    def recommend_albums(self, user_id: str, limit: int = 10) -> List[Dict]:
        """Public albums by other creators, those the user already engages with first"""
        _, limit, _ = page_bounds(1, limit)
        db: Session = SessionLocal()
        try:
            affinity, _, creators = self._taste(db, user_id)

            albums = db.query(Album).options(
                joinedload(Album.creator),
                selectinload(Album.entries).joinedload(AlbumSong.song)
            ).filter(
                Album.is_public.is_(True),
                Album.creator_id != user_id
            ).all()
            listens = album_listens(db, [a.album_id for a in albums])

            def score(album: Album):
                category_weight = sum(
                    affinity.get(entry.song.category_id, 0) for entry in album.entries if entry.song
                )
                return (
                    -(1 if album.creator_id in creators else 0),
                    -category_weight,
                    -listens.get(album.album_id, 0),
                    album.album_id,
                )

            albums.sort(key=score)
            return [album_to_dict(a, listens.get(a.album_id, 0)) for a in albums[:limit]]
        finally:
            db.close()

    def recommend_playlists(self, user_id: str, limit: int = 10) -> List[Dict]:
        """Public playlists by other users, ranked by how well their songs match the user's taste"""
        _, limit, _ = page_bounds(1, limit)
        db: Session = SessionLocal()
        try:
            affinity, _, _ = self._taste(db, user_id)

            playlists = db.query(Playlist).options(
                joinedload(Playlist.creator),
                selectinload(Playlist.entries).joinedload(PlaylistSong.song)
            ).filter(
                Playlist.is_public.is_(True),
                Playlist.creator_id != user_id
            ).all()

            def score(playlist: Playlist):
                category_weight = sum(
                    affinity.get(entry.song.category_id, 0) for entry in playlist.entries if entry.song
                )
                return (-category_weight, -len(playlist.entries), playlist.playlist_id)

            playlists = sorted((p for p in playlists if p.entries), key=score)
            return [playlist_to_dict(p) for p in playlists[:limit]]
        finally:
            db.close()
