"""
Analytics Service
Records plays and serves creator dashboards, per-song analytics, listening
history and trending songs. Rows are fetched here and handed to the
aggregator; everything it returns is computed from the stored rollups.
"""

from datetime import timedelta
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from soundnest.database.models import (
    CreatorStats, ListeningHistory, Song, SongAnalytics, UserFavorite, SessionLocal, utcnow
)
from soundnest.errors import NotFoundError, PermissionDeniedError, ValidationError
from soundnest.models.serializers import iso, pagination, song_to_dict, user_summary
from soundnest.services import analytics_aggregator as aggregator
from soundnest.services.pagination import page_bounds

logger = logging.getLogger(__name__)

MONTHLY_WINDOW_DAYS = 30
DAILY_SERIES_DAYS = 30
RECENT_ACTIVITY_LIMIT = 10
RECENT_LISTENERS_LIMIT = 20
MAX_PERIOD_DAYS = 365


def _to_rollup(row: SongAnalytics) -> aggregator.SongPlayRollup:
    return aggregator.SongPlayRollup(
        song_id=row.song_id,
        listener_id=row.listener_id,
        play_count=row.play_count or 0,
        total_listen_duration=row.listen_duration or 0.0,
        last_played_at=row.last_played,
    )


def _event_to_rollup(event: ListeningHistory) -> aggregator.SongPlayRollup:
    """A single listen seen as a one-play rollup dated at the listen"""
    return aggregator.SongPlayRollup(
        song_id=event.song_id,
        listener_id=event.user_id,
        play_count=1,
        total_listen_duration=event.listen_duration or 0.0,
        last_played_at=event.listened_at,
    )


def _validate_period(value, name: str = "period") -> int:
    try:
        period = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if period < 1 or period > MAX_PERIOD_DAYS:
        raise ValidationError(f"{name} must be between 1 and {MAX_PERIOD_DAYS}")
    return period


def refresh_creator_stats(db: Session, creator_id: str) -> CreatorStats:
    """
    Recompute a creator's stats snapshot from the source rows.

    Totals are never incremented in place, so the snapshot cannot drift from
    the songs, rollups and favorites it summarizes. The caller commits.
    """
    total_songs = db.query(func.count(Song.song_id)).filter(Song.creator_id == creator_id).scalar() or 0

    total_listens = db.query(func.coalesce(func.sum(SongAnalytics.play_count), 0)).join(
        Song, Song.song_id == SongAnalytics.song_id
    ).filter(Song.creator_id == creator_id).scalar() or 0

    total_favorites = db.query(func.count(UserFavorite.id)).join(
        Song, Song.song_id == UserFavorite.song_id
    ).filter(Song.creator_id == creator_id).scalar() or 0

    month_ago = utcnow() - timedelta(days=MONTHLY_WINDOW_DAYS)
    monthly_listeners = db.query(func.count(func.distinct(SongAnalytics.listener_id))).join(
        Song, Song.song_id == SongAnalytics.song_id
    ).filter(
        Song.creator_id == creator_id,
        SongAnalytics.last_played >= month_ago
    ).scalar() or 0

    stats = db.query(CreatorStats).filter(CreatorStats.creator_id == creator_id).first()
    if stats is None:
        stats = CreatorStats(creator_id=creator_id)
        db.add(stats)

    stats.total_songs = int(total_songs)
    stats.total_listens = int(total_listens)
    stats.total_favorites = int(total_favorites)
    stats.monthly_listeners = int(monthly_listeners)
    stats.updated_at = utcnow()
    db.flush()
    return stats


def creator_stats_to_dict(stats: CreatorStats) -> Dict:
    return {
        "totalSongs": stats.total_songs,
        "totalListens": stats.total_listens,
        "totalFavorites": stats.total_favorites,
        "monthlyListeners": stats.monthly_listeners,
        "updatedAt": iso(stats.updated_at),
    }


class AnalyticsService:
    """Service for play tracking and listening analytics"""

    def _increment_rollup(self, db: Session, user_id: str, song_id: str, duration: float) -> int:
        """
        Add one play to the (song, listener) rollup and return its new count.

        The increment is a single UPDATE so concurrent plays cannot lose
        updates; when no row exists yet it is inserted, and if a concurrent
        insert wins the unique constraint the update is retried.
        """
        def bump() -> int:
            return db.query(SongAnalytics).filter(
                SongAnalytics.song_id == song_id,
                SongAnalytics.listener_id == user_id
            ).update({
                SongAnalytics.play_count: SongAnalytics.play_count + 1,
                SongAnalytics.listen_duration: SongAnalytics.listen_duration + duration,
                SongAnalytics.last_played: utcnow(),
            }, synchronize_session=False)

        if not bump():
            db.add(SongAnalytics(
                song_id=song_id,
                listener_id=user_id,
                play_count=1,
                listen_duration=duration,
                last_played=utcnow(),
            ))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info(f"Concurrent first play for {song_id}/{user_id}, retrying as update")
                bump()
                db.commit()
        else:
            db.commit()

        return db.query(SongAnalytics.play_count).filter(
            SongAnalytics.song_id == song_id,
            SongAnalytics.listener_id == user_id
        ).scalar() or 0

    def track_play(self, user_id: str, song_id: str, duration: Optional[float] = 0) -> Dict:
        """
        Record one playback of a song.

        Args:
            user_id: Listener
            song_id: Played song
            duration: Seconds listened

        Returns:
            Dictionary with the listener's updated play count for the song
        """
        if not song_id:
            raise ValidationError("songId is required")
        try:
            duration = float(duration or 0)
        except (TypeError, ValueError):
            raise ValidationError("duration must be a number")
        if duration < 0:
            raise ValidationError("duration cannot be negative")

        db: Session = SessionLocal()
        try:
            song = db.query(Song).filter(Song.song_id == song_id).first()
            if not song or (not song.is_public and song.creator_id != user_id):
                raise NotFoundError("Song not found")
            creator_id = song.creator_id

            # The event log is best effort; the rollup is what analytics read
            try:
                db.add(ListeningHistory(user_id=user_id, song_id=song_id, listen_duration=duration))
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning(f"Could not record listening history for {song_id}: {e}")

            play_count = self._increment_rollup(db, user_id, song_id, duration)

            refresh_creator_stats(db, creator_id)
            db.commit()

            logger.info(f"Play tracked: {user_id} -> {song_id} ({duration:.0f}s, count={play_count})")
            return {"success": True, "songId": song_id, "playCount": play_count}
        finally:
            db.close()

    def creator_dashboard(self, creator_id: str, period: int = 30) -> Dict:
        """
        Creator dashboard: stats snapshot, period rollup, top songs, recent
        activity and every song with its totals.
        """
        period = _validate_period(period)

        db: Session = SessionLocal()
        try:
            stats = db.query(CreatorStats).filter(CreatorStats.creator_id == creator_id).first()
            if stats is None:
                stats = refresh_creator_stats(db, creator_id)
                db.commit()

            songs = db.query(Song).options(
                selectinload(Song.analytics),
                joinedload(Song.category),
                joinedload(Song.creator)
            ).filter(Song.creator_id == creator_id).order_by(Song.created_at.desc()).all()

            records = [
                aggregator.SongRecord(
                    song_id=song.song_id,
                    title=song.title,
                    artist=song.artist,
                    created_at=song.created_at,
                    rollups=[_to_rollup(row) for row in song.analytics],
                )
                for song in songs
            ]

            song_items = []
            for song, record in zip(songs, records):
                item = song_to_dict(song)
                item["analytics"] = aggregator.summarize_song(record.rollups).to_dict()
                song_items.append(item)

            recent = db.query(ListeningHistory).options(
                joinedload(ListeningHistory.song),
                joinedload(ListeningHistory.user)
            ).join(Song, Song.song_id == ListeningHistory.song_id).filter(
                Song.creator_id == creator_id
            ).order_by(ListeningHistory.listened_at.desc(), ListeningHistory.id.desc()).limit(
                RECENT_ACTIVITY_LIMIT
            ).all()

            return {
                "overview": creator_stats_to_dict(stats),
                "period": period,
                "periodAnalytics": aggregator.period_overview(records, period).to_dict(),
                "topSongs": [summary.to_dict() for summary in aggregator.top_songs(records, 5)],
                "recentActivity": [
                    {
                        "songId": event.song_id,
                        "songTitle": event.song.title if event.song else None,
                        "listener": user_summary(event.user),
                        "duration": event.listen_duration,
                        "listenedAt": iso(event.listened_at),
                    }
                    for event in recent
                ],
                "songs": song_items,
            }
        finally:
            db.close()

    def song_analytics(self, creator_id: str, song_id: str) -> Dict:
        """
        Detailed analytics for one of the caller's songs.

        The daily series is built from the listen log, one play per event,
        so plays on different days land on their own dates.
        """
        db: Session = SessionLocal()
        try:
            song = db.query(Song).options(
                joinedload(Song.category),
                joinedload(Song.creator)
            ).filter(Song.song_id == song_id).first()
            if not song:
                raise NotFoundError("Song not found")
            if song.creator_id != creator_id:
                raise PermissionDeniedError("You can only view analytics for your own songs")

            rollup_rows = db.query(SongAnalytics).options(
                joinedload(SongAnalytics.listener)
            ).filter(SongAnalytics.song_id == song_id).order_by(
                SongAnalytics.last_played.desc(), SongAnalytics.id.desc()
            ).all()
            totals = aggregator.summarize_song(_to_rollup(row) for row in rollup_rows)

            window_start = utcnow() - timedelta(days=DAILY_SERIES_DAYS)
            events = db.query(ListeningHistory).filter(
                ListeningHistory.song_id == song_id,
                ListeningHistory.listened_at >= window_start
            ).all()
            series = aggregator.daily_series((_event_to_rollup(e) for e in events), DAILY_SERIES_DAYS)

            return {
                "song": song_to_dict(song),
                "analytics": totals.to_dict(),
                "dailyPlays": series,
                "recentListeners": [
                    {
                        "listener": user_summary(row.listener),
                        "playCount": row.play_count,
                        "listenDuration": row.listen_duration,
                        "lastPlayed": iso(row.last_played),
                    }
                    for row in rollup_rows[:RECENT_LISTENERS_LIMIT]
                ],
            }
        finally:
            db.close()

    def listening_history(self, user_id: str, page: int = 1, limit: int = 20) -> Dict:
        """The caller's listens, most recent first"""
        page, limit, offset = page_bounds(page, limit)

        db: Session = SessionLocal()
        try:
            query = db.query(ListeningHistory).filter(ListeningHistory.user_id == user_id)
            total = query.count()
            events = query.options(
                joinedload(ListeningHistory.song).joinedload(Song.category),
                joinedload(ListeningHistory.song).joinedload(Song.creator)
            ).order_by(
                ListeningHistory.listened_at.desc(), ListeningHistory.id.desc()
            ).offset(offset).limit(limit).all()

            return {
                "history": [
                    {
                        "id": event.id,
                        "song": song_to_dict(event.song) if event.song else None,
                        "listenDuration": event.listen_duration,
                        "listenedAt": iso(event.listened_at),
                    }
                    for event in events
                ],
                "pagination": pagination(page, limit, total),
            }
        finally:
            db.close()

    def trending(self, period: int = 7, limit: int = 10) -> List[Dict]:
        """Most played public songs over the trailing period"""
        period = _validate_period(period)
        _, limit, _ = page_bounds(1, limit)

        db: Session = SessionLocal()
        try:
            cutoff = utcnow() - timedelta(days=period)
            rows = db.query(SongAnalytics).join(
                Song, Song.song_id == SongAnalytics.song_id
            ).filter(
                Song.is_public.is_(True),
                SongAnalytics.last_played >= cutoff
            ).all()

            ranked = aggregator.trending([_to_rollup(row) for row in rows], period, limit)
            if not ranked:
                return []

            songs = {
                song.song_id: song
                for song in db.query(Song).options(
                    joinedload(Song.category),
                    joinedload(Song.creator)
                ).filter(Song.song_id.in_([song_id for song_id, _ in ranked])).all()
            }
            return [
                {"song": song_to_dict(songs[song_id]), "totalPlays": plays}
                for song_id, plays in ranked
                if song_id in songs
            ]
        finally:
            db.close()
