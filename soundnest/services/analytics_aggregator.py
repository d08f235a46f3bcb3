"""
Analytics Aggregator
Pure computations over play rollup rows: per-song totals, period rollups,
dense daily series, trending rankings and for-you candidate ranking.

Nothing here performs I/O or raises; callers fetch the rows and own any
store failure.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple


@dataclass(frozen=True)
class SongPlayRollup:
    """Materialized per (song, listener) aggregate"""
    song_id: str
    listener_id: str
    play_count: int = 0
    total_listen_duration: float = 0.0
    last_played_at: Optional[datetime] = None


@dataclass(frozen=True)
class SongTotals:
    total_plays: int = 0
    total_duration: float = 0.0
    unique_listeners: int = 0
    avg_duration: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "totalPlays": self.total_plays,
            "totalDuration": self.total_duration,
            "uniqueListeners": self.unique_listeners,
            "avgDuration": self.avg_duration,
        }


@dataclass
class SongRecord:
    """A creator's song together with all of its rollup rows"""
    song_id: str
    title: str
    artist: str
    created_at: datetime
    rollups: List[SongPlayRollup] = field(default_factory=list)


@dataclass(frozen=True)
class SongSummary:
    song_id: str
    title: str
    artist: str
    total_plays: int
    total_duration: float
    avg_duration: float

    def to_dict(self) -> Dict:
        return {
            "id": self.song_id,
            "title": self.title,
            "artist": self.artist,
            "totalPlays": self.total_plays,
            "totalDuration": self.total_duration,
            "avgDuration": self.avg_duration,
        }


@dataclass(frozen=True)
class PeriodOverview:
    total_plays: int = 0
    total_duration: float = 0.0
    song_count: int = 0
    avg_plays_per_song: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "totalPlays": self.total_plays,
            "totalDuration": self.total_duration,
            "songCount": self.song_count,
            "avgPlaysPerSong": self.avg_plays_per_song,
        }


@dataclass(frozen=True)
class Candidate:
    """A song that could be recommended to a listener"""
    song_id: str
    category_id: Optional[int]
    total_plays: int = 0


def _utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    # Rows from the store are naive UTC; aware values are normalised to match
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    return _utc_naive(now)


def _safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0


def summarize_song(rollups: Iterable[SongPlayRollup]) -> SongTotals:
    """Totals for one song's rollup rows; an empty input yields all zeros"""
    total_plays = 0
    total_duration = 0.0
    listeners: Set[str] = set()
    for rollup in rollups:
        total_plays += rollup.play_count or 0
        total_duration += rollup.total_listen_duration or 0
        listeners.add(rollup.listener_id)

    return SongTotals(
        total_plays=total_plays,
        total_duration=total_duration,
        unique_listeners=len(listeners),
        avg_duration=_safe_ratio(total_duration, total_plays),
    )


def daily_series(
    rollups: Iterable[SongPlayRollup],
    window_days: int = 30,
    now: Optional[datetime] = None
) -> List[Dict]:
    """
    Dense per-day play counts for the trailing window ending today (UTC).

    Always returns exactly window_days entries in ascending date order, zero
    filled. Each row's whole play_count lands on the date of its
    last_played_at, so a rollup is attributed to its most recent day.
    """
    if window_days <= 0:
        return []

    today = _now(now).date()
    start = today - timedelta(days=window_days - 1)
    buckets: "OrderedDict[date, int]" = OrderedDict(
        (start + timedelta(days=offset), 0) for offset in range(window_days)
    )

    for rollup in rollups:
        played_at = _utc_naive(rollup.last_played_at)
        if played_at is None:
            continue
        day = played_at.date()
        if day in buckets:
            buckets[day] += rollup.play_count or 0

    return [{"date": day.isoformat(), "plays": plays} for day, plays in buckets.items()]


def period_overview(
    songs: Sequence[SongRecord],
    period_days: int,
    now: Optional[datetime] = None
) -> PeriodOverview:
    """Summed totals of the songs created within [now - period_days, now]"""
    current = _now(now)
    cutoff = current - timedelta(days=period_days)

    total_plays = 0
    total_duration = 0.0
    song_count = 0
    for song in songs:
        created_at = _utc_naive(song.created_at)
        if created_at is None or not (cutoff <= created_at <= current):
            continue
        totals = summarize_song(song.rollups)
        total_plays += totals.total_plays
        total_duration += totals.total_duration
        song_count += 1

    return PeriodOverview(
        total_plays=total_plays,
        total_duration=total_duration,
        song_count=song_count,
        avg_plays_per_song=_safe_ratio(total_plays, song_count),
    )


def top_songs(songs: Sequence[SongRecord], k: int = 5) -> List[SongSummary]:
    """
    Songs ranked by total plays, highest first.

    The sort is stable, so songs with equal plays keep their input order
    (creation-descending as fetched).
    """
    summaries = []
    for song in songs:
        totals = summarize_song(song.rollups)
        summaries.append(SongSummary(
            song_id=song.song_id,
            title=song.title,
            artist=song.artist,
            total_plays=totals.total_plays,
            total_duration=totals.total_duration,
            avg_duration=totals.avg_duration,
        ))
    summaries.sort(key=lambda s: s.total_plays, reverse=True)
    return summaries[:max(k, 0)]


def trending(
    rollups: Iterable[SongPlayRollup],
    period_days: int = 7,
    k: int = 10,
    now: Optional[datetime] = None
) -> List[Tuple[str, int]]:
    """
    (song_id, plays) for the k most played songs over the trailing period.

    Ties are broken by ascending song id so repeated calls agree.
    """
    cutoff = _now(now) - timedelta(days=period_days)
    plays: Dict[str, int] = {}
    for rollup in rollups:
        played_at = _utc_naive(rollup.last_played_at)
        if played_at is None or played_at < cutoff:
            continue
        plays[rollup.song_id] = plays.get(rollup.song_id, 0) + (rollup.play_count or 0)

    ranked = sorted(plays.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:max(k, 0)]


def category_affinity(
    played: Iterable[Tuple[Optional[int], int]],
    favorited: Iterable[Optional[int]] = ()
) -> Dict[int, int]:
    """Weight per category: plays in it plus one per favorited song in it"""
    affinity: Dict[int, int] = {}
    for category_id, play_count in played:
        if category_id is not None:
            affinity[category_id] = affinity.get(category_id, 0) + (play_count or 0)
    for category_id in favorited:
        if category_id is not None:
            affinity[category_id] = affinity.get(category_id, 0) + 1
    return affinity


def for_you(
    candidates: Iterable[Candidate],
    affinity: Dict[int, int],
    listened: Set[str],
    k: int = 10
) -> List[Candidate]:
    """
    Rank songs the listener has not played yet.

    Order: category affinity, then overall popularity, then song id.
    """
    seen: Set[str] = set()
    pool = []
    for candidate in candidates:
        if candidate.song_id in listened or candidate.song_id in seen:
            continue
        seen.add(candidate.song_id)
        pool.append(candidate)

    pool.sort(key=lambda c: (
        -affinity.get(c.category_id, 0),
        -(c.total_plays or 0),
        c.song_id,
    ))
    return pool[:max(k, 0)]
