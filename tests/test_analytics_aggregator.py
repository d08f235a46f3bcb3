"""Tests for play rollup aggregation."""

from datetime import date, datetime, timedelta

from soundnest.services.analytics_aggregator import (
    Candidate,
    SongPlayRollup,
    SongRecord,
    category_affinity,
    daily_series,
    for_you,
    period_overview,
    summarize_song,
    top_songs,
    trending,
)

NOW = datetime(2024, 6, 15, 12, 0, 0)


def rollup(song_id="s1", listener_id="u1", plays=1, duration=0.0, played_at=NOW):
    return SongPlayRollup(
        song_id=song_id,
        listener_id=listener_id,
        play_count=plays,
        total_listen_duration=duration,
        last_played_at=played_at,
    )


def test_summarize_song_totals():
    """Two listeners, five plays, 130 seconds."""
    totals = summarize_song([
        rollup(listener_id="u1", plays=3, duration=90),
        rollup(listener_id="u2", plays=2, duration=40),
    ])

    assert totals.total_plays == 5
    assert totals.total_duration == 130
    assert totals.avg_duration == 26
    assert totals.unique_listeners == 2


def test_summarize_song_empty_is_all_zero():
    totals = summarize_song([])

    assert totals.to_dict() == {
        "totalPlays": 0,
        "totalDuration": 0,
        "uniqueListeners": 0,
        "avgDuration": 0,
    }


def test_summarize_song_zero_plays_has_zero_average():
    totals = summarize_song([rollup(plays=0, duration=12)])
    assert totals.avg_duration == 0


def test_summarize_song_counts_each_listener_once():
    rows = [
        rollup(listener_id="u1", plays=4),
        rollup(listener_id="u1", plays=1),
        rollup(listener_id="u3", plays=2),
    ]
    totals = summarize_song(rows)

    assert totals.total_plays == sum(r.play_count for r in rows)
    assert totals.unique_listeners == len({r.listener_id for r in rows})


def test_daily_series_empty_is_dense():
    series = daily_series([], 30, now=NOW)

    assert len(series) == 30
    assert all(entry["plays"] == 0 for entry in series)
    assert series[-1]["date"] == "2024-06-15"
    assert series[0]["date"] == "2024-05-17"


def test_daily_series_dates_are_contiguous():
    series = daily_series([rollup(plays=2, played_at=NOW - timedelta(days=400))], 30, now=NOW)

    days = [date.fromisoformat(entry["date"]) for entry in series]
    for earlier, later in zip(days, days[1:]):
        assert later - earlier == timedelta(days=1)
    assert sum(entry["plays"] for entry in series) == 0


def test_daily_series_buckets_by_last_played_day():
    series = daily_series([
        rollup(plays=3, played_at=NOW),
        rollup(plays=2, played_at=NOW - timedelta(days=2)),
        rollup(plays=1, played_at=None),
    ], 7, now=NOW)

    by_date = {entry["date"]: entry["plays"] for entry in series}
    assert by_date["2024-06-15"] == 3
    assert by_date["2024-06-13"] == 2
    assert sum(by_date.values()) == 5


def test_daily_series_non_positive_window():
    assert daily_series([rollup()], 0, now=NOW) == []


def test_period_overview_only_counts_songs_in_window():
    songs = [
        SongRecord("new", "New", "A", NOW - timedelta(days=3), [rollup("new", plays=4, duration=40)]),
        SongRecord("old", "Old", "A", NOW - timedelta(days=90), [rollup("old", plays=9)]),
    ]
    overview = period_overview(songs, 30, now=NOW)

    assert overview.song_count == 1
    assert overview.total_plays == 4
    assert overview.total_duration == 40
    assert overview.avg_plays_per_song == 4


def test_period_overview_without_songs_has_zero_average():
    overview = period_overview([], 30, now=NOW)
    assert overview.avg_plays_per_song == 0
    assert overview.song_count == 0


def test_top_songs_orders_by_plays_and_keeps_input_order_on_ties():
    songs = [
        SongRecord("a", "A", "x", NOW, [rollup("a", plays=2)]),
        SongRecord("b", "B", "x", NOW, [rollup("b", plays=7)]),
        SongRecord("c", "C", "x", NOW, [rollup("c", plays=2)]),
    ]
    ranked = top_songs(songs, k=5)

    assert [s.song_id for s in ranked] == ["b", "a", "c"]
    assert top_songs(songs, k=1)[0].song_id == "b"


def test_trending_breaks_ties_by_song_id():
    """Songs A and B both have 10 plays, C has 5."""
    rollups = [
        rollup("song-b", "u1", plays=6),
        rollup("song-a", "u1", plays=10),
        rollup("song-b", "u2", plays=4),
        rollup("song-c", "u1", plays=5),
    ]
    ranked = trending(rollups, period_days=7, k=2, now=NOW)

    assert ranked == [("song-a", 10), ("song-b", 10)]


def test_trending_is_stable_across_input_order():
    rollups = [
        rollup("x", "u1", plays=3),
        rollup("y", "u1", plays=3),
        rollup("z", "u1", plays=3),
    ]
    first = trending(rollups, k=10, now=NOW)
    second = trending(list(reversed(rollups)), k=10, now=NOW)

    assert first == second
    assert [song_id for song_id, _ in first] == ["x", "y", "z"]


def test_trending_ignores_plays_outside_window():
    rollups = [
        rollup("recent", plays=1, played_at=NOW - timedelta(days=1)),
        rollup("stale", plays=50, played_at=NOW - timedelta(days=30)),
    ]
    assert trending(rollups, period_days=7, now=NOW) == [("recent", 1)]


def test_category_affinity_adds_plays_and_favorites():
    affinity = category_affinity([(1, 5), (2, 1), (None, 9), (1, 2)], [2, 2, None])
    assert affinity == {1: 7, 2: 3}


def test_for_you_skips_listened_and_ranks_by_affinity():
    candidates = [
        Candidate("heard", 1, 100),
        Candidate("pop", 2, 50),
        Candidate("match", 1, 1),
        Candidate("match", 1, 1),
        Candidate("quiet", 2, 50),
    ]
    ranked = for_you(candidates, {1: 3}, {"heard"}, k=10)

    assert [c.song_id for c in ranked] == ["match", "pop", "quiet"]
