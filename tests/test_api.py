"""End-to-end tests of the HTTP API."""

import inspect
from urllib.parse import urlparse

from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from soundnest.api.main import create_app
from tests.conftest import auth, expired_token, register, upload_song


def creator_with_song(client, **kwargs):
    token, user = register(client, role="content_creator")
    response = upload_song(client, token, **kwargs)
    assert response.status_code == 201, response.text
    return token, user, response.json()["song"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "soundnest"}


def test_missing_token_is_401(client):
    response = client.get("/api/auth/verify")
    assert response.status_code == 401
    assert response.json() == {"error": "No token provided"}


def test_malformed_token_is_400(client):
    assert client.get("/api/auth/verify", headers=auth("not-a-jwt")).status_code == 400


def test_invalid_token_is_403(client):
    assert client.get("/api/auth/verify", headers=auth("aaa.bbb.ccc")).status_code == 403


def test_expired_token_is_403(client):
    _, user = register(client)
    response = client.get("/api/auth/verify", headers=auth(expired_token(user["id"])))
    assert response.status_code == 403
    assert response.json()["error"] == "Token expired"


def test_register_login_and_verify(client):
    token, user = register(client, username="alice")
    assert user["email"] == "alice@example.com"
    assert user["role"] == "listener"

    verified = client.get("/api/auth/verify", headers=auth(token))
    assert verified.status_code == 200
    assert verified.json()["user"]["id"] == user["id"]

    login = client.post("/api/auth/login", json={"email": "ALICE@example.com", "password": "secret123"})
    assert login.status_code == 200
    assert login.json()["user"]["username"] == "alice"

    wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
    assert wrong.status_code == 400


def test_register_validation_and_duplicates(client):
    short = client.post("/api/auth/register", json={"email": "x@example.com", "password": "123"})
    assert short.status_code == 400

    bad_role = client.post("/api/auth/register", json={"email": "x@example.com", "password": "secret123", "role": "admin"})
    assert bad_role.status_code == 400

    register(client, username="bob")
    duplicate = client.post("/api/auth/register", json={"email": "bob@example.com", "password": "secret123"})
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "Email already registered"


def test_missing_body_field_is_400(client):
    response = client.post("/api/auth/login", json={"email": "a@example.com"})
    assert response.status_code == 400
    assert "password" in response.json()["error"]


def test_listeners_cannot_upload(client):
    token, _ = register(client)
    response = upload_song(client, token)
    assert response.status_code == 403


def test_upload_requires_audio(client):
    token, _ = register(client, role="content_creator")
    response = upload_song(client, token, content_type="text/plain")
    assert response.status_code == 400


def test_upload_and_browse(client):
    _, creator, song = creator_with_song(client, title="Night Drive", category="chill")

    assert song["category"]["name"] == "chill"
    assert song["creator"]["id"] == creator["id"]

    listing = client.get("/api/songs", params={"search": "night"})
    assert listing.status_code == 200
    assert [s["id"] for s in listing.json()["songs"]] == [song["id"]]
    assert listing.json()["pagination"]["total"] == 1

    assert client.get("/api/songs", params={"search": "%"}).json()["pagination"]["total"] == 0
    assert client.get(f"/api/songs/{song['id']}").json()["song"]["title"] == "Night Drive"

    categories = client.get("/api/categories").json()["categories"]
    assert "chill" in [c["name"] for c in categories]


def test_audio_is_served_from_public_bucket(client):
    _, _, song = creator_with_song(client)

    response = client.get(urlparse(song["audioUrl"]).path)
    assert response.status_code == 200
    assert response.content.startswith(b"ID3")


def test_private_objects_need_a_signature(client):
    storage = client.app.state.services.storage
    storage.upload("private", "c1/demo.mp3", b"secret-audio", "audio/mpeg")

    assert client.get("/storage/private/c1/demo.mp3").status_code == 403

    signed = urlparse(storage.create_signed_url("private", "c1/demo.mp3", ttl=60))
    response = client.get(f"{signed.path}?{signed.query}")
    assert response.status_code == 200
    assert response.content == b"secret-audio"


def test_stream_url(client):
    _, _, song = creator_with_song(client)

    response = client.get(f"/api/songs/{song['id']}/stream-url")
    assert response.status_code == 200
    url = urlparse(response.json()["url"])
    assert client.get(f"{url.path}?{url.query}").status_code == 200


def test_only_owner_can_modify_song(client):
    owner_token, _, song = creator_with_song(client)
    other_token, _ = register(client, role="content_creator")

    assert client.put(f"/api/songs/{song['id']}", headers=auth(other_token), json={"title": "Mine"}).status_code == 403
    assert client.delete(f"/api/songs/{song['id']}", headers=auth(other_token)).status_code == 403

    updated = client.put(f"/api/songs/{song['id']}", headers=auth(owner_token), json={"title": "Renamed"})
    assert updated.status_code == 200
    assert updated.json()["song"]["title"] == "Renamed"

    assert client.delete(f"/api/songs/{song['id']}", headers=auth(owner_token)).status_code == 200
    assert client.get(f"/api/songs/{song['id']}").status_code == 404


def test_private_song_is_hidden_from_others(client):
    owner_token, _, song = creator_with_song(client, is_public=False)
    other_token, _ = register(client)

    assert client.get(f"/api/songs/{song['id']}").status_code == 404
    assert client.get(f"/api/songs/{song['id']}", headers=auth(other_token)).status_code == 404
    assert client.get(f"/api/songs/{song['id']}", headers=auth(owner_token)).status_code == 200


def test_favorite_twice_is_a_conflict(client):
    _, _, song = creator_with_song(client)
    token, _ = register(client)

    first = client.post("/api/favorites", headers=auth(token), json={"songId": song["id"]})
    assert first.status_code == 201

    second = client.post("/api/favorites", headers=auth(token), json={"songId": song["id"]})
    assert second.status_code == 400
    assert second.json()["error"] == "Song already in favorites"

    assert client.get("/api/favorites/count", headers=auth(token)).json()["count"] == 1
    assert client.get(f"/api/favorites/check/{song['id']}", headers=auth(token)).json()["isFavorite"] is True


def test_removing_missing_favorite_succeeds(client):
    _, _, song = creator_with_song(client)
    token, _ = register(client)

    client.post("/api/favorites", headers=auth(token), json={"songId": song["id"]})
    assert client.delete(f"/api/favorites/{song['id']}", headers=auth(token)).status_code == 200
    assert client.delete(f"/api/favorites/{song['id']}", headers=auth(token)).status_code == 200
    assert client.get("/api/favorites/count", headers=auth(token)).json()["count"] == 0


def test_track_play_updates_every_view(client):
    creator_token, _, song = creator_with_song(client)
    listener_token, listener = register(client)

    for expected in (1, 2):
        response = client.post("/api/analytics/track-play", headers=auth(listener_token),
                               json={"songId": song["id"], "duration": 30})
        assert response.status_code == 200
        assert response.json()["playCount"] == expected

    details = client.get(f"/api/analytics/song/{song['id']}", headers=auth(creator_token)).json()
    assert details["analytics"] == {"totalPlays": 2, "totalDuration": 60.0, "uniqueListeners": 1, "avgDuration": 30.0}
    assert len(details["dailyPlays"]) == 30
    assert details["dailyPlays"][-1]["plays"] == 2
    assert details["recentListeners"][0]["listener"]["id"] == listener["id"]

    dashboard = client.get("/api/analytics/creator", headers=auth(creator_token)).json()
    assert dashboard["overview"]["totalSongs"] == 1
    assert dashboard["overview"]["totalListens"] == 2
    assert dashboard["overview"]["monthlyListeners"] == 1
    assert dashboard["topSongs"][0]["totalPlays"] == 2
    assert dashboard["periodAnalytics"]["totalPlays"] == 2
    assert len(dashboard["recentActivity"]) == 2

    trending = client.get("/api/analytics/trending").json()["trending"]
    assert trending[0]["song"]["id"] == song["id"]
    assert trending[0]["totalPlays"] == 2

    history = client.get("/api/analytics/history", headers=auth(listener_token)).json()
    assert history["pagination"]["total"] == 2


def test_track_play_rejects_negative_duration(client):
    _, _, song = creator_with_song(client)
    token, _ = register(client)
    response = client.post("/api/analytics/track-play", headers=auth(token), json={"songId": song["id"], "duration": -1})
    assert response.status_code == 400


def test_song_analytics_is_owner_only(client):
    _, _, song = creator_with_song(client)
    other_token, _ = register(client, role="content_creator")
    assert client.get(f"/api/analytics/song/{song['id']}", headers=auth(other_token)).status_code == 403


def test_dashboard_period_is_validated(client):
    token, _ = register(client, role="content_creator")
    assert client.get("/api/analytics/creator", headers=auth(token), params={"period": 0}).status_code == 400


def test_playlist_lifecycle(client):
    creator_token, _, first = creator_with_song(client, title="First")
    second = upload_song(client, creator_token, title="Second").json()["song"]
    token, _ = register(client)

    created = client.post("/api/playlists", headers=auth(token), json={"name": "Mix", "isPublic": False})
    assert created.status_code == 201
    playlist_id = created.json()["playlist"]["id"]

    for song in (first, second):
        added = client.post(f"/api/playlists/{playlist_id}/songs", headers=auth(token), json={"songId": song["id"]})
        assert added.status_code == 200

    duplicate = client.post(f"/api/playlists/{playlist_id}/songs", headers=auth(token), json={"songId": first["id"]})
    assert duplicate.status_code == 400

    reordered = client.put(f"/api/playlists/{playlist_id}/songs/reorder", headers=auth(token),
                           json={"songIds": [second["id"], first["id"]]})
    assert reordered.status_code == 200

    playlist = client.get(f"/api/playlists/me/{playlist_id}", headers=auth(token)).json()["playlist"]
    assert [s["id"] for s in playlist["songs"]] == [second["id"], first["id"]]

    # private playlists are not visible publicly, and only the owner may change them
    assert client.get(f"/api/playlists/{playlist_id}").status_code == 404
    assert client.put(f"/api/playlists/{playlist_id}", headers=auth(creator_token), json={"name": "x"}).status_code == 403

    assert client.delete(f"/api/playlists/{playlist_id}", headers=auth(token)).status_code == 200
    assert client.get("/api/playlists/me", headers=auth(token)).json()["playlists"] == []


def test_album_search_and_tracks(client):
    token, _, song = creator_with_song(client)

    album = client.post("/api/albums", headers=auth(token), json={"title": "Late Hours"}).json()["album"]
    assert client.post(f"/api/albums/{album['id']}/songs", headers=auth(token), json={"songId": song["id"]}).status_code == 200

    found = client.get("/api/albums/search", params={"q": "late"}).json()["albums"]
    assert [a["id"] for a in found] == [album["id"]]
    assert client.get("/api/albums/search").status_code == 400

    tracks = client.get(f"/api/albums/{album['id']}/songs").json()
    assert [s["id"] for s in tracks["songs"]] == [song["id"]]


def test_friend_request_flow(client):
    alice_token, alice = register(client)
    bob_token, bob = register(client)

    sent = client.post(f"/api/friends/{bob['id']}/request", headers=auth(alice_token))
    assert sent.status_code == 200
    again = client.post(f"/api/friends/{bob['id']}/request", headers=auth(alice_token))
    assert again.status_code == 400

    pending = client.get("/api/friends/requests/pending", headers=auth(bob_token)).json()["requests"]
    assert len(pending) == 1
    request_id = pending[0]["id"]

    # only the receiver may answer
    assert client.put(f"/api/friends/requests/{request_id}", headers=auth(alice_token),
                      json={"action": "accept"}).status_code == 403
    accepted = client.put(f"/api/friends/requests/{request_id}", headers=auth(bob_token), json={"action": "accept"})
    assert accepted.status_code == 200

    friends = client.get("/api/friends", headers=auth(alice_token)).json()["friends"]
    assert [f["id"] for f in friends] == [bob["id"]]

    assert client.delete(f"/api/friends/{bob['id']}", headers=auth(alice_token)).status_code == 200
    assert client.get("/api/friends", headers=auth(bob_token)).json()["friends"] == []


def test_follow_creator_notifies(client):
    creator_token, creator = register(client, role="content_creator")
    listener_token, _ = register(client)

    assert client.post(f"/api/users/follow/{creator['id']}", headers=auth(listener_token)).status_code == 200
    assert client.post(f"/api/users/follow/{creator['id']}", headers=auth(listener_token)).status_code == 400

    notifications = client.get("/api/users/notifications", headers=auth(creator_token)).json()
    assert notifications["unreadCount"] == 1
    assert notifications["notifications"][0]["type"] == "follow"


def test_mood_without_inference_key_uses_default(client):
    token, _, song = creator_with_song(client, category="chill")

    response = client.post("/api/ai/mood", json={"text": "long day at work"})
    assert response.status_code == 200
    body = response.json()
    assert body["emotion"] == "default"
    assert body["modelLabel"] is None
    assert body["recommendation"]["tag"] == "chill"
    assert [s["id"] for s in body["suggestions"]] == [song["id"]]


def test_mood_requires_text(client):
    assert client.post("/api/ai/mood", json={"text": "   "}).status_code == 400
    assert client.post("/api/ai/mood", json={}).status_code == 400


def test_recommendations_skip_played_songs(client):
    creator_token, _, played = creator_with_song(client, title="Played", category="chill")
    fresh = upload_song(client, creator_token, title="Fresh", category="chill").json()["song"]
    token, _ = register(client)

    client.post("/api/analytics/track-play", headers=auth(token), json={"songId": played["id"], "duration": 10})

    songs = client.get("/api/recommendations/songs", headers=auth(token)).json()["recommendations"]
    ids = [s["id"] for s in songs]
    assert fresh["id"] in ids
    assert played["id"] not in ids


def test_upload_category_is_matched_exactly(client):
    token, _ = register(client, role="content_creator")
    for pattern in ("%", "s_d", "ch%"):
        response = upload_song(client, token, category=pattern)
        assert response.status_code == 400
        assert response.json() == {"error": "Unknown category"}
    assert upload_song(client, token, category="CHILL").status_code == 201


def test_favorites_by_category_is_matched_exactly(client):
    _, _, song = creator_with_song(client, category="sad")
    token, _ = register(client)
    client.post("/api/favorites", headers=auth(token), json={"songId": song["id"]})

    assert client.get("/api/favorites/category/s_d", headers=auth(token)).status_code == 404
    assert client.get("/api/favorites/category/%25", headers=auth(token)).status_code == 404
    found = client.get("/api/favorites/category/SAD", headers=auth(token))
    assert found.status_code == 200
    assert [f["song"]["id"] for f in found.json()["favorites"]] == [song["id"]]


def test_profile_username_is_matched_exactly(client):
    register(client, username="wildcard1")
    assert client.get("/api/users/profile/wildcard_").status_code == 404
    assert client.get("/api/users/profile/WILDCARD1").json()["user"]["username"] == "wildcard1"


def test_oversized_upload_is_rejected(settings):
    app = create_app(settings.with_overrides(max_audio_bytes=8))
    with TestClient(app) as small_client:
        token, _ = register(small_client, role="content_creator")
        response = upload_song(small_client, token)
        assert response.status_code == 400
        assert "exceeds" in response.json()["error"]
        assert small_client.get("/api/songs", headers=auth(token)).json()["songs"] == []


def test_store_bound_handlers_run_in_threadpool(client):
    routes = [r for r in client.app.routes if isinstance(r, APIRoute) and r.path.startswith("/api")]
    assert routes
    for route in routes:
        if route.path == "/api/ai/mood":
            assert inspect.iscoroutinefunction(route.endpoint)
        else:
            assert not inspect.iscoroutinefunction(route.endpoint), route.path
