"""Shared fixtures: an application on in-memory SQLite with temporary storage."""

from datetime import datetime, timedelta, timezone
import itertools

import jwt
import pytest
from fastapi.testclient import TestClient

from soundnest.api.main import create_app
from soundnest.config import Settings

TEST_SECRET = "test-secret"
_counter = itertools.count(1)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        data_dir=str(tmp_path),
        storage_dir=str(tmp_path / "storage"),
        public_base_url="http://testserver",
        jwt_secret=TEST_SECRET,
        huggingface_api_key="",
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, role="listener", username=None, password="secret123"):
    """Register a fresh user and return (token, user)"""
    n = next(_counter)
    username = username or f"user{n}"
    response = client.post("/api/auth/register", json={
        "email": f"{username}@example.com",
        "password": password,
        "username": username,
        "fullName": username.title(),
        "role": role,
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return body["token"], body["user"]


def upload_song(client, token, title="Track", category="chill", is_public=True, content_type="audio/mpeg"):
    response = client.post(
        "/api/songs/upload",
        headers=auth(token),
        data={"title": title, "artist": "Artist", "category": category, "isPublic": str(is_public).lower()},
        files={"audio": (f"{title}.mp3", b"ID3\x03\x00fake-audio", content_type)},
    )
    return response


def expired_token(user_id):
    past = datetime.now(timezone.utc) - timedelta(days=2)
    return jwt.encode({"sub": user_id, "iat": past, "exp": past + timedelta(hours=1)}, TEST_SECRET, algorithm="HS256")
