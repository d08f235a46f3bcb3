"""Tests for filesystem object storage and signed URLs."""

import time
from urllib.parse import parse_qs, urlparse

import pytest

from soundnest.config import Settings
from soundnest.errors import NotFoundError, ValidationError
from soundnest.services.storage_service import StorageService


@pytest.fixture
def storage(tmp_path):
    settings = Settings(storage_dir=str(tmp_path), public_base_url="http://cdn.test", jwt_secret="secret")
    return StorageService(settings)


def test_upload_and_open(storage):
    storage.upload("songs", "creator/track.mp3", b"ID3", "audio/mpeg")

    assert storage.exists("songs", "creator/track.mp3")
    assert storage.open_path("songs", "creator/track.mp3").read_bytes() == b"ID3"
    assert storage.get_public_url("songs", "creator/track.mp3") == "http://cdn.test/storage/songs/creator/track.mp3"


def test_upload_refuses_to_overwrite(storage):
    storage.upload("avatars", "u1/a.png", b"1")
    with pytest.raises(ValidationError):
        storage.upload("avatars", "u1/a.png", b"2")


def test_paths_cannot_escape_bucket(storage):
    for bucket, path in (("songs", "../avatars/x.png"), ("songs", ""), ("../etc", "passwd"), ("", "x")):
        with pytest.raises(ValidationError):
            storage.upload(bucket, path, b"x")


def test_remove_ignores_missing_objects(storage):
    storage.upload("songs", "c/one.mp3", b"1")
    storage.remove("songs", ["c/one.mp3", "c/missing.mp3"])

    assert not storage.exists("songs", "c/one.mp3")
    with pytest.raises(NotFoundError):
        storage.open_path("songs", "c/one.mp3")


def test_signed_url_round_trip(storage):
    storage.upload("private", "c/demo.mp3", b"1")
    url = storage.create_signed_url("private", "c/demo.mp3", ttl=60)

    query = parse_qs(urlparse(url).query)
    expires = int(query["expires"][0])
    signature = query["signature"][0]

    assert expires >= int(time.time()) + 59
    assert storage.verify_signature("private", "c/demo.mp3", expires, signature)
    assert not storage.verify_signature("private", "c/other.mp3", expires, signature)
    assert not storage.verify_signature("private", "c/demo.mp3", expires + 1, signature)
    assert not storage.verify_signature("private", "c/demo.mp3", None, signature)


def test_expired_signature_is_rejected(storage):
    url = storage.create_signed_url("private", "c/demo.mp3", ttl=-10)
    query = parse_qs(urlparse(url).query)

    assert not storage.verify_signature("private", "c/demo.mp3", int(query["expires"][0]), query["signature"][0])


def test_public_buckets(storage):
    assert storage.is_public("songs")
    assert storage.is_public("avatars")
    assert not storage.is_public("private")
