"""
API Dependencies
Service container and the authentication dependencies shared by every router
"""

from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import Depends, Header, Request, UploadFile

from soundnest.config import Settings
from soundnest.database.models import ROLE_CREATOR
from soundnest.errors import AuthenticationError, PermissionDeniedError, ServiceError, ValidationError
from soundnest.services.album_service import AlbumService
from soundnest.services.analytics_service import AnalyticsService
from soundnest.services.auth_service import AuthService
from soundnest.services.favorite_service import FavoriteService
from soundnest.services.friend_service import FriendService
from soundnest.services.inference_client import MoodInferenceClient
from soundnest.services.mood_service import MoodService
from soundnest.services.playlist_service import PlaylistService
from soundnest.services.recommendation_service import RecommendationService
from soundnest.services.song_service import SongService
from soundnest.services.storage_service import StorageService
from soundnest.services.user_service import UserService


@dataclass
class Services:
    """Every service the routes use, built once per application"""
    settings: Settings
    storage: StorageService
    auth: AuthService
    users: UserService
    songs: SongService
    playlists: PlaylistService
    albums: AlbumService
    favorites: FavoriteService
    friends: FriendService
    analytics: AnalyticsService
    recommendations: RecommendationService
    mood: MoodService


def build_services(settings: Settings, inference: Optional[MoodInferenceClient] = None) -> Services:
    storage = StorageService(settings)
    return Services(
        settings=settings,
        storage=storage,
        auth=AuthService(settings),
        users=UserService(settings, storage),
        songs=SongService(settings, storage),
        playlists=PlaylistService(),
        albums=AlbumService(),
        favorites=FavoriteService(),
        friends=FriendService(),
        analytics=AnalyticsService(),
        recommendations=RecommendationService(),
        mood=MoodService(inference or MoodInferenceClient(settings)),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


UPLOAD_CHUNK_BYTES = 1024 * 1024


def read_upload(upload: UploadFile, max_bytes: int, label: str = "File") -> bytes:
    """
    Read an uploaded file in chunks, stopping as soon as it exceeds max_bytes.

    Raises:
        ValidationError: the file is larger than max_bytes
    """
    chunks = []
    size = 0
    while True:
        chunk = upload.file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise ValidationError(f"{label} exceeds the {max_bytes // (1024 * 1024)}MB limit")
        chunks.append(chunk)
    return b"".join(chunks)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an "Authorization: Bearer <token>" header"""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def require_user(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services)
) -> Dict:
    """
    Authenticated caller as {user_id, email, role}.

    No token is 401, a malformed token 400 and an invalid or expired one 403.
    """
    token = _bearer_token(authorization)
    if not token:
        raise AuthenticationError("No token provided")
    return services.auth.verify_token(token)


def optional_user(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services)
) -> Optional[Dict]:
    """Caller when a valid token is sent, otherwise None"""
    token = _bearer_token(authorization)
    if not token:
        return None
    try:
        return services.auth.verify_token(token)
    except ServiceError:
        return None


def require_creator(user: Dict = Depends(require_user)) -> Dict:
    if user.get("role") != ROLE_CREATOR:
        raise PermissionDeniedError("Content creator access required")
    return user
