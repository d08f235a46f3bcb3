"""
Request Models
Bodies accepted by the API; clients send camelCase, snake_case is accepted too
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(CamelModel):
    """User registration request"""
    email: str
    password: str
    username: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    role: Optional[str] = None


class LoginRequest(CamelModel):
    """User login request"""
    email: str
    password: str


class ProfileUpdateRequest(CamelModel):
    username: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    bio: Optional[str] = None
    gender: Optional[str] = None


class NotificationRequest(CamelModel):
    user_id: str = Field(..., alias="userId")
    type: str
    message: str
    title: Optional[str] = None
    related_id: Optional[str] = Field(None, alias="relatedId")


class SongUpdateRequest(CamelModel):
    title: Optional[str] = None
    artist: Optional[str] = None
    movie: Optional[str] = None
    category_id: Optional[int] = Field(None, alias="categoryId")
    lyrics: Optional[str] = None
    cover_url: Optional[str] = Field(None, alias="coverUrl")
    is_public: Optional[bool] = Field(None, alias="isPublic")
    duration: Optional[float] = Field(None, ge=0)


class PlaylistCreateRequest(CamelModel):
    name: str
    description: Optional[str] = None
    is_public: bool = Field(True, alias="isPublic")
    cover_url: Optional[str] = Field(None, alias="coverUrl")


class PlaylistUpdateRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = Field(None, alias="isPublic")
    cover_url: Optional[str] = Field(None, alias="coverUrl")


class SongRefRequest(CamelModel):
    """Body naming a single song"""
    song_id: str = Field(..., alias="songId")


class ReorderRequest(CamelModel):
    song_ids: List[str] = Field(..., alias="songIds")


class AlbumCreateRequest(CamelModel):
    title: str
    description: Optional[str] = None
    cover_url: Optional[str] = Field(None, alias="coverUrl")
    release_date: Optional[str] = Field(None, alias="releaseDate")
    is_public: bool = Field(True, alias="isPublic")


class AlbumUpdateRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    cover_url: Optional[str] = Field(None, alias="coverUrl")
    release_date: Optional[str] = Field(None, alias="releaseDate")
    is_public: Optional[bool] = Field(None, alias="isPublic")


class FriendActionRequest(CamelModel):
    """Friend action (accept/reject)"""
    action: str


class TrackPlayRequest(CamelModel):
    song_id: str = Field(..., alias="songId")
    duration: Optional[float] = 0


class MoodRequest(CamelModel):
    text: Optional[str] = None
    limit: int = 10
