"""
Song Routes
Upload, catalogue browsing, creator song management and categories
"""

from typing import Dict, Optional
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from soundnest.api.dependencies import (
    Services, get_services, optional_user, read_upload, require_creator, require_user
)
from soundnest.api.schemas import SongUpdateRequest
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/songs", tags=["songs"])
categories_router = APIRouter(prefix="/api/categories", tags=["songs"])


@router.post("/upload", status_code=201)
def upload_song(
    audio: UploadFile = File(...),
    title: str = Form(...),
    artist: str = Form(...),
    movie: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    lyrics: Optional[str] = Form(None),
    duration: Optional[float] = Form(None),
    is_public: bool = Form(True, alias="isPublic"),
    cover_url: Optional[str] = Form(None, alias="coverUrl"),
    user: Dict = Depends(require_creator),
    services: Services = Depends(get_services)
):
    """
    Upload a song (content creators only).

    Multipart fields: audio (file), title, artist, and optionally movie,
    category (id or name), lyrics, duration, isPublic, coverUrl.
    """
    try:
        data = read_upload(audio, services.settings.max_audio_bytes, "Audio file")
        song = services.songs.upload_song(
            creator_id=user["user_id"],
            title=title,
            artist=artist,
            data=data,
            filename=audio.filename,
            content_type=audio.content_type,
            category=category,
            movie=movie,
            lyrics=lyrics,
            duration=duration,
            is_public=is_public,
            cover_url=cover_url
        )
        return {"message": "Song uploaded successfully", "song": song}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Song upload error: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload song")


@router.get("")
def list_songs(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    creator: Optional[str] = Query(None),
    sort: str = Query("created_at"),
    order: str = Query("desc"),
    page: int = Query(1),
    limit: int = Query(20),
    services: Services = Depends(get_services)
):
    try:
        return services.songs.list_songs(
            search=search,
            category=category,
            creator_id=creator,
            sort=sort,
            order=order,
            page=page,
            limit=limit
        )
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get songs error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch songs")


@router.get("/creator")
def my_songs(
    page: int = Query(1),
    limit: int = Query(20),
    user: Dict = Depends(require_creator),
    services: Services = Depends(get_services)
):
    """The caller's own songs, private ones included"""
    try:
        return services.songs.songs_by_creator(user["user_id"], user["user_id"], page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get creator songs error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch songs")


@router.get("/creator/{creator_id}")
def creator_songs(
    creator_id: str,
    page: int = Query(1),
    limit: int = Query(20),
    viewer: Optional[Dict] = Depends(optional_user),
    services: Services = Depends(get_services)
):
    try:
        viewer_id = viewer["user_id"] if viewer else None
        return services.songs.songs_by_creator(creator_id, viewer_id, page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get creator songs error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch songs")


@router.get("/{song_id}/stream-url")
def stream_url(
    song_id: str,
    viewer: Optional[Dict] = Depends(optional_user),
    services: Services = Depends(get_services)
):
    try:
        return services.songs.stream_url(song_id, viewer["user_id"] if viewer else None)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Stream URL error: {e}")
        raise HTTPException(status_code=500, detail="Failed to create stream URL")


@router.get("/{song_id}")
def get_song(
    song_id: str,
    viewer: Optional[Dict] = Depends(optional_user),
    services: Services = Depends(get_services)
):
    try:
        return {"song": services.songs.get_song(song_id, viewer["user_id"] if viewer else None)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get song error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch song")


@router.put("/{song_id}")
def update_song(
    song_id: str,
    request: SongUpdateRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        song = services.songs.update_song(user["user_id"], song_id, request.model_dump(exclude_unset=True))
        return {"message": "Song updated successfully", "song": song}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Update song error: {e}")
        raise HTTPException(status_code=500, detail="Failed to update song")


@router.delete("/{song_id}")
def delete_song(
    song_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.songs.delete_song(user["user_id"], song_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Delete song error: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete song")


@categories_router.get("")
def list_categories(services: Services = Depends(get_services)):
    try:
        return {"categories": services.songs.list_categories()}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get categories error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch categories")
