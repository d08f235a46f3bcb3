"""
Album Routes
Creator album management plus public album search and track listings
"""

from typing import Dict, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from soundnest.api.dependencies import Services, get_services, optional_user, require_creator
from soundnest.api.schemas import AlbumCreateRequest, AlbumUpdateRequest, SongRefRequest
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/albums", tags=["albums"])


@router.get("/creator")
def creator_albums(user: Dict = Depends(require_creator), services: Services = Depends(get_services)):
    try:
        return {"albums": services.albums.creator_albums(user["user_id"])}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get creator albums error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch albums")


@router.get("/search")
def search_albums(
    q: str = Query(""),
    page: int = Query(1),
    limit: int = Query(20),
    services: Services = Depends(get_services)
):
    try:
        return services.albums.search_albums(q, page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Album search error: {e}")
        raise HTTPException(status_code=500, detail="Failed to search albums")


@router.post("", status_code=201)
def create_album(
    request: AlbumCreateRequest,
    user: Dict = Depends(require_creator),
    services: Services = Depends(get_services)
):
    try:
        album = services.albums.create_album(
            user["user_id"],
            title=request.title,
            description=request.description,
            cover_url=request.cover_url,
            release_date=request.release_date,
            is_public=request.is_public
        )
        return {"album": album}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Create album error: {e}")
        raise HTTPException(status_code=500, detail="Failed to create album")


@router.put("/{album_id}")
def update_album(
    album_id: str,
    request: AlbumUpdateRequest,
    user: Dict = Depends(require_creator),
    services: Services = Depends(get_services)
):
    try:
        album = services.albums.update_album(user["user_id"], album_id, request.model_dump(exclude_unset=True))
        return {"album": album}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Update album error: {e}")
        raise HTTPException(status_code=500, detail="Failed to update album")


@router.delete("/{album_id}")
def delete_album(
    album_id: str,
    user: Dict = Depends(require_creator),
    services: Services = Depends(get_services)
):
    try:
        return services.albums.delete_album(user["user_id"], album_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Delete album error: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete album")


@router.post("/{album_id}/songs")
def add_album_song(
    album_id: str,
    request: SongRefRequest,
    user: Dict = Depends(require_creator),
    services: Services = Depends(get_services)
):
    try:
        return services.albums.add_song(user["user_id"], album_id, request.song_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Add song to album error: {e}")
        raise HTTPException(status_code=500, detail="Failed to add song to album")


@router.delete("/{album_id}/songs/{song_id}")
def remove_album_song(
    album_id: str,
    song_id: str,
    user: Dict = Depends(require_creator),
    services: Services = Depends(get_services)
):
    try:
        return services.albums.remove_song(user["user_id"], album_id, song_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Remove song from album error: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove song")


@router.get("/{album_id}/songs")
def album_songs(
    album_id: str,
    viewer: Optional[Dict] = Depends(optional_user),
    services: Services = Depends(get_services)
):
    try:
        return services.albums.album_songs(album_id, viewer["user_id"] if viewer else None)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get album songs error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch album songs")
