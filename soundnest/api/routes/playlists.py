"""
Playlist Routes
"""

from typing import Dict, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from soundnest.api.dependencies import Services, get_services, require_user
from soundnest.api.schemas import (
    PlaylistCreateRequest, PlaylistUpdateRequest, ReorderRequest, SongRefRequest
)
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/playlists", tags=["playlists"])


@router.post("", status_code=201)
def create_playlist(
    request: PlaylistCreateRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        playlist = services.playlists.create_playlist(
            user["user_id"],
            name=request.name,
            description=request.description,
            is_public=request.is_public,
            cover_url=request.cover_url
        )
        return {"message": "Playlist created successfully", "playlist": playlist}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Create playlist error: {e}")
        raise HTTPException(status_code=500, detail="Failed to create playlist")


@router.get("/me")
def my_playlists(user: Dict = Depends(require_user), services: Services = Depends(get_services)):
    try:
        return {"playlists": services.playlists.my_playlists(user["user_id"])}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get playlists error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch playlists")


@router.get("/public")
def public_playlists(
    creator: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    services: Services = Depends(get_services)
):
    """Public playlists; creator filters by username"""
    try:
        return services.playlists.public_playlists(creator, page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get public playlists error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch public playlists")


@router.get("/me/{playlist_id}")
def my_playlist(
    playlist_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return {"playlist": services.playlists.get_own_playlist(user["user_id"], playlist_id)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get playlist error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch playlist")


@router.get("/{playlist_id}")
def get_playlist(playlist_id: str, services: Services = Depends(get_services)):
    try:
        return {"playlist": services.playlists.get_public_playlist(playlist_id)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get playlist error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch playlist")


@router.put("/{playlist_id}/songs/reorder")
def reorder_songs(
    playlist_id: str,
    request: ReorderRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.playlists.reorder_songs(user["user_id"], playlist_id, request.song_ids)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Reorder playlist error: {e}")
        raise HTTPException(status_code=500, detail="Failed to reorder songs")


@router.put("/{playlist_id}")
def update_playlist(
    playlist_id: str,
    request: PlaylistUpdateRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        playlist = services.playlists.update_playlist(
            user["user_id"], playlist_id, request.model_dump(exclude_unset=True)
        )
        return {"message": "Playlist updated successfully", "playlist": playlist}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Update playlist error: {e}")
        raise HTTPException(status_code=500, detail="Failed to update playlist")


@router.delete("/{playlist_id}")
def delete_playlist(
    playlist_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.playlists.delete_playlist(user["user_id"], playlist_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Delete playlist error: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete playlist")


@router.post("/{playlist_id}/songs")
def add_song(
    playlist_id: str,
    request: SongRefRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.playlists.add_song(user["user_id"], playlist_id, request.song_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Add song to playlist error: {e}")
        raise HTTPException(status_code=500, detail="Failed to add song to playlist")


@router.delete("/{playlist_id}/songs/{song_id}")
def remove_song(
    playlist_id: str,
    song_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.playlists.remove_song(user["user_id"], playlist_id, song_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Remove song from playlist error: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove song from playlist")
