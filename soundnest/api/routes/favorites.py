"""
Favorite Routes
"""

from typing import Dict
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from soundnest.api.dependencies import Services, get_services, require_user
from soundnest.api.schemas import SongRefRequest
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


@router.get("")
def list_favorites(
    page: int = Query(1),
    limit: int = Query(20),
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.favorites.list_favorites(user["user_id"], page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get favorites error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch favorites")


@router.post("", status_code=201)
def add_favorite(
    request: SongRefRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    """Like a song; liking it twice is a 400 conflict"""
    try:
        favorite = services.favorites.add_favorite(user["user_id"], request.song_id)
        return {"message": "Song added to favorites", "favorite": favorite}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Add favorite error: {e}")
        raise HTTPException(status_code=500, detail="Failed to add favorite")


@router.get("/count")
def count_favorites(user: Dict = Depends(require_user), services: Services = Depends(get_services)):
    try:
        return {"count": services.favorites.count_favorites(user["user_id"])}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Count favorites error: {e}")
        raise HTTPException(status_code=500, detail="Failed to count favorites")


@router.get("/check/{song_id}")
def check_favorite(
    song_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return {"songId": song_id, "isFavorite": services.favorites.is_favorite(user["user_id"], song_id)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Check favorite error: {e}")
        raise HTTPException(status_code=500, detail="Failed to check favorite")


@router.get("/category/{category_name}")
def favorites_by_category(
    category_name: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return {"favorites": services.favorites.favorites_by_category(user["user_id"], category_name)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get favorites by category error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch favorites")


@router.get("/creator/{creator_id}")
def favorites_by_creator(
    creator_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return {"favorites": services.favorites.favorites_by_creator(user["user_id"], creator_id)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get favorites by creator error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch favorites")


@router.delete("/{song_id}")
def remove_favorite(
    song_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    """Unlike a song; succeeds even when it was not a favorite"""
    try:
        return services.favorites.remove_favorite(user["user_id"], song_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Remove favorite error: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove favorite")
