"""
Recommendation Routes
"""

from typing import Dict
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from soundnest.api.dependencies import Services, get_services, require_user
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.get("/songs")
def recommend_songs(
    limit: int = Query(10),
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return {"recommendations": services.recommendations.recommend_songs(user["user_id"], limit)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Song recommendations error: {e}")
        raise HTTPException(status_code=500, detail="Failed to get recommendations")


@router.get("/albums")
def recommend_albums(
    limit: int = Query(10),
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return {"albums": services.recommendations.recommend_albums(user["user_id"], limit)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Album recommendations error: {e}")
        raise HTTPException(status_code=500, detail="Failed to get recommendations")


@router.get("/playlists")
def recommend_playlists(
    limit: int = Query(10),
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return {"playlists": services.recommendations.recommend_playlists(user["user_id"], limit)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Playlist recommendations error: {e}")
        raise HTTPException(status_code=500, detail="Failed to get recommendations")
