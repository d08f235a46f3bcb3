"""
Analytics Routes
Creator dashboards, per-song analytics, play tracking, history and trending
"""

from typing import Dict
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from soundnest.api.dependencies import Services, get_services, require_creator, require_user
from soundnest.api.schemas import TrackPlayRequest
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/creator")
def creator_dashboard(
    period: int = Query(30),
    user: Dict = Depends(require_creator),
    services: Services = Depends(get_services)
):
    try:
        return services.analytics.creator_dashboard(user["user_id"], period)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Creator analytics error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch analytics")


@router.get("/song/{song_id}")
def song_analytics(
    song_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.analytics.song_analytics(user["user_id"], song_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Song analytics error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch song analytics")


@router.post("/track-play")
def track_play(
    request: TrackPlayRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    """
    Record a playback.

    Body:
    {
        "songId": "song_...",
        "duration": 184.5
    }
    """
    try:
        return services.analytics.track_play(user["user_id"], request.song_id, request.duration)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Track play error: {e}")
        raise HTTPException(status_code=500, detail="Failed to track play")


@router.get("/history")
def listening_history(
    page: int = Query(1),
    limit: int = Query(20),
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.analytics.listening_history(user["user_id"], page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Listening history error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch listening history")


@router.get("/trending")
def trending(
    period: int = Query(7),
    limit: int = Query(10),
    services: Services = Depends(get_services)
):
    try:
        return {"period": period, "trending": services.analytics.trending(period, limit)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Trending error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch trending songs")
