"""
AI Routes
Mood detection from free text
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from soundnest.api.dependencies import Services, get_services
from soundnest.api.schemas import MoodRequest
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/mood")
async def mood(request: MoodRequest, services: Services = Depends(get_services)):
    """
    Recommend music for how the user feels.

    Body:
    {
        "text": "long week, need to unwind"
    }
    """
    try:
        return await services.mood.recommend(request.text, request.limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"AI /mood error: {e}")
        raise HTTPException(status_code=500, detail="Failed to analyze mood")
