"""
Friend Routes
"""

from typing import Dict
import logging

from fastapi import APIRouter, Depends, HTTPException

from soundnest.api.dependencies import Services, get_services, require_user
from soundnest.api.schemas import FriendActionRequest
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/friends", tags=["friends"])


@router.get("")
def get_friends(user: Dict = Depends(require_user), services: Services = Depends(get_services)):
    try:
        return {"friends": services.friends.get_friends(user["user_id"])}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get friends error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch friends")


@router.get("/requests/pending")
def pending_requests(user: Dict = Depends(require_user), services: Services = Depends(get_services)):
    try:
        return {"requests": services.friends.pending_requests(user["user_id"])}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get pending requests error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch requests")


@router.put("/requests/{request_id}")
def respond_to_request(
    request_id: int,
    request: FriendActionRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    """Accept or reject a pending request (receiver only)"""
    try:
        result = services.friends.respond(user["user_id"], request_id, request.action)
        return {"message": f"Request {result['status']}", "friendRequest": result}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Update friend request error: {e}")
        raise HTTPException(status_code=500, detail="Failed to update request")


@router.delete("/requests/{request_id}")
def cancel_request(
    request_id: int,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.friends.cancel_request(user["user_id"], request_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Cancel request error: {e}")
        raise HTTPException(status_code=500, detail="Failed to cancel request")


@router.post("/{user_id}/request")
def send_request(
    user_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        friend_request = services.friends.send_request(user["user_id"], user_id)
        return {"message": "Friend request sent", "friendRequest": friend_request}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Send friend request error: {e}")
        raise HTTPException(status_code=500, detail="Failed to send friend request")


@router.delete("/{friend_id}")
def remove_friend(
    friend_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.friends.remove_friend(user["user_id"], friend_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Remove friend error: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove friend")
