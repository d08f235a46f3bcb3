"""
User Routes
Profiles, avatar upload, search, creator follows and notifications
"""

from typing import Dict
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from soundnest.api.dependencies import Services, get_services, read_upload, require_user
from soundnest.api.schemas import NotificationRequest, ProfileUpdateRequest
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me")
def get_me(user: Dict = Depends(require_user), services: Services = Depends(get_services)):
    try:
        return {"user": services.auth.get_user(user["user_id"])}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get user error: {e}")
        raise HTTPException(status_code=500, detail="Failed to get profile")


@router.put("/me")
def update_me(
    request: ProfileUpdateRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        profile = services.users.update_profile(user["user_id"], request.model_dump(exclude_unset=True))
        return {"message": "Profile updated successfully", "user": profile}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Update profile error: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.post("/me/avatar")
def upload_avatar(
    avatar: UploadFile = File(...),
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    """Upload a profile picture (multipart field "avatar")"""
    try:
        data = read_upload(avatar, services.settings.max_image_bytes, "Image")
        return services.users.upload_avatar(user["user_id"], data, avatar.filename, avatar.content_type)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Avatar upload error: {e}")
        raise HTTPException(status_code=500, detail="Failed to update avatar")


@router.get("/profile/id/{user_id}")
def profile_by_id(user_id: str, services: Services = Depends(get_services)):
    try:
        return {"user": services.users.get_profile_by_id(user_id)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get user profile error: {e}")
        raise HTTPException(status_code=500, detail="Failed to get profile")


@router.get("/profile/{username}")
def profile_by_username(username: str, services: Services = Depends(get_services)):
    try:
        return {"user": services.users.get_profile_by_username(username)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get user profile error: {e}")
        raise HTTPException(status_code=500, detail="Failed to get profile")


@router.get("/search")
def search_users(
    q: str = Query(""),
    page: int = Query(1),
    limit: int = Query(20),
    services: Services = Depends(get_services)
):
    try:
        return services.users.search_users(q, page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Search users error: {e}")
        raise HTTPException(status_code=500, detail="Failed to search users")


@router.post("/follow/{creator_id}")
def follow_creator(
    creator_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        follow = services.users.follow_creator(user["user_id"], creator_id)
        return {"message": "Successfully followed creator", "follow": follow}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Follow creator error: {e}")
        raise HTTPException(status_code=500, detail="Failed to follow creator")


@router.delete("/follow/{creator_id}")
def unfollow_creator(
    creator_id: str,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.users.unfollow_creator(user["user_id"], creator_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Unfollow creator error: {e}")
        raise HTTPException(status_code=500, detail="Failed to unfollow creator")


@router.get("/following")
def following(user: Dict = Depends(require_user), services: Services = Depends(get_services)):
    try:
        return {"creators": services.users.following(user["user_id"])}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get followed creators error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch followed creators")


@router.get("/followers/{user_id}")
def followers(user_id: str, services: Services = Depends(get_services)):
    try:
        return {"followers": services.users.followers(user_id)}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get followers error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch followers")


@router.post("/notifications")
def create_notification(
    request: NotificationRequest,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        notification = services.users.create_notification(
            user_id=request.user_id,
            type=request.type,
            message=request.message,
            title=request.title,
            related_id=request.related_id
        )
        return {"message": "Notification created successfully", "notification": notification}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Create notification error: {e}")
        raise HTTPException(status_code=500, detail="Failed to create notification")


@router.get("/notifications")
def list_notifications(
    page: int = Query(1),
    limit: int = Query(20),
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.users.notifications(user["user_id"], page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Get notifications error: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch notifications")


@router.put("/notifications/read-all")
def mark_all_read(user: Dict = Depends(require_user), services: Services = Depends(get_services)):
    try:
        return services.users.mark_all_read(user["user_id"])
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Mark all notifications read error: {e}")
        raise HTTPException(status_code=500, detail="Failed to mark notifications as read")


@router.put("/notifications/{notification_id}/read")
def mark_read(
    notification_id: int,
    user: Dict = Depends(require_user),
    services: Services = Depends(get_services)
):
    try:
        return services.users.mark_read(user["user_id"], notification_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Mark notification read error: {e}")
        raise HTTPException(status_code=500, detail="Failed to mark notification as read")
