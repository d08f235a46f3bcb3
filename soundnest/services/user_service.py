"""
User Service
Profiles, avatars, user search, creator follows and notifications
"""

import os
import re
import time
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from soundnest.config import Settings
from soundnest.database.models import CreatorFollow, Notification, User, SessionLocal, ROLE_CREATOR, utcnow
from soundnest.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from soundnest.models.serializers import (
    iso, notification_to_dict, pagination, user_profile, user_summary
)
from soundnest.services.pagination import is_unique_violation, like_pattern, page_bounds
from soundnest.services.storage_service import StorageService

logger = logging.getLogger(__name__)

AVATARS_BUCKET = "avatars"
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.]{3,30}$")
PROFILE_FIELDS = ("username", "full_name", "bio", "gender")


def _safe_filename(filename: Optional[str]) -> str:
    base = os.path.basename(filename or "avatar")
    return re.sub(r"[^A-Za-z0-9._-]", "_", base)[-80:] or "avatar"


class UserService:
    """Service for user profiles and the social graph around creators"""

    def __init__(self, settings: Settings, storage: StorageService):
        self.settings = settings
        self.storage = storage

    def update_profile(self, user_id: str, updates: Dict) -> Dict:
        """
        Update the caller's profile. Empty values leave a field unchanged.

        Args:
            user_id: Caller
            updates: Any of username, full_name, bio, gender
        """
        changes = {k: v for k, v in updates.items() if k in PROFILE_FIELDS and v not in (None, "")}
        if "username" in changes:
            changes["username"] = changes["username"].strip()
            if not USERNAME_PATTERN.match(changes["username"]):
                raise ValidationError("Username must be 3-30 letters, digits, dots or underscores")

        db: Session = SessionLocal()
        try:
            user = db.query(User).filter(User.user_id == user_id).first()
            if not user:
                raise NotFoundError("User not found")

            if "username" in changes:
                taken = db.query(User.user_id).filter(
                    func.lower(User.username) == changes["username"].lower(),
                    User.user_id != user_id
                ).first()
                if taken:
                    raise ConflictError("Username already taken")

            for name, value in changes.items():
                setattr(user, name, value)
            user.updated_at = utcnow()
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if is_unique_violation(e):
                    raise ConflictError("Username already taken")
                raise

            logger.info(f"Profile updated for {user_id}: {', '.join(changes) or 'no changes'}")
            return user_profile(user, include_private=True)
        finally:
            db.close()

    def upload_avatar(
        self,
        user_id: str,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None
    ) -> Dict:
        """
        Store a new avatar image and point the profile at it.

        The new blob is removed again when the profile update fails; the
        previous avatar is removed once the update succeeds.
        """
        if not data:
            raise ValidationError("No avatar file provided")
        if not (content_type or "").startswith("image/"):
            raise ValidationError("Only image files are allowed")
        if len(data) > self.settings.max_image_bytes:
            limit_mb = self.settings.max_image_bytes // (1024 * 1024)
            raise ValidationError(f"Image exceeds the {limit_mb}MB limit")

        path = f"{user_id}/{int(time.time() * 1000)}-{_safe_filename(filename)}"

        db: Session = SessionLocal()
        try:
            user = db.query(User).filter(User.user_id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            previous_path = user.avatar_path

            self.storage.upload(AVATARS_BUCKET, path, data, content_type)
            avatar_url = self.storage.get_public_url(AVATARS_BUCKET, path)
            try:
                user.avatar_url = avatar_url
                user.avatar_path = path
                user.updated_at = utcnow()
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error saving avatar for {user_id}, removing upload: {e}")
                self.storage.remove(AVATARS_BUCKET, [path])
                raise UpstreamError("Failed to update avatar")

            if previous_path and previous_path != path:
                self.storage.remove(AVATARS_BUCKET, [previous_path])

            logger.info(f"Avatar updated for {user_id}")
            return {"message": "Avatar updated successfully", "avatarUrl": avatar_url}
        finally:
            db.close()

    def get_profile_by_username(self, username: str) -> Dict:
        db: Session = SessionLocal()
        try:
            user = db.query(User).filter(func.lower(User.username) == username.strip().lower()).first()
            if not user:
                raise NotFoundError("User not found")
            return user_profile(user)
        finally:
            db.close()

    def get_profile_by_id(self, user_id: str) -> Dict:
        db: Session = SessionLocal()
        try:
            user = db.query(User).filter(User.user_id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            return user_profile(user)
        finally:
            db.close()

    def search_users(self, q: str, page: int = 1, limit: int = 20) -> Dict:
        """Users whose username or full name contains q"""
        if not q or not q.strip():
            raise ValidationError("Search query is required")
        page, limit, offset = page_bounds(page, limit)

        db: Session = SessionLocal()
        try:
            pattern = like_pattern(q.strip())
            query = db.query(User).filter(
                User.username.ilike(pattern, escape="\\") | User.full_name.ilike(pattern, escape="\\")
            )
            total = query.count()
            users = query.order_by(User.username.asc(), User.user_id.asc()).offset(offset).limit(limit).all()
            return {
                "users": [user_profile(u) for u in users],
                "pagination": pagination(page, limit, total),
            }
        finally:
            db.close()

    def follow_creator(self, follower_id: str, creator_id: str) -> Dict:
        """Follow a content creator and notify them"""
        if follower_id == creator_id:
            raise ValidationError("Cannot follow yourself")

        db: Session = SessionLocal()
        try:
            creator = db.query(User).filter(User.user_id == creator_id, User.role == ROLE_CREATOR).first()
            if not creator:
                raise NotFoundError("Content creator not found")
            follower = db.query(User).filter(User.user_id == follower_id).first()

            follow = CreatorFollow(follower_id=follower_id, creator_id=creator_id)
            db.add(follow)
            try:
                db.flush()
            except IntegrityError as e:
                db.rollback()
                if is_unique_violation(e):
                    raise ConflictError("Already following this creator")
                raise

            handle = (follower.username or follower.full_name) if follower else None
            db.add(Notification(
                user_id=creator_id,
                type="follow",
                title="New Follower",
                message=f"@{handle or 'someone'} started following you",
                related_id=follower_id,
            ))
            db.commit()

            logger.info(f"{follower_id} followed creator {creator_id}")
            return {"id": follow.id, "creatorId": creator_id, "createdAt": iso(follow.created_at)}
        finally:
            db.close()

    def unfollow_creator(self, follower_id: str, creator_id: str) -> Dict:
        db: Session = SessionLocal()
        try:
            db.query(CreatorFollow).filter(
                CreatorFollow.follower_id == follower_id,
                CreatorFollow.creator_id == creator_id
            ).delete(synchronize_session=False)
            db.commit()
            return {"success": True, "message": "Successfully unfollowed creator"}
        finally:
            db.close()

    def following(self, follower_id: str) -> List[Dict]:
        db: Session = SessionLocal()
        try:
            follows = db.query(CreatorFollow).options(joinedload(CreatorFollow.creator)).filter(
                CreatorFollow.follower_id == follower_id
            ).order_by(CreatorFollow.created_at.desc()).all()
            return [user_profile(f.creator) for f in follows if f.creator]
        finally:
            db.close()

    def followers(self, creator_id: str) -> List[Dict]:
        db: Session = SessionLocal()
        try:
            follows = db.query(CreatorFollow).options(joinedload(CreatorFollow.follower)).filter(
                CreatorFollow.creator_id == creator_id
            ).order_by(CreatorFollow.created_at.desc()).all()
            return [user_summary(f.follower) for f in follows if f.follower]
        finally:
            db.close()

    def create_notification(
        self,
        user_id: str,
        type: str,
        message: str,
        title: Optional[str] = None,
        related_id: Optional[str] = None
    ) -> Dict:
        if not user_id or not type or not message:
            raise ValidationError("Missing required fields")

        db: Session = SessionLocal()
        try:
            if not db.query(User.user_id).filter(User.user_id == user_id).first():
                raise NotFoundError("User not found")
            notification = Notification(
                user_id=user_id,
                type=type,
                title=title or "Notification",
                message=message,
                related_id=related_id,
            )
            db.add(notification)
            db.commit()
            return notification_to_dict(notification)
        finally:
            db.close()

    def notifications(self, user_id: str, page: int = 1, limit: int = 20) -> Dict:
        page, limit, offset = page_bounds(page, limit)
        db: Session = SessionLocal()
        try:
            query = db.query(Notification).filter(Notification.user_id == user_id)
            total = query.count()
            unread = query.filter(Notification.is_read.is_(False)).count()
            items = query.order_by(
                Notification.created_at.desc(), Notification.id.desc()
            ).offset(offset).limit(limit).all()
            return {
                "notifications": [notification_to_dict(n) for n in items],
                "unreadCount": unread,
                "pagination": pagination(page, limit, total),
            }
        finally:
            db.close()

    def mark_read(self, user_id: str, notification_id: int) -> Dict:
        db: Session = SessionLocal()
        try:
            updated = db.query(Notification).filter(
                Notification.id == notification_id,
                Notification.user_id == user_id
            ).update({Notification.is_read: True}, synchronize_session=False)
            db.commit()
            if not updated:
                raise NotFoundError("Notification not found")
            return {"success": True, "message": "Notification marked as read"}
        finally:
            db.close()

    def mark_all_read(self, user_id: str) -> Dict:
        db: Session = SessionLocal()
        try:
            updated = db.query(Notification).filter(
                Notification.user_id == user_id,
                Notification.is_read.is_(False)
            ).update({Notification.is_read: True}, synchronize_session=False)
            db.commit()
            return {"success": True, "message": "All notifications marked as read", "updated": updated}
        finally:
            db.close()
