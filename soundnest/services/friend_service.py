"""
Friend Service
Handles friend requests and friendships. A friendship is an accepted request.
"""

from sqlalchemy.orm import Session, joinedload
from sqlalchemy import or_, and_
from typing import List, Dict
import logging

from soundnest.database.models import User, FriendRequest, Notification, SessionLocal, utcnow
from soundnest.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from soundnest.models.serializers import friend_request_to_dict, iso, user_summary

logger = logging.getLogger(__name__)

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
ACTIONS = {"accept": ACCEPTED, "reject": REJECTED}


def _between(user_a: str, user_b: str):
    """Filter for requests in either direction between two users"""
    return or_(
        and_(FriendRequest.sender_id == user_a, FriendRequest.receiver_id == user_b),
        and_(FriendRequest.sender_id == user_b, FriendRequest.receiver_id == user_a)
    )


class FriendService:
    """Service for managing friendships and friend requests"""

    def send_request(self, sender_id: str, receiver_id: str) -> Dict:
        """
        Send a friend request.

        A previously rejected request between the pair is reopened instead
        of creating a second row.

        Args:
            sender_id: User ID of sender
            receiver_id: User ID of receiver

        Returns:
            The pending friend request
        """
        if not receiver_id:
            raise ValidationError("Receiver ID is required")
        if receiver_id == sender_id:
            raise ValidationError("Cannot send friend request to yourself")

        db: Session = SessionLocal()
        try:
            sender = db.query(User).filter(User.user_id == sender_id).first()
            receiver = db.query(User).filter(User.user_id == receiver_id).first()
            if not sender or not receiver:
                raise NotFoundError("User not found")

            existing = db.query(FriendRequest).filter(_between(sender_id, receiver_id)).order_by(
                FriendRequest.updated_at.desc()
            ).all()
            if any(r.status == ACCEPTED for r in existing):
                raise ConflictError("Already friends")
            if any(r.status == PENDING for r in existing):
                raise ConflictError("Friend request already pending")

            if existing:
                friend_request = existing[0]
                friend_request.sender_id = sender_id
                friend_request.receiver_id = receiver_id
                friend_request.status = PENDING
                friend_request.updated_at = utcnow()
            else:
                friend_request = FriendRequest(sender_id=sender_id, receiver_id=receiver_id, status=PENDING)
                db.add(friend_request)

            db.add(Notification(
                user_id=receiver_id,
                type="friend_request",
                title="New friend request",
                message=f"{sender.username or sender.full_name or 'Someone'} sent you a friend request",
                related_id=sender_id,
            ))
            db.commit()

            logger.info(f"Friend request sent: {sender_id} -> {receiver_id}")
            return friend_request_to_dict(friend_request)
        finally:
            db.close()

    def respond(self, user_id: str, request_id: int, action: str) -> Dict:
        """
        Accept or reject a pending request. Only the receiver may respond.

        Args:
            user_id: Caller, must be the receiver
            request_id: Friend request id
            action: "accept" or "reject"
        """
        if action not in ACTIONS:
            raise ValidationError("Invalid action")

        db: Session = SessionLocal()
        try:
            friend_request = db.query(FriendRequest).filter(FriendRequest.id == request_id).first()
            if not friend_request or friend_request.status != PENDING:
                raise NotFoundError("Friend request not found")
            if friend_request.receiver_id != user_id:
                raise PermissionDeniedError("Only the receiver can respond to a friend request")

            friend_request.status = ACTIONS[action]
            friend_request.updated_at = utcnow()

            if friend_request.status == ACCEPTED:
                receiver = db.query(User).filter(User.user_id == user_id).first()
                db.add(Notification(
                    user_id=friend_request.sender_id,
                    type="friend_accepted",
                    title="Friend request accepted",
                    message=f"{receiver.username or receiver.full_name or 'Someone'} accepted your friend request",
                    related_id=user_id,
                ))
            db.commit()

            logger.info(f"Friend request {request_id} {friend_request.status} by {user_id}")
            return {"id": friend_request.id, "status": friend_request.status, "updatedAt": iso(friend_request.updated_at)}
        finally:
            db.close()

    def cancel_request(self, user_id: str, request_id: int) -> Dict:
        """Withdraw a pending request. Only the sender may cancel."""
        db: Session = SessionLocal()
        try:
            friend_request = db.query(FriendRequest).filter(FriendRequest.id == request_id).first()
            if not friend_request:
                raise NotFoundError("Request not found")
            if friend_request.sender_id != user_id:
                raise PermissionDeniedError("Only sender can cancel request")
            if friend_request.status != PENDING:
                raise ValidationError("Only pending requests can be cancelled")

            db.delete(friend_request)
            db.commit()
            return {"success": True, "message": "Request cancelled"}
        finally:
            db.close()

    def pending_requests(self, user_id: str) -> List[Dict]:
        """Pending requests received by the user, newest first"""
        db: Session = SessionLocal()
        try:
            requests = db.query(FriendRequest).options(joinedload(FriendRequest.sender)).filter(
                FriendRequest.receiver_id == user_id,
                FriendRequest.status == PENDING
            ).order_by(FriendRequest.created_at.desc()).all()
            return [friend_request_to_dict(r) for r in requests]
        finally:
            db.close()

    def get_friends(self, user_id: str) -> List[Dict]:
        """
        Get all friends of a user.

        Returns:
            List of friend profiles with the date the friendship started
        """
        db: Session = SessionLocal()
        try:
            accepted = db.query(FriendRequest).options(
                joinedload(FriendRequest.sender),
                joinedload(FriendRequest.receiver)
            ).filter(
                FriendRequest.status == ACCEPTED,
                or_(FriendRequest.sender_id == user_id, FriendRequest.receiver_id == user_id)
            ).order_by(FriendRequest.updated_at.desc()).all()

            friends = []
            for friendship in accepted:
                other = friendship.receiver if friendship.sender_id == user_id else friendship.sender
                if other is None:
                    continue
                friend = user_summary(other)
                friend.update({
                    "bio": other.bio,
                    "role": other.role,
                    "friendsSince": iso(friendship.updated_at),
                })
                friends.append(friend)
            return friends
        finally:
            db.close()

    def remove_friend(self, user_id: str, friend_id: str) -> Dict:
        """Unfriend: the accepted request between the pair becomes rejected"""
        db: Session = SessionLocal()
        try:
            friendship = db.query(FriendRequest).filter(
                FriendRequest.status == ACCEPTED,
                _between(user_id, friend_id)
            ).first()
            if not friendship:
                raise NotFoundError("Friendship not found")

            friendship.status = REJECTED
            friendship.updated_at = utcnow()
            db.commit()

            logger.info(f"Friendship removed: {user_id} <-> {friend_id}")
            return {"success": True, "message": "Friend removed"}
        finally:
            db.close()

