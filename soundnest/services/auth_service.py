"""
Authentication Service
Handles user registration, login, and bearer token issue/verification
"""

import hashlib
import hmac
import re
import secrets
from datetime import timedelta
from typing import Optional, Dict
import logging

import jwt
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from soundnest.config import Settings
from soundnest.database.models import User, SessionLocal, ROLE_LISTENER, ROLE_CREATOR, utcnow
from soundnest.errors import (
    ConflictError, InvalidTokenError, MalformedTokenError, NotFoundError, ValidationError
)
from soundnest.models.serializers import user_profile

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.]{3,30}$")
MIN_PASSWORD_LENGTH = 6
ROLES = (ROLE_LISTENER, ROLE_CREATOR)


class AuthService:
    """Service for user authentication and management"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _hash_password(self, password: str) -> str:
        """Hash password using SHA-256 with salt"""
        salt = secrets.token_hex(16)
        hash_obj = hashlib.sha256((password + salt).encode())
        return f"{salt}:{hash_obj.hexdigest()}"

    def _verify_password(self, password: str, hashed: str) -> bool:
        """Verify password against hash"""
        salt, _, hash_value = (hashed or "").partition(":")
        if not salt or not hash_value:
            return False
        hash_obj = hashlib.sha256((password + salt).encode())
        return hmac.compare_digest(hash_obj.hexdigest(), hash_value)

    def issue_token(self, user: User) -> str:
        """Signed HS256 token carrying the user id, email and role"""
        now = utcnow()
        payload = {
            "sub": user.user_id,
            "email": user.email,
            "role": user.role,
            "iat": now,
            "exp": now + timedelta(days=self.settings.token_ttl_days),
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def register(
        self,
        email: str,
        password: str,
        username: Optional[str] = None,
        full_name: Optional[str] = None,
        role: Optional[str] = None
    ) -> Dict:
        """
        Register a new user.

        Args:
            email: User email
            password: User password
            username: Optional unique handle
            full_name: User's display name
            role: listener (default) or content_creator

        Returns:
            Dictionary with the user profile and a token
        """
        email_clean = (email or "").strip().lower()
        if not EMAIL_PATTERN.match(email_clean):
            raise ValidationError("A valid email is required")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        role = role or ROLE_LISTENER
        if role not in ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")

        username_clean = username.strip() if username else None
        if username_clean and not USERNAME_PATTERN.match(username_clean):
            raise ValidationError("Username must be 3-30 letters, digits, dots or underscores")

        db: Session = SessionLocal()
        try:
            if db.query(User).filter(User.email == email_clean).first():
                raise ConflictError("Email already registered")
            if username_clean and db.query(User).filter(func.lower(User.username) == username_clean.lower()).first():
                raise ConflictError("Username already taken")

            user = User(
                user_id=f"user_{secrets.token_hex(12)}",
                email=email_clean,
                username=username_clean,
                full_name=(full_name or "").strip() or email_clean.split("@")[0],
                role=role,
                password_hash=self._hash_password(password),
            )
            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                # Lost a race with a concurrent registration
                db.rollback()
                raise ConflictError("Email or username already registered")

            logger.info(f"User registered: {email_clean} ({user.user_id}, {role})")
            return {"user": user_profile(user, include_private=True), "token": self.issue_token(user)}
        finally:
            db.close()

    def login(self, email: str, password: str) -> Dict:
        """
        Login a user.

        Returns:
            Dictionary with the user profile and a token
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        db: Session = SessionLocal()
        try:
            user = db.query(User).filter(User.email == email.strip().lower()).first()
            if not user or not self._verify_password(password, user.password_hash):
                raise ValidationError("Invalid email or password")

            user.last_login = utcnow()
            db.commit()

            logger.info(f"User logged in: {user.email} ({user.user_id})")
            return {"user": user_profile(user, include_private=True), "token": self.issue_token(user)}
        finally:
            db.close()

    def verify_token(self, token: str) -> Dict:
        """
        Verify a bearer token.

        Args:
            token: Raw token from the Authorization header

        Returns:
            Dictionary with user_id, email and role

        Raises:
            MalformedTokenError: token is not three dot-separated segments
            InvalidTokenError: bad signature, expired, or the user no longer exists
        """
        if not token or token.count(".") != 2 or not all(token.split(".")):
            raise MalformedTokenError("Malformed token")

        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["sub", "exp"]}
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token expired")
        except jwt.InvalidTokenError:
            raise InvalidTokenError("Invalid token")

        db: Session = SessionLocal()
        try:
            user = db.query(User).filter(User.user_id == payload["sub"]).first()
            if not user:
                raise InvalidTokenError("Invalid token")
            return {"user_id": user.user_id, "email": user.email, "role": user.role}
        finally:
            db.close()

    def get_user(self, user_id: str) -> Dict:
        """Get the caller's own profile"""
        db: Session = SessionLocal()
        try:
            user = db.query(User).filter(User.user_id == user_id).first()
            if not user:
                raise NotFoundError("User not found")
            return user_profile(user, include_private=True)
        finally:
            db.close()
