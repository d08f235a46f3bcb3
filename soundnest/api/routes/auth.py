"""
Auth Routes
Registration, login and token verification
"""

from typing import Dict
import logging

from fastapi import APIRouter, Depends, HTTPException

from soundnest.api.dependencies import Services, get_services, require_user
from soundnest.api.schemas import LoginRequest, RegisterRequest
from soundnest.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(request: RegisterRequest, services: Services = Depends(get_services)):
    """
    Register a new user.

    Body:
    {
        "email": "user@example.com",
        "password": "password123",
        "username": "handle" (optional),
        "fullName": "User Name" (optional),
        "role": "listener" | "content_creator" (optional)
    }
    """
    try:
        result = services.auth.register(
            email=request.email,
            password=request.password,
            username=request.username,
            full_name=request.full_name,
            role=request.role
        )
        return {"message": "User registered successfully", **result}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise HTTPException(status_code=500, detail="Registration failed")


@router.post("/login")
def login(request: LoginRequest, services: Services = Depends(get_services)):
    try:
        result = services.auth.login(email=request.email, password=request.password)
        return {"message": "Login successful", **result}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise HTTPException(status_code=500, detail="Login failed")


@router.get("/verify")
def verify(user: Dict = Depends(require_user), services: Services = Depends(get_services)):
    """Verify the bearer token and return the caller's profile"""
    try:
        return {"status": "authenticated", "user": services.auth.get_user(user["user_id"])}
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Verify error: {e}")
        raise HTTPException(status_code=500, detail="Verification failed")
