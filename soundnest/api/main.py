"""
FastAPI Application - Main Entry Point
SoundNest music streaming API
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from soundnest.api.dependencies import Services, build_services, get_services
from soundnest.api.routes import (
    ai, albums, analytics, auth, favorites, friends, playlists, recommendations, songs, users
)
from soundnest.config import Settings, get_settings
from soundnest.database.models import init_database, init_engine
from soundnest.errors import PermissionDeniedError, ServiceError
from soundnest.services.inference_client import MoodInferenceClient

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI):
    """Every error reaches the client as {"error": message}"""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ())[1:])
            message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
        else:
            message = "Invalid request"
        return _error(400, message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _error(500, "Internal server error")


def create_app(settings: Optional[Settings] = None, inference: Optional[MoodInferenceClient] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; read from the environment when omitted
        inference: Mood inference client override
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize database on application startup"""
        logging.basicConfig(
            level=getattr(logging, settings.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
        init_engine(settings.database_url)
        init_database()
        logger.info("SoundNest API ready")
        yield

    app = FastAPI(
        title="SoundNest",
        description="Music streaming API with creator analytics and mood recommendations",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.services = build_services(settings, inference)

    @app.middleware("http")
    async def add_security_headers(request, call_next):
        """Add security headers"""
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    # CORS middleware for frontend integration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for module in (auth, users, songs, playlists, albums, favorites, friends, analytics, recommendations, ai):
        app.include_router(module.router)
    app.include_router(songs.categories_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "soundnest"}

    @app.get("/storage/{bucket}/{path:path}")
    def serve_object(
        bucket: str,
        path: str,
        expires: Optional[int] = Query(None),
        signature: Optional[str] = Query(None),
        services: Services = Depends(get_services)
    ):
        """Serve a stored blob: public buckets freely, others with a valid signature"""
        storage = services.storage
        if not storage.is_public(bucket) and not storage.verify_signature(bucket, path, expires, signature):
            raise PermissionDeniedError("Invalid or expired signature")
        return FileResponse(storage.open_path(bucket, path))

    return app


app = create_app()
