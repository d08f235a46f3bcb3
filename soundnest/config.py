"""
Application Settings
Collects environment configuration into a single object that is passed to services
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_env_file():
    """Load the first .env file found next to the project or in the working directory"""
    env_paths = [
        Path(__file__).parent.parent / ".env",
        Path.cwd() / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path)
            logger.info(f"Loaded environment variables from {env_path}")
            return
    load_dotenv()


def _build_database_url(data_dir: str) -> str:
    """
    Resolve the database URL.

    - DATABASE_URL wins when set (postgres:// is normalised to postgresql://)
    - DB_HOST/DB_PORT/DB_NAME/DB_USER/DB_PASSWORD build a PostgreSQL URL when a password is given
    - otherwise a SQLite file under DATA_DIR is used for local development
    """
    db_url = os.getenv("DATABASE_URL", "").strip()
    if db_url:
        if db_url.startswith("postgres://"):
            db_url = db_url.replace("postgres://", "postgresql://", 1)
        return db_url

    db_password = os.getenv("DB_PASSWORD")
    if db_password:
        db_host = os.getenv("DB_HOST", "localhost")
        db_port = os.getenv("DB_PORT", "5432")
        db_name = os.getenv("DB_NAME", "soundnest")
        db_user = os.getenv("DB_USER", "postgres")
        return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"

    return f"sqlite:///{os.path.join(data_dir, 'soundnest.db')}"


@dataclass(frozen=True)
class Settings:
    """Process configuration (API keys, secrets, limits)"""
    database_url: str = "sqlite:///data/soundnest.db"
    data_dir: str = "data"
    storage_dir: str = "data/storage"
    public_base_url: str = "http://localhost:8000"

    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    token_ttl_days: int = 30

    huggingface_api_key: str = ""
    inference_base_url: str = "https://api-inference.huggingface.co/models"
    emotion_model: str = "j-hartmann/emotion-english-distilroberta-base"
    sentiment_model: str = "distilbert-base-uncased-finetuned-sst-2-english"
    inference_timeout: float = 5.0
    inference_max_attempts: int = 3
    inference_backoff: float = 0.5

    signed_url_ttl: int = 3600
    public_buckets: List[str] = field(default_factory=lambda: ["songs", "avatars", "covers"])
    max_audio_bytes: int = 50 * 1024 * 1024
    max_image_bytes: int = 5 * 1024 * 1024

    allowed_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:8000",
        "http://localhost:3000",
        "http://127.0.0.1:8000",
    ])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment"""
        data_dir = os.getenv("DATA_DIR", "data")
        defaults = cls()

        origins = os.getenv("ALLOWED_ORIGINS")
        allowed_origins = [o.strip() for o in origins.split(",") if o.strip()] if origins else list(defaults.allowed_origins)

        # Hosting providers expose their public URL under different names
        for var in ("VERCEL_URL", "RENDER_EXTERNAL_URL"):
            hosted = os.getenv(var)
            if hosted:
                allowed_origins.append(hosted if hosted.startswith("http") else f"https://{hosted}")

        return cls(
            database_url=_build_database_url(data_dir),
            data_dir=data_dir,
            storage_dir=os.getenv("STORAGE_DIR", os.path.join(data_dir, "storage")),
            public_base_url=os.getenv("PUBLIC_BASE_URL", defaults.public_base_url).rstrip("/"),
            jwt_secret=os.getenv("JWT_SECRET", defaults.jwt_secret),
            token_ttl_days=int(os.getenv("TOKEN_TTL_DAYS", defaults.token_ttl_days)),
            huggingface_api_key=os.getenv("HUGGINGFACE_API_KEY", ""),
            inference_base_url=os.getenv("INFERENCE_BASE_URL", defaults.inference_base_url).rstrip("/"),
            emotion_model=os.getenv("EMOTION_MODEL", defaults.emotion_model),
            sentiment_model=os.getenv("SENTIMENT_MODEL", defaults.sentiment_model),
            inference_timeout=float(os.getenv("INFERENCE_TIMEOUT", defaults.inference_timeout)),
            inference_max_attempts=int(os.getenv("INFERENCE_MAX_ATTEMPTS", defaults.inference_max_attempts)),
            inference_backoff=float(os.getenv("INFERENCE_BACKOFF", defaults.inference_backoff)),
            signed_url_ttl=int(os.getenv("SIGNED_URL_TTL", defaults.signed_url_ttl)),
            allowed_origins=allowed_origins,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )

    def with_overrides(self, **changes) -> "Settings":
        """Copy of these settings with some fields replaced"""
        return replace(self, **changes)


# Singleton instance
_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """Get the process-wide settings, loading .env on first use"""
    global _settings
    if _settings is None:
        load_env_file()
        _settings = Settings.from_env()
    return _settings
