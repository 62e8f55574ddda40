import os
from functools import lru_cache
from typing import Optional, Tuple


DEFAULT_UPLOAD_MIME_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/mpeg",
    "video/quicktime",
    "video/x-msvideo",
    "video/webm",
)


def _csv(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if not value:
        return default
    return tuple(v.strip() for v in value.split(",") if v.strip())


class Settings:
    """Runtime configuration read from environment variables."""

    def __init__(self) -> None:
        self.mongodb_url: str = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
        self.mongodb_db: str = os.getenv("MONGODB_DB", "booking_messaging")
        # applied to server selection, connect and socket operations
        self.mongodb_timeout_ms: int = int(os.getenv("MONGODB_TIMEOUT_MS", "5000"))
        self.jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
        self.jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
        self.redis_url: Optional[str] = os.getenv("REDIS_URL")
        self.cloudinary_url: Optional[str] = os.getenv("CLOUDINARY_URL")
        self.typing_ttl_seconds: float = float(os.getenv("TYPING_TTL_SECONDS", "10"))
        self.typing_sweep_interval_seconds: float = float(os.getenv("TYPING_SWEEP_INTERVAL_SECONDS", "5"))
        self.max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))
        self.allowed_upload_mime_types: Tuple[str, ...] = _csv(
            os.getenv("ALLOWED_UPLOAD_MIME_TYPES"), DEFAULT_UPLOAD_MIME_TYPES
        )
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
