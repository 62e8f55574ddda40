from typing import Any, Dict

from jose import jwt

from messaging.core.config import get_settings


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode a bearer token issued by the platform's auth service; raises JWTError when invalid."""
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
