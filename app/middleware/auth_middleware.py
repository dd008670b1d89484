"""
Authentication dependencies: resolve the requester id from a Bearer JWT.

Tokens are issued by the platform's auth service; this module only verifies
them and reads the ``sub`` claim.
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.config import get_settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def verify_token(token: str) -> Optional[str]:
    """Verify a JWT and return its subject, or None if it is not valid."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

    subject = payload.get("sub")
    if subject is None or not str(subject).strip():
        logger.warning("JWT has no subject claim")
        return None
    return str(subject)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """
    FastAPI dependency to require authentication.

    Returns the requester id or raises 401 if not authenticated.
    """
    user_id = verify_token(credentials.credentials) if credentials else None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
