"""Bearer-secret guard for the cron trigger and inspection endpoints."""

import hmac
from typing import Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings

logger = structlog.get_logger(__name__)

# auto_error=False so a missing header yields our 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)


def verify_secret(token: Optional[str], secret: Optional[str]) -> bool:
    """Constant-time comparison; an unset secret rejects everything."""
    if not secret or not token:
        return False
    return hmac.compare_digest(token.encode(), secret.encode())


async def require_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Reject callers that do not present ``Authorization: Bearer <CRON_SECRET>``."""
    if not settings.CRON_SECRET:
        logger.warning("cron_secret_not_configured")

    token = credentials.credentials if credentials else None
    if not verify_secret(token, settings.CRON_SECRET):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
