"""Middleware: bearer API key check for the match endpoints."""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

if TYPE_CHECKING:
    from facematch.config import Settings

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def _key_matches(credentials: HTTPAuthorizationCredentials | None, api_key: str) -> bool:
    if credentials is None:
        return False
    return secrets.compare_digest(credentials.credentials.encode(), api_key.encode())


async def require_api_key(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> None:
    """Reject the request unless it carries 'Authorization: Bearer <FACEMATCH_API_KEY>'.

    Authentication is off while FACEMATCH_API_KEY is unset.
    """
    settings: Settings = request.app.state.settings
    if settings.api_key is None:
        return

    if not _key_matches(credentials, settings.api_key):
        client = request.client.host if request.client else "unknown"
        logger.warning("Rejected request to %s from %s: bad API key", request.url.path, client)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
