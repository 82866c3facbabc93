"""FastAPI dependencies for authentication: the shared tick secret.

The tick endpoint is hit by an external cron service, not by people, so the
only credential is a bearer token matching ``TICK_SECRET``.
"""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from gridblitz.config import Settings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if not header.startswith(BEARER_PREFIX):
        return None
    return header[len(BEARER_PREFIX) :].strip() or None


async def require_tick_secret(request: Request) -> None:
    """Reject the request unless it carries the configured tick secret.

    Fail-closed: with no ``TICK_SECRET`` configured every request is
    rejected, in every environment.

    Raises:
        HTTPException: 401 when the token is missing or does not match.
    """
    settings: Settings = request.app.state.settings
    expected = settings.tick_secret
    supplied = _bearer_token(request)

    if not expected:
        logger.warning("tick_auth_denied: TICK_SECRET is not configured")
        raise HTTPException(status_code=401, detail="Tick secret not configured")
    if supplied is None or not secrets.compare_digest(supplied.encode(), expected.encode()):
        logger.info("tick_auth_denied: missing or invalid bearer token")
        raise HTTPException(
            status_code=401,
            detail="Invalid tick secret",
            headers={"WWW-Authenticate": "Bearer"},
        )


# Handy type alias for route handlers.
TickAuth = Annotated[None, Depends(require_tick_secret)]
