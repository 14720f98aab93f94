"""Bearer-token authentication: each API token belongs to one tenant."""

from __future__ import annotations

import hmac
import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

UNAUTHENTICATED_DETAIL = "Sign in to use Clamp."

_bearer = HTTPBearer(auto_error=False)


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=UNAUTHENTICATED_DETAIL,
        headers={"WWW-Authenticate": "Bearer"},
    )


def lookup_tenant(tokens: dict[str, str], presented: str) -> str | None:
    """Return the tenant for ``presented``, comparing in constant time."""
    tenant_id = None
    for token, tenant in tokens.items():
        if hmac.compare_digest(token.encode(), presented.encode()):
            tenant_id = tenant
    return tenant_id


def require_tenant(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """FastAPI dependency resolving the caller's tenant id or failing with 401."""
    if credentials is None or not credentials.credentials:
        raise _unauthenticated()

    settings = getattr(request.app.state, "settings", None)
    tokens = settings.api_tokens if settings is not None else {}
    tenant_id = lookup_tenant(tokens, credentials.credentials)
    if tenant_id is None:
        request_id = getattr(request.state, "request_id", "?")
        logger.info("[%s] Rejected unknown API token", request_id)
        raise _unauthenticated()
    return tenant_id
