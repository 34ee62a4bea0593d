"""
Session authentication middleware.

All /api/* endpoints require a Supabase session. The access token is read
from the `Authorization: Bearer` header, or from the session cookie set by
the dashboard, and validated against Supabase Auth. The authenticated user
id is attached as request.state.user_id.
"""

import os
import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from .pipeline import project_service

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "sb-access-token")


def extract_access_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE_NAME) or None


def resolve_user_id(access_token: str) -> Optional[str]:
    """
    Validate a session token with Supabase Auth. Returns the user id or None.
    Blocking; the middleware runs it in the threadpool.
    """
    try:
        sb = project_service._get_service_client()
        response = sb.auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Session validation failed: {e}")
        return None
    user = getattr(response, "user", None)
    return getattr(user, "id", None) if user else None


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated requests to /api/* endpoints."""

    # Paths that are always public (health checks, etc.)
    PUBLIC_PATHS = {"/health", "/metrics", "/docs", "/openapi.json", "/redoc"}

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if path in self.PUBLIC_PATHS or not path.startswith("/api/"):
            return await call_next(request)

        token = extract_access_token(request)
        user_id = await run_in_threadpool(resolve_user_id, token) if token else None
        if not user_id:
            return JSONResponse(status_code=401, content={"detail": "Unauthorized"})

        request.state.user_id = user_id
        return await call_next(request)

