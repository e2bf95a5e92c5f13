"""
Caller identity for the API.

Tokens are Supabase Auth JWTs checked against the project's auth endpoint with
the anon key. Route handlers only ever see the resolved user dict; the acting
user id never comes from a request body or path.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from supabase import Client, create_client

from api.deps import AppSettings

logger = logging.getLogger(__name__)


@lru_cache
def _auth_client(url: str, anon_key: str) -> Client:
    return create_client(url, anon_key)


def get_bearer_token(request: Request) -> str | None:
    """The token from `Authorization: Bearer <token>`, or None."""
    scheme, _, token = (request.headers.get("Authorization") or "").strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token


def _user_dict(user: Any) -> dict:
    return {"id": str(user.id), "email": user.email, "role": user.role}


async def get_current_user(request: Request, settings: AppSettings) -> dict | None:
    """
    Resolve the caller from the bearer token.

    Anonymous requests and tokens that fail validation both resolve to None; the
    `require_user` dependency turns that into a 401 where a user is needed.
    """
    token = get_bearer_token(request)
    if token is None:
        return None
    if not (settings.supabase_url and settings.supabase_anon_key):
        logger.warning("Bearer token supplied but SUPABASE_URL/SUPABASE_ANON_KEY are not configured")
        return None

    try:
        client = _auth_client(settings.supabase_url, settings.supabase_anon_key)
        response = await run_in_threadpool(client.auth.get_user, token)
    except Exception as exc:
        logger.warning(f"Rejected bearer token: {exc}")
        return None

    user = getattr(response, "user", None)
    return _user_dict(user) if user is not None else None


async def require_user(user: Annotated[dict | None, Depends(get_current_user)]) -> dict:
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required. Please provide a valid access token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


CurrentUser = Annotated[dict, Depends(require_user)]
OptionalUser = Annotated[dict | None, Depends(get_current_user)]
