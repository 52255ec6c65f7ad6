from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException, Request

from later.constants import DEMO_USER_ID
from later.errors import UnauthorizedError
from later.repositories import ReminderRepository
from later.services.identity import CurrentUser
from later.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repository(request: Request) -> ReminderRepository:
    return request.app.state.repository


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value.lower().startswith("bearer "):
        return None
    token = value.split(" ", 1)[1].strip()
    return token or None


def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_demo_user_id: str | None = Header(default=None, alias="X-Demo-User-Id"),
) -> CurrentUser:
    identity = request.app.state.identity
    if identity is None:
        # Demo mode: no identity provider configured.
        demo_id = (x_demo_user_id or "").strip()[:64]
        return CurrentUser(id=demo_id or DEMO_USER_ID)

    token = _extract_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Missing bearer token")
    user = identity.get_user(token)
    if user is None:
        raise UnauthorizedError("Invalid or expired token")
    return user


def enforce_rate_limit(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> None:
    limiter = request.app.state.rate_limiter
    result = limiter.allow(f"user:{user.id}", settings.API_RATE_LIMIT_PER_MIN, settings.API_RATE_WINDOW_SEC)
    if not result.allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many requests",
            headers={"Retry-After": str(result.retry_after)},
        )


def require_cron_secret(
    settings: Settings = Depends(get_settings),
    x_cron_secret: str | None = Header(default=None, alias="X-Cron-Secret"),
) -> None:
    if not settings.CRON_SECRET:
        return
    if not x_cron_secret or not secrets.compare_digest(x_cron_secret, settings.CRON_SECRET):
        raise UnauthorizedError("Invalid cron secret")
