"""FastAPI dependencies: service handles, current user and cron authentication."""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from quiet_hours.container import Services
from quiet_hours.errors import AuthenticationError

bearer = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    services: Services = Depends(get_services),
) -> str:
    """Resolve the authenticated owner id before any store access."""
    if credentials is None:
        raise AuthenticationError()
    return services.identity.authenticate(credentials.credentials)


def require_cron_secret(
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> None:
    """Shared-secret check for the scheduler. An unset CRON_SECRET rejects everything."""
    secret = services.settings.CRON_SECRET
    if not secret or authorization is None:
        raise AuthenticationError()
    if not secrets.compare_digest(
        authorization.encode("utf-8"), f"Bearer {secret}".encode("utf-8")
    ):
        raise AuthenticationError()
