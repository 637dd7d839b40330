"""Supabase Auth: access-token verification and owner lookup."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from jose import JWTError, jwt

from quiet_hours.domain.models import Owner
from quiet_hours.errors import AuthenticationError, IdentityLookupError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class IdentityProvider(Protocol):
    def authenticate(self, token: str) -> str:
        """Return the user id carried by a valid access token."""
        ...

    def get_user(self, user_id: str) -> Owner: ...

    def close(self) -> None: ...


class SupabaseIdentity:
    """
    Verifies Supabase access tokens locally with the project's JWT secret and
    resolves users through the GoTrue admin API with the service-role key.
    """

    def __init__(
        self,
        url: str,
        service_role_key: str,
        jwt_secret: str,
        audience: str = "authenticated",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.jwt_secret = jwt_secret
        self.audience = audience
        self._client = client or httpx.Client(
            base_url=url.rstrip("/"),
            headers={
                "apikey": service_role_key,
                "Authorization": f"Bearer {service_role_key}",
            },
            timeout=timeout,
        )

    def authenticate(self, token: str) -> str:
        if not self.jwt_secret:
            logger.error("❌ SUPABASE_JWT_SECRET not configured")
            raise AuthenticationError("Authentication is not configured")
        try:
            claims = jwt.decode(
                token, self.jwt_secret, algorithms=[ALGORITHM], audience=self.audience
            )
        except JWTError as e:
            logger.warning("JWT verification failed: %s", e)
            raise AuthenticationError("Invalid or expired token") from e

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no subject")
        return user_id

    def get_user(self, user_id: str) -> Owner:
        try:
            response = self._client.get(f"/auth/v1/admin/users/{user_id}")
        except httpx.HTTPError as e:
            raise IdentityLookupError(user_id, str(e)) from e

        if response.status_code == 404:
            raise IdentityLookupError(user_id, "User not found")
        if response.status_code != 200:
            raise IdentityLookupError(user_id, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise IdentityLookupError(user_id, "Malformed user response") from e
        if not isinstance(data, dict):
            raise IdentityLookupError(user_id, "Malformed user response")

        email = data.get("email")
        if not email or not isinstance(email, str):
            raise IdentityLookupError(user_id, "User has no email address")
        return Owner(
            user_id=user_id,
            email=email,
            confirmed=bool(data.get("email_confirmed_at")),
        )

    def close(self) -> None:
        self._client.close()
