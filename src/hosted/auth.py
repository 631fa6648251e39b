"""
Admin Session Auth

Validates admin access tokens against the hosted auth service and signs
sessions out. The service never issues tokens itself; sign-in happens
against the auth service directly.

API: GET /auth/v1/user (current session's user), POST /auth/v1/logout
"""

import logging
from typing import Optional

import requests
from pydantic import BaseModel

from src.common.http import create_session
from src.common.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """The session is missing, invalid, or the auth service failed."""


class AdminUser(BaseModel):
    """User attached to a valid session."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


class AuthClient:
    """Client for the hosted auth service."""

    TIMEOUT = 10  # seconds

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        timeout: int = TIMEOUT
    ):
        self.settings = settings or get_settings()
        if not self.settings.supabase_url or not self.settings.supabase_anon_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be configured")

        self.base_url = f"{self.settings.supabase_url.rstrip('/')}/auth/v1"
        self.session = session or create_session()
        self.timeout = timeout

    def _headers(self, access_token: str) -> dict:
        return {
            "apikey": self.settings.supabase_anon_key,
            "Authorization": f"Bearer {access_token}",
        }

    def get_session_user(self, access_token: str) -> AdminUser:
        """
        Resolve the user behind an access token.

        Raises:
            AuthError: If the token is rejected or the service is unreachable
        """
        if not access_token:
            raise AuthError("Missing access token")

        try:
            response = self.session.get(
                f"{self.base_url}/user",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Auth service unreachable: {e}")
            raise AuthError(f"Auth service unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise AuthError("Session is invalid or expired")
        if not response.ok:
            raise AuthError(f"Auth service returned {response.status_code}")

        data = response.json()
        return AdminUser(id=str(data.get('id')), email=data.get('email'), role=data.get('role'))

    def sign_out(self, access_token: str) -> None:
        """
        End the session behind an access token.

        Raises:
            AuthError: If the auth service fails
        """
        try:
            response = self.session.post(
                f"{self.base_url}/logout",
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Auth service unreachable: {e}") from e

        # An already-expired session counts as signed out
        if not response.ok and response.status_code not in (401, 403):
            raise AuthError(f"Sign-out failed with status {response.status_code}")
        logger.info("Admin session signed out")
