"""Shared Google service-account token manager for Drive and Sheets.

The bridge authenticates as a service account (inline key from the
environment, or a JSON key file). Access tokens are refreshed through
``google-auth`` and cached on the instance until shortly before expiry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Sequence

from google.auth import exceptions as google_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from src.config.settings import GoogleCredentials
from src.core.errors import AuthError, TransportError


logger = logging.getLogger("media_bridge.google_auth")

TOKEN_URI = "https://oauth2.googleapis.com/token"

SCOPE_DRIVE_FILE = "https://www.googleapis.com/auth/drive.file"
SCOPE_DRIVE_READONLY = "https://www.googleapis.com/auth/drive.readonly"
SCOPE_SPREADSHEETS = "https://www.googleapis.com/auth/spreadsheets"

DEFAULT_SCOPES = (SCOPE_SPREADSHEETS, SCOPE_DRIVE_FILE, SCOPE_DRIVE_READONLY)


def build_service_account_credentials(
    credentials: GoogleCredentials,
    scopes: Sequence[str] = DEFAULT_SCOPES,
) -> service_account.Credentials:
    """Build ``google-auth`` credentials from the configured key material.

    Raises:
        AuthError: when no key is configured or the key cannot be parsed.
    """

    try:
        if credentials.service_account_file:
            return service_account.Credentials.from_service_account_file(
                credentials.service_account_file,
                scopes=list(scopes),
            )
        if credentials.client_email and credentials.private_key:
            info = {
                "type": "service_account",
                "client_email": credentials.client_email,
                "private_key": credentials.private_key,
                "token_uri": TOKEN_URI,
            }
            return service_account.Credentials.from_service_account_info(info, scopes=list(scopes))
    except (ValueError, OSError) as exc:
        raise AuthError(f"Invalid Google service account key: {exc}") from exc

    raise AuthError(
        "GOOGLE_CLIENT_EMAIL and GOOGLE_PRIVATE_KEY (or GOOGLE_SERVICE_ACCOUNT_FILE) are not set."
    )


class GoogleServiceAccountAuth:
    """Hands out bearer tokens for Google REST calls."""

    def __init__(
        self,
        credentials: GoogleCredentials,
        scopes: Sequence[str] = DEFAULT_SCOPES,
        google_credentials: Optional[service_account.Credentials] = None,
    ) -> None:
        self._credentials = google_credentials or build_service_account_credentials(credentials, scopes)
        self._lock = asyncio.Lock()

    @property
    def service_account_email(self) -> Optional[str]:
        return getattr(self._credentials, "service_account_email", None)

    async def get_access_token(self, force_refresh: bool = False) -> str:
        """Return a valid access token, refreshing it when needed.

        Raises:
            AuthError: when Google rejects the service account.
            TransportError: when the token endpoint cannot be reached.
        """

        async with self._lock:
            if not force_refresh and self._credentials.valid and self._credentials.token:
                return self._credentials.token

            if force_refresh:
                logger.info("Forcing Google token refresh...")

            try:
                # google-auth refreshes synchronously via requests.
                await asyncio.to_thread(self._credentials.refresh, Request())
            except google_exceptions.RefreshError as exc:
                raise AuthError(f"Google rejected the service account credentials: {exc}") from exc
            except google_exceptions.TransportError as exc:
                raise TransportError(f"Could not reach the Google token endpoint: {exc}") from exc

            if not self._credentials.token:
                raise AuthError("Google token endpoint returned no access token")

            logger.info("Google service account authenticated: %s", self.service_account_email)
            return self._credentials.token

    async def authorization_headers(self) -> Dict[str, str]:
        token = await self.get_access_token()
        return {"Authorization": f"Bearer {token}"}
