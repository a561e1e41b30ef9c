# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Firebase Realtime Database store using the REST API.

Reads go to ``{database_url}/{path}.json``. When a service account file is
configured, requests carry an OAuth2 access token obtained through
google-auth; without one the store talks to the database unauthenticated,
which is what the local Firebase emulator expects.

Configuration (via environment variables):
- FIREBASE_DATABASE_URL: Database root URL
- FIREBASE_CREDENTIALS_PATH: Path to service account JSON file
- FIREBASE_TIMEOUT: Request timeout in seconds
"""

import asyncio
import logging
from typing import Any

import httpx

from caresim.core.config.settings import FirebaseSettings
from caresim.infrastructure.store.base import (
    DocumentStore,
    StoreUnavailableError,
    children_of,
    normalize_path,
)

logger = logging.getLogger(__name__)

FIREBASE_SCOPES = [
    "https://www.googleapis.com/auth/firebase.database",
    "https://www.googleapis.com/auth/userinfo.email",
]


class FirebaseRealtimeStore(DocumentStore):
    """DocumentStore over the Firebase Realtime Database REST API.

    Attributes:
        _settings: Firebase configuration.
        _client: Shared async HTTP client.
        _credentials: Service account credentials, loaded lazily.
    """

    def __init__(
        self,
        settings: FirebaseSettings,
        client: httpx.AsyncClient | None = None,
        credentials: Any = None,
    ) -> None:
        """Initialize the store.

        Args:
            settings: Firebase configuration.
            client: HTTP client to use. One is created when omitted.
            credentials: Preloaded google-auth credentials, mainly for tests.
        """
        self._settings = settings
        self._base_url = settings.database_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.timeout)
        self._credentials = credentials
        self._credentials_loaded = credentials is not None

    def _load_credentials(self) -> Any:
        if self._credentials_loaded:
            return self._credentials

        if self._settings.credentials_path:
            # Import here so emulator setups do not need google-auth configured
            from google.oauth2 import service_account

            self._credentials = service_account.Credentials.from_service_account_file(
                self._settings.credentials_path,
                scopes=FIREBASE_SCOPES,
            )
            logger.info("Firebase service account credentials loaded")
        else:
            logger.warning(
                "FIREBASE_CREDENTIALS_PATH not set, using unauthenticated access to %s",
                self._base_url,
            )
        self._credentials_loaded = True
        return self._credentials

    async def _access_token(self) -> str | None:
        credentials = self._load_credentials()
        if credentials is None:
            return None

        if not credentials.valid:
            from google.auth.transport.requests import Request

            # Token refresh is blocking, keep it off the event loop
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, credentials.refresh, Request())
        return credentials.token

    async def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        normalized = normalize_path(path)
        url = f"{self._base_url}/{normalized}.json"
        query = dict(params or {})

        try:
            token = await self._access_token()
            if token:
                query["access_token"] = token
            response = await self._client.get(url, params=query)
        except httpx.HTTPError as e:
            logger.error("Firebase read failed for %s: %s", normalized or "/", e)
            raise StoreUnavailableError(f"Failed to read {normalized or '/'}", e) from e
        except Exception as e:
            # google-auth refresh errors and credential file problems
            logger.error("Firebase authentication failed: %s", e)
            raise StoreUnavailableError("Failed to authenticate with Firebase", e) from e

        if response.status_code != 200:
            logger.error(
                "Firebase read for %s returned HTTP %s: %s",
                normalized or "/",
                response.status_code,
                response.text[:200],
            )
            raise StoreUnavailableError(
                f"Firebase returned HTTP {response.status_code} for {normalized or '/'}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise StoreUnavailableError(f"Invalid JSON returned for {normalized or '/'}", e) from e

    async def read(self, path: str) -> Any:
        return await self._get(path)

    async def keys(self, path: str) -> list[str]:
        value = await self._get(path, {"shallow": "true"})
        return list(children_of(value).keys())

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
