# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the Firebase Realtime Database REST store.

HTTP traffic is served by httpx.MockTransport, so no network is used.
"""

from collections.abc import Callable
from unittest.mock import MagicMock

import httpx
import pytest

from caresim.core.config.settings import FirebaseSettings
from caresim.infrastructure.store import FirebaseRealtimeStore, StoreUnavailableError

DATABASE_URL = "https://caresim-test.firebaseio.com"


def make_store(
    handler: Callable[[httpx.Request], httpx.Response],
    credentials: object = None,
) -> FirebaseRealtimeStore:
    """Create a store whose HTTP client is served by handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FirebaseRealtimeStore(
        FirebaseSettings(database_url=DATABASE_URL + "/"),
        client=client,
        credentials=credentials,
    )


class TestFirebaseRealtimeStore:
    """Tests for FirebaseRealtimeStore."""

    @pytest.mark.asyncio
    async def test_read_builds_json_url(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"lessonTitle": "Vital Signs"})

        store = make_store(handler)
        value = await store.read("/lessons/1/")

        assert value == {"lessonTitle": "Vital Signs"}
        assert seen[0].url.path == "/lessons/1.json"
        assert "access_token" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_read_null_is_none(self) -> None:
        store = make_store(lambda request: httpx.Response(200, content=b"null"))

        assert await store.read("users/nobody") is None

    @pytest.mark.asyncio
    async def test_keys_uses_shallow_query(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"stu-a": True, "stu-b": True})

        store = make_store(handler)
        keys = await store.keys("classes/c1/studentIds")

        assert keys == ["stu-a", "stu-b"]
        assert seen[0].url.params["shallow"] == "true"

    @pytest.mark.asyncio
    async def test_access_token_attached(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=1)

        credentials = MagicMock()
        credentials.valid = True
        credentials.token = "token-123"

        store = make_store(handler, credentials=credentials)
        await store.read("lessons")

        assert seen[0].url.params["access_token"] == "token-123"
        credentials.refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_credentials_refreshed(self) -> None:
        credentials = MagicMock()
        credentials.valid = False
        credentials.token = "fresh"

        store = make_store(lambda request: httpx.Response(200, json={}), credentials=credentials)
        await store.read("lessons")

        credentials.refresh.assert_called_once()

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self) -> None:
        store = make_store(lambda request: httpx.Response(401, json={"error": "Permission denied"}))

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.read("users/abc")

        assert "401" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = make_store(handler)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.read("users/abc")

        assert isinstance(exc_info.value.original_error, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self) -> None:
        store = make_store(lambda request: httpx.Response(200, content=b"<html>"))

        with pytest.raises(StoreUnavailableError):
            await store.read("lessons")

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        store = FirebaseRealtimeStore(FirebaseSettings(database_url=DATABASE_URL), client=client)

        await store.close()

        assert client.is_closed is False
        await client.aclose()
