# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for API tests.

The v1 router runs on a bare FastAPI app with the real AuthMiddleware
and the sample in-memory store injected through dependency overrides.
"""

from collections.abc import Callable, Generator
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from caresim.api.dependencies import get_document_store
from caresim.api.middleware.auth import AuthMiddleware
from caresim.api.v1 import router as v1_router
from caresim.core.config.settings import JWTSettings
from caresim.infrastructure.store import DocumentStore, InMemoryDocumentStore


@pytest.fixture
def store(memory_store: InMemoryDocumentStore) -> DocumentStore:
    """Store served to the routes. Override to inject failures."""
    return memory_store


@pytest.fixture
def app(store: DocumentStore, jwt_settings: JWTSettings) -> Generator[FastAPI, None, None]:
    """Create test FastAPI app."""
    with patch("caresim.api.middleware.auth.get_settings") as mock_settings:
        mock_settings.return_value.jwt = jwt_settings

        app = FastAPI()
        app.add_middleware(AuthMiddleware)
        app.include_router(v1_router)
        app.dependency_overrides[get_document_store] = lambda: store
        yield app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def auth_headers(issue_token: Callable[..., str]) -> Callable[[str, str], dict[str, str]]:
    """Build Authorization headers for a uid and role."""

    def build(uid: str, user_type: str) -> dict[str, str]:
        token = issue_token(uid, user_type)
        return {"Authorization": f"Bearer {token}"}

    return build
