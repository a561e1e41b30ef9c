# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for student API endpoints."""

from collections.abc import Callable
from unittest.mock import AsyncMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from caresim.api.dependencies import get_document_store
from caresim.infrastructure.store import DocumentStore, StoreUnavailableError

HISTORY_PATH = "/api/v1/student/lessons/{slot}/pages/{page}/assessment-history"

Headers = Callable[[str, str], dict[str, str]]


class TestStudentAPIRouting:
    """Tests for student API routing."""

    def test_routes_registered(self, app: FastAPI) -> None:
        """Test that student routes are registered."""
        routes = [route.path for route in app.routes]

        assert "/api/v1/student/lessons/{slot}/pages/{page_id}/assessment-history" in routes
        assert "/api/v1/student/progress" in routes


class TestAssessmentHistoryEndpoint:
    """Tests for the assessment history endpoint."""

    def test_attempted_page(self, client: TestClient, auth_headers: Headers) -> None:
        response = client.get(
            HISTORY_PATH.format(slot=1, page="p1"),
            headers=auth_headers("stu-ana", "student"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["summary"]["bestScorePercent"] == 90
        assert data["lastAttempt"]["attemptNumber"] == 2

    def test_unattempted_page_is_not_an_error(
        self, client: TestClient, auth_headers: Headers
    ) -> None:
        response = client.get(
            HISTORY_PATH.format(slot=3, page="p9"),
            headers=auth_headers("stu-ana", "student"),
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "summary": None, "lastAttempt": None}

    def test_invalid_slot(self, client: TestClient, auth_headers: Headers) -> None:
        response = client.get(
            HISTORY_PATH.format(slot="abc", page="p1"),
            headers=auth_headers("stu-ana", "student"),
        )

        assert response.status_code == 400

    def test_unauthenticated(self, client: TestClient) -> None:
        response = client.get(HISTORY_PATH.format(slot=1, page="p1"))

        assert response.status_code == 401

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.get(
            HISTORY_PATH.format(slot=1, page="p1"),
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    def test_instructor_forbidden(self, client: TestClient, auth_headers: Headers) -> None:
        response = client.get(
            HISTORY_PATH.format(slot=1, page="p1"),
            headers=auth_headers("inst-1", "instructor"),
        )

        assert response.status_code == 403

    def test_store_unavailable(
        self, app: FastAPI, client: TestClient, auth_headers: Headers
    ) -> None:
        failing = AsyncMock(spec=DocumentStore)
        failing.read.side_effect = StoreUnavailableError("Firebase returned HTTP 500")
        app.dependency_overrides[get_document_store] = lambda: failing

        response = client.get(
            HISTORY_PATH.format(slot=1, page="p1"),
            headers=auth_headers("stu-ana", "student"),
        )

        assert response.status_code == 503


class TestStudentProgressEndpoint:
    """Tests for the student progress endpoint."""

    def test_own_progress(self, client: TestClient, auth_headers: Headers) -> None:
        response = client.get(
            "/api/v1/student/progress",
            headers=auth_headers("stu-ana", "student"),
        )

        assert response.status_code == 200
        student = response.json()["student"]
        assert student["student"]["uid"] == "stu-ana"
        assert student["lms"]["lessonsCompleted"] == 2
        assert student["lms"]["avgProgressPercent"] == 66.67
        assert student["game"]["avgQuizScore"] == 7.5
        assert student["tasks"]["avgTaskScorePercent"] == 90.0
        assert student["status"] == "ON_TRACK"

    def test_unknown_student(self, client: TestClient, auth_headers: Headers) -> None:
        response = client.get(
            "/api/v1/student/progress",
            headers=auth_headers("stu-nobody", "student"),
        )

        assert response.status_code == 404
