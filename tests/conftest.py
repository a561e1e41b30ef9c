# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests

The sample database mirrors the Firebase layout: three lessons (the
third without pages), one class of three students and one foreign class.
"""

import copy
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from jose import jwt
from pydantic import SecretStr

from caresim.core.config.settings import JWTSettings
from caresim.infrastructure.store import InMemoryDocumentStore

SAMPLE_TREE: dict[str, Any] = {
    # Firebase returns integer-keyed objects as arrays with null holes
    "lessons": [
        None,
        {
            "lessonTitle": "Vital Signs",
            "pages": {
                "p2": {"title": "Practice", "order": 2},
                "p1": {"title": "Intro", "order": 1},
            },
        },
        {
            "lessonName": "Medication",
            "pages": {"p1": {"title": "Dosage", "order": 1}},
        },
        {"lessonTitle": "Wound Care"},
    ],
    "users": {
        "stu-ana": {
            "role": "student",
            "name": "Ana Cruz",
            "email": "ana@example.com",
            "classId": "class-a",
            "studentInfo": {"studentNumber": "2024-001"},
            "lmsAssessments": {
                "lesson1": {
                    "pages": {
                        "p1": {
                            "summary": {"bestScorePercent": 90, "attempts": 2, "passed": True},
                            "attempts": {
                                "a1": {"attemptNumber": 1, "score": 70, "timestamp": 1700000000000},
                                "a2": {"attemptNumber": 2, "score": 90, "timestamp": 1700000100000},
                            },
                        },
                        "p2": {
                            "summary": {"bestScorePercent": 80, "attempts": 1, "passed": True},
                            "attempts": {"a1": {"attemptNumber": 1, "score": 80}},
                        },
                    }
                },
                "lesson2": {
                    "pages": {
                        "p1": {
                            "summary": {"lastScorePercent": 50, "attempts": 1, "passed": False},
                            "attempts": {"a1": {"attemptNumber": 1, "score": 50}},
                        }
                    }
                },
            },
            "progress": {
                "lesson1": {
                    "quiz": {"highestScore": 8, "attempts": 2, "completed": True},
                    "simulation": {"completed": True, "passed": True},
                },
                "lesson2": {"quiz": {"highestScore": 7, "attempts": 1, "completed": True}},
            },
            "history": {
                "quizzes": {
                    "q1": {"lesson": "Lesson 1", "score": 6, "timestamp": "2024-03-01T10:00:00Z"},
                    "q2": {"lesson": 2, "score": 7, "timestamp": "2024-03-02T10:00:00Z"},
                },
                "simulations": {
                    "s1": {
                        "lesson": "lesson1",
                        "completed": True,
                        "passed": True,
                        "timestamp": "2024-03-01T11:00:00Z",
                    }
                },
            },
        },
        "stu-ben": {
            "role": "student",
            "name": "Ben Diaz",
            "email": "ben@example.com",
            "classId": "class-a",
            "progress": {"lesson1": {"quiz": {"highestScore": 4}}},
            "history": {
                "quizzes": {"q1": {"lesson": 1, "score": 4, "timestamp": 1709460000000}},
            },
        },
        "stu-cara": {
            "role": "student",
            "name": "Cara Ellis",
            "email": "cara@example.com",
            "classId": "class-a",
        },
        "stu-zed": {"role": "student", "name": "Zed Fox", "classId": "class-b"},
        "inst-1": {"role": "instructor", "name": "Dr. Gomez"},
    },
    "classes": {
        "class-a": {
            "className": "Nursing 101",
            "instructorId": "inst-1",
            "studentIds": {"stu-ana": True, "stu-ben": True, "stu-cara": True},
        },
        "class-b": {
            "className": "Nursing 102",
            "instructorId": "inst-2",
            "studentIds": {"stu-zed": True},
        },
    },
    "classPosts": {
        "class-a": {
            "post-0": {"type": "announcement", "title": "Welcome"},
            "post-1": {"type": "task", "title": "Care plan", "taskMeta": {"maxScore": 20}},
            "post-2": {"type": "task", "title": "Reflection"},
        }
    },
    "classTaskSubmissions": {
        "class-a": {
            "post-1": {
                "stu-ana": {"score": 18, "gradedAt": "2024-03-04T09:00:00Z"},
                "stu-ben": {"score": None},
            }
        }
    },
}


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def sample_tree() -> dict[str, Any]:
    """Provide a fresh copy of the sample database tree."""
    return copy.deepcopy(SAMPLE_TREE)


@pytest.fixture
def memory_store(sample_tree: dict[str, Any]) -> InMemoryDocumentStore:
    """Provide an in-memory store seeded with the sample tree."""
    return InMemoryDocumentStore(sample_tree)


# =============================================================================
# Auth Fixtures
# =============================================================================


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """Provide JWT settings with a test secret."""
    return JWTSettings(
        secret_key=SecretStr("test-secret-key-for-testing-only"),
        algorithm="HS256",
    )


@pytest.fixture
def issue_token(jwt_settings: JWTSettings) -> Callable[..., str]:
    """Sign access tokens the way the platform's login service does."""

    def issue(
        user_id: str,
        user_type: str,
        name: str | None = None,
        expires_in_minutes: int = 30,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "type": "access",
            "user_type": user_type,
            "name": name,
            "exp": int((now + timedelta(minutes=expires_in_minutes)).timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(
            payload,
            jwt_settings.secret_key.get_secret_value(),
            algorithm=jwt_settings.algorithm,
        )

    return issue


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
