# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get the document store
- Get authenticated users and enforce their role
- Get service instances

Example:
    @router.get("/progress")
    async def get_progress(
        service: ProgressService = Depends(get_progress_service),
        current_user: CurrentUser = Depends(require_student),
    ):
        ...
"""

import logging

from fastapi import Depends, HTTPException, Request, status

from caresim.api.middleware.auth import CurrentUser, get_current_user
from caresim.core.config import get_settings
from caresim.domains.class_.service import ClassService
from caresim.domains.progress.service import ProgressService
from caresim.infrastructure.store import DocumentStore, StoreError, get_store

logger = logging.getLogger(__name__)


def get_document_store() -> DocumentStore:
    """Get the application document store.

    Returns:
        DocumentStore created during application startup.

    Raises:
        HTTPException: If the store has not been initialized.
    """
    try:
        return get_store()
    except StoreError as e:
        logger.error("Document store requested before startup: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store not initialized",
        )


def get_class_service(
    store: DocumentStore = Depends(get_document_store),
) -> ClassService:
    return ClassService(store)


def get_progress_service(
    store: DocumentStore = Depends(get_document_store),
) -> ProgressService:
    """Get a progress service configured from gradebook settings."""
    return ProgressService.from_settings(store, get_settings().gradebook)


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_student(request: Request) -> CurrentUser:
    """Require student user.

    Raises:
        HTTPException: If not authenticated or not a student.
    """
    user = require_auth(request)
    if not user.is_student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student access required",
        )
    return user


def require_instructor(request: Request) -> CurrentUser:
    """Require instructor or admin user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not instructor or admin.
    """
    user = require_auth(request)
    if not (user.is_instructor or user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor access required",
        )
    return user
