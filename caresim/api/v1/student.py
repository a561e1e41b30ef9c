# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student API endpoints.

This module provides endpoints for a signed-in student:
- GET /lessons/{slot}/pages/{page_id}/assessment-history - Stored summary
  and last attempt of one page assessment
- GET /progress - The student's own gradebook row

A page that was never attempted is not an error: the response carries
``summary: null`` and ``lastAttempt: null``.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from caresim.api.dependencies import get_progress_service, require_student
from caresim.api.middleware.auth import CurrentUser
from caresim.domains.progress.schemas import (
    AssessmentHistoryResponse,
    StudentProgressResponse,
)
from caresim.domains.progress.service import (
    InvalidLessonSlotError,
    ProgressService,
    StudentNotFoundError,
)
from caresim.infrastructure.store import StoreUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/lessons/{slot}/pages/{page_id}/assessment-history",
    response_model=AssessmentHistoryResponse,
)
async def get_assessment_history(
    slot: str,
    page_id: str,
    user: CurrentUser = Depends(require_student),
    service: ProgressService = Depends(get_progress_service),
):
    """Get the assessment history of one lesson page.

    Args:
        slot: Lesson slot, a positive integer.
        page_id: Page identifier.
        user: Authenticated student.
        service: Progress service.

    Returns:
        Summary and last attempt, both null when not attempted.

    Raises:
        HTTPException: 400 on an invalid slot, 503 if the store is down.
    """
    try:
        history = await service.get_assessment_history(user.id, slot, page_id)
    except InvalidLessonSlotError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except StoreUnavailableError as e:
        logger.error("Assessment history unavailable for %s: %s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress data is temporarily unavailable",
        )

    return AssessmentHistoryResponse(
        summary=history.summary,
        last_attempt=history.last_attempt,
    )


@router.get("/progress", response_model=StudentProgressResponse)
async def get_my_progress(
    user: CurrentUser = Depends(require_student),
    service: ProgressService = Depends(get_progress_service),
):
    """Get the signed-in student's gradebook row.

    Raises:
        HTTPException: 404 if there is no student record, 503 if the
            store is down.
    """
    try:
        row = await service.get_student_row(user.id)
    except StudentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except StoreUnavailableError as e:
        logger.error("Progress unavailable for %s: %s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress data is temporarily unavailable",
        )

    return StudentProgressResponse(student=row)
