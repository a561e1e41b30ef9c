# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Instructor API endpoints.

This module provides:
- GET /dashboard - Class statistics, recent activity and lesson performance
- GET /assessments - Per-lesson quiz and simulation statistics
- GET /students/{uid} - One student's gradebook row

Every endpoint works on the instructor's class, chosen with the
``classId`` query parameter or defaulting to the first class they own.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from caresim.api.dependencies import get_class_service, get_progress_service, require_instructor
from caresim.api.middleware.auth import CurrentUser
from caresim.api.v1.classes import resolve_instructor_class
from caresim.domains.class_.service import ClassAccessDeniedError, ClassService
from caresim.domains.progress.schemas import (
    AssessmentGroups,
    AssessmentOverviewResponse,
    DashboardResponse,
    StudentProgressResponse,
)
from caresim.domains.progress.service import ProgressService, StudentNotFoundError
from caresim.infrastructure.store import StoreUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


def _unavailable(e: StoreUnavailableError) -> HTTPException:
    logger.error("Instructor view unavailable: %s", e)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Progress data is temporarily unavailable",
    )


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    class_id: str | None = Query(None, alias="classId"),
    user: CurrentUser = Depends(require_instructor),
    classes: ClassService = Depends(get_class_service),
    service: ProgressService = Depends(get_progress_service),
):
    """Get the instructor dashboard for a class.

    Returns:
        Stats, newest activity first and one lesson performance row per
        published lesson.
    """
    info = await resolve_instructor_class(classes, user, class_id)

    try:
        dashboard = await service.get_dashboard(info)
    except StoreUnavailableError as e:
        raise _unavailable(e)

    return DashboardResponse(
        stats=dashboard.stats,
        recent_activity=dashboard.recent_activity,
        lesson_performance=dashboard.lesson_performance,
    )


@router.get("/assessments", response_model=AssessmentOverviewResponse)
async def get_assessments(
    class_id: str | None = Query(None, alias="classId"),
    user: CurrentUser = Depends(require_instructor),
    classes: ClassService = Depends(get_class_service),
    service: ProgressService = Depends(get_progress_service),
):
    """Get quiz and simulation statistics for a class."""
    info = await resolve_instructor_class(classes, user, class_id)

    try:
        overview = await service.get_assessment_overview(info)
    except StoreUnavailableError as e:
        raise _unavailable(e)

    return AssessmentOverviewResponse(
        assessments=AssessmentGroups(lessons=overview.lessons, simulations=overview.simulations),
        stats=overview.stats,
        low_scoring_quizzes=overview.low_scoring_quizzes,
        simulation_summary=overview.simulation_summary,
    )


@router.get("/students/{uid}", response_model=StudentProgressResponse)
async def get_student(
    uid: str,
    class_id: str | None = Query(None, alias="classId"),
    user: CurrentUser = Depends(require_instructor),
    classes: ClassService = Depends(get_class_service),
    service: ProgressService = Depends(get_progress_service),
):
    """Get one student's gradebook row.

    Instructors may only read students on their class roster.

    Raises:
        HTTPException: 403 for a student outside the class, 404 for an
            unknown student.
    """
    if not user.is_admin:
        info = await resolve_instructor_class(classes, user, class_id)
        try:
            classes.ensure_student_in_class(info, uid)
        except ClassAccessDeniedError as e:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=str(e),
            )

    try:
        row = await service.get_student_row(uid)
    except StudentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except StoreUnavailableError as e:
        raise _unavailable(e)

    return StudentProgressResponse(student=row)
