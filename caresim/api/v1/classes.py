# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class API endpoints.

This module provides:
- GET /students/progress - Gradebook rows for every student in a class

Rows are sorted by student name, then uid. Students whose records could
not be read are listed in ``unavailableStudents`` instead.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from caresim.api.dependencies import get_class_service, get_progress_service, require_instructor
from caresim.api.middleware.auth import CurrentUser
from caresim.domains.class_.service import (
    ClassAccessDeniedError,
    ClassInfo,
    ClassNotFoundError,
    ClassService,
    InvalidClassIdError,
)
from caresim.domains.progress.schemas import ClassProgressResponse, GradebookRow
from caresim.domains.progress.service import ProgressService
from caresim.infrastructure.store import StoreUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


async def resolve_instructor_class(
    classes: ClassService,
    user: CurrentUser,
    class_id: str | None,
) -> ClassInfo:
    """Resolve the requested class and map lookup errors to HTTP errors.

    Raises:
        HTTPException: 400 for a malformed class id, 404 for an unknown
            class, 403 for a class owned by another instructor, 503 if the
            store is down.
    """
    try:
        return await classes.get_instructor_class(user.id, class_id, is_admin=user.is_admin)
    except InvalidClassIdError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except ClassNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ClassAccessDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    except StoreUnavailableError as e:
        logger.error("Class lookup failed for %s: %s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Class data is temporarily unavailable",
        )


def sort_rows(rows: list[GradebookRow]) -> list[GradebookRow]:
    return sorted(rows, key=lambda row: (row.student.name.lower(), row.student.uid))


@router.get("/students/progress", response_model=ClassProgressResponse)
async def get_class_progress(
    class_id: str | None = Query(None, alias="classId"),
    user: CurrentUser = Depends(require_instructor),
    classes: ClassService = Depends(get_class_service),
    service: ProgressService = Depends(get_progress_service),
):
    """Get gradebook rows for a class.

    Args:
        class_id: Class to read. Defaults to the instructor's first class.
        user: Authenticated instructor.
        classes: Class service.
        service: Progress service.

    Returns:
        Sorted rows plus the students that could not be read.
    """
    info = await resolve_instructor_class(classes, user, class_id)

    try:
        gradebook = await service.get_class_gradebook(info)
    except StoreUnavailableError as e:
        logger.error("Gradebook for class %s unavailable: %s", info.class_id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress data is temporarily unavailable",
        )

    return ClassProgressResponse(
        class_id=gradebook.class_id,
        class_name=gradebook.class_name,
        students=sort_rows(gradebook.rows),
        unavailable_students=gradebook.unavailable_students,
    )
