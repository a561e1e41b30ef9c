# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific audience.

Modules:
    student: A student's own assessment history and progress.
    classes: Class-wide gradebook rows.
    instructor: Instructor dashboard, assessments page and student detail.
"""

from fastapi import APIRouter

from caresim.api.v1 import classes, instructor, student

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(student.router, prefix="/student", tags=["Student"])
router.include_router(classes.router, prefix="/class", tags=["Class"])
router.include_router(instructor.router, prefix="/instructor", tags=["Instructor"])

__all__ = ["router"]
