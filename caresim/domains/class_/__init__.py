# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class domain.

Resolves classes, their rosters and posted tasks from the document store.
"""

from caresim.domains.class_.service import (
    ClassAccessDeniedError,
    ClassInfo,
    ClassNotFoundError,
    ClassService,
    ClassServiceError,
    ClassTaskSet,
    InvalidClassIdError,
    class_key,
)

__all__ = [
    "ClassAccessDeniedError",
    "ClassInfo",
    "ClassNotFoundError",
    "ClassService",
    "ClassServiceError",
    "ClassTaskSet",
    "InvalidClassIdError",
    "class_key",
]
