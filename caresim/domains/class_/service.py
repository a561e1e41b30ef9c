# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class service for class and roster lookups.

This module provides the ClassService class for:
- Loading a class and its student roster
- Resolving the class an instructor teaches
- Ownership checks for instructors and roster checks for students
- Loading a class's graded tasks and their submissions
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from caresim.infrastructure.store import (
    DocumentStore,
    InvalidPathError,
    children_of,
    normalize_path,
)

logger = logging.getLogger(__name__)


class ClassServiceError(Exception):
    """Base exception for class service errors."""

    pass


class ClassNotFoundError(ClassServiceError):
    """Raised when class is not found."""

    pass


class ClassAccessDeniedError(ClassServiceError):
    """Raised when a user may not see a class or one of its students."""

    pass


class InvalidClassIdError(ClassServiceError):
    """Raised when a class id cannot name a store key."""

    pass


def class_key(class_id: str) -> str:
    """Validate a class id for use as a single store key.

    Raises:
        InvalidClassIdError: If the id is empty, nested or holds characters
            the store forbids in keys.
    """
    try:
        key = normalize_path(class_id)
    except InvalidPathError as e:
        raise InvalidClassIdError(f"Invalid class id: {class_id!r}") from e
    if not key or "/" in key:
        raise InvalidClassIdError(f"Invalid class id: {class_id!r}")
    return key


@dataclass(frozen=True)
class ClassInfo:
    """A class and its roster.

    Attributes:
        class_id: Class identifier.
        class_name: Display name.
        instructor_id: Owning instructor's uid, empty if unassigned.
        student_ids: Roster from ``studentIds``, in stored key order.
    """

    class_id: str
    class_name: str = ""
    instructor_id: str = ""
    student_ids: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, class_id: str, record: Mapping[str, Any]) -> ClassInfo:
        students = children_of(record.get("studentIds"))
        return cls(
            class_id=class_id,
            class_name=str(record.get("className") or record.get("name") or ""),
            instructor_id=str(record.get("instructorId") or ""),
            student_ids=tuple(uid for uid, enrolled in students.items() if enrolled is not False),
        )


@dataclass(frozen=True)
class ClassTaskSet:
    """Raw posts and task submissions of a class, keyed by post id."""

    posts: dict[str, Any] = field(default_factory=dict)
    submissions: dict[str, Any] = field(default_factory=dict)


class ClassService:
    """Service for class lookups.

    Attributes:
        store: Document store to read from.
    """

    def __init__(self, store: DocumentStore) -> None:
        """Initialize class service.

        Args:
            store: Document store.
        """
        self.store = store

    async def get_class(self, class_id: str) -> ClassInfo:
        """Load a class by id.

        Args:
            class_id: Class identifier.

        Returns:
            The class with its roster.

        Raises:
            InvalidClassIdError: If class_id is not a valid key.
            ClassNotFoundError: If the class does not exist.
        """
        record = await self.store.read(f"classes/{class_key(class_id)}")
        if not isinstance(record, Mapping):
            raise ClassNotFoundError(f"Class {class_id} not found")
        return ClassInfo.from_record(class_id, record)

    async def get_instructor_class(
        self,
        instructor_id: str,
        class_id: str | None = None,
        is_admin: bool = False,
    ) -> ClassInfo:
        """Resolve the class an instructor is asking about.

        With an explicit class_id the instructor must own that class
        (admins may read any class). Without one, the first class owned by
        the instructor, by class id, is used.

        Args:
            instructor_id: Requesting instructor's uid.
            class_id: Optional explicit class.
            is_admin: Skip the ownership check.

        Returns:
            The resolved class.

        Raises:
            ClassNotFoundError: If the class does not exist or the
                instructor has no class.
            ClassAccessDeniedError: If the instructor does not own the class.
        """
        if class_id:
            info = await self.get_class(class_id)
            if not is_admin and info.instructor_id != instructor_id:
                logger.warning(
                    "Instructor %s denied access to class %s", instructor_id, class_id
                )
                raise ClassAccessDeniedError(f"Class {class_id} belongs to another instructor")
            return info

        classes = children_of(await self.store.read("classes"))
        for candidate_id in sorted(classes):
            record = classes[candidate_id]
            if isinstance(record, Mapping) and record.get("instructorId") == instructor_id:
                return ClassInfo.from_record(candidate_id, record)

        raise ClassNotFoundError(f"No class assigned to instructor {instructor_id}")

    def ensure_student_in_class(self, info: ClassInfo, uid: str) -> None:
        """Raise ClassAccessDeniedError unless uid is on the class roster."""
        if uid not in info.student_ids:
            raise ClassAccessDeniedError(f"Student {uid} is not in class {info.class_id}")

    async def get_class_tasks(self, class_id: str | None) -> ClassTaskSet:
        """Load a class's graded tasks and their submissions.

        Args:
            class_id: Class identifier. None or a malformed id yields an
                empty task set.

        Returns:
            The posts tree and the submissions tree keyed by post id,
            then student uid.
        """
        if not class_id:
            return ClassTaskSet()
        try:
            key = class_key(class_id)
        except InvalidClassIdError:
            logger.warning("Ignoring malformed class id %r", class_id)
            return ClassTaskSet()

        posts, submissions = await asyncio.gather(
            self.store.read(f"classPosts/{key}"),
            self.store.read(f"classTaskSubmissions/{key}"),
        )
        return ClassTaskSet(posts=children_of(posts), submissions=children_of(submissions))
