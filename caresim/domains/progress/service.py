# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress service.

Reads student, lesson and class records from the document store and runs
them through the extractors and aggregators. This is the only layer of
the progress domain that performs I/O.

Store failures are never turned into empty metrics. For a class
gradebook, a student whose record cannot be read is either excluded and
reported as unavailable, or the failure propagates, depending on
isolate_student_failures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from caresim.core.config.settings import GradebookSettings
from caresim.domains.class_.service import ClassInfo, ClassService
from caresim.domains.progress.extractors import (
    class_tasks,
    extract_game_activity,
    extract_game_metrics,
    extract_lms_metrics,
    extract_task_metrics,
    page_histories_from_snapshot,
    page_history,
    published_lessons,
)
from caresim.domains.progress.gradebook import GradebookAggregator, ThresholdRiskPolicy
from caresim.domains.progress.schemas import (
    ActivityEntry,
    AssessmentOverview,
    ClassDashboard,
    ClassGradebook,
    ClassTask,
    GradebookRow,
    LessonInfo,
    PageAssessmentHistory,
    StudentIdentity,
)
from caresim.domains.progress.summary import ClassSummaryAggregator
from caresim.infrastructure.store import (
    DocumentStore,
    InvalidPathError,
    StoreUnavailableError,
    normalize_path,
)
from caresim.utils.logging import get_logger

logger = get_logger(__name__)


class ProgressServiceError(Exception):
    """Base exception for progress service errors."""

    pass


class InvalidLessonSlotError(ProgressServiceError):
    """Raised when a lesson slot or page id in a request is invalid."""

    pass


class StudentNotFoundError(ProgressServiceError):
    """Raised when a student record does not exist."""

    pass


def parse_slot(value: Any) -> int:
    """Validate a lesson slot from a request.

    Args:
        value: Slot as received, usually a path segment.

    Returns:
        The slot as an integer >= 1.

    Raises:
        InvalidLessonSlotError: If value is not a positive integer.
    """
    if isinstance(value, bool):
        raise InvalidLessonSlotError(f"Invalid lesson slot: {value!r}")
    if isinstance(value, int):
        slot = value
    else:
        text = str(value).strip()
        if not text.isdigit():
            raise InvalidLessonSlotError(f"Invalid lesson slot: {value!r}")
        slot = int(text)
    if slot < 1:
        raise InvalidLessonSlotError(f"Invalid lesson slot: {value!r}")
    return slot


def student_identity(uid: str, record: Mapping[str, Any]) -> StudentIdentity:
    """Pick the display fields of a ``users/{uid}`` record."""
    info = record.get("studentInfo")
    number = info.get("studentNumber") if isinstance(info, Mapping) else None
    return StudentIdentity(
        uid=uid,
        name=str(record.get("name") or ""),
        email=str(record.get("email") or ""),
        student_number=str(number or ""),
    )


class ProgressService:
    """Service computing gradebook rows and class summaries.

    Attributes:
        store: Document store to read from.
        classes: Class lookups over the same store.
        gradebook: Row builder with its risk policy.
        summary: Class-level aggregator.
        isolate_student_failures: Exclude unreadable students from class
            results instead of failing the whole request.
    """

    def __init__(
        self,
        store: DocumentStore,
        gradebook: GradebookAggregator | None = None,
        summary: ClassSummaryAggregator | None = None,
        isolate_student_failures: bool = True,
        classes: ClassService | None = None,
    ) -> None:
        """Initialize progress service.

        Args:
            store: Document store.
            gradebook: Row builder. Defaults to the threshold risk policy.
            summary: Class aggregator.
            isolate_student_failures: See class docstring.
            classes: Class service. Built over store when omitted.
        """
        self.store = store
        self.classes = classes or ClassService(store)
        self.gradebook = gradebook or GradebookAggregator()
        self.summary = summary or ClassSummaryAggregator()
        self.isolate_student_failures = isolate_student_failures

    @classmethod
    def from_settings(
        cls,
        store: DocumentStore,
        settings: GradebookSettings,
    ) -> ProgressService:
        """Create a service configured from gradebook settings."""
        return cls(
            store,
            gradebook=GradebookAggregator(ThresholdRiskPolicy.from_settings(settings)),
            summary=ClassSummaryAggregator(
                quiz_pass_score=settings.quiz_pass_score,
                recent_activity_limit=settings.recent_activity_limit,
            ),
            isolate_student_failures=settings.isolate_student_failures,
        )

    # =========================================================================
    # Single student
    # =========================================================================

    async def get_published_lessons(self) -> list[LessonInfo]:
        return published_lessons(await self.store.read("lessons"))

    async def get_assessment_history(
        self,
        uid: str,
        slot: Any,
        page_id: str,
    ) -> PageAssessmentHistory:
        """Get the stored summary and last attempt of one page assessment.

        The slot and page id are validated before any store read.

        Args:
            uid: Student uid.
            slot: Lesson slot, validated by parse_slot().
            page_id: Page identifier.

        Returns:
            The page history; both fields None if not attempted.

        Raises:
            InvalidLessonSlotError: If slot or page_id is invalid.
            StoreUnavailableError: If the store cannot be read.
        """
        lesson_slot = parse_slot(slot)
        try:
            page_key = normalize_path(page_id)
        except InvalidPathError as e:
            raise InvalidLessonSlotError(f"Invalid page id: {page_id!r}") from e
        if not page_key or "/" in page_key:
            raise InvalidLessonSlotError(f"Invalid page id: {page_id!r}")

        base = f"users/{uid}/lmsAssessments/lesson{lesson_slot}/pages/{page_key}"
        summary, attempts = await asyncio.gather(
            self.store.read(f"{base}/summary"),
            self.store.read(f"{base}/attempts"),
        )
        return page_history(summary, attempts)

    async def get_student_row(
        self,
        uid: str,
        lessons: list[LessonInfo] | None = None,
    ) -> GradebookRow:
        """Build the gradebook row of one student.

        Tasks come from the class named in the student's record.

        Args:
            uid: Student uid.
            lessons: Published lessons, read when omitted.

        Returns:
            The student's gradebook row.

        Raises:
            StudentNotFoundError: If the student record does not exist or
                uid cannot name one.
            StoreUnavailableError: If the store cannot be read.
        """
        try:
            user_path = f"users/{normalize_path(uid)}"
        except InvalidPathError as e:
            raise StudentNotFoundError(f"Student {uid!r} not found") from e

        if lessons is None:
            lessons, record = await asyncio.gather(
                self.get_published_lessons(),
                self.store.read(user_path),
            )
        else:
            record = await self.store.read(user_path)

        if not isinstance(record, Mapping):
            raise StudentNotFoundError(f"Student {uid} not found")

        class_id = record.get("classId")
        task_set = await self.classes.get_class_tasks(
            class_id if isinstance(class_id, str) else None
        )
        tasks = class_tasks(task_set.posts)
        return self._build_row(uid, record, lessons, tasks, task_set.submissions)

    def _build_row(
        self,
        uid: str,
        record: Mapping[str, Any],
        lessons: list[LessonInfo],
        tasks: list[ClassTask],
        submissions: Mapping[str, Any],
    ) -> GradebookRow:
        histories = page_histories_from_snapshot(lessons, record.get("lmsAssessments"))
        return self.gradebook.build_row(
            student_identity(uid, record),
            extract_lms_metrics(lessons, histories),
            extract_game_metrics(lessons, record),
            extract_task_metrics(uid, tasks, submissions),
        )

    # =========================================================================
    # Class
    # =========================================================================

    async def _load_class(
        self,
        info: ClassInfo,
    ) -> tuple[list[LessonInfo], ClassGradebook, dict[str, Mapping[str, Any]]]:
        lessons, task_set = await asyncio.gather(
            self.get_published_lessons(),
            self.classes.get_class_tasks(info.class_id),
        )
        tasks = class_tasks(task_set.posts)

        results = await asyncio.gather(
            *(self.store.read(f"users/{uid}") for uid in info.student_ids),
            return_exceptions=True,
        )

        rows: list[GradebookRow] = []
        records: dict[str, Mapping[str, Any]] = {}
        unavailable: list[str] = []

        for uid, result in zip(info.student_ids, results):
            if isinstance(result, StoreUnavailableError):
                if not self.isolate_student_failures:
                    raise result
                logger.warning(
                    "student_excluded", uid=uid, class_id=info.class_id, error=str(result)
                )
                unavailable.append(uid)
                continue
            if isinstance(result, BaseException):
                raise result
            if not isinstance(result, Mapping):
                logger.warning("roster_student_missing", uid=uid, class_id=info.class_id)
                continue

            records[uid] = result
            rows.append(self._build_row(uid, result, lessons, tasks, task_set.submissions))

        logger.info(
            "gradebook_built",
            class_id=info.class_id,
            rows=len(rows),
            unavailable=len(unavailable),
        )
        gradebook = ClassGradebook(
            class_id=info.class_id,
            class_name=info.class_name,
            rows=rows,
            unavailable_students=unavailable,
        )
        return lessons, gradebook, records

    async def get_class_gradebook(self, info: ClassInfo) -> ClassGradebook:
        """Build gradebook rows for every student on a class roster.

        Args:
            info: The class.

        Returns:
            Rows in roster order plus the students that could not be read.

        Raises:
            StoreUnavailableError: If a class-wide read fails, or a student
                read fails while isolation is off.
        """
        _, gradebook, _ = await self._load_class(info)
        return gradebook

    async def get_dashboard(self, info: ClassInfo) -> ClassDashboard:
        """Build the instructor dashboard for a class."""
        lessons, gradebook, records = await self._load_class(info)
        activity: list[ActivityEntry] = []
        for row in gradebook.rows:
            activity.extend(
                extract_game_activity(row.student.uid, row.student.name, records[row.student.uid])
            )
        return self.summary.dashboard(gradebook.rows, lessons, activity)

    async def get_assessment_overview(self, info: ClassInfo) -> AssessmentOverview:
        """Build the instructor assessments overview for a class."""
        lessons, gradebook, _ = await self._load_class(info)
        return self.summary.assessment_overview(gradebook.rows, lessons)
