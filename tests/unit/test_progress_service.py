# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the progress and class services."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from caresim.core.config.settings import GradebookSettings
from caresim.domains.class_.service import (
    ClassAccessDeniedError,
    ClassInfo,
    ClassNotFoundError,
    ClassService,
    InvalidClassIdError,
)
from caresim.domains.progress.schemas import StudentStatus
from caresim.domains.progress.service import (
    InvalidLessonSlotError,
    ProgressService,
    StudentNotFoundError,
    parse_slot,
)
from caresim.infrastructure.store import (
    DocumentStore,
    InMemoryDocumentStore,
    StoreUnavailableError,
)


class FlakyStore(InMemoryDocumentStore):
    """In-memory store that fails reads of chosen paths."""

    def __init__(self, data: dict[str, Any], failing: set[str]) -> None:
        super().__init__(data)
        self.failing = failing

    async def read(self, path: str) -> Any:
        if path in self.failing:
            raise StoreUnavailableError(f"Failed to read {path}")
        return await super().read(path)


@pytest.fixture
def progress_service(memory_store: InMemoryDocumentStore) -> ProgressService:
    """Create a progress service over the sample store."""
    return ProgressService.from_settings(memory_store, GradebookSettings())


@pytest.fixture
def class_a(sample_tree: dict[str, Any]) -> ClassInfo:
    return ClassInfo.from_record("class-a", sample_tree["classes"]["class-a"])


class TestParseSlot:
    """Tests for parse_slot()."""

    @pytest.mark.parametrize("value,expected", [("1", 1), (3, 3), (" 12 ", 12)])
    def test_valid(self, value: Any, expected: int) -> None:
        assert parse_slot(value) == expected

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "1.5", "", 0, True])
    def test_invalid(self, value: Any) -> None:
        with pytest.raises(InvalidLessonSlotError):
            parse_slot(value)


class TestAssessmentHistory:
    """Tests for ProgressService.get_assessment_history()."""

    @pytest.mark.asyncio
    async def test_attempted_page(self, progress_service: ProgressService) -> None:
        history = await progress_service.get_assessment_history("stu-ana", "1", "p1")

        assert history.summary["bestScorePercent"] == 90
        assert history.last_attempt["attemptNumber"] == 2

    @pytest.mark.asyncio
    async def test_unattempted_page(self, progress_service: ProgressService) -> None:
        history = await progress_service.get_assessment_history("stu-cara", "1", "p1")

        assert history.summary is None
        assert history.last_attempt is None

    @pytest.mark.asyncio
    async def test_invalid_slot_rejected_before_reading(self) -> None:
        store = AsyncMock(spec=DocumentStore)
        service = ProgressService(store)

        with pytest.raises(InvalidLessonSlotError):
            await service.get_assessment_history("stu-ana", "zero", "p1")

        store.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_page_id_rejected(self, progress_service: ProgressService) -> None:
        with pytest.raises(InvalidLessonSlotError):
            await progress_service.get_assessment_history("stu-ana", "1", "p.1")

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, sample_tree: dict[str, Any]) -> None:
        base = "users/stu-ana/lmsAssessments/lesson1/pages/p1"
        service = ProgressService(FlakyStore(sample_tree, {f"{base}/attempts"}))

        with pytest.raises(StoreUnavailableError):
            await service.get_assessment_history("stu-ana", 1, "p1")


class TestStudentRow:
    """Tests for ProgressService.get_student_row()."""

    @pytest.mark.asyncio
    async def test_sample_student(self, progress_service: ProgressService) -> None:
        row = await progress_service.get_student_row("stu-ana")

        assert row.student.name == "Ana Cruz"
        assert row.student.student_number == "2024-001"
        assert row.lms.lessons_completed == 2
        assert row.lms.lessons_total == 3
        assert row.game.avg_quiz_score == pytest.approx(7.5)
        assert row.tasks.tasks_total == 2
        assert row.tasks.avg_task_score_percent == 90.0
        assert row.status == StudentStatus.ON_TRACK

    @pytest.mark.asyncio
    async def test_low_quiz_student_at_risk(self, progress_service: ProgressService) -> None:
        row = await progress_service.get_student_row("stu-ben")

        assert row.status == StudentStatus.AT_RISK
        assert row.active is True

    @pytest.mark.asyncio
    async def test_unknown_student(self, progress_service: ProgressService) -> None:
        with pytest.raises(StudentNotFoundError):
            await progress_service.get_student_row("nobody")

    @pytest.mark.asyncio
    async def test_malformed_uid_not_found(self) -> None:
        store = AsyncMock(spec=DocumentStore)

        with pytest.raises(StudentNotFoundError):
            await ProgressService(store).get_student_row("a.b")
        store.read.assert_not_called()


class TestClassGradebook:
    """Tests for class-wide aggregation."""

    @pytest.mark.asyncio
    async def test_rows_in_roster_order(
        self, progress_service: ProgressService, class_a: ClassInfo
    ) -> None:
        gradebook = await progress_service.get_class_gradebook(class_a)

        assert [row.student.uid for row in gradebook.rows] == ["stu-ana", "stu-ben", "stu-cara"]
        assert gradebook.unavailable_students == []
        assert gradebook.class_name == "Nursing 101"

    @pytest.mark.asyncio
    async def test_failed_student_is_excluded_not_zeroed(
        self, sample_tree: dict[str, Any], class_a: ClassInfo
    ) -> None:
        service = ProgressService(FlakyStore(sample_tree, {"users/stu-ben"}))

        gradebook = await service.get_class_gradebook(class_a)

        assert [row.student.uid for row in gradebook.rows] == ["stu-ana", "stu-cara"]
        assert gradebook.unavailable_students == ["stu-ben"]

    @pytest.mark.asyncio
    async def test_failure_propagates_without_isolation(
        self, sample_tree: dict[str, Any], class_a: ClassInfo
    ) -> None:
        service = ProgressService(
            FlakyStore(sample_tree, {"users/stu-ben"}),
            isolate_student_failures=False,
        )

        with pytest.raises(StoreUnavailableError):
            await service.get_class_gradebook(class_a)

    @pytest.mark.asyncio
    async def test_lessons_failure_propagates(
        self, sample_tree: dict[str, Any], class_a: ClassInfo
    ) -> None:
        service = ProgressService(FlakyStore(sample_tree, {"lessons"}))

        with pytest.raises(StoreUnavailableError):
            await service.get_class_gradebook(class_a)

    @pytest.mark.asyncio
    async def test_roster_entry_without_record_skipped(
        self, progress_service: ProgressService
    ) -> None:
        info = ClassInfo(class_id="class-a", student_ids=("stu-ana", "ghost"))

        gradebook = await progress_service.get_class_gradebook(info)

        assert [row.student.uid for row in gradebook.rows] == ["stu-ana"]
        assert gradebook.unavailable_students == []

    @pytest.mark.asyncio
    async def test_dashboard(self, progress_service: ProgressService, class_a: ClassInfo) -> None:
        dashboard = await progress_service.get_dashboard(class_a)

        assert dashboard.stats.total_students == 3
        assert dashboard.stats.avg_quiz_score == pytest.approx(5.75)
        assert dashboard.stats.at_risk_students == 2
        assert dashboard.stats.inactive_students == 1
        assert [entry.uid for entry in dashboard.recent_activity] == [
            "stu-ben",
            "stu-ana",
            "stu-ana",
            "stu-ana",
        ]
        assert [item.lesson_id for item in dashboard.lesson_performance] == [1, 2, 3]
        assert dashboard.lesson_performance[0].avg_quiz_score == 6.0

    @pytest.mark.asyncio
    async def test_assessment_overview(
        self, progress_service: ProgressService, class_a: ClassInfo
    ) -> None:
        overview = await progress_service.get_assessment_overview(class_a)

        assert overview.lessons[0].pass_rate == 50.0
        assert overview.stats.total_quiz_attempts == 3
        assert overview.simulation_summary.in_progress == 1
        assert overview.simulation_summary.not_started == 2

    @pytest.mark.asyncio
    async def test_idempotent_output(
        self, progress_service: ProgressService, class_a: ClassInfo
    ) -> None:
        first = await progress_service.get_class_gradebook(class_a)
        second = await progress_service.get_class_gradebook(class_a)

        assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)


class TestClassService:
    """Tests for ClassService."""

    @pytest.mark.asyncio
    async def test_get_class(self, memory_store: InMemoryDocumentStore) -> None:
        info = await ClassService(memory_store).get_class("class-a")

        assert info.instructor_id == "inst-1"
        assert info.student_ids == ("stu-ana", "stu-ben", "stu-cara")

    @pytest.mark.asyncio
    async def test_unknown_class(self, memory_store: InMemoryDocumentStore) -> None:
        with pytest.raises(ClassNotFoundError):
            await ClassService(memory_store).get_class("class-x")

    @pytest.mark.asyncio
    async def test_instructor_default_class(self, memory_store: InMemoryDocumentStore) -> None:
        info = await ClassService(memory_store).get_instructor_class("inst-2")

        assert info.class_id == "class-b"

    @pytest.mark.asyncio
    async def test_instructor_without_class(self, memory_store: InMemoryDocumentStore) -> None:
        with pytest.raises(ClassNotFoundError):
            await ClassService(memory_store).get_instructor_class("inst-9")

    @pytest.mark.asyncio
    async def test_foreign_class_denied(self, memory_store: InMemoryDocumentStore) -> None:
        with pytest.raises(ClassAccessDeniedError):
            await ClassService(memory_store).get_instructor_class("inst-1", "class-b")

    @pytest.mark.asyncio
    async def test_admin_reads_any_class(self, memory_store: InMemoryDocumentStore) -> None:
        info = await ClassService(memory_store).get_instructor_class(
            "admin-1", "class-b", is_admin=True
        )

        assert info.class_id == "class-b"

    def test_ensure_student_in_class(self, memory_store: InMemoryDocumentStore) -> None:
        service = ClassService(memory_store)
        info = ClassInfo(class_id="c", student_ids=("a",))

        service.ensure_student_in_class(info, "a")
        with pytest.raises(ClassAccessDeniedError):
            service.ensure_student_in_class(info, "b")

    @pytest.mark.asyncio
    async def test_no_class_means_no_tasks(self, memory_store: InMemoryDocumentStore) -> None:
        task_set = await ClassService(memory_store).get_class_tasks(None)

        assert task_set.posts == {}
        assert task_set.submissions == {}

    @pytest.mark.asyncio
    async def test_roster_from_student_ids(self) -> None:
        store = InMemoryDocumentStore(
            {"classes": {"c": {"instructorId": "i", "studentIds": {"s1": True}}}}
        )

        info = await ClassService(store).get_class("c")

        assert info.student_ids == ("s1",)

    @pytest.mark.asyncio
    async def test_malformed_class_id(self) -> None:
        store = AsyncMock(spec=DocumentStore)

        with pytest.raises(InvalidClassIdError):
            await ClassService(store).get_class("a.b")
        store.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_class_id_has_no_tasks(self) -> None:
        store = AsyncMock(spec=DocumentStore)

        task_set = await ClassService(store).get_class_tasks("a.b")

        assert task_set.posts == {}
        store.read.assert_not_called()
