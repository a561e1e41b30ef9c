# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress and gradebook schemas.

Models are serialized with camelCase aliases, which is what the dashboard
front end reads. Aggregates keep full float precision internally; the
rounding applied for display happens only in the field serializers.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


def _round1(value: float) -> float:
    return round(value, 1)


def _round2(value: float) -> float:
    return round(value, 2)


class ProgressModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudentStatus(str, Enum):
    """Gradebook risk classification."""

    ON_TRACK = "ON_TRACK"
    AT_RISK = "AT_RISK"


# =============================================================================
# Course metadata
# =============================================================================


class LessonPage(ProgressModel):
    """A page within a lesson."""

    page_id: str
    title: str


class LessonInfo(ProgressModel):
    """A published lesson and its ordered pages."""

    slot: int
    title: str
    pages: list[LessonPage] = Field(default_factory=list)


class ClassTask(ProgressModel):
    """An instructor-graded task posted to a class."""

    post_id: str
    title: str
    max_score: float | None = None


# =============================================================================
# LMS domain
# =============================================================================


class PageAssessmentHistory(ProgressModel):
    """Stored summary and last attempt for one (student, lesson, page).

    Both fields are None when the page has not been attempted.
    """

    summary: dict[str, Any] | None = None
    last_attempt: dict[str, Any] | None = None

    @property
    def attempted(self) -> bool:
        return self.summary is not None


class LessonProgress(ProgressModel):
    """Per-lesson page completion for one student."""

    slot: int
    lesson_title: str
    pages_completed: int = 0
    total_pages: int = 0
    progress_percent: float = 0.0
    completed: bool = False

    @field_serializer("progress_percent")
    def _serialize_percent(self, value: float) -> float:
        return _round2(value)


class PageAssessment(ProgressModel):
    """Outcome of a summarized page assessment."""

    slot: int
    page_id: str
    title: str
    lesson_title: str
    best_score_percent: float | None = None
    attempts: int = 0
    passed: bool = False


class LmsMetrics(ProgressModel):
    """LMS lesson and assessment metrics for one student."""

    lessons_completed: int = 0
    lessons_total: int = 0
    avg_progress_percent: float = 0.0
    assessments_completed: int = 0
    assessments_total: int = 0
    avg_assessment_score_percent: float = 0.0
    lessons: list[LessonProgress] = Field(default_factory=list)
    assessments: list[PageAssessment] = Field(default_factory=list)

    @field_serializer("avg_progress_percent", "avg_assessment_score_percent")
    def _serialize_percent(self, value: float) -> float:
        return _round2(value)


# =============================================================================
# Game domain
# =============================================================================


class QuizResult(ProgressModel):
    """Best game-quiz score for one lesson slot (0-10 scale)."""

    slot: int
    lesson_title: str
    best_score: float | None = None
    attempts: int = 0
    completed: bool = False


class SimulationResult(ProgressModel):
    """Game-simulation outcome for one lesson slot."""

    slot: int
    lesson_title: str
    completed: bool = False
    passed: bool = False
    attempts: int = 0


class GameMetrics(ProgressModel):
    """Quiz and simulation metrics for one student."""

    quizzes_taken: int = 0
    quizzes_total: int = 0
    avg_quiz_score: float = 0.0
    simulations_passed: int = 0
    simulations_completed: int = 0
    simulations_total: int = 0
    quizzes: list[QuizResult] = Field(default_factory=list)
    simulations: list[SimulationResult] = Field(default_factory=list)

    @field_serializer("avg_quiz_score")
    def _serialize_score(self, value: float) -> float:
        return _round1(value)


class ActivityEntry(ProgressModel):
    """One quiz or simulation event for the dashboard activity feed."""

    uid: str
    name: str
    type: Literal["quiz", "simulation"]
    lesson: str
    score_or_result: str
    date: str


# =============================================================================
# Task domain
# =============================================================================


class TaskResult(ProgressModel):
    """One student's standing on one class task."""

    post_id: str
    title: str
    submitted: bool = False
    graded: bool = False
    score_percent: float | None = None


class TaskMetrics(ProgressModel):
    """Task grading metrics for one student."""

    tasks_graded: int = 0
    tasks_submitted: int = 0
    tasks_total: int = 0
    avg_task_score_percent: float = 0.0
    tasks: list[TaskResult] = Field(default_factory=list)

    @field_serializer("avg_task_score_percent")
    def _serialize_percent(self, value: float) -> float:
        return _round2(value)


# =============================================================================
# Gradebook
# =============================================================================


class StudentIdentity(ProgressModel):
    """Identifying fields shown next to a gradebook row."""

    uid: str
    name: str = ""
    email: str = ""
    student_number: str = ""


class GradebookRow(ProgressModel):
    """One student's combined cross-domain progress."""

    student: StudentIdentity
    lms: LmsMetrics
    game: GameMetrics
    tasks: TaskMetrics
    status: StudentStatus
    active: bool = False


class ClassGradebook(ProgressModel):
    """Gradebook rows for a class.

    Students whose records could not be read are listed in
    unavailable_students instead of appearing with zeroed metrics.
    """

    class_id: str
    class_name: str = ""
    rows: list[GradebookRow] = Field(default_factory=list)
    unavailable_students: list[str] = Field(default_factory=list)


# =============================================================================
# Class summaries
# =============================================================================


class LessonPerformance(ProgressModel):
    """Cohort performance on one lesson slot."""

    lesson_id: int
    lesson_title: str
    avg_quiz_score: float = 0.0
    completion_rate: float = 0.0

    @field_serializer("avg_quiz_score")
    def _serialize_score(self, value: float) -> float:
        return _round1(value)

    @field_serializer("completion_rate")
    def _serialize_rate(self, value: float) -> float:
        return _round2(value)


class ClassSummary(ProgressModel):
    """Class-level aggregate over gradebook rows."""

    total_students: int = 0
    avg_quiz_score: float = 0.0
    avg_lessons_completed: float = 0.0
    total_simulations_passed: int = 0
    lesson_performance: list[LessonPerformance] = Field(default_factory=list)

    @field_serializer("avg_quiz_score", "avg_lessons_completed")
    def _serialize_avg(self, value: float) -> float:
        return _round1(value)


class DashboardStats(ProgressModel):
    """Headline numbers for the instructor dashboard."""

    total_students: int = 0
    active_students: int = 0
    avg_quiz_score: float = 0.0
    avg_lessons_completed: float = 0.0
    avg_simulation_completion_rate: float = 0.0
    total_simulations_passed: int = 0
    at_risk_students: int = 0
    inactive_students: int = 0
    no_simulations_completed: int = 0

    @field_serializer("avg_quiz_score", "avg_lessons_completed")
    def _serialize_avg(self, value: float) -> float:
        return _round1(value)

    @field_serializer("avg_simulation_completion_rate")
    def _serialize_rate(self, value: float) -> float:
        return _round2(value)


class ClassDashboard(ProgressModel):
    """Instructor dashboard payload."""

    stats: DashboardStats
    recent_activity: list[ActivityEntry] = Field(default_factory=list)
    lesson_performance: list[LessonPerformance] = Field(default_factory=list)


class LessonAssessmentStats(ProgressModel):
    """Quiz statistics for one lesson across a class."""

    lesson_id: int
    lesson_title: str
    avg_quiz_score: float = 0.0
    attempts: int = 0
    pass_rate: float = 0.0
    completion_rate: float = 0.0
    students_below_pass: int = 0

    @field_serializer("avg_quiz_score")
    def _serialize_score(self, value: float) -> float:
        return _round1(value)

    @field_serializer("pass_rate", "completion_rate")
    def _serialize_rate(self, value: float) -> float:
        return _round2(value)


class LessonSimulationStats(ProgressModel):
    """Simulation statistics for one lesson across a class."""

    lesson_id: int
    lesson_title: str
    simulation_pass_rate: float = 0.0
    students_completed: int = 0
    total_students: int = 0

    @field_serializer("simulation_pass_rate")
    def _serialize_rate(self, value: float) -> float:
        return _round2(value)


class LowScoringQuiz(ProgressModel):
    lesson_title: str
    students_below_pass: int


class SimulationSummary(ProgressModel):
    """How far students are through the simulations."""

    completed_all: int = 0
    in_progress: int = 0
    not_started: int = 0


class AssessmentStats(ProgressModel):
    avg_quiz_score: float = 0.0
    total_quiz_attempts: int = 0
    simulation_pass_rate: float = 0.0
    at_risk_students: int = 0

    @field_serializer("avg_quiz_score")
    def _serialize_score(self, value: float) -> float:
        return _round1(value)

    @field_serializer("simulation_pass_rate")
    def _serialize_rate(self, value: float) -> float:
        return _round2(value)


class AssessmentOverview(ProgressModel):
    """Instructor assessments page payload."""

    lessons: list[LessonAssessmentStats] = Field(default_factory=list)
    simulations: list[LessonSimulationStats] = Field(default_factory=list)
    stats: AssessmentStats = Field(default_factory=AssessmentStats)
    low_scoring_quizzes: list[LowScoringQuiz] = Field(default_factory=list)
    simulation_summary: SimulationSummary = Field(default_factory=SimulationSummary)


# =============================================================================
# API responses
# =============================================================================


class AssessmentHistoryResponse(ProgressModel):
    success: bool = True
    summary: dict[str, Any] | None = None
    last_attempt: dict[str, Any] | None = None


class StudentProgressResponse(ProgressModel):
    success: bool = True
    student: GradebookRow


class ClassProgressResponse(ProgressModel):
    success: bool = True
    class_id: str
    class_name: str = ""
    students: list[GradebookRow] = Field(default_factory=list)
    unavailable_students: list[str] = Field(default_factory=list)


class DashboardResponse(ProgressModel):
    success: bool = True
    stats: DashboardStats
    recent_activity: list[ActivityEntry] = Field(default_factory=list)
    lesson_performance: list[LessonPerformance] = Field(default_factory=list)


class AssessmentGroups(ProgressModel):
    lessons: list[LessonAssessmentStats] = Field(default_factory=list)
    simulations: list[LessonSimulationStats] = Field(default_factory=list)


class AssessmentOverviewResponse(ProgressModel):
    success: bool = True
    assessments: AssessmentGroups
    stats: AssessmentStats
    low_scoring_quizzes: list[LowScoringQuiz] = Field(default_factory=list)
    simulation_summary: SimulationSummary
