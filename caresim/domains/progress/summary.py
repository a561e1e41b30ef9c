# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class summary aggregation.

Reduces the gradebook rows of a class into the figures shown on the
instructor dashboard and assessments page.
"""

from collections.abc import Sequence

from caresim.domains.progress.schemas import (
    ActivityEntry,
    AssessmentOverview,
    AssessmentStats,
    ClassDashboard,
    ClassSummary,
    DashboardStats,
    GradebookRow,
    LessonAssessmentStats,
    LessonInfo,
    LessonPerformance,
    LessonSimulationStats,
    LowScoringQuiz,
    SimulationSummary,
    StudentStatus,
)
from caresim.domains.progress.extractors import parse_timestamp

LOW_SCORING_QUIZ_LIMIT = 5


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


class ClassSummaryAggregator:
    """Aggregates gradebook rows across a class.

    Attributes:
        quiz_pass_score: Best quiz score (0-10) that counts as passing.
        recent_activity_limit: Entries kept in the dashboard activity feed.
    """

    def __init__(self, quiz_pass_score: float = 6.0, recent_activity_limit: int = 10) -> None:
        self.quiz_pass_score = quiz_pass_score
        self.recent_activity_limit = recent_activity_limit

    def summarize(
        self,
        rows: Sequence[GradebookRow],
        lessons: Sequence[LessonInfo],
    ) -> ClassSummary:
        """Build the class summary.

        The class quiz average only covers students who took at least one
        quiz. Lesson performance has one row per published lesson slot in
        ascending order, with zeros where nobody has data. A student counts
        towards a lesson's completion rate once both the lesson's game quiz
        and simulation are completed.

        Args:
            rows: Gradebook rows of the class.
            lessons: Published lessons.

        Returns:
            Class summary.
        """
        quiz_takers = [row.game.avg_quiz_score for row in rows if row.game.quizzes_taken > 0]
        return ClassSummary(
            total_students=len(rows),
            avg_quiz_score=_mean(quiz_takers),
            avg_lessons_completed=_mean([row.lms.lessons_completed for row in rows]),
            total_simulations_passed=sum(row.game.simulations_passed for row in rows),
            lesson_performance=self.lesson_performance(rows, lessons),
        )

    def lesson_performance(
        self,
        rows: Sequence[GradebookRow],
        lessons: Sequence[LessonInfo],
    ) -> list[LessonPerformance]:
        performance: list[LessonPerformance] = []
        for lesson in sorted(lessons, key=lambda item: item.slot):
            scores = _best_scores(rows, lesson.slot)
            completed = sum(1 for row in rows if _lesson_completed(row, lesson.slot))
            performance.append(
                LessonPerformance(
                    lesson_id=lesson.slot,
                    lesson_title=lesson.title,
                    avg_quiz_score=_mean(scores),
                    completion_rate=_percent(completed, len(rows)),
                )
            )
        return performance

    def dashboard(
        self,
        rows: Sequence[GradebookRow],
        lessons: Sequence[LessonInfo],
        activity: Sequence[ActivityEntry],
    ) -> ClassDashboard:
        """Build the instructor dashboard payload.

        Args:
            rows: Gradebook rows of the class.
            lessons: Published lessons.
            activity: Activity entries of every student, in any order.

        Returns:
            Dashboard stats, the newest activity entries and lesson performance.
        """
        summary = self.summarize(rows, lessons)
        recent = sorted(activity, key=lambda entry: parse_timestamp(entry.date), reverse=True)

        simulation_slots = sum(row.game.simulations_total for row in rows)
        stats = DashboardStats(
            total_students=summary.total_students,
            active_students=sum(1 for row in rows if row.active),
            avg_quiz_score=summary.avg_quiz_score,
            avg_lessons_completed=summary.avg_lessons_completed,
            avg_simulation_completion_rate=_percent(
                sum(row.game.simulations_completed for row in rows), simulation_slots
            ),
            total_simulations_passed=summary.total_simulations_passed,
            at_risk_students=sum(1 for row in rows if row.status == StudentStatus.AT_RISK),
            inactive_students=sum(1 for row in rows if not row.active),
            no_simulations_completed=sum(
                1 for row in rows if row.game.simulations_completed == 0
            ),
        )
        return ClassDashboard(
            stats=stats,
            recent_activity=recent[: self.recent_activity_limit],
            lesson_performance=summary.lesson_performance,
        )

    def assessment_overview(
        self,
        rows: Sequence[GradebookRow],
        lessons: Sequence[LessonInfo],
    ) -> AssessmentOverview:
        """Build the per-lesson quiz and simulation statistics.

        Pass rates count students whose best quiz score reaches
        quiz_pass_score, out of the students who took that quiz.
        """
        ordered = sorted(lessons, key=lambda item: item.slot)
        total = len(rows)
        lesson_stats: list[LessonAssessmentStats] = []
        simulation_stats: list[LessonSimulationStats] = []

        for lesson in ordered:
            scores = _best_scores(rows, lesson.slot)
            passing = sum(1 for score in scores if score >= self.quiz_pass_score)
            attempts = sum(
                quiz.attempts
                for row in rows
                for quiz in row.game.quizzes
                if quiz.slot == lesson.slot
            )
            completed = sum(1 for row in rows if _lesson_completed(row, lesson.slot))
            lesson_stats.append(
                LessonAssessmentStats(
                    lesson_id=lesson.slot,
                    lesson_title=lesson.title,
                    avg_quiz_score=_mean(scores),
                    attempts=attempts,
                    pass_rate=_percent(passing, len(scores)),
                    completion_rate=_percent(completed, total),
                    students_below_pass=len(scores) - passing,
                )
            )

            outcomes = [
                simulation
                for row in rows
                for simulation in row.game.simulations
                if simulation.slot == lesson.slot and simulation.completed
            ]
            simulation_stats.append(
                LessonSimulationStats(
                    lesson_id=lesson.slot,
                    lesson_title=lesson.title,
                    simulation_pass_rate=_percent(
                        sum(1 for simulation in outcomes if simulation.passed), len(outcomes)
                    ),
                    students_completed=len(outcomes),
                    total_students=total,
                )
            )

        simulations_completed = sum(row.game.simulations_completed for row in rows)
        simulations_passed = sum(row.game.simulations_passed for row in rows)
        quiz_takers = [row.game.avg_quiz_score for row in rows if row.game.quizzes_taken > 0]
        stats = AssessmentStats(
            avg_quiz_score=_mean(quiz_takers),
            total_quiz_attempts=sum(item.attempts for item in lesson_stats),
            simulation_pass_rate=_percent(simulations_passed, simulations_completed),
            at_risk_students=sum(1 for row in rows if row.status == StudentStatus.AT_RISK),
        )

        struggling = sorted(
            (item for item in lesson_stats if item.students_below_pass > 0),
            key=lambda item: item.students_below_pass,
            reverse=True,
        )
        low_scoring = [
            LowScoringQuiz(
                lesson_title=item.lesson_title,
                students_below_pass=item.students_below_pass,
            )
            for item in struggling[:LOW_SCORING_QUIZ_LIMIT]
        ]

        return AssessmentOverview(
            lessons=lesson_stats,
            simulations=simulation_stats,
            stats=stats,
            low_scoring_quizzes=low_scoring,
            simulation_summary=_simulation_summary(rows, len(ordered)),
        )


def _best_scores(rows: Sequence[GradebookRow], slot: int) -> list[float]:
    return [
        quiz.best_score
        for row in rows
        for quiz in row.game.quizzes
        if quiz.slot == slot and quiz.best_score is not None
    ]


def _lesson_completed(row: GradebookRow, slot: int) -> bool:
    quiz_done = any(quiz.slot == slot and quiz.completed for quiz in row.game.quizzes)
    simulation_done = any(
        simulation.slot == slot and simulation.completed for simulation in row.game.simulations
    )
    return quiz_done and simulation_done


def _simulation_summary(rows: Sequence[GradebookRow], lesson_count: int) -> SimulationSummary:
    summary = SimulationSummary()
    for row in rows:
        completed = row.game.simulations_completed
        if lesson_count > 0 and completed >= lesson_count:
            summary.completed_all += 1
        elif completed > 0:
            summary.in_progress += 1
        else:
            summary.not_started += 1
    return summary
