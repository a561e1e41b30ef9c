# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gradebook aggregation.

Combines the LMS, game and task metrics of one student into a gradebook
row and classifies the student with a pluggable risk policy.

Example:
    >>> aggregator = GradebookAggregator(ThresholdRiskPolicy())
    >>> row = aggregator.build_row(identity, lms, game, tasks)
    >>> row.status
    <StudentStatus.ON_TRACK: 'ON_TRACK'>
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from caresim.core.config.settings import GradebookSettings
from caresim.domains.progress.schemas import (
    GameMetrics,
    GradebookRow,
    LmsMetrics,
    StudentIdentity,
    StudentStatus,
    TaskMetrics,
)

logger = logging.getLogger(__name__)

RiskPolicy = Callable[[LmsMetrics, GameMetrics, TaskMetrics], StudentStatus]


def has_activity(lms: LmsMetrics, game: GameMetrics, tasks: TaskMetrics) -> bool:
    """Whether a student has done anything in any domain."""
    return (
        lms.assessments_completed > 0
        or game.quizzes_taken > 0
        or game.simulations_completed > 0
        or tasks.tasks_submitted > 0
    )


@dataclass(frozen=True)
class ThresholdRiskPolicy:
    """Risk policy based on fixed thresholds.

    A student is AT_RISK when any of these holds:
    - the average game quiz score is below min_avg_quiz_score
    - the share of completed lessons is below min_lesson_completion_ratio
      (only when lessons exist)
    - the graded task average is below min_avg_task_score_percent (only
      when at least one task is graded)
    - the student has no recorded activity at all

    Attributes:
        min_avg_quiz_score: Quiz average threshold on the 0-10 scale.
        min_lesson_completion_ratio: Completed lessons / total lessons threshold.
        min_avg_task_score_percent: Graded task average threshold.
    """

    min_avg_quiz_score: float = 6.0
    min_lesson_completion_ratio: float = 0.5
    min_avg_task_score_percent: float = 60.0

    @classmethod
    def from_settings(cls, settings: GradebookSettings) -> "ThresholdRiskPolicy":
        return cls(
            min_avg_quiz_score=settings.min_avg_quiz_score,
            min_lesson_completion_ratio=settings.min_lesson_completion_ratio,
            min_avg_task_score_percent=settings.min_avg_task_score_percent,
        )

    def __call__(
        self,
        lms: LmsMetrics,
        game: GameMetrics,
        tasks: TaskMetrics,
    ) -> StudentStatus:
        if not has_activity(lms, game, tasks):
            return StudentStatus.AT_RISK

        if game.avg_quiz_score < self.min_avg_quiz_score:
            return StudentStatus.AT_RISK

        if lms.lessons_total > 0:
            ratio = lms.lessons_completed / lms.lessons_total
            if ratio < self.min_lesson_completion_ratio:
                return StudentStatus.AT_RISK

        if tasks.tasks_graded > 0 and tasks.avg_task_score_percent < self.min_avg_task_score_percent:
            return StudentStatus.AT_RISK

        return StudentStatus.ON_TRACK


class GradebookAggregator:
    """Builds gradebook rows.

    Attributes:
        policy: Risk policy used to classify each row.
    """

    def __init__(self, policy: RiskPolicy | None = None) -> None:
        self.policy: RiskPolicy = policy or ThresholdRiskPolicy()

    def build_row(
        self,
        student: StudentIdentity,
        lms: LmsMetrics,
        game: GameMetrics,
        tasks: TaskMetrics,
    ) -> GradebookRow:
        """Combine domain metrics into one row.

        Args:
            student: Identifying fields.
            lms: LMS metrics.
            game: Game metrics.
            tasks: Task metrics.

        Returns:
            The row with its status computed by the policy.
        """
        status = self.policy(lms, game, tasks)
        logger.debug("Student %s classified as %s", student.uid, status.value)
        return GradebookRow(
            student=student,
            lms=lms,
            game=game,
            tasks=tasks,
            status=status,
            active=has_activity(lms, game, tasks),
        )
