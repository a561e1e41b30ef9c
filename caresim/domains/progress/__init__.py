# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress domain.

Turns stored LMS, game and task records into per-student gradebook rows
and class-level summaries.
"""

from caresim.domains.progress.gradebook import (
    GradebookAggregator,
    RiskPolicy,
    ThresholdRiskPolicy,
)
from caresim.domains.progress.service import (
    InvalidLessonSlotError,
    ProgressService,
    ProgressServiceError,
    StudentNotFoundError,
)
from caresim.domains.progress.summary import ClassSummaryAggregator

__all__ = [
    "ClassSummaryAggregator",
    "GradebookAggregator",
    "InvalidLessonSlotError",
    "ProgressService",
    "ProgressServiceError",
    "RiskPolicy",
    "StudentNotFoundError",
    "ThresholdRiskPolicy",
]
