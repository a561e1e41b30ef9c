# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-domain progress extractors.

Pure functions that turn raw store snapshots into LMS, game and task
metrics for a single student. Nothing here touches the store; the
service layer reads the records and hands them over.

Raw records are loosely typed. Every numeric field is checked before it
is used, so a missing or malformed value is treated as absent rather than
as zero.
"""

import logging
import math
import re
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from caresim.domains.progress.schemas import (
    ActivityEntry,
    ClassTask,
    GameMetrics,
    LessonInfo,
    LessonPage,
    LessonProgress,
    LmsMetrics,
    PageAssessment,
    PageAssessmentHistory,
    QuizResult,
    SimulationResult,
    TaskMetrics,
    TaskResult,
)
from caresim.infrastructure.store import children_of

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"\d+")

# Epoch values above this are milliseconds
_EPOCH_MS_THRESHOLD = 100_000_000_000


# =============================================================================
# Field helpers
# =============================================================================


def as_number(value: Any) -> float | None:
    """Return value as a float when it is a real number, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def parse_lesson_slot(value: Any) -> int | None:
    """Extract a lesson slot from a stored lesson reference.

    Accepts integers and strings such as ``"3"``, ``"Lesson 3"`` or
    ``"lesson3"``.

    Returns:
        The slot number, or None if no positive slot can be found.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, float):
        if value.is_integer() and value >= 1:
            return int(value)
        return None
    if isinstance(value, str):
        match = _DIGITS.search(value)
        if match:
            slot = int(match.group())
            return slot if slot >= 1 else None
    return None


def parse_timestamp(value: Any) -> float:
    """Convert a stored timestamp into epoch seconds.

    Handles epoch seconds, epoch milliseconds and ISO 8601 strings.
    Anything unparseable sorts first (0.0).
    """
    number = as_number(value)
    if number is None and isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp()
            except ValueError:
                return 0.0
    if number is None:
        return 0.0
    if number > _EPOCH_MS_THRESHOLD:
        return number / 1000.0
    return number


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


# =============================================================================
# Course metadata
# =============================================================================


def published_lessons(lessons_value: Any) -> list[LessonInfo]:
    """Build the list of published lessons from the ``lessons`` node.

    A lesson is published when its key is an integer slot >= 1 and it
    carries a title. Pages are ordered by their ``order`` field, then key.

    Args:
        lessons_value: Raw value read from ``lessons``.

    Returns:
        Published lessons in ascending slot order.
    """
    lessons: list[LessonInfo] = []
    for key, record in children_of(lessons_value).items():
        slot = int(key) if key.isdigit() else 0
        if slot < 1 or not isinstance(record, Mapping):
            continue
        title = record.get("lessonTitle") or record.get("lessonName")
        if not title:
            continue

        raw_pages = [
            (page_id, page)
            for page_id, page in children_of(record.get("pages")).items()
            if isinstance(page, Mapping)
        ]

        def page_order(item: tuple[str, Mapping[str, Any]]) -> tuple[float, str]:
            order = as_number(item[1].get("order"))
            return (order if order is not None else math.inf, item[0])

        pages = [
            LessonPage(page_id=page_id, title=_text(page.get("title")) or page_id)
            for page_id, page in sorted(raw_pages, key=page_order)
        ]
        lessons.append(LessonInfo(slot=slot, title=str(title), pages=pages))

    lessons.sort(key=lambda lesson: lesson.slot)
    return lessons


def class_tasks(posts_value: Any) -> list[ClassTask]:
    """Extract graded tasks from a ``classPosts/{classId}`` node.

    Only posts of type ``task`` are included, ordered by post id.
    """
    tasks: list[ClassTask] = []
    for post_id, post in sorted(children_of(posts_value).items()):
        if not isinstance(post, Mapping) or post.get("type") != "task":
            continue
        meta = post.get("taskMeta")
        max_score = as_number(meta.get("maxScore")) if isinstance(meta, Mapping) else None
        tasks.append(
            ClassTask(
                post_id=post_id,
                title=_text(post.get("title")) or post_id,
                max_score=max_score,
            )
        )
    return tasks


# =============================================================================
# LMS assessments
# =============================================================================


def select_last_attempt(attempts: Any) -> dict[str, Any] | None:
    """Pick the attempt with the greatest attempt number.

    A missing or non-numeric attemptNumber counts as 0. Ties go to the
    later timestamp, then to the greater stored key. Attempt records that
    are not mappings are skipped.

    Args:
        attempts: Raw ``attempts`` node (mapping or list).

    Returns:
        The selected attempt record, or None if there is none.
    """
    best: dict[str, Any] | None = None
    best_rank: tuple[float, float, str] | None = None

    for key, attempt in children_of(attempts).items():
        if not isinstance(attempt, Mapping):
            logger.warning("Skipping malformed attempt record %s", key)
            continue
        number = as_number(attempt.get("attemptNumber"))
        if number is None:
            logger.warning("Attempt %s has no numeric attemptNumber", key)
            number = 0.0
        rank = (number, parse_timestamp(attempt.get("timestamp")), key)
        if best_rank is None or rank > best_rank:
            best = dict(attempt)
            best_rank = rank

    return best


def page_history(summary: Any, attempts: Any) -> PageAssessmentHistory:
    """Combine a stored page summary and its attempts into a history.

    A page without a summary, or with no attempts at all, reads as not
    attempted: both fields are None.
    """
    if not isinstance(summary, Mapping) or not summary or not children_of(attempts):
        return PageAssessmentHistory()
    return PageAssessmentHistory(
        summary=dict(summary),
        last_attempt=select_last_attempt(attempts),
    )


def page_histories_from_snapshot(
    lessons: Sequence[LessonInfo],
    lms_assessments: Any,
) -> dict[tuple[int, str], PageAssessmentHistory]:
    """Build page histories for every published page from a user's
    ``lmsAssessments`` subtree.

    Returns:
        Mapping of (slot, page id) to history, covering every page.
    """
    tree = children_of(lms_assessments)
    histories: dict[tuple[int, str], PageAssessmentHistory] = {}
    for lesson in lessons:
        pages = children_of(children_of(tree.get(f"lesson{lesson.slot}")).get("pages"))
        for page in lesson.pages:
            node = children_of(pages.get(page.page_id))
            histories[(lesson.slot, page.page_id)] = page_history(
                node.get("summary"), node.get("attempts")
            )
    return histories


def summary_score_percent(summary: Mapping[str, Any]) -> float | None:
    """Best score of a page summary, falling back to the last score."""
    best = as_number(summary.get("bestScorePercent"))
    if best is not None:
        return best
    return as_number(summary.get("lastScorePercent"))


def extract_lms_metrics(
    lessons: Sequence[LessonInfo],
    histories: Mapping[tuple[int, str], PageAssessmentHistory],
) -> LmsMetrics:
    """Compute LMS lesson and assessment metrics for one student.

    A page counts as completed when its history has a summary. A lesson is
    completed when it has at least one page and every page is completed.
    Lessons without pages contribute 0% to the progress average.

    Args:
        lessons: Published lessons.
        histories: Page histories keyed by (slot, page id). Missing keys
            read as not attempted.

    Returns:
        LMS metrics.
    """
    lesson_rows: list[LessonProgress] = []
    assessments: list[PageAssessment] = []
    scores: list[float] = []
    pages_total = 0

    for lesson in lessons:
        completed_pages = 0
        for page in lesson.pages:
            pages_total += 1
            history = histories.get((lesson.slot, page.page_id))
            if history is None or history.summary is None:
                continue
            completed_pages += 1

            summary = history.summary
            score = summary_score_percent(summary)
            if score is not None:
                scores.append(score)

            attempts = as_number(summary.get("attempts"))
            if attempts is None and history.last_attempt is not None:
                attempts = as_number(history.last_attempt.get("attemptNumber"))

            assessments.append(
                PageAssessment(
                    slot=lesson.slot,
                    page_id=page.page_id,
                    title=page.title,
                    lesson_title=lesson.title,
                    best_score_percent=score,
                    attempts=int(attempts or 0),
                    passed=summary.get("passed") is True,
                )
            )

        total = len(lesson.pages)
        lesson_rows.append(
            LessonProgress(
                slot=lesson.slot,
                lesson_title=lesson.title,
                pages_completed=completed_pages,
                total_pages=total,
                progress_percent=(completed_pages / total * 100) if total else 0.0,
                completed=total > 0 and completed_pages == total,
            )
        )

    return LmsMetrics(
        lessons_completed=sum(1 for row in lesson_rows if row.completed),
        lessons_total=len(lesson_rows),
        avg_progress_percent=_mean([row.progress_percent for row in lesson_rows]),
        assessments_completed=len(assessments),
        assessments_total=pages_total,
        avg_assessment_score_percent=_mean(scores),
        lessons=lesson_rows,
        assessments=assessments,
    )


# =============================================================================
# Game quizzes and simulations
# =============================================================================


def _group_by_slot(entries: Any) -> dict[int, list[Mapping[str, Any]]]:
    grouped: dict[int, list[Mapping[str, Any]]] = {}
    for key, entry in children_of(entries).items():
        if not isinstance(entry, Mapping):
            logger.warning("Skipping malformed history entry %s", key)
            continue
        slot = parse_lesson_slot(entry.get("lesson"))
        if slot is None:
            continue
        grouped.setdefault(slot, []).append(entry)
    return grouped


def extract_game_metrics(
    lessons: Sequence[LessonInfo],
    user_record: Mapping[str, Any],
) -> GameMetrics:
    """Compute quiz and simulation metrics for one student.

    There is one quiz and one simulation per published lesson slot. The
    quiz score for a slot is the best numeric score found in either the
    quiz history or ``progress/lesson{slot}/quiz/highestScore``.

    Args:
        lessons: Published lessons.
        user_record: The student's ``users/{uid}`` record.

    Returns:
        Game metrics.
    """
    progress = children_of(user_record.get("progress"))
    history = children_of(user_record.get("history"))
    quiz_history = _group_by_slot(history.get("quizzes"))
    simulation_history = _group_by_slot(history.get("simulations"))

    quizzes: list[QuizResult] = []
    simulations: list[SimulationResult] = []

    for lesson in lessons:
        lesson_progress = children_of(progress.get(f"lesson{lesson.slot}"))
        quiz_progress = children_of(lesson_progress.get("quiz"))
        simulation_progress = children_of(lesson_progress.get("simulation"))

        quiz_entries = quiz_history.get(lesson.slot, [])
        scores = [
            score
            for score in (as_number(entry.get("score")) for entry in quiz_entries)
            if score is not None
        ]
        highest = as_number(quiz_progress.get("highestScore"))
        if highest is not None:
            scores.append(highest)

        if quiz_entries:
            attempts = len(quiz_entries)
        else:
            stored_attempts = as_number(quiz_progress.get("attempts"))
            if stored_attempts is not None:
                attempts = int(stored_attempts)
            else:
                attempts = 1 if highest is not None else 0

        quizzes.append(
            QuizResult(
                slot=lesson.slot,
                lesson_title=lesson.title,
                best_score=max(scores) if scores else None,
                attempts=attempts,
                completed=quiz_progress.get("completed") is True,
            )
        )

        simulation_entries = simulation_history.get(lesson.slot, [])
        completed = simulation_progress.get("completed") is True or any(
            entry.get("completed") is True for entry in simulation_entries
        )
        passed = simulation_progress.get("passed") is True or any(
            entry.get("passed") is True for entry in simulation_entries
        )
        simulations.append(
            SimulationResult(
                slot=lesson.slot,
                lesson_title=lesson.title,
                completed=completed or passed,
                passed=passed,
                attempts=len(simulation_entries),
            )
        )

    scored = [quiz.best_score for quiz in quizzes if quiz.best_score is not None]
    return GameMetrics(
        quizzes_taken=len(scored),
        quizzes_total=len(quizzes),
        avg_quiz_score=_mean(scored),
        simulations_passed=sum(1 for simulation in simulations if simulation.passed),
        simulations_completed=sum(1 for simulation in simulations if simulation.completed),
        simulations_total=len(simulations),
        quizzes=quizzes,
        simulations=simulations,
    )


def _lesson_label(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"Lesson {parse_lesson_slot(value) or value}"
    return _text(value) or "Unknown"


def extract_game_activity(
    uid: str,
    name: str,
    user_record: Mapping[str, Any],
) -> list[ActivityEntry]:
    """List a student's quiz and simulation events, newest first.

    Quiz events need a numeric score; simulation events need to have
    been completed.
    """
    history = children_of(user_record.get("history"))
    events: list[tuple[float, ActivityEntry]] = []

    for entry in children_of(history.get("quizzes")).values():
        if not isinstance(entry, Mapping):
            continue
        score = as_number(entry.get("score"))
        if score is None:
            continue
        stamp = entry.get("timestamp") or entry.get("date")
        events.append(
            (
                parse_timestamp(stamp),
                ActivityEntry(
                    uid=uid,
                    name=name,
                    type="quiz",
                    lesson=_lesson_label(entry.get("lesson")),
                    score_or_result=f"{score:g} / 10",
                    date=_text(stamp),
                ),
            )
        )

    for entry in children_of(history.get("simulations")).values():
        if not isinstance(entry, Mapping) or entry.get("completed") is not True:
            continue
        stamp = entry.get("timestamp") or entry.get("date")
        events.append(
            (
                parse_timestamp(stamp),
                ActivityEntry(
                    uid=uid,
                    name=name,
                    type="simulation",
                    lesson=_lesson_label(entry.get("lesson")),
                    score_or_result="Passed" if entry.get("passed") is True else "Failed",
                    date=_text(stamp),
                ),
            )
        )

    events.sort(key=lambda event: event[0], reverse=True)
    return [entry for _, entry in events]


# =============================================================================
# Class tasks
# =============================================================================


def task_score_percent(score: float, max_score: float | None) -> float:
    """Normalize a task score to a 0-100 percentage.

    Without a positive max score the stored score is taken as a percentage.
    """
    if max_score is not None and max_score > 0:
        percent = score * 100 / max_score
    else:
        percent = score
    return min(max(percent, 0.0), 100.0)


def extract_task_metrics(
    uid: str,
    tasks: Sequence[ClassTask],
    submissions: Mapping[str, Any],
) -> TaskMetrics:
    """Compute task grading metrics for one student.

    A task is graded when the student's submission carries a numeric score.
    Ungraded tasks never count as zero.

    Args:
        uid: Student id.
        tasks: The class's tasks.
        submissions: Raw ``classTaskSubmissions/{classId}`` node keyed by
            post id, then student id.

    Returns:
        Task metrics.
    """
    results: list[TaskResult] = []
    for task in tasks:
        submission = children_of(submissions.get(task.post_id)).get(uid)
        if not isinstance(submission, Mapping):
            results.append(TaskResult(post_id=task.post_id, title=task.title))
            continue

        score = as_number(submission.get("score"))
        results.append(
            TaskResult(
                post_id=task.post_id,
                title=task.title,
                submitted=True,
                graded=score is not None,
                score_percent=(
                    task_score_percent(score, task.max_score) if score is not None else None
                ),
            )
        )

    graded = [result.score_percent for result in results if result.score_percent is not None]
    return TaskMetrics(
        tasks_graded=len(graded),
        tasks_submitted=sum(1 for result in results if result.submitted),
        tasks_total=len(results),
        avg_task_score_percent=_mean(graded),
        tasks=results,
    )
