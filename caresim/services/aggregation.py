"""Fold per-lesson progress into learner-level totals for one track."""
from collections.abc import Sequence

from caresim.core.errors import CurriculumError
from caresim.schemas.progress import LearnerAggregate, LessonProgress, LessonStatus
from caresim.services.gates import resolve_lesson_status, simulation_ok


def check_curriculum(curriculum_size: int, length: int | None = None) -> None:
    if isinstance(curriculum_size, bool) or not isinstance(curriculum_size, int) or curriculum_size < 1:
        raise CurriculumError(f"curriculum size must be a positive integer, got {curriculum_size!r}")
    if length is not None and length != curriculum_size:
        raise CurriculumError(f"expected {curriculum_size} lessons, got {length}")


def aggregate(lesson_progresses: Sequence[LessonProgress], curriculum_size: int) -> LearnerAggregate:
    """Totals for one track. Never mix LMS and Game lessons in one call.

    ``avg_quiz_score`` averages ``highest_score`` over lessons whose quiz was
    attempted at least once, so an attempted zero counts and an unattempted
    lesson does not; it is None when no quiz was attempted at all.
    """
    check_curriculum(curriculum_size, len(lesson_progresses))

    completed = in_progress = sims_passed = pages_completed = 0
    quiz_attempts = sim_attempts = 0
    attempted_scores: list[float] = []
    for progress in lesson_progresses:
        status = resolve_lesson_status(progress.pages, progress.quiz, progress.simulation)
        if status is LessonStatus.COMPLETED:
            completed += 1
        elif status is LessonStatus.IN_PROGRESS:
            in_progress += 1
        if simulation_ok(progress.simulation):
            sims_passed += 1
        if progress.pages is not None:
            pages_completed += progress.pages.completed_pages_count
        quiz_attempts += progress.quiz.attempts
        sim_attempts += progress.simulation.attempts
        if progress.quiz.attempts > 0:
            attempted_scores.append(progress.quiz.highest_score)

    return LearnerAggregate(
        lessons_completed=completed,
        total_lessons=curriculum_size,
        avg_quiz_score=sum(attempted_scores) / len(attempted_scores) if attempted_scores else None,
        total_quiz_attempts=quiz_attempts,
        total_simulation_attempts=sim_attempts,
        lessons_in_progress=in_progress,
        simulations_passed=sims_passed,
        best_quiz_score=max(attempted_scores) if attempted_scores else None,
        pages_completed=pages_completed,
    )
