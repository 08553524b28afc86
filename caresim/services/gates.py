"""Lesson gates and the lesson status rule.

This module is the only place lesson completion is decided. Dashboards,
analytics, issuance and the admin scan all go through ``resolve_lesson_status``;
nothing else compares a quiz score against the threshold.
"""
from caresim.schemas.progress import LessonGates, LessonStatus, PageState, QuizRecord, SimulationRecord

# Quiz scores are out of 10; 7/10 (70%) passes
QUIZ_MAX_SCORE = 10.0
QUIZ_PASS_THRESHOLD = 7


def quiz_passed(quiz: QuizRecord) -> bool:
    return quiz.completed and quiz.highest_score >= QUIZ_PASS_THRESHOLD


def pages_ok(pages: PageState | None) -> bool:
    """Game track has no page gate, so a missing page state satisfies it."""
    return pages is None or pages.has_pages


def simulation_ok(sim: SimulationRecord) -> bool:
    return sim.completed and sim.passed


def evaluate_gates(pages: PageState | None, quiz: QuizRecord, sim: SimulationRecord) -> LessonGates:
    return LessonGates(
        pages_ok=pages_ok(pages),
        quiz_passed=quiz_passed(quiz),
        simulation_ok=simulation_ok(sim),
        quiz_attempted=quiz.attempts > 0,
    )


def resolve_lesson_status(pages: PageState | None, quiz: QuizRecord, sim: SimulationRecord) -> LessonStatus:
    """Completed needs all three gates; any partial activity is in progress."""
    gates = evaluate_gates(pages, quiz, sim)
    if gates.pages_ok and gates.quiz_passed and gates.simulation_ok:
        return LessonStatus.COMPLETED

    # An absent page state (Game track) is not activity by itself.
    pages_done = pages is not None and pages.has_pages
    if (
        pages_done
        or quiz.completed
        or gates.quiz_passed
        or gates.simulation_ok
        or quiz.attempts > 0
        or sim.attempts > 0
    ):
        return LessonStatus.IN_PROGRESS
    return LessonStatus.NOT_STARTED
