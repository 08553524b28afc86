from caresim.services.aggregation import aggregate
from caresim.services.eligibility import evaluate_eligibility
from caresim.services.gates import QUIZ_PASS_THRESHOLD, resolve_lesson_status
from caresim.services.normalizer import normalize_pages, normalize_quiz, normalize_simulation
from caresim.services.progress_engine import build_track_report, evaluate_learner, learner_dashboard

__all__ = [
    "QUIZ_PASS_THRESHOLD",
    "aggregate",
    "build_track_report",
    "evaluate_eligibility",
    "evaluate_learner",
    "learner_dashboard",
    "normalize_pages",
    "normalize_quiz",
    "normalize_simulation",
    "resolve_lesson_status",
]
