"""Read-and-derive pipeline shared by every consumer.

raw lesson documents -> normalize -> resolve status per lesson -> aggregate
-> eligibility verdict. Dashboards, instructor analytics, the admin scan and
certificate issuance all call into here, so a given snapshot produces one
verdict no matter who asks. Nothing is cached and raw state is never written.
"""
from collections.abc import Mapping, Sequence
from typing import Any

from caresim.core.config import get_settings
from caresim.core.errors import CurriculumError
from caresim.core.logging import DOMAIN_PROGRESS, get_domain_logger
from caresim.schemas.progress import (
    CertificateKind,
    EligibilityVerdict,
    LearnerDashboard,
    LessonReport,
    Track,
    TrackDashboard,
    TrackReport,
)
from caresim.services.aggregation import aggregate, check_curriculum
from caresim.services.eligibility import evaluate_eligibility, kind_for, track_for
from caresim.services.gates import evaluate_gates, resolve_lesson_status
from caresim.services.normalizer import normalize_lesson
from caresim.services.store import ProgressStore

logger = get_domain_logger(__name__, DOMAIN_PROGRESS)


def _curriculum_size(curriculum_size: int | None) -> int:
    return get_settings().curriculum_size if curriculum_size is None else curriculum_size


def lesson_key_check(lesson_key: int, curriculum_size: int | None = None) -> int:
    size = _curriculum_size(curriculum_size)
    check_curriculum(size)
    if isinstance(lesson_key, bool) or not isinstance(lesson_key, int) or not 1 <= lesson_key <= size:
        raise CurriculumError(f"lesson key must be in 1..{size}, got {lesson_key!r}")
    return lesson_key


def build_track_report(
    raw_lessons: Sequence[Mapping[str, Any] | None],
    track: Track,
    curriculum_size: int | None = None,
) -> TrackReport:
    """Pure projection of one track; ``raw_lessons[i]`` is lesson slot ``i + 1``."""
    size = _curriculum_size(curriculum_size)
    check_curriculum(size, len(raw_lessons))
    track = Track(track)

    progresses = [normalize_lesson(raw, track) for raw in raw_lessons]
    lessons = [
        LessonReport(
            lesson_key=lesson_key,
            status=resolve_lesson_status(progress.pages, progress.quiz, progress.simulation),
            gates=evaluate_gates(progress.pages, progress.quiz, progress.simulation),
            pages=progress.pages,
            quiz=progress.quiz,
            simulation=progress.simulation,
        )
        for lesson_key, progress in enumerate(progresses, start=1)
    ]
    return TrackReport(track=track, lessons=lessons, aggregate=aggregate(progresses, size))


def verdict_for(report: TrackReport, kind: CertificateKind) -> EligibilityVerdict:
    if track_for(kind) is not report.track:
        raise CurriculumError(f"{CertificateKind(kind).value} is not evaluated on the {report.track.value} track")
    return evaluate_eligibility(kind, report.statuses, report.aggregate.total_lessons)


async def load_track(
    store: ProgressStore,
    learner_id: str,
    track: Track,
    curriculum_size: int | None = None,
) -> TrackReport:
    """Read every lesson slot, then derive. A failed read fails the whole call."""
    size = _curriculum_size(curriculum_size)
    check_curriculum(size)
    raw_lessons = await store.read_track(learner_id, Track(track), list(range(1, size + 1)))
    return build_track_report(raw_lessons, track, size)


async def evaluate_learner(
    store: ProgressStore,
    learner_id: str,
    kind: CertificateKind,
    curriculum_size: int | None = None,
) -> EligibilityVerdict:
    report = await load_track(store, learner_id, track_for(kind), curriculum_size)
    verdict = verdict_for(report, kind)
    logger.debug(
        "Eligibility evaluated | learner=%s kind=%s eligible=%s missing=%s",
        learner_id,
        verdict.certificate_kind.value,
        verdict.eligible,
        sorted(verdict.reasons_if_ineligible),
    )
    return verdict


async def learner_dashboard(
    store: ProgressStore,
    learner_id: str,
    curriculum_size: int | None = None,
) -> LearnerDashboard:
    """Both tracks side by side; each keeps its own aggregate and verdict."""
    tracks = {}
    for track in (Track.LMS, Track.GAME):
        report = await load_track(store, learner_id, track, curriculum_size)
        tracks[track] = TrackDashboard(report=report, verdict=verdict_for(report, kind_for(track)))
    return LearnerDashboard(learner_id=learner_id, lms=tracks[Track.LMS], game=tracks[Track.GAME])
