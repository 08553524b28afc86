"""Instructor analytics over already-derived track reports."""
from collections.abc import Sequence

from caresim.core.errors import CurriculumError
from caresim.core.logging import DOMAIN_ANALYTICS, get_domain_logger
from caresim.schemas.analytics import ClassOverviewSchema, LessonPerformanceSchema
from caresim.schemas.progress import CertificateKind, LessonStatus, TrackReport
from caresim.services.aggregation import check_curriculum
from caresim.services.eligibility import track_for
from caresim.services.progress_engine import verdict_for

logger = get_domain_logger(__name__, DOMAIN_ANALYTICS)


def lesson_performance(reports: Sequence[TrackReport], curriculum_size: int) -> list[LessonPerformanceSchema]:
    """Per-slot completion rate and mean quiz score across learners."""
    check_curriculum(curriculum_size)
    rows = []
    for index in range(curriculum_size):
        completed = 0
        scores: list[float] = []
        for report in reports:
            check_curriculum(curriculum_size, len(report.lessons))
            lesson = report.lessons[index]
            if lesson.status is LessonStatus.COMPLETED:
                completed += 1
            if lesson.quiz.attempts > 0:
                scores.append(lesson.quiz.highest_score)
        learners = len(reports)
        rows.append(
            LessonPerformanceSchema(
                lesson_key=index + 1,
                learners=learners,
                completed=completed,
                completion_rate=round(completed / learners * 100, 2) if learners else 0.0,
                avg_quiz_score=round(sum(scores) / len(scores), 1) if scores else None,
            )
        )
    return rows


def class_overview(
    reports: Sequence[TrackReport],
    kind: CertificateKind,
    curriculum_size: int,
) -> ClassOverviewSchema:
    kind = CertificateKind(kind)
    track = track_for(kind)
    if any(report.track is not track for report in reports):
        raise CurriculumError(f"{kind.value} overview needs {track.value} track reports only")

    eligible = sum(1 for report in reports if verdict_for(report, kind).eligible)
    overview = ClassOverviewSchema(
        certificate_kind=kind,
        total_learners=len(reports),
        eligible_learners=eligible,
        lessons_completed_total=sum(report.aggregate.lessons_completed for report in reports),
        lesson_performance=lesson_performance(reports, curriculum_size),
    )
    logger.debug("Class overview | kind=%s learners=%d eligible=%d", kind.value, len(reports), eligible)
    return overview
