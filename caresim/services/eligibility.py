"""Certificate eligibility: a pure verdict over resolved lesson statuses.

The verdict says nothing about whether a certificate exists; issuance and the
read-only surfaces call this with the same statuses and get the same answer.
"""
from collections.abc import Sequence

from caresim.core.config import DEFAULT_CURRICULUM_SIZE
from caresim.core.errors import CurriculumError
from caresim.schemas.progress import CertificateKind, EligibilityVerdict, LessonStatus, Track
from caresim.services.aggregation import check_curriculum

CERTIFICATE_TRACKS = {
    CertificateKind.LMS_FULL: Track.LMS,
    CertificateKind.GAME_GENERIC: Track.GAME,
}


def track_for(kind: CertificateKind) -> Track:
    return CERTIFICATE_TRACKS[CertificateKind(kind)]


def kind_for(track: Track) -> CertificateKind:
    for kind, kind_track in CERTIFICATE_TRACKS.items():
        if kind_track is Track(track):
            return kind
    raise CurriculumError(f"no certificate is issued for track {track!r}")


def evaluate_eligibility(
    kind: CertificateKind,
    lesson_statuses: Sequence[LessonStatus],
    curriculum_size: int = DEFAULT_CURRICULUM_SIZE,
) -> EligibilityVerdict:
    """lms_full needs every lesson completed; game_generic needs N completed lessons."""
    check_curriculum(curriculum_size, len(lesson_statuses))
    try:
        kind = CertificateKind(kind)
    except ValueError as exc:
        raise CurriculumError(f"unknown certificate kind {kind!r}") from exc

    missing = frozenset(
        lesson_key
        for lesson_key, status in enumerate(lesson_statuses, start=1)
        if LessonStatus(status) is not LessonStatus.COMPLETED
    )
    if kind is CertificateKind.LMS_FULL:
        eligible = not missing
    else:
        eligible = curriculum_size - len(missing) >= curriculum_size

    return EligibilityVerdict(
        certificate_kind=kind,
        eligible=eligible,
        reasons_if_ineligible=frozenset() if eligible else missing,
    )
