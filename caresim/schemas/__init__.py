from caresim.schemas.progress import (
    CertificateKind,
    EligibilityVerdict,
    LearnerAggregate,
    LessonProgress,
    LessonStatus,
    PageState,
    QuizRecord,
    SimulationRecord,
    Track,
)

__all__ = [
    "CertificateKind",
    "EligibilityVerdict",
    "LearnerAggregate",
    "LessonProgress",
    "LessonStatus",
    "PageState",
    "QuizRecord",
    "SimulationRecord",
    "Track",
]
