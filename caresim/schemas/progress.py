"""Canonical progress records and the read-model projections derived from them.

Everything past the normalizer works on these types only; raw store shapes
never leak further than ``caresim.services.normalizer``.
"""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class Track(str, Enum):
    LMS = "lms"
    GAME = "game"


class LessonStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CertificateKind(str, Enum):
    LMS_FULL = "lms_full"
    GAME_GENERIC = "game_generic"


class QuizRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    completed: bool = False
    highest_score: float = Field(default=0.0, ge=0, le=10)
    attempts: int = Field(default=0, ge=0)
    last_attempt: datetime | None = None
    latest_score: float | None = None  # display only


class SimulationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    completed: bool = False
    passed: bool = False
    score: float = Field(default=0.0, ge=0)
    attempts: int = Field(default=0, ge=0)
    last_attempt: datetime | None = None


class PageState(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_pages: bool = False
    completed_pages_count: int = Field(default=0, ge=0)


class LessonProgress(BaseModel):
    """Normalized (pages, quiz, simulation) triple; pages is None on the Game track."""

    model_config = ConfigDict(frozen=True)

    pages: PageState | None = None
    quiz: QuizRecord = Field(default_factory=QuizRecord)
    simulation: SimulationRecord = Field(default_factory=SimulationRecord)


class LessonGates(BaseModel):
    model_config = ConfigDict(frozen=True)

    pages_ok: bool
    quiz_passed: bool
    simulation_ok: bool
    quiz_attempted: bool


class LessonReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    lesson_key: int
    status: LessonStatus
    gates: LessonGates
    pages: PageState | None
    quiz: QuizRecord
    simulation: SimulationRecord


class LearnerAggregate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lessons_completed: int
    total_lessons: int
    avg_quiz_score: float | None
    total_quiz_attempts: int
    total_simulation_attempts: int
    lessons_in_progress: int = 0
    simulations_passed: int = 0
    best_quiz_score: float | None = None
    pages_completed: int = 0


class TrackReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    track: Track
    lessons: list[LessonReport]
    aggregate: LearnerAggregate

    @property
    def statuses(self) -> list[LessonStatus]:
        return [lesson.status for lesson in self.lessons]


class EligibilityVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    certificate_kind: CertificateKind
    eligible: bool
    reasons_if_ineligible: frozenset[int] = frozenset()

    @field_serializer("reasons_if_ineligible")
    def _sorted_reasons(self, reasons: frozenset[int]) -> list[int]:
        return sorted(reasons)


class TrackDashboard(BaseModel):
    report: TrackReport
    verdict: EligibilityVerdict


class LearnerDashboard(BaseModel):
    learner_id: str
    lms: TrackDashboard
    game: TrackDashboard
