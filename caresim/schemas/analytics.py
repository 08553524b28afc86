"""Pydantic schemas for instructor analytics."""
from pydantic import BaseModel

from caresim.schemas.progress import CertificateKind


class LessonPerformanceSchema(BaseModel):
    lesson_key: int
    learners: int
    completed: int
    completion_rate: float  # percent, 2 decimals
    avg_quiz_score: float | None  # 0-10, over learners who attempted the quiz


class ClassOverviewSchema(BaseModel):
    certificate_kind: CertificateKind
    total_learners: int
    eligible_learners: int
    lessons_completed_total: int
    lesson_performance: list[LessonPerformanceSchema]
