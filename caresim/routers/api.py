"""API routes: JSON read models over the progress engine, plus certificate issuance."""
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caresim.core.config import get_settings
from caresim.db.session import get_db
from caresim.schemas.analytics import ClassOverviewSchema
from caresim.schemas.certificate import (
    CertificateIssueSchema,
    CertificateOutSchema,
    CertificateVerificationSchema,
    PendingCertificateSchema,
)
from caresim.schemas.progress import CertificateKind, EligibilityVerdict, LearnerDashboard, LessonReport, Track
from caresim.services.analytics import class_overview
from caresim.services.certificates import issue_certificate, pending_issuance, verify_certificate
from caresim.services.eligibility import track_for
from caresim.services.progress_engine import evaluate_learner, learner_dashboard, lesson_key_check, load_track
from caresim.services.store import SqlProgressStore, import_snapshot

router = APIRouter(prefix="/api", tags=["api"])


def get_store(db: Annotated[AsyncSession, Depends(get_db)]) -> SqlProgressStore:
    return SqlProgressStore(db)


@router.get("/learners/{learner_id}/dashboard", response_model=LearnerDashboard)
async def get_dashboard(
    learner_id: str,
    store: Annotated[SqlProgressStore, Depends(get_store)],
):
    """Both tracks: per-lesson status and records, aggregate totals, verdict."""
    return await learner_dashboard(store, learner_id)


@router.get("/learners/{learner_id}/tracks/{track}/lessons/{lesson_key}", response_model=LessonReport)
async def get_lesson(
    learner_id: str,
    track: Track,
    lesson_key: int,
    store: Annotated[SqlProgressStore, Depends(get_store)],
):
    lesson_key_check(lesson_key)
    report = await load_track(store, learner_id, track)
    return report.lessons[lesson_key - 1]


@router.get("/learners/{learner_id}/eligibility/{kind}", response_model=EligibilityVerdict)
async def get_eligibility(
    learner_id: str,
    kind: CertificateKind,
    store: Annotated[SqlProgressStore, Depends(get_store)],
):
    return await evaluate_learner(store, learner_id, kind)


@router.post("/learners/{learner_id}/certificates/{kind}", response_model=CertificateOutSchema)
async def post_certificate(
    learner_id: str,
    kind: CertificateKind,
    db: Annotated[AsyncSession, Depends(get_db)],
    body: CertificateIssueSchema | None = None,
):
    """Issue a certificate; 409 with the missing lesson keys when not eligible."""
    certificate = await issue_certificate(
        db,
        SqlProgressStore(db),
        learner_id,
        kind,
        full_name=body.full_name if body else None,
    )
    return CertificateOutSchema.model_validate(certificate)


@router.get("/public/certificates/{certificate_id}", response_model=CertificateVerificationSchema)
async def get_public_certificate(
    certificate_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Verification reads issued records only."""
    certificate = await verify_certificate(db, certificate_id)
    if certificate is None:
        raise HTTPException(status_code=404, detail="Certificate not found")
    return CertificateVerificationSchema.model_validate(certificate)


@router.get("/instructor/overview", response_model=ClassOverviewSchema)
async def get_instructor_overview(
    store: Annotated[SqlProgressStore, Depends(get_store)],
    kind: CertificateKind = CertificateKind.LMS_FULL,
    learner_id: Annotated[list[str] | None, Query()] = None,
):
    track = track_for(kind)
    learner_ids = learner_id or await store.learner_ids(track)
    reports = [await load_track(store, uid, track) for uid in learner_ids]
    return class_overview(reports, kind, get_settings().curriculum_size)


@router.get("/admin/certificates/pending", response_model=list[PendingCertificateSchema])
async def get_pending_certificates(
    db: Annotated[AsyncSession, Depends(get_db)],
    kind: CertificateKind = CertificateKind.LMS_FULL,
):
    store = SqlProgressStore(db)
    return await pending_issuance(db, store, kind, await store.learner_ids(track_for(kind)))


@router.post("/admin/progress/import")
async def post_progress_import(
    db: Annotated[AsyncSession, Depends(get_db)],
    document: Annotated[dict[str, Any], Body()],
):
    """Load an exported ``{"users": {...}}`` snapshot into the raw store."""
    written = await import_snapshot(db, document)
    return {"success": True, "lessons_written": written}
