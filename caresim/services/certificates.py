"""Certificate issuance and verification around the eligibility verdict.

Issuance re-evaluates right before writing and treats a negative verdict at
that instant as final. Verification only reads issued records and never asks
the engine, so a partial snapshot can never mint or revoke a certificate.
"""
import random
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from caresim.core.errors import NotEligibleError
from caresim.core.logging import DOMAIN_CERTIFICATES, get_domain_logger
from caresim.models.certificate import Certificate
from caresim.schemas.certificate import PendingCertificateSchema
from caresim.schemas.progress import CertificateKind
from caresim.services.progress_engine import evaluate_learner
from caresim.services.store import ProgressStore

logger = get_domain_logger(__name__, DOMAIN_CERTIFICATES)

CERTIFICATE_PREFIXES = {
    CertificateKind.LMS_FULL: "LMS",
    CertificateKind.GAME_GENERIC: "GAME",
}
STATUS_VALID = "valid"


def make_certificate_id(kind: CertificateKind, now: datetime | None = None, rng: random.Random | None = None) -> str:
    """PREFIX-<last 6 digits of epoch ms>-<0..999>."""
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()
    millis = str(int(now.timestamp() * 1000))[-6:]
    return f"{CERTIFICATE_PREFIXES[CertificateKind(kind)]}-{millis}-{rng.randrange(1000)}"


async def get_certificate(db: AsyncSession, learner_id: str, kind: CertificateKind) -> Certificate | None:
    result = await db.execute(
        select(Certificate).where(Certificate.learner_id == learner_id, Certificate.kind == CertificateKind(kind).value)
    )
    return result.scalar_one_or_none()


async def issue_certificate(
    db: AsyncSession,
    store: ProgressStore,
    learner_id: str,
    kind: CertificateKind,
    full_name: str | None = None,
) -> Certificate:
    """Issue once; an existing certificate for (learner, kind) is returned as is."""
    kind = CertificateKind(kind)
    existing = await get_certificate(db, learner_id, kind)
    if existing is not None:
        return existing

    verdict = await evaluate_learner(store, learner_id, kind)
    if not verdict.eligible:
        logger.info(
            "Issuance refused | learner=%s kind=%s missing=%s",
            learner_id,
            kind.value,
            sorted(verdict.reasons_if_ineligible),
        )
        raise NotEligibleError(verdict)

    certificate_id = make_certificate_id(kind)
    while (await verify_certificate(db, certificate_id)) is not None:
        certificate_id = make_certificate_id(kind)

    certificate = Certificate(
        certificate_id=certificate_id,
        learner_id=learner_id,
        kind=kind.value,
        full_name=full_name,
        issued_at=datetime.now(timezone.utc),
        status=STATUS_VALID,
    )
    db.add(certificate)
    try:
        await db.commit()
    except IntegrityError:
        # another request issued (learner, kind) between the check and this write
        await db.rollback()
        existing = await get_certificate(db, learner_id, kind)
        if existing is None:
            raise
        return existing
    await db.refresh(certificate)
    # Delivery (email/push) is handled outside this service.
    logger.info("Certificate issued | learner=%s kind=%s id=%s notify=queued", learner_id, kind.value, certificate_id)
    return certificate


async def verify_certificate(db: AsyncSession, certificate_id: str) -> Certificate | None:
    result = await db.execute(select(Certificate).where(Certificate.certificate_id == certificate_id))
    return result.scalar_one_or_none()


async def pending_issuance(
    db: AsyncSession,
    store: ProgressStore,
    kind: CertificateKind,
    learner_ids: Iterable[str],
) -> list[PendingCertificateSchema]:
    """Eligible learners who do not hold a ``kind`` certificate yet."""
    kind = CertificateKind(kind)
    result = await db.execute(select(Certificate.learner_id).where(Certificate.kind == kind.value))
    issued = set(result.scalars().all())

    pending = []
    for learner_id in learner_ids:
        if learner_id in issued:
            continue
        verdict = await evaluate_learner(store, learner_id, kind)
        if verdict.eligible:
            pending.append(PendingCertificateSchema(learner_id=learner_id, certificate_kind=kind))
    return pending
