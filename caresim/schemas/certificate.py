"""Pydantic schemas for issued certificates."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from caresim.schemas.progress import CertificateKind


class CertificateIssueSchema(BaseModel):
    full_name: str | None = None


class CertificateOutSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    certificate_id: str
    learner_id: str
    kind: CertificateKind
    full_name: str | None = None
    issued_at: datetime
    status: str


class CertificateVerificationSchema(BaseModel):
    """Public view: no learner id."""

    model_config = ConfigDict(from_attributes=True)

    certificate_id: str
    kind: CertificateKind
    full_name: str | None = None
    issued_at: datetime
    status: str


class PendingCertificateSchema(BaseModel):
    learner_id: str
    certificate_kind: CertificateKind
