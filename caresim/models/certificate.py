"""Issued certificate record; the public verification surface reads only this."""
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from caresim.db.session import Base


class Certificate(Base):
    __tablename__ = "certificates"
    __table_args__ = (UniqueConstraint("learner_id", "kind", name="uq_certificates_learner_kind"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    certificate_id = Column(String(64), unique=True, nullable=False, index=True)  # LMS-xxxxxx-nnn
    learner_id = Column(String(128), nullable=False, index=True)
    kind = Column(String(32), nullable=False)  # lms_full | game_generic
    full_name = Column(String(255), nullable=True)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(16), nullable=False, default="valid")
