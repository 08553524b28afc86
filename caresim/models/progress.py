"""Raw progress document: one JSON payload per learner, track and lesson slot.

Written by the LMS and Game clients; the engine only reads it.
"""
from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from caresim.db.session import Base

# SQLite doesn't have native JSON; we use Text and store JSON string


class ProgressDocument(Base):
    __tablename__ = "progress_documents"
    __table_args__ = (UniqueConstraint("learner_id", "track", "lesson_key", name="uq_progress_documents_slot"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False, index=True)
    track = Column(String(16), nullable=False)  # lms | game
    lesson_key = Column(Integer, nullable=False)  # 1..N
    # {completedPages|completedPagesCount|hasPages, quiz: {...}, simulation: {...}}
    payload_json = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)
