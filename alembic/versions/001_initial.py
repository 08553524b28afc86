"""Initial tables: progress_documents, certificates.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "progress_documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("learner_id", sa.String(128), nullable=False),
        sa.Column("track", sa.String(16), nullable=False),
        sa.Column("lesson_key", sa.Integer(), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("learner_id", "track", "lesson_key", name="uq_progress_documents_slot"),
    )
    op.create_index(op.f("ix_progress_documents_learner_id"), "progress_documents", ["learner_id"], unique=False)

    op.create_table(
        "certificates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("certificate_id", sa.String(64), nullable=False),
        sa.Column("learner_id", sa.String(128), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="valid"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("learner_id", "kind", name="uq_certificates_learner_kind"),
    )
    op.create_index(op.f("ix_certificates_certificate_id"), "certificates", ["certificate_id"], unique=True)
    op.create_index(op.f("ix_certificates_learner_id"), "certificates", ["learner_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_certificates_learner_id"), table_name="certificates")
    op.drop_index(op.f("ix_certificates_certificate_id"), table_name="certificates")
    op.drop_table("certificates")
    op.drop_index(op.f("ix_progress_documents_learner_id"), table_name="progress_documents")
    op.drop_table("progress_documents")
