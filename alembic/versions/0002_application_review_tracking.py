"""Application review tracking

Revision ID: 0002_application_review_tracking
Revises: 0001_initial_schema
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_application_review_tracking"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def _has_table(insp: sa.Inspector, table: str) -> bool:
    return table in insp.get_table_names()


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if not _has_table(insp, table):
        return False
    cols = {c["name"] for c in insp.get_columns(table)}
    return column in cols


def _has_index(insp: sa.Inspector, table: str, name: str) -> bool:
    if not _has_table(insp, table):
        return False
    return name in {idx["name"] for idx in insp.get_indexes(table)}


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if _has_table(insp, "applications"):
        with op.batch_alter_table("applications", schema=None) as batch_op:
            if not _has_column(insp, "applications", "viewed_at"):
                batch_op.add_column(sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True))
            if not _has_column(insp, "applications", "status_updated_at"):
                batch_op.add_column(sa.Column("status_updated_at", sa.DateTime(timezone=True), nullable=True))

    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not _has_index(insp, "applications", "ix_applications_job_status"):
        op.create_index("ix_applications_job_status", "applications", ["job_id", "status"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if _has_index(insp, "applications", "ix_applications_job_status"):
        op.drop_index("ix_applications_job_status", table_name="applications")

    if _has_table(insp, "applications"):
        with op.batch_alter_table("applications", schema=None) as batch_op:
            if _has_column(insp, "applications", "status_updated_at"):
                batch_op.drop_column("status_updated_at")
            if _has_column(insp, "applications", "viewed_at"):
                batch_op.drop_column("viewed_at")
