"""Initial schema with jobs table

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Timestamps are naive UTC; state is derived from them, there is no status column
    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer, autoincrement=True, nullable=False),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("payload", sa.LargeBinary, nullable=False),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("run_at", sa.DateTime, nullable=False),
        sa.Column("locked_at", sa.DateTime, nullable=True),
        sa.Column("locked_by", sa.String(255), nullable=True),
        sa.Column("failed_at", sa.DateTime, nullable=True),
        sa.Column("first_started_at", sa.DateTime, nullable=True),
        sa.Column("last_started_at", sa.DateTime, nullable=True),
        sa.Column("finished_at", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # Candidate scans order by (priority, run_at)
    op.create_index("ix_jobs_priority_run_at", "jobs", ["priority", "run_at"])
    # clear_locks and resume lookups filter by owner
    op.create_index("ix_jobs_locked_by", "jobs", ["locked_by"])


def downgrade() -> None:
    op.drop_index("ix_jobs_locked_by", table_name="jobs")
    op.drop_index("ix_jobs_priority_run_at", table_name="jobs")
    op.drop_table("jobs")
