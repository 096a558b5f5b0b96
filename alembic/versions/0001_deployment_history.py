"""create deployment_history

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa

from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "deployment_history",
        sa.Column("history_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("cluster", sa.String(length=255), nullable=False),
        sa.Column("service", sa.String(length=255), nullable=False),
        sa.Column("revision_number", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_deployment_history_lookup",
        "deployment_history",
        ["cluster", "service", "recorded_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_deployment_history_lookup", table_name="deployment_history")
    op.drop_table("deployment_history")
