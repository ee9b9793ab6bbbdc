"""Waitlist priority for manual promotion.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("join_requests", sa.Column("waitlist_pos", sa.Float(), nullable=True))
    op.create_check_constraint(
        "check_position_only_while_waitlisted",
        "join_requests",
        "status = 'waitlisted' OR waitlist_pos IS NULL",
    )
    # Promotion walks the waitlist in (waitlist_pos, created_at) order
    op.create_index(
        "ix_join_requests_waitlist",
        "join_requests",
        ["event_id", "waitlist_pos", "created_at"],
        postgresql_where=sa.text("status = 'waitlisted'"),
    )


def downgrade() -> None:
    op.drop_index("ix_join_requests_waitlist", table_name="join_requests")
    op.drop_constraint("check_position_only_while_waitlisted", "join_requests", type_="check")
    op.drop_column("join_requests", "waitlist_pos")
