"""Initial schema: mirrored events and join requests with hold expiry.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Events mirror: capacity and status come from the event service,
    # version is owned here and bumped on every request-set write
    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("host_id", sa.Uuid(), nullable=False),
        sa.Column("capacity_total", sa.Integer(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'published'")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("capacity_total >= 0", name="check_capacity_total_non_negative"),
        sa.CheckConstraint(
            "status IN ('draft', 'published', 'cancelled', 'completed')",
            name="check_event_status",
        ),
    )
    op.create_index("ix_events_host_id", "events", ["host_id"])

    op.create_table(
        "join_requests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("event_id", sa.Uuid(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("requester_id", sa.Uuid(), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("note", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("party_size >= 1", name="check_party_size_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'declined', 'waitlisted', 'expired', 'cancelled')",
            name="check_join_request_status",
        ),
        sa.CheckConstraint(
            "status = 'pending' OR hold_expires_at IS NULL",
            name="check_hold_only_while_pending",
        ),
    )
    op.create_index("ix_join_requests_requester_id", "join_requests", ["requester_id"])
    # Every admission decision loads one event's request set
    op.create_index("ix_join_requests_event_status", "join_requests", ["event_id", "status"])
    # The expiry sweep only ever looks at live holds
    op.create_index(
        "ix_join_requests_pending_holds",
        "join_requests",
        ["hold_expires_at"],
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_table("join_requests")
    op.drop_table("events")
