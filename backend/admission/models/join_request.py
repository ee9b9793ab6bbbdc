"""
Join request rows.

Key design decisions:
- Rows are never deleted; terminal statuses are the audit trail
- hold_expires_at is only non-null while status = 'pending'
- waitlist_pos is only non-null while status = 'waitlisted'
- Partial index on hold_expires_at keeps the expiry sweep cheap
"""

import uuid

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Index, Integer, String, Uuid, text

from admission.db.base import Base, TimestampMixin
from admission.db.types import UTCDateTime


class JoinRequestRow(Base, TimestampMixin):
    __tablename__ = "join_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    requester_id = Column(Uuid, nullable=False, index=True)
    party_size = Column(Integer, nullable=False)
    note = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    hold_expires_at = Column(UTCDateTime(), nullable=True)
    # Lower promotes first; defaults to the waitlisting time, hosts may reorder
    waitlist_pos = Column(Float, nullable=True)

    __table_args__ = (
        CheckConstraint("party_size >= 1", name="check_party_size_positive"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'declined', 'waitlisted', 'expired', 'cancelled')",
            name="check_join_request_status",
        ),
        CheckConstraint(
            "status = 'pending' OR hold_expires_at IS NULL",
            name="check_hold_only_while_pending",
        ),
        CheckConstraint(
            "status = 'waitlisted' OR waitlist_pos IS NULL",
            name="check_position_only_while_waitlisted",
        ),
        Index("ix_join_requests_event_status", "event_id", "status"),
        Index(
            "ix_join_requests_pending_holds",
            "hold_expires_at",
            postgresql_where=text("status = 'pending'"),
        ),
        Index(
            "ix_join_requests_waitlist",
            "event_id",
            "waitlist_pos",
            "created_at",
            postgresql_where=text("status = 'waitlisted'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<JoinRequestRow(id={self.id}, event={self.event_id}, status={self.status})>"
