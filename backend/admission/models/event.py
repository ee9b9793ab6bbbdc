"""
Event row as seen by the admission engine.

The event lifecycle (draft/publish/cancel/complete) is managed elsewhere;
this service reads capacity, visibility and status and owns one column:

- `version` is the fingerprint of the event's request set. Every write to
  join_requests for this event bumps it with a compare-and-set, which is what
  makes capacity decisions safe under concurrent requests.
"""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String, Uuid

from admission.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    host_id = Column(Uuid, nullable=False, index=True)
    capacity_total = Column(Integer, nullable=False)
    is_public = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default="published")

    # Optimistic locking version counter for the request set
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("capacity_total >= 0", name="check_capacity_total_non_negative"),
        CheckConstraint(
            "status IN ('draft', 'published', 'cancelled', 'completed')",
            name="check_event_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, capacity={self.capacity_total}, version={self.version})>"
