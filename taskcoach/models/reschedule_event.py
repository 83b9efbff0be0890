"""Reschedule event model: an append-only log of due date changes."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, event
from sqlalchemy.orm import relationship

from taskcoach.database import Base

PREDEFINED_REASONS = (
    "scope_changed",
    "priorities_shifted",
    "blocked",
    "underestimated",
    "unexpected_work",
    "not_ready",
)


class RescheduleEvent(Base):
    """One row per successful reschedule. Rows are never updated or deleted."""

    __tablename__ = "reschedule_events"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    previous_due_at = Column(DateTime(timezone=True), nullable=True)
    new_due_at = Column(DateTime(timezone=True), nullable=False)
    reason = Column(String(500), nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    # Relationships
    task = relationship("Task", back_populates="reschedule_events")
    user = relationship("User")

    @property
    def is_predefined_reason(self) -> bool:
        """Check if the reason is one of the predefined choices."""
        return self.reason in PREDEFINED_REASONS


@event.listens_for(RescheduleEvent, "before_update")
def _reject_update(mapper, connection, target):
    raise ValueError("Reschedule events are append-only")


@event.listens_for(RescheduleEvent, "before_delete")
def _reject_delete(mapper, connection, target):
    raise ValueError("Reschedule events are append-only")
