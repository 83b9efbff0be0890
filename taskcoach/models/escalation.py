"""Escalation state model for overdue tasks."""

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer
from sqlalchemy.orm import relationship

from taskcoach.database import Base
from taskcoach.models.enums import EscalationLevel
from taskcoach.models.mixins import TimestampMixin


class TaskEscalation(Base, TimestampMixin):
    """Tracks how far an overdue, non-snoozable task has escalated."""

    __tablename__ = "task_escalations"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, unique=True, index=True)
    escalation_level = Column(
        Enum(
            EscalationLevel,
            name="escalationlevel",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=EscalationLevel.NORMAL,
        nullable=False,
    )
    notification_count = Column(Integer, default=0, nullable=False)
    last_notification_at = Column(DateTime(timezone=True), nullable=True)
    became_overdue_at = Column(DateTime(timezone=True), nullable=True)
    coaches_notified = Column(Boolean, default=False, nullable=False)
    coaches_notified_at = Column(DateTime(timezone=True), nullable=True)
    blocking_app = Column(Boolean, default=False, nullable=False)
    blocking_started_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    task = relationship("Task", back_populates="escalation")

    def reset(self) -> None:
        """Return to the normal level with all counters and flags cleared."""
        self.escalation_level = EscalationLevel.NORMAL
        self.notification_count = 0
        self.last_notification_at = None
        self.became_overdue_at = None
        self.coaches_notified = False
        self.coaches_notified_at = None
        self.blocking_app = False
        self.blocking_started_at = None
