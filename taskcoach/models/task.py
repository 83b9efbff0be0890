"""Task model."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from taskcoach.database import Base
from taskcoach.models.enums import RecurrencePattern, TaskPriority, TaskStatus
from taskcoach.models.mixins import SoftDeleteMixin, TimestampMixin
from taskcoach.timeutils import as_utc


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


class Task(Base, TimestampMixin, SoftDeleteMixin):
    """A task, a recurring template, or an instance generated from one."""

    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint(
            "recurring_template_id", "recurrence_date", name="uq_template_recurrence_date"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    list_id = Column(Integer, ForeignKey("lists.id"), nullable=False, index=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=True, index=True)
    status = Column(
        Enum(TaskStatus, name="taskstatus", values_callable=_enum_values),
        default=TaskStatus.PENDING,
        nullable=False,
        index=True,
    )
    priority = Column(
        Enum(TaskPriority, name="taskpriority", values_callable=_enum_values),
        default=TaskPriority.MEDIUM,
        nullable=False,
    )

    # Accountability
    can_be_snoozed = Column(Boolean, default=True, nullable=False)
    notification_interval_minutes = Column(Integer, default=10, nullable=False)
    requires_explanation_if_missed = Column(Boolean, default=False, nullable=False)
    missed_reason = Column(String(1000), nullable=True)
    missed_reason_submitted_at = Column(DateTime(timezone=True), nullable=True)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)

    # Subtasks
    parent_task_id = Column(Integer, ForeignKey("tasks.id"), nullable=True, index=True)

    # Recurrence
    is_template = Column(Boolean, default=False, nullable=False, index=True)
    recurring_template_id = Column(Integer, ForeignKey("tasks.id"), nullable=True, index=True)
    recurrence_pattern = Column(
        Enum(RecurrencePattern, name="recurrencepattern", values_callable=_enum_values),
        nullable=True,
    )
    recurrence_interval = Column(Integer, default=1, nullable=False)
    recurrence_days = Column(JSON, nullable=True)  # weekday ints, 0=Sunday..6=Saturday
    recurrence_time = Column(Time, nullable=True)
    recurrence_end_date = Column(Date, nullable=True)
    recurrence_date = Column(Date, nullable=True)  # local calendar date of an instance

    # Location
    location_based = Column(Boolean, default=False, nullable=False)
    location_latitude = Column(Float, nullable=True)
    location_longitude = Column(Float, nullable=True)
    location_radius_meters = Column(Integer, nullable=True)
    location_name = Column(String(255), nullable=True)
    notify_on_arrival = Column(Boolean, default=False, nullable=False)
    notify_on_departure = Column(Boolean, default=False, nullable=False)

    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    list = relationship("List", back_populates="tasks")
    creator = relationship("User", foreign_keys=[creator_id])
    parent_task = relationship(
        "Task", remote_side=[id], foreign_keys=[parent_task_id], back_populates="subtasks"
    )
    subtasks = relationship("Task", foreign_keys=[parent_task_id], back_populates="parent_task")
    recurring_template = relationship(
        "Task",
        remote_side=[id],
        foreign_keys=[recurring_template_id],
        back_populates="recurring_instances",
    )
    recurring_instances = relationship(
        "Task", foreign_keys=[recurring_template_id], back_populates="recurring_template"
    )
    escalation = relationship(
        "TaskEscalation", back_populates="task", uselist=False, cascade="all, delete-orphan"
    )
    reschedule_events = relationship("RescheduleEvent", back_populates="task")

    @property
    def is_done(self) -> bool:
        """Check if the task has been completed."""
        return self.status == TaskStatus.DONE

    @property
    def is_active(self) -> bool:
        """Check if the task is still open (pending and not deleted)."""
        return self.status == TaskStatus.PENDING and self.deleted_at is None

    def is_overdue(self, now: datetime) -> bool:
        """Check if the task is open and past its due time."""
        return self.is_active and self.due_at is not None and as_utc(self.due_at) < now

    def minutes_overdue(self, now: datetime) -> float:
        """Minutes elapsed since the due time, zero when not yet due."""
        if self.due_at is None:
            return 0.0
        return max((now - as_utc(self.due_at)).total_seconds() / 60.0, 0.0)

    @property
    def owner(self):
        """The owner of the task's list, who receives reminders."""
        return self.list.owner

    @property
    def created_by_coach(self) -> bool:
        """Check if the task was created by a coach."""
        return self.creator is not None and self.creator.is_coach

    def complete(self, now: datetime) -> None:
        self.status = TaskStatus.DONE
        self.completed_at = now

    def soft_delete(self, now: datetime | None = None) -> None:
        """Soft delete the task and drop its escalation state."""
        super().soft_delete(now)
        self.status = TaskStatus.DELETED
        self.escalation = None
