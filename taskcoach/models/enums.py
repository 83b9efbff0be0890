"""Enums for model fields."""

from enum import Enum


class TaskStatus(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    DONE = "done"
    DELETED = "deleted"


class TaskPriority(str, Enum):
    """Task priority, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class EscalationLevel(str, Enum):
    """Severity tier of an overdue task, lowest first."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    BLOCKING = "blocking"

    @property
    def rank(self) -> int:
        """Position in the escalation order (normal is 0)."""
        return _ESCALATION_ORDER.index(self)

    def is_above(self, other: "EscalationLevel") -> bool:
        """Check if this level is more severe than ``other``."""
        return self.rank > other.rank


_ESCALATION_ORDER = [
    EscalationLevel.NORMAL,
    EscalationLevel.WARNING,
    EscalationLevel.CRITICAL,
    EscalationLevel.BLOCKING,
]


class RecurrencePattern(str, Enum):
    """How a recurring template advances between instances."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class UserRole(str, Enum):
    """Account role."""

    CLIENT = "client"
    COACH = "coach"


class CoachingStatus(str, Enum):
    """State of a coach/client relationship."""

    PENDING = "pending"
    ACTIVE = "active"
    DECLINED = "declined"


class NotificationType(str, Enum):
    """Kinds of notification written to the notification log."""

    TASK_REMINDER = "task_reminder"
    COACH_ALERT_CRITICAL = "coach_alert_critical"
    APP_BLOCKING = "app_blocking"
    RECURRING_TASK_GENERATED = "recurring_task_generated"
    TASK_COMPLETED = "task_completed"


class DeliveryMethod(str, Enum):
    """Channel a notification went out on."""

    PUSH = "push"
    SMS = "sms"
