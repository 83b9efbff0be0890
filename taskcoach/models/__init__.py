"""SQLAlchemy models."""

from taskcoach.models.coaching_relationship import CoachingRelationship
from taskcoach.models.escalation import TaskEscalation
from taskcoach.models.list import List
from taskcoach.models.notification_log import NotificationLog
from taskcoach.models.push_subscription import PushSubscription
from taskcoach.models.reschedule_event import PREDEFINED_REASONS, RescheduleEvent
from taskcoach.models.task import Task
from taskcoach.models.user import User

__all__ = [
    "User",
    "List",
    "CoachingRelationship",
    "Task",
    "TaskEscalation",
    "RescheduleEvent",
    "PREDEFINED_REASONS",
    "NotificationLog",
    "PushSubscription",
]
