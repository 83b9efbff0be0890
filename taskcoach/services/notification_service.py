"""Notification dispatch for reminders, coach alerts and app blocking."""

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from taskcoach.config import get_settings
from taskcoach.models import CoachingRelationship, NotificationLog, PushSubscription, Task, User
from taskcoach.models.enums import (
    CoachingStatus,
    DeliveryMethod,
    EscalationLevel,
    NotificationType,
)
from taskcoach.timeutils import as_utc

logger = logging.getLogger(__name__)

REMINDER_TITLES = {
    EscalationLevel.NORMAL: "⏰ Task Reminder",
    EscalationLevel.WARNING: "⚠️ Task Reminder",
    EscalationLevel.CRITICAL: "🚨 Task Reminder",
    EscalationLevel.BLOCKING: "🛑 Task Reminder",
}

# Only announce generated instances that are due this soon
RECURRING_NOTICE_WINDOW = timedelta(hours=24)


def dispatch_safely(send: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
    """Call a dispatcher method, logging and swallowing any failure.

    Notification delivery is fire-and-forget: the next sweep re-evaluates
    state, so a failed send is never retried in place.
    """
    try:
        send(*args, **kwargs)
        return True
    except Exception as e:
        name = getattr(send, "__name__", send)
        logger.warning(f"Notification dispatch {name} failed: {e}", exc_info=True)
        return False


class NotificationDispatcher:
    """Sends task notifications via web push and SMS and logs each one."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()
        self._twilio_client = None
        self._webpush_available = False
        self._init_twilio()
        self._init_webpush()

    def _init_twilio(self) -> None:
        """Initialize Twilio client if credentials are available."""
        if (
            self.settings.twilio_account_sid
            and self.settings.twilio_auth_token
            and self.settings.twilio_phone_number
        ):
            from twilio.rest import Client

            self._twilio_client = Client(
                self.settings.twilio_account_sid,
                self.settings.twilio_auth_token,
            )
            logger.info("Twilio client initialized")
        else:
            logger.debug("Twilio credentials not configured, SMS disabled")

    def _init_webpush(self) -> None:
        """Check if web push credentials are configured."""
        if (
            self.settings.vapid_public_key
            and self.settings.vapid_private_key
            and self.settings.vapid_email
        ):
            self._webpush_available = True
        else:
            logger.debug("VAPID credentials not configured, push disabled")

    # ------------------------------------------------------------------
    # Task notifications
    # ------------------------------------------------------------------

    def send_reminder(self, task: Task, level: EscalationLevel) -> bool:
        """Remind the task owner, more insistently at higher levels."""
        owner = task.owner
        delivered = self.send_push(
            user_id=owner.id,
            title=REMINDER_TITLES.get(level, REMINDER_TITLES[EscalationLevel.NORMAL]),
            body=task.title,
            data={"type": "reminder", "task_id": task.id, "escalation_level": level.value},
        )
        self._log(
            owner,
            task,
            NotificationType.TASK_REMINDER,
            f"Reminder ({level.value}): {task.title}",
            delivered,
            DeliveryMethod.PUSH,
            {"escalation_level": level.value},
        )
        return delivered

    def alert_coaches_of_overdue(self, task: Task) -> int:
        """Alert every opted-in coach that the task has gone critical.

        Returns the number of coaches reached on at least one channel.
        """
        owner = task.owner
        now = datetime.now(UTC)
        minutes = int(task.minutes_overdue(now))
        level = task.escalation.escalation_level if task.escalation else EscalationLevel.CRITICAL
        body = f"{owner.name or owner.email}'s task '{task.title}' is {minutes} min overdue"

        reached = 0
        for coach in self.coaches_for(task, notify_on="missed_deadline"):
            pushed = self.send_push(
                user_id=coach.id,
                title="🚨 Client Task Critical",
                body=body,
                data={
                    "type": "coach_alert_critical",
                    "task_id": task.id,
                    "client_id": owner.id,
                    "minutes_overdue": minutes,
                    "escalation_level": level.value,
                },
            )
            self._log(
                coach,
                task,
                NotificationType.COACH_ALERT_CRITICAL,
                "Critical overdue alert sent to coach",
                pushed,
                DeliveryMethod.PUSH,
            )

            texted = False
            if coach.phone_number:
                texted = self.send_sms(coach.phone_number, body)
                self._log(
                    coach,
                    task,
                    NotificationType.COACH_ALERT_CRITICAL,
                    body,
                    texted,
                    DeliveryMethod.SMS,
                )

            if pushed or texted:
                reached += 1

        logger.info(f"Coach alert for task {task.id} reached {reached} coach(es)")
        return reached

    def app_blocking_started(self, task: Task) -> bool:
        """Tell the owner the app is blocked until the task is done."""
        owner = task.owner
        delivered = self.send_push(
            user_id=owner.id,
            title="🛑 Critical Task Overdue",
            body=f"Complete '{task.title}' to continue using the app",
            data={"type": "app_blocking", "task_id": task.id, "blocking": True},
        )
        self._log(
            owner,
            task,
            NotificationType.APP_BLOCKING,
            "App blocking started for critical task",
            delivered,
            DeliveryMethod.PUSH,
        )
        return delivered

    def recurring_task_generated(self, instance: Task) -> bool:
        """Announce a generated instance to its owner when it is due soon."""
        owner = instance.owner
        due_at = as_utc(instance.due_at)
        delivered = False
        if due_at is not None and due_at < datetime.now(UTC) + RECURRING_NOTICE_WINDOW:
            delivered = self.send_push(
                user_id=owner.id,
                title="🔄 Recurring Task",
                body=instance.title,
                data={
                    "type": "recurring_task_generated",
                    "task_id": instance.id,
                    "due_at": due_at.isoformat(),
                },
            )
        self._log(
            owner,
            instance,
            NotificationType.RECURRING_TASK_GENERATED,
            "New recurring task instance created",
            delivered,
            DeliveryMethod.PUSH,
        )
        return delivered

    def task_completed(self, task: Task) -> int:
        """Tell opted-in coaches that a coach-assigned task was completed."""
        if not task.created_by_coach:
            return 0

        owner = task.owner
        reached = 0
        for coach in self.coaches_for(task, notify_on="completion"):
            delivered = self.send_push(
                user_id=coach.id,
                title="✅ Task Completed",
                body=f"{owner.name or owner.email} completed: {task.title}",
                data={"type": "task_completed", "task_id": task.id, "client_id": owner.id},
            )
            self._log(
                coach,
                task,
                NotificationType.TASK_COMPLETED,
                f"{owner.name or owner.email} completed task",
                delivered,
                DeliveryMethod.PUSH,
            )
            reached += int(delivered)
        return reached

    # ------------------------------------------------------------------
    # Recipients
    # ------------------------------------------------------------------

    def coaches_for(self, task: Task, notify_on: str) -> list[User]:
        """Active coaches of the task owner who opted into this event."""
        flag = {
            "missed_deadline": CoachingRelationship.notify_on_missed_deadline,
            "completion": CoachingRelationship.notify_on_completion,
        }[notify_on]

        return (
            self.db.query(User)
            .join(CoachingRelationship, CoachingRelationship.coach_id == User.id)
            .filter(
                CoachingRelationship.client_id == task.owner.id,
                CoachingRelationship.status == CoachingStatus.ACTIVE,
                flag.is_(True),
            )
            .order_by(User.id)
            .all()
        )

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def send_push(self, user_id: int, title: str, body: str, data: dict | None = None) -> bool:
        """
        Send push notification to all user's subscribed devices.

        Returns True if at least one notification was sent successfully.
        """
        if not self._webpush_available:
            logger.debug("Push notifications not available")
            return False

        from pywebpush import WebPushException, webpush

        subscriptions = (
            self.db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()
        )

        if not subscriptions:
            logger.info(f"No push subscriptions for user {user_id}")
            return False

        payload = {"title": title, "body": body, **(data or {})}

        success_count = 0
        for sub in subscriptions:
            try:
                webpush(
                    subscription_info=sub.subscription_info,
                    data=json.dumps(payload),
                    vapid_private_key=self.settings.vapid_private_key,
                    vapid_claims={
                        "sub": f"mailto:{self.settings.vapid_email}",
                    },
                )
                success_count += 1
            except WebPushException as e:
                logger.error(f"Push failed for subscription {sub.id}: {e}")
                # If subscription is invalid (410 Gone), delete it
                if e.response is not None and e.response.status_code == 410:
                    logger.info(f"Removing expired subscription {sub.id}")
                    self.db.delete(sub)

        logger.info(f"Sent push to {success_count}/{len(subscriptions)} devices for user {user_id}")
        return success_count > 0

    def send_sms(self, phone_number: str, message: str) -> bool:
        """
        Send SMS via Twilio.

        Returns True if the SMS was sent successfully.
        """
        if not self.settings.twilio_sms_enabled:
            logger.info("SMS disabled via TWILIO_SMS_ENABLED setting")
            return False

        if not self._twilio_client:
            logger.debug("Twilio not available, cannot send SMS")
            return False

        try:
            sms = self._twilio_client.messages.create(
                body=message,
                from_=self.settings.twilio_phone_number,
                to=phone_number,
            )
            logger.info(f"SMS sent to {phone_number}, SID: {sms.sid}")
            return True
        except Exception as e:
            logger.error(f"Failed to send SMS to {phone_number}: {e}")
            return False

    def _log(
        self,
        user: User,
        task: Task | None,
        notification_type: NotificationType,
        message: str,
        delivered: bool,
        delivery_method: DeliveryMethod | None,
        payload: dict | None = None,
    ) -> None:
        self.db.add(
            NotificationLog(
                user_id=user.id,
                task_id=task.id if task else None,
                notification_type=notification_type,
                message=message[:1000],
                delivered=delivered,
                delivery_method=delivery_method,
                payload=payload,
            )
        )
        self.db.commit()
