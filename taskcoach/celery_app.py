"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from taskcoach.config import get_settings

settings = get_settings()

app = Celery(
    "taskcoach",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "taskcoach.tasks.escalation",
        "taskcoach.tasks.reminders",
        "taskcoach.tasks.recurrence",
        "taskcoach.tasks.streaks",
        "taskcoach.tasks.maintenance",
    ],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,  # 4 minutes soft limit
)

# Each sweep re-reads live state, so a missed or overlapping tick is harmless
app.conf.beat_schedule = {
    "process-escalations": {
        "task": "taskcoach.tasks.escalation.process_escalations",
        "schedule": float(settings.escalation_interval_seconds),
    },
    "send-task-reminders": {
        "task": "taskcoach.tasks.reminders.send_task_reminders",
        "schedule": float(settings.reminder_interval_seconds),
    },
    "generate-recurring-tasks": {
        "task": "taskcoach.tasks.recurrence.generate_recurring_tasks",
        "schedule": float(settings.recurrence_interval_seconds),
    },
    "update-streaks": {
        "task": "taskcoach.tasks.streaks.update_streaks",
        "schedule": crontab(hour=settings.streak_hour_utc, minute=0),
    },
    "cleanup-old-records": {
        "task": "taskcoach.tasks.maintenance.cleanup_old_records",
        "schedule": crontab(hour=settings.cleanup_hour_utc, minute=30),
    },
}
