"""Recurring task generation.

Templates (``is_template=True``) carry the recurrence rule; instances are
ordinary tasks linked back through ``recurring_template_id``. At most one
instance exists per template and calendar date: the sweep skips dates that
already have one, and the ``(recurring_template_id, recurrence_date)``
unique constraint catches overlapping sweeps.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskcoach.config import get_settings
from taskcoach.errors import NotFoundError
from taskcoach.models import Task
from taskcoach.models.enums import RecurrencePattern, TaskStatus
from taskcoach.services.notification_service import NotificationDispatcher, dispatch_safely
from taskcoach.timeutils import as_utc, at_local_time, local_date, resolve_zone

logger = logging.getLogger(__name__)

# Fields copied verbatim from a template onto each instance
INSTANCE_FIELDS = (
    "list_id",
    "creator_id",
    "title",
    "description",
    "priority",
    "can_be_snoozed",
    "notification_interval_minutes",
    "requires_explanation_if_missed",
    "location_based",
    "location_latitude",
    "location_longitude",
    "location_radius_meters",
    "location_name",
    "notify_on_arrival",
    "notify_on_departure",
)

# Upper bound when rolling a stale template forward to the present
MAX_ROLL_FORWARD_STEPS = 1000


def weekday_number(day: date) -> int:
    """Weekday as stored in ``recurrence_days``: 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def add_months(day: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def advance_date(day: date, template: Task) -> date:
    """Next candidate date after ``day`` according to the template's pattern."""
    interval = max(template.recurrence_interval or 1, 1)
    pattern = template.recurrence_pattern

    if pattern in (RecurrencePattern.DAILY, RecurrencePattern.CUSTOM):
        return day + timedelta(days=interval)

    if pattern == RecurrencePattern.WEEKLY:
        next_day = day + timedelta(weeks=interval)
        weekdays = set(template.recurrence_days or [])
        if weekdays:
            # Cyclic forward search; at most six extra days
            for _ in range(7):
                if weekday_number(next_day) in weekdays:
                    break
                next_day += timedelta(days=1)
        return next_day

    if pattern == RecurrencePattern.MONTHLY:
        return add_months(day, interval)

    return day + timedelta(days=1)


class RecurrenceEngine:
    """Materializes upcoming instances of recurring templates."""

    def __init__(self, db: Session, dispatcher: NotificationDispatcher | None = None) -> None:
        self.db = db
        self.dispatcher = dispatcher or NotificationDispatcher(db)
        self.lookahead_days = get_settings().recurrence_lookahead_days

    def template_ids(self) -> list[int]:
        rows = (
            self.db.query(Task.id)
            .filter(Task.is_template.is_(True), Task.not_deleted())
            .order_by(Task.id)
            .all()
        )
        return [template_id for (template_id,) in rows]

    def run(self, now: datetime) -> dict:
        """Generate instances for every template, isolating failures per template."""
        stats = {"templates": 0, "generated": 0, "skipped": 0, "failed": 0}

        template_ids = self.template_ids()
        logger.info(f"Found {len(template_ids)} recurring templates")

        for template_id in template_ids:
            try:
                created = self.generate_for_template(template_id, now)
            except NotFoundError:
                logger.warning(f"Template {template_id} vanished, skipping")
                self.db.rollback()
                stats["skipped"] += 1
                continue
            except Exception as e:
                logger.error(f"Error processing template {template_id}: {e}", exc_info=True)
                self.db.rollback()
                stats["failed"] += 1
                continue

            stats["templates"] += 1
            stats["generated"] += len(created)

        logger.info(f"Recurring task generation complete: {stats}")
        return stats

    def generate_for_template(self, template_id: int, now: datetime) -> list[Task]:
        """Create the missing instances within the look-ahead horizon."""
        template = self.db.get(Task, template_id)
        if template is None or not template.is_template or template.deleted_at is not None:
            raise NotFoundError(f"Template {template_id} not found")

        zone = self._zone_for(template)
        candidate = self.calculate_next_due_date(template, now)
        if candidate is None:
            return []

        horizon = local_date(now, zone) + timedelta(days=self.lookahead_days)
        existing = self._existing_dates(template)

        created = []
        while candidate <= horizon:
            if template.recurrence_end_date and candidate > template.recurrence_end_date:
                logger.info(f"Template {template.id} has reached its end date")
                break
            if candidate not in existing:
                instance = self._create_instance(template, candidate)
                if instance is not None:
                    created.append(instance)
                existing.add(candidate)
            candidate = advance_date(candidate, template)

        if created:
            logger.info(f"Generated {len(created)} instances for template {template.id}")
        return created

    def calculate_next_due_date(self, template: Task, now: datetime) -> date | None:
        """First calendar date the template still needs an instance for.

        Continues from the newest existing instance, or starts at the
        template's own due date (today when it has none). Dates already in the
        past are rolled forward, never backfilled.
        """
        zone = self._zone_for(template)
        today = local_date(now, zone)
        newest = self._newest_instance_date(template)

        if newest is not None:
            candidate = advance_date(newest, template)
        else:
            anchor = template.due_at or now
            candidate = local_date(anchor, zone)
            weekdays = set(template.recurrence_days or [])
            if template.recurrence_pattern == RecurrencePattern.WEEKLY and weekdays:
                for _ in range(7):
                    if weekday_number(candidate) in weekdays:
                        break
                    candidate += timedelta(days=1)

        for _ in range(MAX_ROLL_FORWARD_STEPS):
            if candidate > today:
                break
            if candidate == today and self._due_moment(template, candidate, zone) > now:
                break
            candidate = advance_date(candidate, template)
        else:
            logger.warning(f"Template {template.id} could not be rolled forward to {today}")
            return None

        return candidate

    def generate_next_instance(
        self, template: Task, now: datetime, after: datetime | None = None
    ) -> Task | None:
        """Create the single instance that follows ``after``.

        ``after`` is usually the due time of the instance that was just
        completed; without it the newest existing instance is used. Returns
        None when that instance already exists or the template has ended.
        """
        zone = self._zone_for(template)
        if after is not None:
            candidate = advance_date(local_date(after, zone), template)
        else:
            candidate = self.calculate_next_due_date(template, now)
            if candidate is None:
                return None

        if template.recurrence_end_date and candidate > template.recurrence_end_date:
            logger.info(f"Template {template.id} has reached its end date")
            return None
        if candidate in self._existing_dates(template):
            return None

        return self._create_instance(template, candidate)

    def _create_instance(self, template: Task, day: date) -> Task | None:
        zone = self._zone_for(template)
        instance = Task(
            **{field: getattr(template, field) for field in INSTANCE_FIELDS},
            due_at=self._due_moment(template, day, zone),
            status=TaskStatus.PENDING,
            is_template=False,
            recurring_template_id=template.id,
            recurrence_date=day,
        )
        self.db.add(instance)
        try:
            self.db.commit()
        except IntegrityError:
            logger.info(f"Instance of template {template.id} on {day} already exists")
            self.db.rollback()
            return None

        logger.info(
            f"Created instance {instance.id} for template {template.id}, due {instance.due_at}"
        )
        dispatch_safely(self.dispatcher.recurring_task_generated, instance)
        return instance

    def _due_moment(self, template: Task, day: date, zone) -> datetime:
        fallback = as_utc(template.due_at).astimezone(zone).time() if template.due_at else time(9)
        return at_local_time(day, template.recurrence_time, zone, fallback)

    def _existing_dates(self, template: Task) -> set[date]:
        zone = self._zone_for(template)
        rows = (
            self.db.query(Task.recurrence_date, Task.due_at)
            .filter(Task.recurring_template_id == template.id)
            .all()
        )
        dates = set()
        for recurrence_date, due_at in rows:
            if recurrence_date is not None:
                dates.add(recurrence_date)
            elif due_at is not None:
                dates.add(local_date(due_at, zone))
        return dates

    def _newest_instance_date(self, template: Task) -> date | None:
        dates = self._existing_dates(template)
        return max(dates) if dates else None

    def _zone_for(self, template: Task):
        return resolve_zone(template.owner.timezone)
