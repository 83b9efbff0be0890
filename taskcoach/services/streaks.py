"""Daily completion streaks."""

import logging
from datetime import date, datetime, timedelta
from enum import StrEnum

from sqlalchemy.orm import Session

from taskcoach.config import get_settings
from taskcoach.models import List, Task, User
from taskcoach.models.enums import TaskStatus
from taskcoach.timeutils import as_utc, day_bounds, local_date, resolve_zone

logger = logging.getLogger(__name__)


class DayOutcome(StrEnum):
    """How a user did on one calendar day."""

    ALL_COMPLETED = "all_completed"
    INCOMPLETE = "incomplete"
    NO_TASKS = "no_tasks"


class StreakCalculator:
    """Rolls a user's completion streak forward one calendar day at a time.

    Days are evaluated in the user's timezone. Closed days since the last
    evaluated day are walked in order; today counts early only once every
    task due today is done.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.catchup_days = get_settings().streak_catchup_days

    def run(self, now: datetime) -> dict:
        """Update every user's streak, isolating failures per user."""
        stats = {"users": 0, "failed": 0}
        user_ids = [user_id for (user_id,) in self.db.query(User.id).order_by(User.id).all()]

        for user_id in user_ids:
            try:
                user = self.db.get(User, user_id)
                if user is None:
                    continue
                self.update_streak(user, now)
                stats["users"] += 1
            except Exception as e:
                logger.error(f"Error updating streak for user {user_id}: {e}", exc_info=True)
                self.db.rollback()
                stats["failed"] += 1

        logger.info(f"Streak update complete: {stats}")
        return stats

    def update_streak(self, user: User, now: datetime) -> User:
        zone = resolve_zone(user.timezone)
        today = local_date(now, zone)
        yesterday = today - timedelta(days=1)

        last = user.last_streak_date
        if last is not None and last <= yesterday:
            # A day credited before it closed is judged again once it has
            if self.check_day(user, last, now) == DayOutcome.INCOMPLETE:
                user.current_streak = 0

        if user.last_streak_date is None:
            day = yesterday
        else:
            day = user.last_streak_date + timedelta(days=1)
        day = max(day, yesterday - timedelta(days=self.catchup_days - 1))

        while day <= yesterday:
            self._apply(user, day, self.check_day(user, day, now))
            day += timedelta(days=1)

        if user.last_streak_date is None or user.last_streak_date < today:
            if self.check_day(user, today, now) == DayOutcome.ALL_COMPLETED:
                self._apply(user, today, DayOutcome.ALL_COMPLETED)

        self.db.commit()
        logger.debug(
            f"User {user.id} streak={user.current_streak} last_streak_date={user.last_streak_date}"
        )
        return user

    def check_day(self, user: User, day: date, now: datetime) -> DayOutcome:
        """Outcome for ``day`` in the user's timezone."""
        start, end = day_bounds(day, resolve_zone(user.timezone))
        rows = (
            self.db.query(Task.status, Task.completed_at)
            .join(List, Task.list_id == List.id)
            .filter(
                List.owner_id == user.id,
                Task.parent_task_id.is_(None),
                Task.is_template.is_(False),
                Task.not_deleted(),
                Task.status != TaskStatus.DELETED,
                Task.due_at >= start,
                Task.due_at < end,
            )
            .all()
        )
        if not rows:
            return DayOutcome.NO_TASKS

        deadline = min(end, now)
        for status, completed_at in rows:
            completed_at = as_utc(completed_at)
            if status != TaskStatus.DONE or completed_at is None or completed_at > deadline:
                return DayOutcome.INCOMPLETE
        return DayOutcome.ALL_COMPLETED

    @staticmethod
    def _apply(user: User, day: date, outcome: DayOutcome) -> None:
        if outcome == DayOutcome.ALL_COMPLETED:
            last = user.last_streak_date
            if last is None or last == day - timedelta(days=1):
                user.current_streak = (user.current_streak or 0) + 1
            else:
                # A broken day sits between ``last`` and ``day``
                user.current_streak = 1
            user.last_streak_date = day
            user.longest_streak = max(user.longest_streak or 0, user.current_streak)
        elif outcome == DayOutcome.NO_TASKS:
            user.last_streak_date = day
        else:
            user.current_streak = 0
