"""Tests for the upcoming-task reminder sweep."""

from datetime import timedelta

from taskcoach.models.enums import EscalationLevel, TaskStatus
from taskcoach.services.reminders import ReminderScheduler
from taskcoach.services.reschedule import TaskRescheduleService
from taskcoach.timeutils import as_utc
from conftest import NOW


class TestTasksNeedingReminder:
    """Tests for per-task reminder window selection."""

    def test_window_is_per_task(self, db, make_task, dispatcher):
        soon = make_task(title="Soon", due_at=NOW + timedelta(minutes=5))
        make_task(title="Later", due_at=NOW + timedelta(minutes=120))
        wide = make_task(
            title="Wide window",
            due_at=NOW + timedelta(minutes=90),
            notification_interval_minutes=120,
        )

        tasks = ReminderScheduler(db, dispatcher).tasks_needing_reminder(NOW)

        assert [task.id for task in tasks] == [soon.id, wide.id]

    def test_window_edges_are_inclusive(self, db, make_task, dispatcher):
        due_now = make_task(due_at=NOW)
        at_edge = make_task(due_at=NOW + timedelta(minutes=10))
        make_task(due_at=NOW + timedelta(minutes=10, seconds=1))

        tasks = ReminderScheduler(db, dispatcher).tasks_needing_reminder(NOW)

        assert {task.id for task in tasks} == {due_now.id, at_edge.id}

    def test_overdue_tasks_are_excluded(self, db, make_task, dispatcher):
        make_task(due_at=NOW - timedelta(minutes=1))

        assert ReminderScheduler(db, dispatcher).tasks_needing_reminder(NOW) == []

    def test_closed_tasks_are_excluded(self, db, make_task, dispatcher):
        make_task(status=TaskStatus.DONE, completed_at=NOW, due_at=NOW + timedelta(minutes=5))
        deleted = make_task(due_at=NOW + timedelta(minutes=5))
        deleted.soft_delete()
        db.commit()
        make_task(is_template=True, due_at=NOW + timedelta(minutes=5))

        assert ReminderScheduler(db, dispatcher).tasks_needing_reminder(NOW) == []

    def test_no_open_tasks(self, db, dispatcher):
        assert ReminderScheduler(db, dispatcher).tasks_needing_reminder(NOW) == []


class TestReminderSweep:
    """Tests for ReminderScheduler.run."""

    def test_reminds_once_per_window(self, db, make_task, dispatcher):
        task = make_task(due_at=NOW + timedelta(minutes=5))
        scheduler = ReminderScheduler(db, dispatcher)

        first = scheduler.run(NOW)
        second = scheduler.run(NOW + timedelta(minutes=1))

        assert first["sent"] == 1
        assert second["sent"] == 0
        assert second["already_sent"] == 1
        assert as_utc(task.reminder_sent_at) == NOW
        dispatcher.send_reminder.assert_called_once_with(task, EscalationLevel.NORMAL)

    def test_reschedule_opens_a_new_window(self, db, make_task, dispatcher):
        task = make_task(due_at=NOW + timedelta(minutes=5))
        scheduler = ReminderScheduler(db, dispatcher)
        scheduler.run(NOW)

        TaskRescheduleService(db).reschedule(
            task, NOW + timedelta(hours=2), "Blocked", now=NOW
        )
        assert task.reminder_sent_at is None

        later = NOW + timedelta(hours=2) - timedelta(minutes=5)
        stats = scheduler.run(later)

        assert stats["sent"] == 1
        assert dispatcher.send_reminder.call_count == 2

    def test_task_completed_between_sweeps_is_not_reminded(self, db, make_task, dispatcher):
        task = make_task(due_at=NOW + timedelta(minutes=5))
        task.status = TaskStatus.DONE
        task.completed_at = NOW
        db.commit()

        stats = ReminderScheduler(db, dispatcher).run(NOW)

        assert stats["eligible"] == 0
        dispatcher.send_reminder.assert_not_called()

    def test_dispatch_failure_keeps_sweep_going(self, db, make_task, dispatcher):
        first = make_task(due_at=NOW + timedelta(minutes=3))
        make_task(due_at=NOW + timedelta(minutes=4))
        dispatcher.send_reminder.side_effect = [RuntimeError("push gateway down"), None]

        stats = ReminderScheduler(db, dispatcher).run(NOW)

        assert stats["sent"] == 1
        assert stats["failed"] == 1
        assert dispatcher.send_reminder.call_count == 2
        assert first.reminder_sent_at is None

    def test_undelivered_reminder_is_retried(self, db, make_task, dispatcher):
        task = make_task(due_at=NOW + timedelta(minutes=5))
        dispatcher.send_reminder.side_effect = [RuntimeError("push gateway down"), None]
        scheduler = ReminderScheduler(db, dispatcher)

        scheduler.run(NOW)
        stats = scheduler.run(NOW + timedelta(minutes=1))

        assert stats["sent"] == 1
        assert as_utc(task.reminder_sent_at) == NOW + timedelta(minutes=1)
