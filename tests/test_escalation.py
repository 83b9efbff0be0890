"""Tests for the overdue escalation sweep."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from taskcoach.errors import NotFoundError
from taskcoach.models import TaskEscalation
from taskcoach.models.enums import EscalationLevel, TaskPriority, TaskStatus
from taskcoach.services.escalation import (
    ESCALATION_THRESHOLDS,
    EscalationEngine,
    escalation_level_for,
)
from taskcoach.timeutils import as_utc
from conftest import NOW


class TestEscalationLevels:
    """Tests for the priority/overdue threshold table."""

    @pytest.mark.parametrize(
        "priority,minutes,expected",
        [
            (TaskPriority.URGENT, 30, EscalationLevel.NORMAL),
            (TaskPriority.URGENT, 31, EscalationLevel.WARNING),
            (TaskPriority.URGENT, 61, EscalationLevel.CRITICAL),
            (TaskPriority.URGENT, 130, EscalationLevel.BLOCKING),
            (TaskPriority.HIGH, 60, EscalationLevel.NORMAL),
            (TaskPriority.HIGH, 90, EscalationLevel.WARNING),
            (TaskPriority.HIGH, 121, EscalationLevel.CRITICAL),
            (TaskPriority.HIGH, 241, EscalationLevel.BLOCKING),
            (TaskPriority.MEDIUM, 120, EscalationLevel.NORMAL),
            (TaskPriority.MEDIUM, 121, EscalationLevel.WARNING),
            (TaskPriority.MEDIUM, 1000, EscalationLevel.CRITICAL),
            (TaskPriority.LOW, 241, EscalationLevel.CRITICAL),
        ],
    )
    def test_thresholds_are_strict(self, priority, minutes, expected):
        assert escalation_level_for(priority, minutes) == expected

    def test_every_priority_has_thresholds(self):
        assert set(ESCALATION_THRESHOLDS) == set(TaskPriority)

    def test_only_urgent_and_high_reach_blocking(self):
        for priority in (TaskPriority.MEDIUM, TaskPriority.LOW):
            assert escalation_level_for(priority, 10_000) == EscalationLevel.CRITICAL

    def test_level_ordering(self):
        assert EscalationLevel.BLOCKING.is_above(EscalationLevel.CRITICAL)
        assert EscalationLevel.WARNING.is_above(EscalationLevel.NORMAL)
        assert not EscalationLevel.WARNING.is_above(EscalationLevel.WARNING)


class TestEscalationSweep:
    """Tests for EscalationEngine.run."""

    def test_urgent_task_goes_straight_to_blocking(self, db, make_task, coach, dispatcher):
        task = make_task(priority=TaskPriority.URGENT, due_at=NOW - timedelta(minutes=130))

        stats = EscalationEngine(db, dispatcher).run(NOW)

        escalation = task.escalation
        assert escalation.escalation_level == EscalationLevel.BLOCKING
        assert escalation.notification_count == 1
        assert escalation.coaches_notified is True
        assert escalation.blocking_app is True
        assert as_utc(escalation.became_overdue_at) == NOW
        assert as_utc(escalation.blocking_started_at) == NOW

        dispatcher.send_reminder.assert_called_once_with(task, EscalationLevel.BLOCKING)
        dispatcher.app_blocking_started.assert_called_once_with(task)
        dispatcher.alert_coaches_of_overdue.assert_called_once_with(task)
        assert stats["processed"] == 1
        assert stats["blocking_started"] == 1
        assert stats["coach_alerts"] == 1

    def test_respects_notification_interval(self, db, make_task, dispatcher):
        task = make_task(
            priority=TaskPriority.URGENT,
            due_at=NOW - timedelta(minutes=40),
            notification_interval_minutes=10,
        )
        engine = EscalationEngine(db, dispatcher)

        engine.run(NOW)
        engine.run(NOW + timedelta(minutes=5))
        assert task.escalation.notification_count == 1

        engine.run(NOW + timedelta(minutes=10))
        assert task.escalation.notification_count == 2
        assert as_utc(task.escalation.last_notification_at) == NOW + timedelta(minutes=10)
        assert dispatcher.send_reminder.call_count == 2

    def test_level_never_drops_while_overdue(self, db, make_task, dispatcher):
        task = make_task(priority=TaskPriority.HIGH, due_at=NOW - timedelta(minutes=130))
        engine = EscalationEngine(db, dispatcher)
        engine.run(NOW)
        assert task.escalation.escalation_level == EscalationLevel.CRITICAL

        # Moving the deadline closer lowers the target level, not the stored one
        task.due_at = NOW
        db.commit()
        engine.run(NOW + timedelta(minutes=15))

        assert task.escalation.escalation_level == EscalationLevel.CRITICAL
        assert task.escalation.notification_count == 2

    def test_coaches_alerted_once_at_critical(self, db, make_task, coach, dispatcher):
        task = make_task(priority=TaskPriority.MEDIUM, due_at=NOW - timedelta(minutes=250))
        engine = EscalationEngine(db, dispatcher)

        engine.run(NOW)
        engine.run(NOW + timedelta(minutes=10))
        engine.run(NOW + timedelta(minutes=20))

        assert task.escalation.escalation_level == EscalationLevel.CRITICAL
        assert task.escalation.coaches_notified is True
        assert task.escalation.blocking_app is False
        assert task.escalation.notification_count == 3
        dispatcher.alert_coaches_of_overdue.assert_called_once()
        dispatcher.app_blocking_started.assert_not_called()

    def test_snoozable_tasks_are_not_escalated(self, db, make_task, dispatcher):
        make_task(can_be_snoozed=True, due_at=NOW - timedelta(hours=5))

        stats = EscalationEngine(db, dispatcher).run(NOW)

        assert stats["processed"] == 0
        assert db.query(TaskEscalation).count() == 0
        dispatcher.send_reminder.assert_not_called()

    def test_completed_and_deleted_tasks_are_excluded(self, db, make_task, dispatcher):
        make_task(status=TaskStatus.DONE, completed_at=NOW, due_at=NOW - timedelta(hours=5))
        deleted = make_task(due_at=NOW - timedelta(hours=5))
        deleted.soft_delete()
        db.commit()
        make_task(is_template=True, due_at=NOW - timedelta(hours=5))

        engine = EscalationEngine(db, dispatcher)

        assert engine.overdue_task_ids(NOW) == []
        engine.run(NOW)
        dispatcher.send_reminder.assert_not_called()

    def test_tasks_not_yet_due_are_excluded(self, db, make_task, dispatcher):
        make_task(due_at=NOW + timedelta(minutes=1))
        make_task(due_at=None)

        assert EscalationEngine(db, dispatcher).overdue_task_ids(NOW) == []

    def test_dispatch_failure_does_not_stop_the_sweep(self, db, make_task, dispatcher):
        first = make_task(priority=TaskPriority.URGENT, due_at=NOW - timedelta(minutes=45))
        second = make_task(priority=TaskPriority.URGENT, due_at=NOW - timedelta(minutes=45))
        dispatcher.send_reminder.side_effect = RuntimeError("push gateway down")

        stats = EscalationEngine(db, dispatcher).run(NOW)

        assert stats["processed"] == 2
        assert stats["failed"] == 0
        assert first.escalation.notification_count == 1
        assert second.escalation.notification_count == 1
        assert first.escalation.escalation_level == EscalationLevel.WARNING

    def test_failed_coach_alert_keeps_flags(self, db, make_task, coach, dispatcher):
        task = make_task(priority=TaskPriority.URGENT, due_at=NOW - timedelta(minutes=130))
        dispatcher.alert_coaches_of_overdue.side_effect = RuntimeError("sms down")
        engine = EscalationEngine(db, dispatcher)

        engine.run(NOW)
        assert task.escalation.level == EscalationLevel.BLOCKING
        assert task.escalation.blocking_app is True
        assert task.escalation.coaches_notified is True

        engine.run(NOW + timedelta(minutes=10))
        assert dispatcher.alert_coaches_of_overdue.call_count == 1
        dispatcher.app_blocking_started.assert_called_once()

    def test_task_failure_is_isolated(self, db, make_task, dispatcher):
        make_task(due_at=NOW - timedelta(minutes=45))
        make_task(due_at=NOW - timedelta(minutes=45))
        engine = EscalationEngine(db, dispatcher)

        with patch.object(
            engine, "process_task", side_effect=[RuntimeError("boom"), {"notified": True}]
        ):
            stats = engine.run(NOW)

        assert stats["failed"] == 1
        assert stats["processed"] == 1
        assert stats["notified"] == 1

    def test_vanished_task_raises_not_found(self, db, dispatcher):
        with pytest.raises(NotFoundError):
            EscalationEngine(db, dispatcher).process_task(99999, NOW)

    def test_vanished_task_is_skipped_by_sweep(self, db, make_task, dispatcher):
        make_task(due_at=NOW - timedelta(minutes=45))
        engine = EscalationEngine(db, dispatcher)

        with patch.object(engine, "process_task", side_effect=NotFoundError("gone")):
            stats = engine.run(NOW)

        assert stats["skipped"] == 1
        assert stats["failed"] == 0

    def test_notification_slot_is_claimed_once(self, db, make_task, dispatcher):
        task = make_task(due_at=NOW - timedelta(minutes=45))
        engine = EscalationEngine(db, dispatcher)
        engine.run(NOW)
        escalation = task.escalation
        seen_at = escalation.last_notification_at

        later = NOW + timedelta(minutes=10)
        # A second sweep that read the slot before the first claim loses
        assert engine._claim_slot(escalation.id, None, later) is False
        assert engine._claim_slot(escalation.id, seen_at, later) is True
        assert engine._claim_slot(escalation.id, seen_at, later) is False
        db.commit()

        db.refresh(escalation)
        assert escalation.notification_count == 2

    def test_existing_escalation_row_is_reused(self, db, make_task, dispatcher):
        task = make_task(priority=TaskPriority.URGENT, due_at=NOW - timedelta(minutes=45))
        db.add(TaskEscalation(task_id=task.id))
        db.commit()

        EscalationEngine(db, dispatcher).run(NOW)

        assert db.query(TaskEscalation).filter(TaskEscalation.task_id == task.id).count() == 1
        assert task.escalation.notification_count == 1
