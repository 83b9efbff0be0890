"""Initial task coach schema

Revision ID: 5c2e9a7d41b0
Revises:
Create Date: 2026-03-02 18:12:09.418207

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e9a7d41b0"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Enum types (values match Python enum string values)
userrole_enum = sa.Enum("client", "coach", name="userrole")
coachingstatus_enum = sa.Enum("pending", "active", "declined", name="coachingstatus")
taskstatus_enum = sa.Enum("pending", "done", "deleted", name="taskstatus")
taskpriority_enum = sa.Enum("low", "medium", "high", "urgent", name="taskpriority")
recurrence_enum = sa.Enum("daily", "weekly", "monthly", "custom", name="recurrencepattern")
escalationlevel_enum = sa.Enum(
    "normal", "warning", "critical", "blocking", name="escalationlevel"
)
notificationtype_enum = sa.Enum(
    "task_reminder",
    "coach_alert_critical",
    "app_blocking",
    "recurring_task_generated",
    "task_completed",
    name="notificationtype",
)
deliverymethod_enum = sa.Enum("push", "sms", name="deliverymethod")


def timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("role", userrole_enum, nullable=False),
        sa.Column("timezone", sa.String(length=50), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("current_streak", sa.Integer(), nullable=False),
        sa.Column("longest_streak", sa.Integer(), nullable=False),
        sa.Column("last_streak_date", sa.Date(), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "lists",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_lists_id"), "lists", ["id"], unique=False)
    op.create_index(op.f("ix_lists_owner_id"), "lists", ["owner_id"], unique=False)

    op.create_table(
        "coaching_relationships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("coach_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("status", coachingstatus_enum, nullable=False),
        sa.Column("notify_on_missed_deadline", sa.Boolean(), nullable=False),
        sa.Column("notify_on_completion", sa.Boolean(), nullable=False),
        *timestamps(),
        sa.ForeignKeyConstraint(["coach_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["client_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("coach_id", "client_id", name="uq_coach_client"),
    )
    op.create_index(
        op.f("ix_coaching_relationships_id"), "coaching_relationships", ["id"], unique=False
    )
    op.create_index(
        op.f("ix_coaching_relationships_coach_id"),
        "coaching_relationships",
        ["coach_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_coaching_relationships_client_id"),
        "coaching_relationships",
        ["client_id"],
        unique=False,
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("list_id", sa.Integer(), nullable=False),
        sa.Column("creator_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", taskstatus_enum, nullable=False),
        sa.Column("priority", taskpriority_enum, nullable=False),
        sa.Column("can_be_snoozed", sa.Boolean(), nullable=False),
        sa.Column("notification_interval_minutes", sa.Integer(), nullable=False),
        sa.Column("requires_explanation_if_missed", sa.Boolean(), nullable=False),
        sa.Column("missed_reason", sa.String(length=1000), nullable=True),
        sa.Column("missed_reason_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("parent_task_id", sa.Integer(), nullable=True),
        sa.Column("is_template", sa.Boolean(), nullable=False),
        sa.Column("recurring_template_id", sa.Integer(), nullable=True),
        sa.Column("recurrence_pattern", recurrence_enum, nullable=True),
        sa.Column("recurrence_interval", sa.Integer(), nullable=False),
        sa.Column("recurrence_days", sa.JSON(), nullable=True),
        sa.Column("recurrence_time", sa.Time(), nullable=True),
        sa.Column("recurrence_end_date", sa.Date(), nullable=True),
        sa.Column("recurrence_date", sa.Date(), nullable=True),
        sa.Column("location_based", sa.Boolean(), nullable=False),
        sa.Column("location_latitude", sa.Float(), nullable=True),
        sa.Column("location_longitude", sa.Float(), nullable=True),
        sa.Column("location_radius_meters", sa.Integer(), nullable=True),
        sa.Column("location_name", sa.String(length=255), nullable=True),
        sa.Column("notify_on_arrival", sa.Boolean(), nullable=False),
        sa.Column("notify_on_departure", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.ForeignKeyConstraint(["list_id"], ["lists.id"]),
        sa.ForeignKeyConstraint(["creator_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["parent_task_id"], ["tasks.id"]),
        sa.ForeignKeyConstraint(["recurring_template_id"], ["tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "recurring_template_id", "recurrence_date", name="uq_template_recurrence_date"
        ),
    )
    op.create_index(op.f("ix_tasks_id"), "tasks", ["id"], unique=False)
    for column in (
        "list_id",
        "creator_id",
        "due_at",
        "status",
        "parent_task_id",
        "is_template",
        "recurring_template_id",
    ):
        op.create_index(op.f(f"ix_tasks_{column}"), "tasks", [column], unique=False)

    op.create_table(
        "task_escalations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("escalation_level", escalationlevel_enum, nullable=False),
        sa.Column("notification_count", sa.Integer(), nullable=False),
        sa.Column("last_notification_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("became_overdue_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("coaches_notified", sa.Boolean(), nullable=False),
        sa.Column("coaches_notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("blocking_app", sa.Boolean(), nullable=False),
        sa.Column("blocking_started_at", sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_task_escalations_id"), "task_escalations", ["id"], unique=False)
    op.create_index(
        op.f("ix_task_escalations_task_id"), "task_escalations", ["task_id"], unique=True
    )

    op.create_table(
        "reschedule_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("previous_due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("new_due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_reschedule_events_id"), "reschedule_events", ["id"], unique=False)
    op.create_index(
        op.f("ix_reschedule_events_task_id"), "reschedule_events", ["task_id"], unique=False
    )

    op.create_table(
        "notification_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=True),
        sa.Column("notification_type", notificationtype_enum, nullable=False),
        sa.Column("message", sa.String(length=1000), nullable=False),
        sa.Column("delivered", sa.Boolean(), nullable=False),
        sa.Column("delivery_method", deliverymethod_enum, nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notification_logs_id"), "notification_logs", ["id"], unique=False)
    op.create_index(
        op.f("ix_notification_logs_user_id"), "notification_logs", ["user_id"], unique=False
    )
    op.create_index(
        op.f("ix_notification_logs_notification_type"),
        "notification_logs",
        ["notification_type"],
        unique=False,
    )
    op.create_index(
        op.f("ix_notification_logs_created_at"), "notification_logs", ["created_at"], unique=False
    )

    op.create_table(
        "push_subscriptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("endpoint", sa.String(length=500), nullable=False),
        sa.Column("p256dh_key", sa.String(length=200), nullable=False),
        sa.Column("auth_key", sa.String(length=100), nullable=False),
        *timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "endpoint", name="uq_user_endpoint"),
    )
    op.create_index(op.f("ix_push_subscriptions_id"), "push_subscriptions", ["id"], unique=False)
    op.create_index(
        op.f("ix_push_subscriptions_user_id"), "push_subscriptions", ["user_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("push_subscriptions")
    op.drop_table("notification_logs")
    op.drop_table("reschedule_events")
    op.drop_table("task_escalations")
    op.drop_table("tasks")
    op.drop_table("coaching_relationships")
    op.drop_table("lists")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (
        deliverymethod_enum,
        notificationtype_enum,
        escalationlevel_enum,
        recurrence_enum,
        taskpriority_enum,
        taskstatus_enum,
        coachingstatus_enum,
        userrole_enum,
    ):
        enum.drop(bind, checkfirst=True)
