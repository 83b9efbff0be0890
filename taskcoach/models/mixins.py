"""Mixins for SQLAlchemy models."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, func


class TimestampMixin:
    """Mixin to add created_at and updated_at timestamp columns."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Soft deletion: rows stay in place with ``deleted_at`` set.

    Every sweep reads live rows only, so a soft-deleted task drops out of
    escalation, reminders, recurrence and streaks on the next read.
    """

    deleted_at = Column(DateTime(timezone=True), nullable=True)

    @classmethod
    def not_deleted(cls):
        """Query predicate matching rows that have not been soft-deleted."""
        return cls.deleted_at.is_(None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, now: datetime | None = None) -> None:
        self.deleted_at = now or datetime.now(UTC)
