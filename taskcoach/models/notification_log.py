"""Notification log model."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from taskcoach.database import Base
from taskcoach.models.enums import DeliveryMethod, NotificationType


class NotificationLog(Base):
    """Record of every notification the dispatcher attempted."""

    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    notification_type = Column(
        Enum(
            NotificationType,
            name="notificationtype",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    message = Column(String(1000), nullable=False)
    delivered = Column(Boolean, default=False, nullable=False)
    delivery_method = Column(
        Enum(
            DeliveryMethod,
            name="deliverymethod",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=True,
    )
    payload = Column(JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True
    )

    # Relationships
    user = relationship("User")
    task = relationship("Task")
