"""Coaching relationship model."""

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from taskcoach.database import Base
from taskcoach.models.enums import CoachingStatus
from taskcoach.models.mixins import TimestampMixin


class CoachingRelationship(Base, TimestampMixin):
    """Links a coach to a client whose lists the coach oversees."""

    __tablename__ = "coaching_relationships"
    __table_args__ = (UniqueConstraint("coach_id", "client_id", name="uq_coach_client"),)

    id = Column(Integer, primary_key=True, index=True)
    coach_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(CoachingStatus, name="coachingstatus", values_callable=lambda x: [e.value for e in x]),
        default=CoachingStatus.PENDING,
        nullable=False,
    )
    notify_on_missed_deadline = Column(Boolean, default=True, nullable=False)
    notify_on_completion = Column(Boolean, default=True, nullable=False)

    # Relationships
    coach = relationship("User", foreign_keys=[coach_id])
    client = relationship("User", foreign_keys=[client_id])
