"""User model."""

from sqlalchemy import Column, Date, Enum, Integer, String

from taskcoach.database import Base
from taskcoach.models.enums import UserRole
from taskcoach.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """User model with the fields the engines read and write."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    role = Column(
        Enum(UserRole, name="userrole", values_callable=lambda x: [e.value for e in x]),
        default=UserRole.CLIENT,
        nullable=False,
    )
    timezone = Column(String(50), default="UTC", nullable=False)
    phone_number = Column(String(20), nullable=True)  # For coach SMS alerts

    # Streak tracking
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_streak_date = Column(Date, nullable=True)

    @property
    def is_coach(self) -> bool:
        """Check if the user is a coach."""
        return self.role == UserRole.COACH
