"""List model."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from taskcoach.database import Base
from taskcoach.models.mixins import SoftDeleteMixin, TimestampMixin


class List(Base, TimestampMixin, SoftDeleteMixin):
    """A shared task list owned by one user."""

    __tablename__ = "lists"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    description = Column(String, nullable=True)

    # Relationships
    owner = relationship("User", backref="lists")
    tasks = relationship("Task", back_populates="list", cascade="all, delete-orphan")
