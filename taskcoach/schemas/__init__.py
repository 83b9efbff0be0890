"""Pydantic schemas for API requests and responses."""

from taskcoach.schemas.task import (
    ErrorResponse,
    EscalationResponse,
    TaskCompleteRequest,
    TaskRescheduleRequest,
    TaskResponse,
)

__all__ = [
    "TaskCompleteRequest",
    "TaskRescheduleRequest",
    "TaskResponse",
    "EscalationResponse",
    "ErrorResponse",
]
