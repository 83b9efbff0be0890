"""Task action schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from taskcoach.models.enums import EscalationLevel, TaskPriority, TaskStatus


class TaskCompleteRequest(BaseModel):
    """Complete a task, explaining the miss when it is overdue."""

    missed_reason: str | None = Field(None, max_length=1000)


class TaskRescheduleRequest(BaseModel):
    """Move a task to a new due time."""

    new_due_at: datetime | None = None
    reason: str | None = Field(None, max_length=500)
    user_id: int | None = None


class EscalationResponse(BaseModel):
    """Escalation state of a task."""

    model_config = ConfigDict(from_attributes=True)

    escalation_level: EscalationLevel
    notification_count: int
    last_notification_at: datetime | None
    became_overdue_at: datetime | None
    coaches_notified: bool
    blocking_app: bool


class TaskResponse(BaseModel):
    """Task response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    list_id: int
    title: str
    due_at: datetime | None
    status: TaskStatus
    priority: TaskPriority
    completed_at: datetime | None
    missed_reason: str | None
    missed_reason_submitted_at: datetime | None
    escalation: EscalationResponse | None = None


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Structured error body with a stable code."""

    error: ErrorDetail
