"""Task action endpoints: complete and reschedule."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from taskcoach.api.dependencies import (
    get_completion_service,
    get_now,
    get_reschedule_service,
    get_task,
)
from taskcoach.models import Task
from taskcoach.schemas.task import (
    ErrorResponse,
    TaskCompleteRequest,
    TaskRescheduleRequest,
    TaskResponse,
)
from taskcoach.services.completion import TaskCompletionService
from taskcoach.services.reschedule import TaskRescheduleService

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)


@router.post("/{task_id}/complete", response_model=TaskResponse)
def complete_task(
    body: TaskCompleteRequest,
    task: Annotated[Task, Depends(get_task)],
    service: Annotated[TaskCompletionService, Depends(get_completion_service)],
    now: Annotated[datetime, Depends(get_now)],
):
    """Complete a task. Overdue tasks may require a missed reason."""
    return service.complete(task, now, missed_reason=body.missed_reason)


@router.post("/{task_id}/reopen", response_model=TaskResponse)
def reopen_task(
    task: Annotated[Task, Depends(get_task)],
    service: Annotated[TaskCompletionService, Depends(get_completion_service)],
):
    """Move a completed task back to pending."""
    return service.reopen(task)


@router.post("/{task_id}/reschedule", response_model=TaskResponse)
def reschedule_task(
    body: TaskRescheduleRequest,
    task: Annotated[Task, Depends(get_task)],
    service: Annotated[TaskRescheduleService, Depends(get_reschedule_service)],
    now: Annotated[datetime, Depends(get_now)],
):
    """Reschedule a task. A reason is always required."""
    return service.reschedule(
        task, body.new_due_at, body.reason, user_id=body.user_id, now=now
    )
