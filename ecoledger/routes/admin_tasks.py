"""Administrator endpoints for the collection task lifecycle."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.auth import get_current_admin
from ecoledger.database import get_db
from ecoledger.models import TaskStatusEnum
from ecoledger.schemas import (
    CompletionResponse,
    ErrorResponse,
    LedgerEntryResponse,
    TaskCompleteRequest,
    TaskListResponse,
    TaskResponse,
)
from ecoledger.services import lifecycle_service, task_service

router = APIRouter(prefix="/api/admin/tasks", tags=["admin"])


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    status: TaskStatusEnum | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(get_current_admin),
):
    rows, total = await task_service.list_tasks(
        db,
        status=status.value if status else None,
        page=page,
        per_page=per_page,
    )
    return TaskListResponse(
        items=[TaskResponse.model_validate(t) for t in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.patch("/{task_id}/accept", response_model=TaskResponse)
async def accept_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(get_current_admin),
):
    """Take a pending task; the administrator becomes its collector."""
    task = await lifecycle_service.accept_task(db, task_id, actor_id)
    return TaskResponse.model_validate(task)


@router.post(
    "/{task_id}/complete",
    response_model=CompletionResponse,
    responses={409: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def complete_task(
    task_id: UUID,
    body: TaskCompleteRequest | None = None,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(get_current_admin),
):
    """
    Complete a task and reward its reporter.

    A task that is already completed answers 409 with
    ``error_type = "already_completed"``.
    """
    body = body or TaskCompleteRequest()
    outcome = await lifecycle_service.complete_task(
        db,
        task_id,
        actor_id,
        verification_result=body.verification_result,
        image_ref=body.image_ref,
    )
    return CompletionResponse(
        task=TaskResponse.model_validate(outcome.task),
        entry=LedgerEntryResponse.model_validate(outcome.entry),
        reward_amount=outcome.reward_amount,
        message=f"Task completed; reporter earned {outcome.reward_amount} points",
    )


@router.patch("/{task_id}/verify", response_model=TaskResponse)
async def verify_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor_id: UUID = Depends(get_current_admin),
):
    task = await lifecycle_service.verify_task(db, task_id, actor_id)
    return TaskResponse.model_validate(task)
