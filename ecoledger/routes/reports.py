"""Waste report endpoints for reporting users."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.auth import get_current_user
from ecoledger.database import get_db
from ecoledger.models import User
from ecoledger.schemas import ReportCreate, TaskListResponse, TaskResponse
from ecoledger.services import lifecycle_service, task_service

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    body: ReportCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Submit a waste report; the reporter earns the reporting reward."""
    task, _entry = await lifecycle_service.submit_report(
        db,
        owner_id=user.id,
        location=body.location,
        waste_type=body.waste_type,
        amount=body.amount,
        image_ref=body.image_ref,
        verification_result=body.verification_result,
    )
    return TaskResponse.model_validate(task)


@router.get("", response_model=TaskListResponse)
async def list_my_reports(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """List the current user's reports, newest first."""
    rows, total = await task_service.list_tasks_by_owner(
        db, user.id, page=page, per_page=per_page
    )
    return TaskListResponse(
        items=[TaskResponse.model_validate(t) for t in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_report(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    task = await task_service.get_task(db, task_id)
    return TaskResponse.model_validate(task)
