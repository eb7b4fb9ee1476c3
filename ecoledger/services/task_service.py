"""Task record — waste reports and their accept/complete/verify state changes.

Every state change is a single conditional UPDATE guarded on the current
status, so concurrent callers cannot both win the same transition. When the
UPDATE touches no row the task is re-read to report why.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, literal, select, update
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.exceptions import (
    AlreadyCompletedError,
    InvalidTransitionError,
    TaskNotFoundError,
)
from ecoledger.logging_config import get_logger
from ecoledger.models import Task, TaskStatusEnum
from ecoledger.state_machine import (
    COMPLETABLE_STATES,
    REWARDED_STATES,
    VALID_TRANSITIONS,
    status_value,
    validate_transition,
)

logger = get_logger(__name__)


async def get_task(db: AsyncSession, task_id: UUID) -> Task:
    """Load a task with fresh column values or raise TaskNotFoundError."""
    result = await db.execute(
        select(Task)
        .where(Task.id == task_id)
        .execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


async def create_task(
    db: AsyncSession,
    owner_id: UUID,
    location: str,
    waste_type: str,
    amount: str,
    image_ref: str | None = None,
    verification_result: dict | None = None,
) -> Task:
    """Create a report in the pending state with no collector."""
    task = Task(
        owner_id=owner_id,
        location=location,
        waste_type=waste_type,
        amount=amount,
        image_ref=image_ref,
        verification_result=verification_result,
        status=TaskStatusEnum.pending.value,
        collector_id=None,
    )
    db.add(task)
    await db.flush()
    logger.info("task_created", task_id=str(task.id), owner_id=str(owner_id))
    return task


async def accept(db: AsyncSession, task_id: UUID, actor_id: UUID) -> Task:
    """pending → in_progress, assigning the actor as collector."""
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Task)
        .where(Task.id == task_id, Task.status == TaskStatusEnum.pending.value)
        .values(
            status=TaskStatusEnum.in_progress.value,
            collector_id=actor_id,
            accepted_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        task = await get_task(db, task_id)
        current = status_value(task.status)
        validate_transition(current, TaskStatusEnum.in_progress.value)
        # Status was pending on re-read yet the guarded update missed it
        raise InvalidTransitionError(
            current, TaskStatusEnum.in_progress.value, VALID_TRANSITIONS[current]
        )

    logger.info("task_accepted", task_id=str(task_id), collector_id=str(actor_id))
    return await get_task(db, task_id)


async def complete(
    db: AsyncSession,
    task_id: UUID,
    actor_id: UUID,
    verification_result: dict | None = None,
    image_ref: str | None = None,
) -> Task:
    """
    in_progress → completed, or pending → completed as accept+complete.

    An existing collector is kept; a task completed straight from pending gets
    the actor as collector. Raises AlreadyCompletedError when the task is
    already completed or verified, including when a concurrent completion
    won the guarded update.
    """
    now = datetime.now(timezone.utc)
    actor = literal(actor_id, PG_UUID(as_uuid=True))
    values: dict = {
        "status": TaskStatusEnum.completed.value,
        "collector_id": func.coalesce(Task.collector_id, actor),
        "accepted_at": func.coalesce(Task.accepted_at, now),
        "completed_at": now,
    }
    if verification_result is not None:
        values["verification_result"] = verification_result
    if image_ref is not None:
        values["image_ref"] = image_ref

    result = await db.execute(
        update(Task)
        .where(Task.id == task_id, Task.status.in_(COMPLETABLE_STATES))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        task = await get_task(db, task_id)
        current = status_value(task.status)
        if current in REWARDED_STATES:
            raise AlreadyCompletedError(task_id, current)
        raise InvalidTransitionError(
            current, TaskStatusEnum.completed.value, VALID_TRANSITIONS.get(current, [])
        )

    logger.info("task_completed", task_id=str(task_id), actor_id=str(actor_id))
    return await get_task(db, task_id)


async def verify(db: AsyncSession, task_id: UUID, actor_id: UUID) -> Task:
    """completed → verified."""
    result = await db.execute(
        update(Task)
        .where(Task.id == task_id, Task.status == TaskStatusEnum.completed.value)
        .values(
            status=TaskStatusEnum.verified.value,
            verified_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        task = await get_task(db, task_id)
        current = status_value(task.status)
        validate_transition(current, TaskStatusEnum.verified.value)
        raise InvalidTransitionError(
            current, TaskStatusEnum.verified.value, VALID_TRANSITIONS[current]
        )

    logger.info("task_verified", task_id=str(task_id), actor_id=str(actor_id))
    return await get_task(db, task_id)


async def list_tasks(
    db: AsyncSession,
    status: str | None = None,
    owner_id: UUID | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Task], int]:
    """List tasks newest-first with optional status/owner filters."""
    query = select(Task)
    if status:
        status_enum = TaskStatusEnum(status)
        query = query.where(Task.status == status_enum.value)
    if owner_id is not None:
        query = query.where(Task.owner_id == owner_id)

    total = (await db.execute(
        select(func.count()).select_from(query.subquery())
    )).scalar() or 0

    query = (
        query.order_by(Task.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    rows = (await db.execute(query)).scalars().all()
    return list(rows), total


async def list_tasks_by_owner(
    db: AsyncSession,
    owner_id: UUID,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Task], int]:
    return await list_tasks(db, owner_id=owner_id, page=page, per_page=per_page)
