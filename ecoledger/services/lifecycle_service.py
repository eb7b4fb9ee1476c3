"""Task lifecycle controller — accept, complete and reward as one unit of work.

Completion flips the task status, appends the owner's reward entry and
records the collection inside one database transaction. The status flip is
a guarded UPDATE, so of two concurrent completions exactly one commits a
reward and the other receives AlreadyCompletedError. The reporter's
notification is written inside a SAVEPOINT; if the emitter fails the
savepoint is rolled back and the reward still commits.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.config import get_settings
from ecoledger.exceptions import (
    AlreadyCompletedError,
    EcoLedgerError,
    InvalidVerificationError,
    LedgerStoreError,
)
from ecoledger.logging_config import get_logger
from ecoledger.models import (
    CollectionRecord,
    LedgerEntry,
    Notification,
    Task,
    TransactionType,
)
from ecoledger.schemas import VerificationResult
from ecoledger.services import task_service
from ecoledger.services.ledger_service import append_entry
from ecoledger.services.notification_service import (
    DatabaseNotificationEmitter,
    NotificationEmitter,
    build_collection_message,
    build_report_message,
)
from ecoledger.state_machine import REWARDED_STATES, status_value

logger = get_logger(__name__)

_default_emitter = DatabaseNotificationEmitter()


@dataclass
class CompletionOutcome:
    """Result of a successful completion."""

    task: Task
    entry: LedgerEntry
    reward_amount: int
    collection: CollectionRecord
    notification: Notification | None = None


def collection_reward_amount(task: Task) -> int:
    """Flat reward per completed task, independent of waste type and amount."""
    return get_settings().reward_collection_points


def _verification_payload(
    verification_result: VerificationResult | dict | None,
) -> dict | None:
    if verification_result is None:
        return None
    if isinstance(verification_result, VerificationResult):
        return verification_result.model_dump()
    try:
        return VerificationResult.model_validate(verification_result).model_dump()
    except ValidationError as e:
        raise InvalidVerificationError(str(e)) from e


async def _rollback_quietly(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except (SQLAlchemyError, TimeoutError, OSError) as e:
        logger.warning("rollback_failed", error=str(e))


async def submit_report(
    db: AsyncSession,
    owner_id: UUID,
    location: str,
    waste_type: str,
    amount: str,
    image_ref: str | None = None,
    verification_result: VerificationResult | dict | None = None,
    emitter: NotificationEmitter | None = None,
) -> tuple[Task, LedgerEntry | None]:
    """Create a pending report and credit the reporter's reporting reward."""
    emitter = emitter or _default_emitter
    points = get_settings().reward_report_points
    try:
        verification = _verification_payload(verification_result)
        task = await task_service.create_task(
            db,
            owner_id=owner_id,
            location=location,
            waste_type=waste_type,
            amount=amount,
            image_ref=image_ref,
            verification_result=verification,
        )
        entry = None
        if points > 0:
            entry = await append_entry(
                db,
                owner_id,
                TransactionType.earned_report,
                points,
                f"Waste reported: {waste_type} at {location}",
                task_id=task.id,
            )
            await _emit_notice(
                db,
                emitter,
                owner_id,
                build_report_message(points),
                "reward",
                metadata={"task_id": str(task.id), "reward_amount": points},
            )
        await db.commit()
    except EcoLedgerError:
        await _rollback_quietly(db)
        raise
    except (SQLAlchemyError, TimeoutError, OSError) as e:
        await _rollback_quietly(db)
        logger.error("report_submit_failed", owner_id=str(owner_id), error=str(e))
        raise LedgerStoreError("submit_report") from e

    await db.refresh(task)
    return task, entry


async def accept_task(db: AsyncSession, task_id: UUID, actor_id: UUID) -> Task:
    """Accept a pending task for the actor. Errors propagate unchanged."""
    try:
        task = await task_service.accept(db, task_id, actor_id)
        await db.commit()
    except EcoLedgerError:
        await _rollback_quietly(db)
        raise
    except (SQLAlchemyError, TimeoutError, OSError) as e:
        await _rollback_quietly(db)
        logger.error("task_accept_failed", task_id=str(task_id), error=str(e))
        raise LedgerStoreError("accept_task") from e
    return task


async def complete_task(
    db: AsyncSession,
    task_id: UUID,
    actor_id: UUID,
    verification_result: VerificationResult | dict | None = None,
    image_ref: str | None = None,
    emitter: NotificationEmitter | None = None,
) -> CompletionOutcome:
    """
    Complete a task and reward its owner exactly once.

    Raises:
        TaskNotFoundError: no such task
        AlreadyCompletedError: task already completed or verified, or a
            concurrent completion committed first
        InvalidTransitionError: task cannot be completed from its state
        LedgerStoreError: the store failed; nothing was committed
    """
    emitter = emitter or _default_emitter

    try:
        verification = _verification_payload(verification_result)
        current = await task_service.get_task(db, task_id)
        current_status = status_value(current.status)
        if current_status in REWARDED_STATES:
            raise AlreadyCompletedError(task_id, current_status)

        task = await task_service.complete(
            db, task_id, actor_id, verification_result=verification, image_ref=image_ref
        )

        reward_amount = collection_reward_amount(task)
        entry = await append_entry(
            db,
            task.owner_id,
            TransactionType.earned_collection,
            reward_amount,
            f"Waste collection completed: {task.waste_type} at {task.location}",
            task_id=task.id,
        )

        collection = CollectionRecord(
            task_id=task.id,
            collector_id=task.collector_id,
            verification_result=verification,
        )
        db.add(collection)
        await db.flush()

        notification = await _emit_notice(
            db,
            emitter,
            task.owner_id,
            build_collection_message(reward_amount, image_ref),
            "completion_with_photo" if image_ref else "collection_complete",
            image_ref=image_ref,
            metadata={
                "task_id": str(task.id),
                "reward_amount": reward_amount,
                "waste_type": task.waste_type,
                "location": task.location,
                "collected_at": datetime.now(timezone.utc).isoformat(),
            },
        )

        await db.commit()
    except EcoLedgerError:
        await _rollback_quietly(db)
        raise
    except (SQLAlchemyError, TimeoutError, OSError) as e:
        await _rollback_quietly(db)
        logger.error("task_complete_failed", task_id=str(task_id), error=str(e))
        raise LedgerStoreError("complete_task") from e

    logger.info(
        "task_rewarded",
        task_id=str(task_id),
        owner_id=str(task.owner_id),
        collector_id=str(task.collector_id),
        reward_amount=reward_amount,
    )
    return CompletionOutcome(
        task=task,
        entry=entry,
        reward_amount=reward_amount,
        collection=collection,
        notification=notification,
    )


async def _emit_notice(
    db: AsyncSession,
    emitter: NotificationEmitter,
    user_id: UUID,
    message: str,
    notification_type: str,
    image_ref: str | None = None,
    metadata: dict | None = None,
) -> Notification | None:
    """Notify a user; failures are logged and never undo the reward."""
    try:
        async with db.begin_nested():
            return await emitter.notify(
                db,
                user_id,
                message,
                notification_type,
                image_ref=image_ref,
                metadata=metadata,
            )
    except Exception as e:
        logger.warning(
            "notification_emit_failed",
            user_id=str(user_id),
            notification_type=notification_type,
            error=str(e),
        )
        return None


async def verify_task(db: AsyncSession, task_id: UUID, actor_id: UUID) -> Task:
    """Mark a completed task verified."""
    try:
        task = await task_service.verify(db, task_id, actor_id)
        await db.commit()
    except EcoLedgerError:
        await _rollback_quietly(db)
        raise
    except (SQLAlchemyError, TimeoutError, OSError) as e:
        await _rollback_quietly(db)
        logger.error("task_verify_failed", task_id=str(task_id), error=str(e))
        raise LedgerStoreError("verify_task") from e
    return task
