"""Account deletion — removes a user and everything that hangs off them."""

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecoledger.config import get_settings
from ecoledger.exceptions import LedgerStoreError, UserNotFoundError
from ecoledger.logging_config import get_logger
from ecoledger.models import CollectionRecord, LedgerEntry, Notification, Task, User
from ecoledger.resilience import RetryConfig, run_with_retry

logger = get_logger(__name__)


async def _cascade(session: AsyncSession, user_id: UUID) -> dict[str, int]:
    """Run every delete for one user inside the session's open transaction."""
    exists = (await session.execute(
        select(User.id).where(User.id == user_id).with_for_update()
    )).scalar_one_or_none()
    if exists is None:
        raise UserNotFoundError(user_id)

    counts: dict[str, int] = {}

    result = await session.execute(
        delete(Notification).where(Notification.user_id == user_id)
    )
    counts["notifications"] = result.rowcount

    result = await session.execute(
        delete(LedgerEntry).where(LedgerEntry.user_id == user_id)
    )
    counts["ledger_entries"] = result.rowcount

    result = await session.execute(
        delete(CollectionRecord).where(CollectionRecord.collector_id == user_id)
    )
    counts["collections_as_collector"] = result.rowcount

    # Other users' tasks keep their status and history, only the reference goes
    result = await session.execute(
        update(Task)
        .where(Task.collector_id == user_id, Task.owner_id != user_id)
        .values(collector_id=None)
        .execution_options(synchronize_session=False)
    )
    counts["tasks_unassigned"] = result.rowcount

    own_tasks = select(Task.id).where(Task.owner_id == user_id)
    result = await session.execute(
        delete(CollectionRecord).where(CollectionRecord.task_id.in_(own_tasks))
    )
    counts["collections_on_own_tasks"] = result.rowcount

    result = await session.execute(delete(Task).where(Task.owner_id == user_id))
    counts["tasks"] = result.rowcount

    await session.execute(delete(User).where(User.id == user_id))
    return counts


async def delete_user(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: UUID,
    retry_config: RetryConfig | None = None,
) -> dict[str, int]:
    """
    Delete a user with all dependent rows in one transaction.

    A transient store failure rolls the whole attempt back and the cascade is
    retried from the start on a fresh session; it is never left half-applied.
    Returns the number of rows removed or updated per step.

    Raises:
        UserNotFoundError: no such user
        LedgerStoreError: the store kept failing after all retries
    """
    settings = get_settings()
    config = retry_config or RetryConfig(
        max_retries=settings.delete_retry_attempts - 1,
        base_delay=settings.delete_retry_base_delay,
    )

    async def attempt() -> dict[str, int]:
        async with session_factory() as session:
            async with session.begin():
                return await _cascade(session, user_id)

    try:
        counts = await run_with_retry(attempt, config, name="delete_user")
    except (SQLAlchemyError, TimeoutError, OSError) as e:
        logger.error("user_delete_failed", user_id=str(user_id), error=str(e))
        raise LedgerStoreError("delete_user") from e

    logger.info("user_deleted", user_id=str(user_id), **counts)
    return counts
