"""Reward catalog and point redemption."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.exceptions import (
    EcoLedgerError,
    InsufficientBalanceError,
    LedgerStoreError,
    RewardNotFoundError,
    UserNotFoundError,
)
from ecoledger.logging_config import get_logger
from ecoledger.models import LedgerEntry, RewardItem, TransactionType, User
from ecoledger.services.balance_service import compute_balance, refresh_balance_cache
from ecoledger.services.ledger_service import append_entry

logger = get_logger(__name__)


async def list_rewards(
    db: AsyncSession, available_only: bool = True
) -> list[RewardItem]:
    query = select(RewardItem).order_by(
        RewardItem.points_required.asc(), RewardItem.name.asc()
    )
    if available_only:
        query = query.where(RewardItem.is_available.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def redeem_reward(
    db: AsyncSession,
    user_id: UUID,
    reward_id: UUID,
) -> tuple[LedgerEntry, int]:
    """
    Spend points on a catalog item. Returns (entry, balance after).

    The user's row is locked for the duration of the transaction so that
    two redemptions by the same user cannot both pass the balance check.
    """
    try:
        locked = await db.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )
        if locked.scalar_one_or_none() is None:
            raise UserNotFoundError(user_id)

        reward = (await db.execute(
            select(RewardItem).where(RewardItem.id == reward_id)
        )).scalar_one_or_none()
        if reward is None or not reward.is_available:
            raise RewardNotFoundError(reward_id)

        balance = await compute_balance(db, user_id)
        if reward.points_required > balance:
            raise InsufficientBalanceError(reward.points_required, balance)

        entry = await append_entry(
            db,
            user_id,
            TransactionType.redeemed,
            reward.points_required,
            f"Redeemed reward: {reward.name}",
        )
        new_balance = await refresh_balance_cache(db, user_id)
        await db.commit()
    except EcoLedgerError:
        await db.rollback()
        raise
    except (SQLAlchemyError, TimeoutError, OSError) as e:
        await db.rollback()
        logger.error("reward_redeem_failed", user_id=str(user_id), error=str(e))
        raise LedgerStoreError("redeem_reward") from e

    logger.info(
        "reward_redeemed",
        user_id=str(user_id),
        reward_id=str(reward_id),
        cost=reward.points_required,
        balance=new_balance,
    )
    return entry, new_balance


async def redeem_all_points(
    db: AsyncSession,
    user_id: UUID,
) -> tuple[LedgerEntry, int]:
    """
    Convert the user's whole balance into one redemption.

    Returns (entry, redeemed amount). Runs under the same row lock as
    redeem_reward; an empty balance raises InsufficientBalanceError.
    """
    try:
        locked = await db.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )
        if locked.scalar_one_or_none() is None:
            raise UserNotFoundError(user_id)

        balance = await compute_balance(db, user_id)
        if balance <= 0:
            raise InsufficientBalanceError(1, balance)

        entry = await append_entry(
            db,
            user_id,
            TransactionType.redeemed,
            balance,
            f"Redeemed all points: {balance}",
        )
        await refresh_balance_cache(db, user_id)
        await db.commit()
    except EcoLedgerError:
        await db.rollback()
        raise
    except (SQLAlchemyError, TimeoutError, OSError) as e:
        await db.rollback()
        logger.error("points_redeem_failed", user_id=str(user_id), error=str(e))
        raise LedgerStoreError("redeem_all_points") from e

    logger.info("points_redeemed", user_id=str(user_id), amount=balance)
    return entry, balance
