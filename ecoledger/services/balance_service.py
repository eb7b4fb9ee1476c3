"""Balance calculator — folds a user's ledger history into a point balance."""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.logging_config import get_logger
from ecoledger.models import LedgerEntry, User
from ecoledger.services.ledger_service import SIGN_TABLE, parse_transaction_type

logger = get_logger(__name__)


def _entry_fields(entry: Any) -> tuple[Any, int]:
    """Accept ORM rows, (type, amount) tuples or mappings."""
    if isinstance(entry, tuple):
        return entry[0], entry[1]
    if isinstance(entry, dict):
        return entry["type"], entry["amount"]
    return entry.type, entry.amount


def fold_balance(entries: Iterable[Any]) -> int:
    """
    Fold ledger entries into a balance.

    Earning types add their amount and spending types subtract it; any tag
    outside the closed set raises UnknownTransactionTypeError. The result is
    clamped at zero.
    """
    total = 0
    for entry in entries:
        raw_type, amount = _entry_fields(entry)
        total += SIGN_TABLE[parse_transaction_type(raw_type)] * int(amount)
    return max(total, 0)


async def compute_balance(db: AsyncSession, user_id: UUID) -> int:
    """Compute a user's balance from a single read of their ledger."""
    result = await db.execute(
        select(LedgerEntry.type, LedgerEntry.amount).where(
            LedgerEntry.user_id == user_id
        )
    )
    return fold_balance(tuple(row) for row in result.all())


async def refresh_balance_cache(db: AsyncSession, user_id: UUID) -> int:
    """
    Recompute the balance and write it to the advisory User.balance column.

    Nothing reads the cached column for decisions; it only serves cheap
    display paths. Joins the caller's transaction.
    """
    balance = await compute_balance(db, user_id)
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(balance=balance, updated_at=datetime.now(timezone.utc))
    )
    logger.debug("balance_cache_refreshed", user_id=str(user_id), balance=balance)
    return balance
