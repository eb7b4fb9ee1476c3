"""Ledger store — append-only reward and spend entries per user."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.exceptions import (
    InvalidAmountError,
    InvalidLimitError,
    UnknownTransactionTypeError,
)
from ecoledger.logging_config import get_logger
from ecoledger.models import LedgerEntry, TransactionType

logger = get_logger(__name__)

# Sign applied to an entry's amount when folding a balance
SIGN_TABLE: dict[TransactionType, int] = {
    TransactionType.earned_report: 1,
    TransactionType.earned_collection: 1,
    TransactionType.earned_collect: 1,
    TransactionType.reward: 1,
    TransactionType.redeemed: -1,
    TransactionType.spent: -1,
}

EARNING_TYPES = frozenset(t for t, sign in SIGN_TABLE.items() if sign > 0)
SPENDING_TYPES = frozenset(t for t, sign in SIGN_TABLE.items() if sign < 0)


def parse_transaction_type(value: str | TransactionType) -> TransactionType:
    """Coerce a raw tag into the closed TransactionType set or raise."""
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(value)
    except ValueError:
        raise UnknownTransactionTypeError(value) from None


def validate_amount(amount: object) -> int:
    """Amounts are plain non-negative ints; the sign comes from the type."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmountError(amount)
    return amount


async def append_entry(
    db: AsyncSession,
    user_id: UUID,
    transaction_type: str | TransactionType,
    amount: int,
    description: str,
    task_id: UUID | None = None,
) -> LedgerEntry:
    """
    Append one immutable ledger entry.

    The entry joins the caller's transaction; the caller commits. No
    deduplication happens here, so callers must guard against issuing the
    same logical event twice.
    """
    tx_type = parse_transaction_type(transaction_type)
    amount = validate_amount(amount)

    entry = LedgerEntry(
        user_id=user_id,
        type=tx_type.value,
        amount=amount,
        description=description,
        task_id=task_id,
    )
    db.add(entry)
    await db.flush()

    logger.info(
        "ledger_entry_appended",
        user_id=str(user_id),
        type=tx_type.value,
        amount=amount,
        task_id=str(task_id) if task_id else None,
    )
    return entry


async def list_entries(
    db: AsyncSession,
    user_id: UUID,
    limit: int = 50,
) -> list[LedgerEntry]:
    """Return a user's entries newest-first, at most ``limit`` of them."""
    if limit < 1:
        raise InvalidLimitError(limit)
    result = await db.execute(
        select(LedgerEntry)
        .where(LedgerEntry.user_id == user_id)
        .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
