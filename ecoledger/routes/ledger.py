"""Ledger balance, history and reward redemption endpoints."""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.auth import get_current_user
from ecoledger.config import get_settings
from ecoledger.database import get_db
from ecoledger.models import User
from ecoledger.schemas import (
    BalanceResponse,
    LedgerEntryResponse,
    RedeemAllResponse,
    RedemptionResponse,
    RewardItemResponse,
)
from ecoledger.services import reward_service
from ecoledger.services.balance_service import compute_balance
from ecoledger.services.ledger_service import list_entries

router = APIRouter(prefix="/api", tags=["ledger"])


@router.get("/ledger/balance", response_model=BalanceResponse)
async def get_balance(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Balance folded from the full ledger, never from the cached column."""
    balance = await compute_balance(db, user.id)
    return BalanceResponse(
        user_id=user.id,
        balance=balance,
        computed_at=datetime.now(timezone.utc),
    )


@router.get("/ledger/transactions", response_model=list[LedgerEntryResponse])
async def get_transactions(
    limit: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    settings = get_settings()
    limit = min(limit or settings.ledger_page_limit, settings.ledger_max_limit)
    entries = await list_entries(db, user.id, limit=limit)
    return [LedgerEntryResponse.model_validate(e) for e in entries]


@router.get("/rewards", response_model=list[RewardItemResponse])
async def list_rewards(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rewards = await reward_service.list_rewards(db)
    return [RewardItemResponse.model_validate(r) for r in rewards]


@router.post("/rewards/redeem-all", response_model=RedeemAllResponse)
async def redeem_all_points(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Redeem the whole balance at once. Answers 402 when it is empty."""
    entry, redeemed = await reward_service.redeem_all_points(db, user.id)
    return RedeemAllResponse(
        entry=LedgerEntryResponse.model_validate(entry),
        redeemed=redeemed,
    )

@router.post("/rewards/{reward_id}/redeem", response_model=RedemptionResponse)
async def redeem_reward(
    reward_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Spend points on a reward. Answers 402 when the balance is too low."""
    entry, balance = await reward_service.redeem_reward(db, user.id, reward_id)
    return RedemptionResponse(
        entry=LedgerEntryResponse.model_validate(entry),
        balance=balance,
    )
