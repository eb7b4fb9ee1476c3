"""Account and leaderboard endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.auth import get_current_user, verify_password
from ecoledger.database import get_db, get_session_factory
from ecoledger.models import User
from ecoledger.schemas import (
    AccountDeleteRequest,
    LeaderboardEntry,
    LeaderboardResponse,
    MessageResponse,
    UserStatsResponse,
)
from ecoledger.services import account_service, stats_service

router = APIRouter(prefix="/api", tags=["users"])


@router.delete("/users/me", response_model=MessageResponse)
async def delete_account(
    body: AccountDeleteRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Delete the current account after confirming its password."""
    if not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        )
    user_id = user.id
    # The cascade runs on its own sessions; release this one's snapshot first
    await db.close()
    await account_service.delete_user(get_session_factory(), user_id)
    return MessageResponse(message="Account deleted")


@router.get("/users/me/stats", response_model=UserStatsResponse)
async def get_my_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Report, collection and earnings totals for the current user."""
    stats = await stats_service.user_stats(db, user.id)
    return UserStatsResponse.model_validate(stats)

@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await stats_service.leaderboard(db, limit=limit)
    return LeaderboardResponse(
        items=[
            LeaderboardEntry(
                rank=r.rank,
                user_id=r.user_id,
                display_name=r.display_name,
                balance=r.balance,
                reports_submitted=r.reports_submitted,
                tasks_completed=r.tasks_completed,
                score=r.score,
            )
            for r in rows
        ],
        total_users=total,
        generated_at=datetime.now(timezone.utc),
    )
