"""Leaderboard and per-user stats built from ledger sums and report/collection counts."""

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ecoledger.config import get_settings
from ecoledger.models import CollectionRecord, LedgerEntry, Task, User
from ecoledger.services.ledger_service import EARNING_TYPES, SPENDING_TYPES

# Rough per-report estimates shown on the user's dashboard
WASTE_KG_PER_REPORT = 2
CO2_KG_PER_WASTE_KG = 0.5


@dataclass
class LeaderboardRow:
    user_id: UUID
    display_name: str
    balance: int
    reports_submitted: int
    tasks_completed: int
    score: int = 0
    rank: int = 0


@dataclass
class UserStats:
    user_id: UUID
    total_reports: int
    total_earnings: int
    completed_tasks: int
    rank: int | None
    waste_collected_kg: float
    co2_saved_kg: float


def _signed_amount():
    # ck_ledger_type restricts type to these two sets, so every row matches a branch
    return case(
        (LedgerEntry.type.in_([t.value for t in EARNING_TYPES]), LedgerEntry.amount),
        (LedgerEntry.type.in_([t.value for t in SPENDING_TYPES]), -LedgerEntry.amount),
    )


def rank_rows(
    rows: Iterable[LeaderboardRow],
    report_weight: int,
    collection_weight: int,
    limit: int | None = None,
) -> list[LeaderboardRow]:
    """Score, sort and rank rows; ties break on reports, collections, balance."""
    scored = []
    for row in rows:
        row.score = (
            row.balance
            + report_weight * row.reports_submitted
            + collection_weight * row.tasks_completed
        )
        scored.append(row)

    scored.sort(
        key=lambda r: (r.score, r.reports_submitted, r.tasks_completed, r.balance),
        reverse=True,
    )
    if limit is not None:
        scored = scored[:limit]
    for index, row in enumerate(scored, start=1):
        row.rank = index
    return scored


async def leaderboard(db: AsyncSession, limit: int = 50) -> tuple[list[LeaderboardRow], int]:
    """Return (ranked rows, total users)."""
    settings = get_settings()

    balances = (
        select(
            LedgerEntry.user_id.label("user_id"),
            func.sum(_signed_amount()).label("raw_balance"),
        )
        .group_by(LedgerEntry.user_id)
        .subquery()
    )
    reports = (
        select(Task.owner_id.label("user_id"), func.count(Task.id).label("n"))
        .group_by(Task.owner_id)
        .subquery()
    )
    collections = (
        select(
            CollectionRecord.collector_id.label("user_id"),
            func.count(CollectionRecord.id).label("n"),
        )
        .group_by(CollectionRecord.collector_id)
        .subquery()
    )

    query = (
        select(
            User.id,
            User.display_name,
            func.coalesce(balances.c.raw_balance, 0),
            func.coalesce(reports.c.n, 0),
            func.coalesce(collections.c.n, 0),
        )
        .outerjoin(balances, balances.c.user_id == User.id)
        .outerjoin(reports, reports.c.user_id == User.id)
        .outerjoin(collections, collections.c.user_id == User.id)
    )
    result = await db.execute(query)

    rows = [
        LeaderboardRow(
            user_id=user_id,
            display_name=display_name,
            balance=max(int(raw_balance), 0),
            reports_submitted=int(report_count),
            tasks_completed=int(collection_count),
        )
        for user_id, display_name, raw_balance, report_count, collection_count
        in result.all()
    ]
    total = len(rows)
    ranked = rank_rows(
        rows,
        settings.leaderboard_report_weight,
        settings.leaderboard_collection_weight,
        limit,
    )
    return ranked, total


async def user_stats(db: AsyncSession, user_id: UUID) -> UserStats:
    """
    Dashboard totals for one user.

    Earnings sum only the earning entry types, so redemptions do not reduce
    them. Rank orders users by report count; a user with no reports is
    unranked.
    """
    total_reports = (await db.execute(
        select(func.count(Task.id)).where(Task.owner_id == user_id)
    )).scalar() or 0
    completed_tasks = (await db.execute(
        select(func.count(CollectionRecord.id)).where(
            CollectionRecord.collector_id == user_id
        )
    )).scalar() or 0
    total_earnings = (await db.execute(
        select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
            LedgerEntry.user_id == user_id,
            LedgerEntry.type.in_([t.value for t in EARNING_TYPES]),
        )
    )).scalar() or 0

    rank = None
    if total_reports > 0:
        ahead = (
            select(Task.owner_id)
            .group_by(Task.owner_id)
            .having(func.count(Task.id) > total_reports)
            .subquery()
        )
        users_ahead = (await db.execute(
            select(func.count()).select_from(ahead)
        )).scalar() or 0
        rank = users_ahead + 1

    waste_kg = total_reports * WASTE_KG_PER_REPORT
    return UserStats(
        user_id=user_id,
        total_reports=int(total_reports),
        total_earnings=int(total_earnings),
        completed_tasks=int(completed_tasks),
        rank=rank,
        waste_collected_kg=float(waste_kg),
        co2_saved_kg=round(waste_kg * CO2_KG_PER_WASTE_KG, 1),
    )
