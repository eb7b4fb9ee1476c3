"""Tests for leaderboard scoring and ranking."""

from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from conftest import make_result
from ecoledger.services.stats_service import (
    LeaderboardRow,
    leaderboard,
    rank_rows,
    user_stats,
)


def _row(balance=0, reports=0, collections=0, name="user"):
    return LeaderboardRow(
        user_id=uuid4(),
        display_name=name,
        balance=balance,
        reports_submitted=reports,
        tasks_completed=collections,
    )


class TestRankRows:
    def test_score_weights(self):
        [row] = rank_rows([_row(balance=65, reports=1, collections=1)], 10, 15)
        assert row.score == 65 + 10 + 15
        assert row.rank == 1

    def test_sorted_by_score_descending(self):
        low = _row(balance=5, name="low")
        high = _row(balance=100, name="high")
        ranked = rank_rows([low, high], 10, 15)
        assert [r.display_name for r in ranked] == ["high", "low"]
        assert [r.rank for r in ranked] == [1, 2]

    def test_ties_break_on_reports_then_collections(self):
        # Equal scores of 30
        by_reports = _row(reports=3, name="reporter")
        by_collections = _row(collections=2, name="collector")
        by_balance = _row(balance=30, name="saver")
        ranked = rank_rows([by_balance, by_collections, by_reports], 10, 15)
        assert [r.display_name for r in ranked] == ["reporter", "collector", "saver"]

    def test_limit(self):
        ranked = rank_rows([_row(balance=i) for i in range(5)], 10, 15, limit=2)
        assert [r.balance for r in ranked] == [4, 3]


class TestLeaderboardQuery:
    @pytest.mark.asyncio
    async def test_builds_rows_and_clamps_balance(self, db_session):
        a, b = uuid4(), uuid4()
        db_session.execute.return_value = make_result(
            rows=[(a, "Ana", 65, 1, 1), (b, "Bo", -20, 0, 0)]
        )

        rows, total = await leaderboard(db_session, limit=10)

        assert total == 2
        assert rows[0].user_id == a
        assert rows[0].score == 90
        assert rows[1].balance == 0

    @pytest.mark.asyncio
    async def test_sums_with_signed_case(self, db_session):
        db_session.execute.return_value = make_result(rows=[])

        await leaderboard(db_session)

        sql = str(
            db_session.execute.await_args.args[0].compile(dialect=postgresql.dialect())
        )
        assert "CASE WHEN" in sql
        assert " ELSE " not in sql
        assert "LEFT OUTER JOIN" in sql


class TestUserStats:
    @pytest.mark.asyncio
    async def test_totals_and_rank(self, db_session):
        user_id = uuid4()
        db_session.execute.side_effect = [
            make_result(count=3),
            make_result(count=1),
            make_result(count=105),
            make_result(count=1),
        ]

        stats = await user_stats(db_session, user_id)

        assert stats.user_id == user_id
        assert stats.total_reports == 3
        assert stats.completed_tasks == 1
        assert stats.total_earnings == 105
        assert stats.rank == 2
        assert stats.waste_collected_kg == 6.0
        assert stats.co2_saved_kg == 3.0

    @pytest.mark.asyncio
    async def test_earnings_exclude_spending_types(self, db_session):
        db_session.execute.side_effect = [
            make_result(count=0),
            make_result(count=0),
            make_result(count=0),
        ]

        await user_stats(db_session, uuid4())

        compiled = db_session.execute.await_args_list[2].args[0].compile(
            dialect=postgresql.dialect()
        )
        [types] = [v for v in compiled.params.values() if isinstance(v, list)]
        assert set(types) == {
            "earned_report", "earned_collection", "earned_collect", "reward",
        }

    @pytest.mark.asyncio
    async def test_user_without_reports_is_unranked(self, db_session):
        db_session.execute.side_effect = [
            make_result(count=0),
            make_result(count=2),
            make_result(count=150),
        ]

        stats = await user_stats(db_session, uuid4())

        assert stats.rank is None
        assert stats.completed_tasks == 2
        assert db_session.execute.await_count == 3
