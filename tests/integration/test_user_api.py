"""API tests for reports, ledger, notifications and account endpoints."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from conftest import make_entry, make_result, make_task, make_user
from ecoledger.auth import (
    create_access_token,
    decode_jwt,
    get_current_user,
    hash_password,
)
from ecoledger.database import get_db
from ecoledger.exceptions import InsufficientBalanceError, InvalidVerificationError
from ecoledger.main import app
from ecoledger.services.stats_service import LeaderboardRow, UserStats


@pytest.fixture
def user():
    return make_user(password_hash=hash_password("correct horse"))


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def client(user, db):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: user
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "service": "ecoledger"}

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"


class TestReports:
    def test_create_report(self, client, user):
        task = make_task(owner_id=user.id)
        entry = make_entry(user_id=user.id, type="earned_report", amount=10)
        with patch(
            "ecoledger.routes.reports.lifecycle_service.submit_report",
            AsyncMock(return_value=(task, entry)),
        ) as submit:
            resp = client.post(
                "/api/reports",
                json={"location": "Harbour", "waste_type": "metal", "amount": "1 crate"},
            )

        assert resp.status_code == 201
        assert resp.json()["status"] == "pending"
        assert resp.json()["collector_id"] is None
        assert submit.await_args.kwargs["owner_id"] == user.id

    def test_create_report_requires_location(self, client):
        resp = client.post("/api/reports", json={"waste_type": "metal", "amount": "1"})
        assert resp.status_code == 422

    def test_create_report_with_invalid_verification(self, client):
        with patch(
            "ecoledger.routes.reports.lifecycle_service.submit_report",
            AsyncMock(side_effect=InvalidVerificationError("confidence above 1")),
        ):
            resp = client.post(
                "/api/reports",
                json={"location": "Harbour", "waste_type": "metal", "amount": "1 crate"},
            )

        assert resp.status_code == 422
        assert resp.json()["error_type"] == "invalid_verification"

    def test_list_my_reports(self, client, user):
        rows = [make_task(owner_id=user.id)]
        with patch(
            "ecoledger.routes.reports.task_service.list_tasks_by_owner",
            AsyncMock(return_value=(rows, 1)),
        ):
            resp = client.get("/api/reports")
        assert resp.status_code == 200
        assert resp.json()["total"] == 1


class TestLedger:
    def test_balance_is_computed_from_ledger(self, client, user):
        user.balance = 999
        with patch(
            "ecoledger.routes.ledger.compute_balance", AsyncMock(return_value=65)
        ):
            resp = client.get("/api/ledger/balance")

        assert resp.status_code == 200
        assert resp.json()["balance"] == 65

    def test_transactions_limit_clamped(self, client, user):
        entries = [make_entry(user_id=user.id)]
        with patch(
            "ecoledger.routes.ledger.list_entries", AsyncMock(return_value=entries)
        ) as list_mock:
            resp = client.get("/api/ledger/transactions", params={"limit": 10_000})

        assert resp.status_code == 200
        assert len(resp.json()) == 1
        assert list_mock.await_args.kwargs["limit"] == 500

    def test_redeem_insufficient_balance(self, client):
        error = InsufficientBalanceError(100, 65)
        with patch(
            "ecoledger.routes.ledger.reward_service.redeem_reward",
            AsyncMock(side_effect=error),
        ):
            resp = client.post(f"/api/rewards/{uuid4()}/redeem")

        assert resp.status_code == 402
        assert resp.json()["error_type"] == "insufficient_balance"

    def test_redeem(self, client, user):
        entry = make_entry(user_id=user.id, type="redeemed", amount=20)
        with patch(
            "ecoledger.routes.ledger.reward_service.redeem_reward",
            AsyncMock(return_value=(entry, 45)),
        ):
            resp = client.post(f"/api/rewards/{uuid4()}/redeem")

        assert resp.status_code == 200
        assert resp.json()["balance"] == 45
        assert resp.json()["entry"]["type"] == "redeemed"

    def test_redeem_all(self, client, user):
        entry = make_entry(user_id=user.id, type="redeemed", amount=65)
        with patch(
            "ecoledger.routes.ledger.reward_service.redeem_all_points",
            AsyncMock(return_value=(entry, 65)),
        ) as redeem:
            resp = client.post("/api/rewards/redeem-all")

        assert resp.status_code == 200
        assert resp.json()["redeemed"] == 65
        assert redeem.await_args.args[1] == user.id

    def test_redeem_all_with_empty_balance(self, client):
        with patch(
            "ecoledger.routes.ledger.reward_service.redeem_all_points",
            AsyncMock(side_effect=InsufficientBalanceError(1, 0)),
        ):
            resp = client.post("/api/rewards/redeem-all")

        assert resp.status_code == 402
        assert resp.json()["error_type"] == "insufficient_balance"


class TestNotifications:
    def _notification(self, user_id):
        return SimpleNamespace(
            id=uuid4(),
            user_id=user_id,
            message="Your waste report has been collected!",
            notification_type="collection_complete",
            is_read=False,
            image_ref=None,
            metadata_={"reward_amount": 75},
            created_at=datetime.now(timezone.utc),
        )

    def test_list(self, client, user):
        rows = [self._notification(user.id)]
        with patch(
            "ecoledger.routes.notifications.notification_service.list_notifications",
            AsyncMock(return_value=(rows, 1, 1)),
        ):
            resp = client.get("/api/notifications")

        assert resp.status_code == 200
        data = resp.json()
        assert data["unread_count"] == 1
        assert data["items"][0]["metadata"] == {"reward_amount": 75}

    def test_mark_read_not_found(self, client):
        with patch(
            "ecoledger.routes.notifications.notification_service.mark_read",
            AsyncMock(return_value=None),
        ):
            resp = client.post(f"/api/notifications/{uuid4()}/read")
        assert resp.status_code == 404

    def test_read_all(self, client):
        with patch(
            "ecoledger.routes.notifications.notification_service.mark_all_read",
            AsyncMock(return_value=3),
        ):
            resp = client.post("/api/notifications/read-all")
        assert resp.status_code == 200
        assert "3" in resp.json()["message"]


class TestAccount:
    def test_wrong_password(self, client):
        with patch(
            "ecoledger.routes.users.account_service.delete_user", AsyncMock()
        ) as delete:
            resp = client.request("DELETE", "/api/users/me", json={"password": "nope"})

        assert resp.status_code == 401
        delete.assert_not_awaited()

    def test_delete_account(self, client, user):
        with patch(
            "ecoledger.routes.users.account_service.delete_user",
            AsyncMock(return_value={}),
        ) as delete, patch(
            "ecoledger.routes.users.get_session_factory", MagicMock()
        ):
            resp = client.request(
                "DELETE", "/api/users/me", json={"password": "correct horse"}
            )

        assert resp.status_code == 200
        assert delete.await_args.args[1] == user.id

    def test_my_stats(self, client, user):
        stats = UserStats(
            user_id=user.id,
            total_reports=3,
            total_earnings=105,
            completed_tasks=1,
            rank=2,
            waste_collected_kg=6.0,
            co2_saved_kg=3.0,
        )
        with patch(
            "ecoledger.routes.users.stats_service.user_stats",
            AsyncMock(return_value=stats),
        ) as user_stats:
            resp = client.get("/api/users/me/stats")

        assert resp.status_code == 200
        data = resp.json()
        assert data["total_reports"] == 3
        assert data["total_earnings"] == 105
        assert data["rank"] == 2
        assert user_stats.await_args.args[1] == user.id

    def test_leaderboard(self, client):
        row = LeaderboardRow(
            user_id=uuid4(),
            display_name="Ana",
            balance=65,
            reports_submitted=1,
            tasks_completed=1,
            score=90,
            rank=1,
        )
        with patch(
            "ecoledger.routes.users.stats_service.leaderboard",
            AsyncMock(return_value=([row], 1)),
        ):
            resp = client.get("/api/leaderboard")

        assert resp.status_code == 200
        assert resp.json()["items"][0]["score"] == 90


class TestUserAuth:
    def test_missing_token(self, db):
        app.dependency_overrides[get_db] = lambda: db
        try:
            resp = TestClient(app).get("/api/ledger/balance")
        finally:
            app.dependency_overrides.clear()
        assert resp.status_code == 401

    def test_token_for_deleted_user(self, db):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        db.execute = AsyncMock(return_value=result)
        app.dependency_overrides[get_db] = lambda: db
        token = create_access_token(str(uuid4()))
        try:
            resp = TestClient(app).get(
                "/api/ledger/balance", headers={"Authorization": f"Bearer {token}"}
            )
        finally:
            app.dependency_overrides.clear()
        assert resp.status_code == 401


class TestRegisterAndLogin:
    @pytest.fixture
    def anon_client(self, db):
        db.add = MagicMock()
        app.dependency_overrides[get_db] = lambda: db
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_register_issues_token(self, anon_client, db):
        db.execute = AsyncMock(return_value=make_result(scalar=None))

        resp = anon_client.post(
            "/api/auth/register",
            json={
                "email": " New.User@Example.com ",
                "password": "long enough",
                "display_name": "New User",
            },
        )

        assert resp.status_code == 201
        created = db.add.call_args.args[0]
        assert created.email == "new.user@example.com"
        assert created.password_hash != "long enough"
        data = resp.json()
        assert data["user"]["email"] == "new.user@example.com"
        assert decode_jwt(data["access_token"])["sub"] == str(created.id)
        db.commit.assert_awaited_once()

    def test_register_duplicate_email(self, anon_client, db):
        db.execute = AsyncMock(return_value=make_result(scalar=uuid4()))

        resp = anon_client.post(
            "/api/auth/register",
            json={
                "email": "reporter@example.com",
                "password": "long enough",
                "display_name": "Again",
            },
        )

        assert resp.status_code == 409
        db.add.assert_not_called()

    def test_login(self, anon_client, db, user):
        db.execute = AsyncMock(return_value=make_result(scalar=user))

        resp = anon_client.post(
            "/api/auth/login",
            json={"email": "Reporter@example.com", "password": "correct horse"},
        )

        assert resp.status_code == 200
        assert decode_jwt(resp.json()["access_token"])["sub"] == str(user.id)

    def test_login_wrong_password(self, anon_client, db, user):
        db.execute = AsyncMock(return_value=make_result(scalar=user))

        resp = anon_client.post(
            "/api/auth/login",
            json={"email": "reporter@example.com", "password": "wrong horse"},
        )

        assert resp.status_code == 401

    def test_login_resolved_admin_has_no_usable_password(self, anon_client, db):
        admin = make_user(password_hash="!unusable-token")
        db.execute = AsyncMock(return_value=make_result(scalar=admin))

        resp = anon_client.post(
            "/api/auth/login",
            json={"email": "reporter@example.com", "password": "anything"},
        )

        assert resp.status_code == 401
