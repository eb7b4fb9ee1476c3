"""Shared pytest fixtures for the EcoLedger test suite.

Unit tests run against mocked async sessions; API tests mount the real
routers on the application with the database and auth dependencies
overridden.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-ecoledger-tests")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===========================================
# RESULT HELPERS
# ===========================================


def make_result(
    scalar: Any = None,
    scalars: list | None = None,
    rows: list | None = None,
    rowcount: int = 1,
    count: int | None = None,
) -> MagicMock:
    """Build a mock of what AsyncSession.execute returns."""
    result = MagicMock()
    result.rowcount = rowcount
    result.scalar_one_or_none.return_value = scalar
    result.scalar.return_value = count if count is not None else scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.all.return_value = rows or []
    return result


def make_nested_transaction(fail_on_enter: Exception | None = None) -> MagicMock:
    """Mock for ``session.begin_nested()`` used as ``async with``."""
    nested = MagicMock()
    if fail_on_enter is not None:
        nested.__aenter__ = AsyncMock(side_effect=fail_on_enter)
    else:
        nested.__aenter__ = AsyncMock(return_value=nested)
    nested.__aexit__ = AsyncMock(return_value=False)
    return nested


# ===========================================
# DATABASE SESSION FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncMock, None]:
    """Create a mock async database session for unit tests."""
    session = AsyncMock()
    session.add = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.begin_nested = MagicMock(side_effect=lambda: make_nested_transaction())

    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)

    yield session


# ===========================================
# DOMAIN OBJECT FACTORIES
# ===========================================


def make_task(
    status: str = "pending",
    owner_id=None,
    collector_id=None,
    **overrides: Any,
) -> SimpleNamespace:
    """Create a stand-in Task with every column TaskResponse reads."""
    values = {
        "id": uuid4(),
        "owner_id": owner_id or uuid4(),
        "location": "12 Canal Street",
        "waste_type": "plastic",
        "amount": "3 bags",
        "image_ref": None,
        "verification_result": None,
        "status": status,
        "collector_id": collector_id,
        "created_at": utcnow(),
        "accepted_at": None,
        "completed_at": None,
        "verified_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def make_user(**overrides: Any) -> SimpleNamespace:
    values = {
        "id": uuid4(),
        "display_name": "Reporter",
        "email": "reporter@example.com",
        "password_hash": "!unusable",
        "balance": 0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def make_entry(user_id=None, type: str = "earned_collection", amount: int = 75, **overrides: Any):
    values = {
        "id": uuid4(),
        "user_id": user_id or uuid4(),
        "type": type,
        "amount": amount,
        "description": "entry",
        "task_id": None,
        "created_at": utcnow(),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def sample_task():
    return make_task()


@pytest.fixture
def sample_user():
    return make_user()
