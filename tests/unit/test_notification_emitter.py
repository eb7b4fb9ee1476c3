"""Tests for notification creation and read tracking."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from conftest import make_result
from ecoledger.models import Notification
from ecoledger.services.notification_service import (
    DatabaseNotificationEmitter,
    build_collection_message,
    get_unread_count,
    mark_all_read,
    mark_read,
)


class TestBuildMessage:
    def test_mentions_reward(self):
        assert "75 tokens" in build_collection_message(75, None)

    def test_photo_suffix(self):
        assert build_collection_message(75, None).endswith("task.")
        assert "photo" in build_collection_message(75, "img.jpg")


class TestDatabaseEmitter:
    @pytest.mark.asyncio
    async def test_persists_notification(self, db_session):
        user_id = uuid4()
        added = []
        db_session.add.side_effect = added.append

        notif = await DatabaseNotificationEmitter().notify(
            db_session,
            user_id,
            "hello",
            "collection_complete",
            metadata={"reward_amount": 75},
        )

        assert added == [notif]
        assert isinstance(notif, Notification)
        assert notif.user_id == user_id
        assert notif.metadata_ == {"reward_amount": 75}
        db_session.flush.assert_awaited_once()
        db_session.commit.assert_not_awaited()


class TestReadTracking:
    @pytest.mark.asyncio
    async def test_unread_count(self, db_session):
        db_session.execute.return_value = make_result(count=4)
        assert await get_unread_count(db_session, uuid4()) == 4

    @pytest.mark.asyncio
    async def test_mark_read_foreign_notification(self, db_session):
        db_session.execute.return_value = make_result(scalar=None)
        assert await mark_read(db_session, uuid4(), uuid4()) is None
        db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mark_read_sets_flag(self, db_session):
        notif = SimpleNamespace(is_read=False)
        db_session.execute.return_value = make_result(scalar=notif)

        result = await mark_read(db_session, uuid4(), uuid4())

        assert result.is_read is True
        db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mark_all_read(self, db_session):
        db_session.execute.return_value = make_result(rowcount=3)
        assert await mark_all_read(db_session, uuid4()) == 3
        db_session.commit.assert_awaited_once()
