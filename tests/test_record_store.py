from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.models.enums import CropStatusEnum
from app.services.record_store import SqlRecordStore
from tests.conftest import FakeAsyncSession


def _factory(session: FakeAsyncSession):
	@asynccontextmanager
	async def factory():
		yield session

	return factory


@pytest.mark.asyncio
async def test_update_crop_commits_and_announces_change(fake_redis) -> None:
	session = FakeAsyncSession()
	session.execute.return_value = MagicMock(rowcount=1)
	crop_id = uuid4()

	store = SqlRecordStore(_factory(session), fake_redis, "test:changes")
	await store.update_crop(crop_id, status=CropStatusEnum.growing, status_alert_sent=False)

	session.commit.assert_awaited_once()
	channel, raw = fake_redis.publish.await_args.args
	assert channel == "test:changes:crops"
	assert json.loads(raw)["entity_id"] == str(crop_id)


@pytest.mark.asyncio
async def test_update_missing_crop_raises_lookup_error() -> None:
	session = FakeAsyncSession()
	session.execute.return_value = MagicMock(rowcount=0)

	with pytest.raises(LookupError):
		await SqlRecordStore(_factory(session)).update_crop(uuid4(), harvest_reminder_sent=True)


@pytest.mark.asyncio
async def test_update_crop_rolls_back_on_failure() -> None:
	session = FakeAsyncSession()
	session.execute.side_effect = ConnectionError("db gone")

	with pytest.raises(ConnectionError):
		await SqlRecordStore(_factory(session)).update_crop(uuid4(), status_alert_sent=True)
	session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_change_publish_failure_does_not_fail_write(fake_redis) -> None:
	session = FakeAsyncSession()
	session.execute.return_value = MagicMock(rowcount=1)
	fake_redis.publish.side_effect = ConnectionError("redis gone")

	await SqlRecordStore(_factory(session), fake_redis).update_crop(uuid4(), status_alert_sent=True)
	session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_list_queries_return_scalars() -> None:
	session = FakeAsyncSession()
	rows = [object(), object()]
	result = MagicMock()
	result.scalars.return_value.all.return_value = rows
	session.execute.return_value = result
	store = SqlRecordStore(_factory(session))

	assert await store.list_monitored_crops() == rows
	assert await store.list_open_tasks() == rows
	assert await store.list_ledger_entries(datetime(2026, 3, 1, tzinfo=UTC), datetime(2026, 4, 1, tzinfo=UTC)) == rows
	assert session.execute.await_count == 3
