from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import httpx
import pytest
from httpx import AsyncClient

from app.main import app
from app.models.enums import AlertPriorityEnum, AlertTypeEnum
from app.schemas.alerts import OutOfStockAlert
from app.schemas.notifications import NotificationRead
from app.services.notification_service import (
	NotificationPublisher,
	NotificationService,
	SessionNotificationSink,
)
from app.services.system_notifier import WebhookSystemNotifier
from tests.conftest import FIXED_NOW, FakeAsyncSession


def _row(**overrides: Any) -> SimpleNamespace:
	values: dict[str, Any] = {
		"id": uuid4(),
		"type": AlertTypeEnum.low_inventory,
		"title": "Low Inventory",
		"message": "DAP is running low",
		"priority": AlertPriorityEnum.medium,
		"target": "all",
		"source_type": "inventory",
		"source_id": str(uuid4()),
		"data": {"quantity": 4.0},
		"read": False,
		"created_at": FIXED_NOW,
	}
	values.update(overrides)
	return SimpleNamespace(**values)


class StubNotifier:
	def __init__(self, granted: bool = True, fail: bool = False) -> None:
		self.granted = granted
		self.fail = fail
		self.calls: list[dict[str, str]] = []

	@property
	def permission_granted(self) -> bool:
		return self.granted

	async def notify(self, *, title: str, body: str, tag: str) -> None:
		self.calls.append({"title": title, "body": body, "tag": tag})
		if self.fail:
			raise httpx.ConnectError("relay down")


# ── Service ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_from_candidate_maps_envelope_and_payload(fake_db_session: FakeAsyncSession) -> None:
	item_id = uuid4()
	candidate = OutOfStockAlert(item_id=item_id, title="Out of Stock", message="Urea is out of stock")

	notification = await NotificationService(fake_db_session).create_from_candidate(candidate)
	assert notification.type == AlertTypeEnum.out_of_stock
	assert notification.priority == AlertPriorityEnum.high
	assert notification.source_type == "inventory"
	assert notification.source_id == str(item_id)
	assert notification.data == {"item_id": str(item_id)}
	assert notification.read is False
	fake_db_session.add.assert_called_once_with(notification)
	fake_db_session.flush.assert_awaited()


@pytest.mark.asyncio
async def test_mark_read_missing_notification(fake_db_session: FakeAsyncSession) -> None:
	result = MagicMock()
	result.scalar_one_or_none.return_value = None
	fake_db_session.execute.return_value = result

	with pytest.raises(LookupError):
		await NotificationService(fake_db_session).mark_read(uuid4())


@pytest.mark.asyncio
async def test_mark_read_sets_flag(fake_db_session: FakeAsyncSession) -> None:
	row = _row()
	result = MagicMock()
	result.scalar_one_or_none.return_value = row
	fake_db_session.execute.return_value = result

	updated = await NotificationService(fake_db_session).mark_read(row.id)
	assert updated.read is True


@pytest.mark.asyncio
async def test_mark_all_read_returns_rowcount(fake_db_session: FakeAsyncSession) -> None:
	fake_db_session.execute.return_value = MagicMock(rowcount=3)
	assert await NotificationService(fake_db_session).mark_all_read("wanjiru") == 3


# ── Publisher & sink ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_publisher_pushes_live_event_and_urgent_system_notification(fake_redis) -> None:
	notifier = StubNotifier()
	publisher = NotificationPublisher(fake_redis, "live", notifier)
	event = NotificationRead.model_validate(
		_row(type=AlertTypeEnum.out_of_stock, priority=AlertPriorityEnum.high, title="Out of Stock")
	)

	await publisher.publish(event)
	await publisher.drain()
	channel, raw = fake_redis.publish.await_args.args
	assert channel == "live"
	payload = json.loads(raw)
	assert payload["event_type"] == "notification"
	assert payload["id"] == str(event.id)
	assert notifier.calls == [{"title": "Out of Stock", "body": event.message, "tag": "out_of_stock"}]


@pytest.mark.asyncio
async def test_publisher_skips_system_notification_for_low_priority_or_no_permission(fake_redis) -> None:
	notifier = StubNotifier()
	publisher = NotificationPublisher(fake_redis, "live", notifier)
	await publisher.publish(NotificationRead.model_validate(_row()))
	await publisher.drain()
	assert notifier.calls == []

	denied = StubNotifier(granted=False)
	urgent = NotificationRead.model_validate(_row(priority=AlertPriorityEnum.critical))
	await NotificationPublisher(fake_redis, "live", denied).publish(urgent)
	assert denied.calls == []


@pytest.mark.asyncio
async def test_publisher_failures_never_raise(fake_redis) -> None:
	fake_redis.publish.side_effect = ConnectionError("redis gone")
	notifier = StubNotifier(fail=True)
	event = NotificationRead.model_validate(_row(priority=AlertPriorityEnum.high))

	publisher = NotificationPublisher(fake_redis, "live", notifier)
	await publisher.publish(event)
	await publisher.drain()
	assert len(notifier.calls) == 1


@pytest.mark.asyncio
async def test_slow_system_notifier_does_not_block_publish(fake_redis) -> None:
	release = asyncio.Event()

	class SlowNotifier(StubNotifier):
		async def notify(self, *, title: str, body: str, tag: str) -> None:
			await release.wait()
			await super().notify(title=title, body=body, tag=tag)

	notifier = SlowNotifier()
	publisher = NotificationPublisher(fake_redis, "live", notifier)
	event = NotificationRead.model_validate(_row(priority=AlertPriorityEnum.high))

	await asyncio.wait_for(publisher.publish(event), timeout=0.5)
	fake_redis.publish.assert_awaited_once()
	assert notifier.calls == []

	release.set()
	await publisher.drain()
	assert len(notifier.calls) == 1


@pytest.mark.asyncio
async def test_session_sink_commits_then_publishes(monkeypatch: pytest.MonkeyPatch) -> None:
	session = FakeAsyncSession()
	row = _row(type=AlertTypeEnum.out_of_stock, priority=AlertPriorityEnum.high)

	@asynccontextmanager
	async def factory():
		yield session

	async def fake_create(self: NotificationService, _candidate: Any) -> Any:
		return row

	monkeypatch.setattr(NotificationService, "create_from_candidate", fake_create)
	publisher = MagicMock()
	publisher.publish = AsyncMock()

	candidate = OutOfStockAlert(item_id=uuid4(), title="Out of Stock", message="Urea is out of stock")
	event = await SessionNotificationSink(factory, publisher).create(candidate)
	assert event.id == row.id
	session.commit.assert_awaited_once()
	publisher.publish.assert_awaited_once_with(event)


@pytest.mark.asyncio
async def test_session_sink_rolls_back_and_skips_publish_on_failure(monkeypatch: pytest.MonkeyPatch) -> None:
	session = FakeAsyncSession()
	session.commit.side_effect = ConnectionError("db gone")

	@asynccontextmanager
	async def factory():
		yield session

	async def fake_create(self: NotificationService, _candidate: Any) -> Any:
		return _row()

	monkeypatch.setattr(NotificationService, "create_from_candidate", fake_create)
	publisher = MagicMock()
	publisher.publish = AsyncMock()

	candidate = OutOfStockAlert(item_id=uuid4(), title="Out of Stock", message="Urea is out of stock")
	with pytest.raises(ConnectionError):
		await SessionNotificationSink(factory, publisher).create(candidate)
	session.rollback.assert_awaited_once()
	publisher.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_webhook_system_notifier_posts_payload() -> None:
	seen: list[dict[str, Any]] = []

	def handler(request: httpx.Request) -> httpx.Response:
		seen.append(json.loads(request.content))
		return httpx.Response(204)

	notifier = WebhookSystemNotifier(
		"http://relay.local/notify",
		"/farm-logo.png",
		transport=httpx.MockTransport(handler),
	)
	assert notifier.permission_granted is True
	await notifier.notify(title="Task Overdue", body="Spray is overdue", tag="task_overdue")
	assert seen == [
		{
			"title": "Task Overdue",
			"body": "Spray is overdue",
			"icon": "/farm-logo.png",
			"badge": "/farm-logo.png",
			"tag": "task_overdue",
		}
	]


# ── Routes ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_notifications_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	rows = [_row(), _row(read=True)]
	captured: dict[str, Any] = {}

	async def fake_list(self: NotificationService, target: Any = None, *, unread_only: bool = False, limit: int = 50):
		captured.update(target=target, unread_only=unread_only, limit=limit)
		return rows

	async def fake_count(self: NotificationService, _target: Any = None) -> int:
		return 1

	monkeypatch.setattr(NotificationService, "list_notifications", fake_list)
	monkeypatch.setattr(NotificationService, "unread_count", fake_count)

	response = await client.get("/api/v1/notifications?target=wanjiru&unread_only=true")
	assert response.status_code == 200
	body = response.json()
	assert len(body["items"]) == 2
	assert body["unread_count"] == 1
	assert captured == {"target": "wanjiru", "unread_only": True, "limit": 50}


@pytest.mark.asyncio
async def test_unread_count_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	async def fake_count(self: NotificationService, _target: Any = None) -> int:
		return 7

	monkeypatch.setattr(NotificationService, "unread_count", fake_count)

	response = await client.get("/api/v1/notifications/unread-count")
	assert response.status_code == 200
	assert response.json() == {"target": None, "unread_count": 7}


@pytest.mark.asyncio
async def test_create_notification_endpoint_publishes(
	client: AsyncClient,
	fake_redis: Any,
	fake_db_session: FakeAsyncSession,
	monkeypatch: pytest.MonkeyPatch,
) -> None:
	row = _row(type=AlertTypeEnum.general, title="Market day", message="Buyers arrive at 10am")

	async def fake_create(self: NotificationService, _payload: Any) -> Any:
		return row

	monkeypatch.setattr(NotificationService, "create", fake_create)
	monkeypatch.setattr(app.state, "notification_publisher", NotificationPublisher(fake_redis, "live"), raising=False)

	response = await client.post(
		"/api/v1/notifications",
		json={"title": "Market day", "message": "Buyers arrive at 10am"},
	)
	assert response.status_code == 201
	assert response.json()["id"] == str(row.id)
	fake_db_session.commit.assert_awaited()
	fake_redis.publish.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_notification_rejects_blank_title(client: AsyncClient) -> None:
	response = await client.post("/api/v1/notifications", json={"title": "", "message": "x"})
	assert response.status_code == 422


@pytest.mark.asyncio
async def test_mark_read_endpoint_not_found(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	async def fake_mark(self: NotificationService, notification_id: UUID) -> Any:
		raise LookupError(f"Notification {notification_id} not found")

	monkeypatch.setattr(NotificationService, "mark_read", fake_mark)

	response = await client.put(f"/api/v1/notifications/{uuid4()}/read")
	assert response.status_code == 404


@pytest.mark.asyncio
async def test_mark_read_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	row = _row(read=True)

	async def fake_mark(self: NotificationService, _notification_id: UUID) -> Any:
		return row

	monkeypatch.setattr(NotificationService, "mark_read", fake_mark)

	response = await client.put(f"/api/v1/notifications/{row.id}/read")
	assert response.status_code == 200
	assert response.json()["read"] is True


@pytest.mark.asyncio
async def test_mark_all_read_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	async def fake_mark_all(self: NotificationService, target: str) -> int:
		assert target == "wanjiru"
		return 4

	monkeypatch.setattr(NotificationService, "mark_all_read", fake_mark_all)

	response = await client.put("/api/v1/notifications/read-all", json={"target": "wanjiru"})
	assert response.status_code == 200
	assert response.json() == {"updated": 4}


@pytest.mark.asyncio
async def test_delete_notification_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	async def fake_delete(self: NotificationService, _notification_id: UUID) -> None:
		return None

	monkeypatch.setattr(NotificationService, "delete_notification", fake_delete)

	response = await client.delete(f"/api/v1/notifications/{uuid4()}")
	assert response.status_code == 204
