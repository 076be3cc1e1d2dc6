"""Shared pytest fixtures — async test client, fake Redis, in-memory record stores."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.database import get_db
from app.main import app
from app.models.enums import CropStatusEnum, TaskStatusEnum
from app.schemas.alerts import AlertCandidate
from app.schemas.notifications import NotificationRead
from app.services.dedup import SessionDedupStore
from app.services.monitoring_session import MonitoringSession

FIXED_NOW = datetime(2026, 3, 15, 9, 0, tzinfo=UTC)


class FakeAsyncSession:
	def __init__(self) -> None:
		self.commit = AsyncMock()
		self.rollback = AsyncMock()
		self.close = AsyncMock()
		self.execute = AsyncMock()
		self.flush = AsyncMock()
		self.refresh = AsyncMock()
		self.add = MagicMock()


class FakePubSub:
	def __init__(self, payloads: list[dict[str, Any]]) -> None:
		self.payloads = payloads
		self.index = 0
		self.subscribed_channels: tuple[str, ...] = ()
		self.unsubscribed_channels: tuple[str, ...] = ()
		self.closed = False

	async def subscribe(self, *channels: str) -> None:
		self.subscribed_channels = channels
		return None

	async def get_message(self, ignore_subscribe_messages: bool, timeout: float) -> dict[str, Any] | None:
		if self.index >= len(self.payloads):
			return None
		message = self.payloads[self.index]
		self.index += 1
		return message

	async def unsubscribe(self, *channels: str) -> None:
		self.unsubscribed_channels = channels
		return None

	async def close(self) -> None:
		self.closed = True
		return None


class FakeRedis:
	def __init__(self, payloads: list[dict[str, Any]] | None = None) -> None:
		self.payloads = payloads or []
		self.publish = AsyncMock()
		self.ping = AsyncMock(return_value=True)
		self.store: dict[str, str] = {}
		self.expiries: dict[str, int] = {}
		self.last_pubsub: FakePubSub | None = None

	async def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool | None:
		if nx and key in self.store:
			return None
		self.store[key] = value
		if ex is not None:
			self.expiries[key] = ex
		return True

	async def delete(self, *keys: str) -> int:
		removed = 0
		for key in keys:
			if self.store.pop(key, None) is not None:
				removed += 1
		return removed

	async def scan_iter(self, match: str | None = None) -> AsyncIterator[str]:
		prefix = (match or "*").rstrip("*")
		for key in list(self.store):
			if key.startswith(prefix):
				yield key

	def pubsub(self) -> FakePubSub:
		self.last_pubsub = FakePubSub(self.payloads)
		return self.last_pubsub


class InMemoryRecordStore:
	"""All five record-store protocols over plain lists of SimpleNamespace records."""

	def __init__(self) -> None:
		self.crops: list[Any] = []
		self.inventory: list[Any] = []
		self.tasks: list[Any] = []
		self.farms: list[Any] = []
		self.ledger: list[Any] = []
		self.crop_updates: list[tuple[uuid.UUID, dict[str, Any]]] = []
		self.failing: set[str] = set()

	def _check(self, collection: str) -> None:
		if collection in self.failing:
			raise ConnectionError(f"{collection} store unavailable")

	async def list_monitored_crops(self) -> list[Any]:
		self._check("crops")
		return [
			crop
			for crop in self.crops
			if crop.status in (CropStatusEnum.planted, CropStatusEnum.growing)
			or (crop.status == CropStatusEnum.harvested and not crop.status_alert_sent)
		]

	async def update_crop(self, crop_id: uuid.UUID, **fields: Any) -> None:
		self._check("crop_writes")
		for crop in self.crops:
			if crop.id == crop_id:
				for name, value in fields.items():
					setattr(crop, name, value)
				self.crop_updates.append((crop_id, fields))
				return
		raise LookupError(f"Crop {crop_id} not found")

	async def list_inventory_items(self) -> list[Any]:
		self._check("inventory")
		return list(self.inventory)

	async def list_open_tasks(self) -> list[Any]:
		self._check("tasks")
		return [task for task in self.tasks if task.status != TaskStatusEnum.completed]

	async def list_farms(self) -> list[Any]:
		self._check("farms")
		return list(self.farms)

	async def list_ledger_entries(self, start: datetime, end: datetime) -> list[Any]:
		self._check("ledger")
		return [entry for entry in self.ledger if start <= entry.entry_date < end]


class RecordingSink:
	"""Notification sink that keeps created events in memory."""

	def __init__(self) -> None:
		self.events: list[NotificationRead] = []
		self.candidates: list[Any] = []
		self.fail_next = 0

	async def create(self, candidate: AlertCandidate) -> NotificationRead:
		if self.fail_next > 0:
			self.fail_next -= 1
			raise ConnectionError("notification store unavailable")
		event = NotificationRead(
			id=uuid.uuid4(),
			type=candidate.type,
			title=candidate.title,
			message=candidate.message,
			priority=candidate.priority,
			target=candidate.target,
			source_type=candidate.source_type.value if candidate.source_type else None,
			source_id=candidate.source_id,
			data=candidate.payload(),
			read=False,
			created_at=FIXED_NOW,
		)
		self.candidates.append(candidate)
		self.events.append(event)
		return event

	def types(self) -> list[str]:
		return [event.type.value for event in self.events]


def make_crop(**overrides: Any) -> SimpleNamespace:
	values: dict[str, Any] = {
		"id": uuid.uuid4(),
		"farm_id": None,
		"crop_type": "Maize",
		"name": "North field maize",
		"planting_date": FIXED_NOW,
		"status": CropStatusEnum.planted,
		"harvest_date": None,
		"expected_harvest_days": None,
		"harvest_reminder_sent": False,
		"status_alert_sent": True,
	}
	values.update(overrides)
	return SimpleNamespace(**values)


@pytest.fixture
def fake_db_session() -> FakeAsyncSession:
	"""A lightweight async-session stub for dependency overrides in API tests."""
	return FakeAsyncSession()


@pytest.fixture
def fake_redis() -> FakeRedis:
	"""Reusable fake Redis client with publish, SET NX and pubsub behavior."""
	return FakeRedis()


@pytest.fixture
def settings() -> Settings:
	return Settings(_env_file=None)


@pytest.fixture
def record_store() -> InMemoryRecordStore:
	return InMemoryRecordStore()


@pytest.fixture
def sink() -> RecordingSink:
	return RecordingSink()


@pytest.fixture
def monitoring_session(settings: Settings, sink: RecordingSink) -> MonitoringSession:
	return MonitoringSession(dedup=SessionDedupStore(), sink=sink, settings=settings, clock=lambda: FIXED_NOW)


@pytest.fixture
async def client(fake_db_session: FakeAsyncSession) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with lifespan disabled and DB dependency mocked."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	app.dependency_overrides[get_db] = override_get_db
	original_lifespan = app.router.lifespan_context

	@asynccontextmanager
	async def noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
		yield

	app.router.lifespan_context = noop_lifespan

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()


@pytest.fixture
def now_utc() -> datetime:
	return FIXED_NOW
