from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.main import app
from app.models.enums import CropStatusEnum
from app.services.alert_engine import AlertEngine
from app.services.change_feed import PollingChangeFeed
from app.services.condition_monitor import ConditionMonitor
from app.services.lifecycle_monitor import CropLifecycleMonitor
from tests.conftest import FIXED_NOW, make_crop


@pytest.fixture
def alert_engine(monitoring_session, record_store, monkeypatch: pytest.MonkeyPatch) -> AlertEngine:
	engine = AlertEngine(
		monitoring_session,
		CropLifecycleMonitor(monitoring_session, record_store),
		ConditionMonitor(monitoring_session, record_store, record_store, record_store, record_store),
		PollingChangeFeed(interval_seconds=3600),
	)
	monkeypatch.setattr(app.state, "alert_engine", engine, raising=False)
	return engine


@pytest.mark.asyncio
async def test_status_endpoint(client: AsyncClient, alert_engine: AlertEngine) -> None:
	response = await client.get("/api/v1/monitoring/status")
	assert response.status_code == 200
	body = response.json()
	assert body["running"] is False
	assert body["tick_count"] == 0
	assert body["interval_seconds"] == 3600.0
	assert body["dedup_backend"] == "session"


@pytest.mark.asyncio
async def test_manual_tick_runs_lifecycle_pass(
	client: AsyncClient,
	alert_engine: AlertEngine,
	record_store,
	sink,
) -> None:
	crop = make_crop(status=CropStatusEnum.growing, planting_date=FIXED_NOW - timedelta(days=90))
	record_store.crops.append(crop)

	response = await client.post("/api/v1/monitoring/tick")
	assert response.status_code == 200
	body = response.json()
	assert body["tick"] == 1
	assert body["lifecycle"]["emitted"] == 1
	assert body["cashflow"]["evaluated"] == 1
	assert crop.status == CropStatusEnum.harvested
	assert sink.types() == ["crop_harvested"]


@pytest.mark.asyncio
async def test_engine_missing_is_503(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setattr(app.state, "alert_engine", None, raising=False)
	response = await client.get("/api/v1/monitoring/status")
	assert response.status_code == 503
