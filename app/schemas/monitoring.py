"""Pydantic schemas for monitoring-engine endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class PassReport(BaseModel):
	"""Outcome of one monitor pass over a collection."""

	evaluated: int = 0
	failed: int = 0
	emitted: int = 0
	suppressed: int = 0


class TickReport(BaseModel):
	tick: int
	started_at: datetime
	lifecycle: PassReport
	tasks: PassReport | None = None
	cashflow: PassReport | None = None


class EngineStatusRead(BaseModel):
	running: bool
	tick_count: int
	last_tick_at: datetime | None = None
	interval_seconds: float
	dedup_backend: str
	subscriptions: list[str]
