"""Shared context for one engine run.

A ``MonitoringSession`` owns the dedup store, the notification sink, the
settings and the clock.  Both monitors emit every alert through
``MonitoringSession.emit`` so suppression and sink-failure handling live in
one place.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

import structlog

from app.config import Settings
from app.schemas.alerts import AlertCandidate
from app.schemas.monitoring import PassReport
from app.schemas.notifications import NotificationRead
from app.services.dedup import DedupStore

logger = structlog.get_logger("farmops.monitoring")


class NotificationSink(Protocol):
	async def create(self, candidate: AlertCandidate) -> NotificationRead: ...


def utc_now() -> datetime:
	return datetime.now(UTC)


@dataclass
class MonitoringSession:
	dedup: DedupStore
	sink: NotificationSink
	settings: Settings
	clock: Callable[[], datetime] = field(default=utc_now)

	def now(self) -> datetime:
		return self.clock()

	async def emit(self, candidate: AlertCandidate, report: PassReport | None = None) -> NotificationRead | None:
		"""Hand ``candidate`` to the sink unless its dedup key was already seen.

		Returns the stored event, or ``None`` when suppressed or when the sink
		failed.  A failed write releases the dedup key so a later pass retries.
		"""
		event, _ = await self._submit(candidate, report)
		return event

	async def deliver(self, candidate: AlertCandidate, report: PassReport | None = None) -> bool:
		"""Emit an alert guarded by a persisted "sent" flag.

		True when the alert was stored now or its dedup key shows an earlier
		pass stored it, so the caller can set the flag in either case.
		"""
		event, seen = await self._submit(candidate, report)
		return event is not None or seen

	async def _submit(
		self,
		candidate: AlertCandidate,
		report: PassReport | None,
	) -> tuple[NotificationRead | None, bool]:
		key = candidate.dedup_key
		if not await self.dedup.should_emit(key):
			logger.debug("alert_suppressed", alert_type=key.type, source_id=key.source_id)
			if report is not None:
				report.suppressed += 1
			return None, True

		try:
			event = await self.sink.create(candidate)
		except Exception as exc:
			logger.error(
				"alert_write_failed",
				alert_type=key.type,
				source_id=key.source_id,
				error=str(exc),
			)
			await self.dedup.forget(key)
			return None, False

		logger.info(
			"alert_emitted",
			alert_type=key.type,
			source_id=key.source_id,
			priority=event.priority.value,
			notification_id=str(event.id),
		)
		if report is not None:
			report.emitted += 1
		return event, False
