"""The monitoring engine: one timer loop plus one consumer per subscription.

``start()`` runs a first tick immediately, subscribes the condition monitor
to inventory, task and farm changes, then ticks every
``monitor_interval_seconds``.  Each tick runs the lifecycle pass and the
task due-date rules and, every ``cashflow_every_ticks`` ticks, the cash-flow
rule.  ``stop()`` signals the loop, cancels subscriptions, waits for
in-flight evaluations and clears a session-scoped dedup store.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from datetime import datetime

import structlog
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.models.enums import SourceCollectionEnum
from app.schemas.monitoring import EngineStatusRead, TickReport
from app.services.change_feed import ChangeFeed, Subscription, SubscriptionFilter, build_change_feed
from app.services.condition_monitor import ConditionMonitor
from app.services.dedup import build_dedup_store
from app.services.lifecycle_monitor import CropLifecycleMonitor
from app.services.monitoring_session import MonitoringSession
from app.services.notification_service import NotificationPublisher, SessionNotificationSink
from app.services.record_store import SqlRecordStore
from app.services.system_notifier import build_system_notifier

logger = structlog.get_logger("farmops.engine")

WATCHED_COLLECTIONS = (
	SourceCollectionEnum.inventory,
	SourceCollectionEnum.tasks,
	SourceCollectionEnum.farms,
)


class AlertEngine:
	def __init__(
		self,
		session: MonitoringSession,
		lifecycle: CropLifecycleMonitor,
		conditions: ConditionMonitor,
		change_feed: ChangeFeed,
		watched: Sequence[SourceCollectionEnum] = WATCHED_COLLECTIONS,
	):
		self.session = session
		self.lifecycle = lifecycle
		self.conditions = conditions
		self.change_feed = change_feed
		self.watched = tuple(watched)

		self.tick_count = 0
		self.last_tick_at: datetime | None = None
		self._running = False
		self._stop_event = asyncio.Event()
		self._tick_lock = asyncio.Lock()
		self._timer_task: asyncio.Task[None] | None = None
		self._consumer_tasks: list[asyncio.Task[None]] = []
		self._subscriptions: list[Subscription] = []

	@property
	def running(self) -> bool:
		return self._running

	@property
	def interval_seconds(self) -> float:
		return self.session.settings.monitor_interval_seconds

	async def start(self) -> None:
		if self._running:
			return
		self._running = True
		self._stop_event = asyncio.Event()
		logger.info("engine_starting", interval_seconds=self.interval_seconds, watched=[c.value for c in self.watched])

		try:
			await self.run_tick()
		except Exception:
			logger.exception("tick_failed", tick=self.tick_count)

		for collection in self.watched:
			subscription = self.change_feed.subscribe(SubscriptionFilter.of(collection))
			self._subscriptions.append(subscription)
			self._consumer_tasks.append(
				asyncio.create_task(self._consume(subscription), name=f"farmops-consumer-{collection.value}")
			)
		self._timer_task = asyncio.create_task(self._timer_loop(), name="farmops-timer")

	async def stop(self) -> None:
		if not self._running:
			return
		self._stop_event.set()
		for subscription in self._subscriptions:
			await subscription.cancel()

		tasks = [task for task in (self._timer_task, *self._consumer_tasks) if task is not None]
		results = await asyncio.gather(*tasks, return_exceptions=True)
		for result in results:
			if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
				logger.error("engine_task_failed", error=str(result))

		self._timer_task = None
		self._consumer_tasks = []
		self._subscriptions = []
		self._running = False

		if self.session.dedup.session_scoped:
			await self.session.dedup.reset()
		logger.info("engine_stopped", ticks=self.tick_count)

	async def run_tick(self) -> TickReport:
		"""One lifecycle pass and task due-date check plus, on every Nth tick, the cash-flow rule."""
		async with self._tick_lock:
			self.tick_count += 1
			tick = self.tick_count
			started_at = self.session.now()

			lifecycle = await self.lifecycle.run_pass(started_at)
			# Due-date rules change with the clock alone, without any task write.
			tasks = await self.conditions.check_tasks(started_at)
			cashflow = None
			every = self.session.settings.cashflow_every_ticks
			if every > 0 and (tick - 1) % every == 0:
				cashflow = await self.conditions.check_cashflow(started_at)

			self.last_tick_at = started_at
			logger.info(
				"tick_completed",
				tick=tick,
				crops_evaluated=lifecycle.evaluated,
				alerts_emitted=lifecycle.emitted + tasks.emitted + (cashflow.emitted if cashflow else 0),
				failures=lifecycle.failed + tasks.failed + (cashflow.failed if cashflow else 0),
			)
			return TickReport(tick=tick, started_at=started_at, lifecycle=lifecycle, tasks=tasks, cashflow=cashflow)

	def status(self) -> EngineStatusRead:
		return EngineStatusRead(
			running=self._running,
			tick_count=self.tick_count,
			last_tick_at=self.last_tick_at,
			interval_seconds=self.interval_seconds,
			dedup_backend="session" if self.session.dedup.session_scoped else "redis",
			subscriptions=[
				collection.value for subscription in self._subscriptions for collection in subscription.filter.ordered()
			],
		)

	async def _timer_loop(self) -> None:
		while not self._stop_event.is_set():
			try:
				await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
			except TimeoutError:
				try:
					await self.run_tick()
				except Exception:
					logger.exception("tick_failed", tick=self.tick_count)

	async def _consume(self, subscription: Subscription) -> None:
		async for event in subscription:
			try:
				await self.conditions.handle_change(event)
			except Exception:
				logger.exception("change_handling_failed", collection=event.collection.value, op=event.op)


def build_alert_engine(
	settings: Settings,
	redis_client: Redis | None,
	session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
	publisher: NotificationPublisher | None = None,
) -> AlertEngine:
	"""Wire the engine against the application database and Redis."""
	if publisher is None:
		publisher = NotificationPublisher(
			redis_client,
			settings.notifications_channel,
			build_system_notifier(settings),
		)
	session = MonitoringSession(
		dedup=build_dedup_store(settings, redis_client),
		sink=SessionNotificationSink(session_factory, publisher),
		settings=settings,
	)
	store = SqlRecordStore(session_factory, redis_client, settings.change_channel_prefix)
	return AlertEngine(
		session,
		CropLifecycleMonitor(session, store),
		ConditionMonitor(session, store, store, store, store),
		build_change_feed(settings, redis_client),
	)
