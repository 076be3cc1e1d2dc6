"""Notification persistence, read-state management and live delivery."""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

import structlog
from redis.asyncio import Redis
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import AlertPriorityEnum
from app.models.notifications import Notification
from app.schemas.alerts import AlertCandidate
from app.schemas.notifications import NotificationCreate, NotificationRead
from app.services.system_notifier import SystemNotifier

logger = structlog.get_logger("farmops.notifications")

URGENT_PRIORITIES = frozenset({AlertPriorityEnum.high, AlertPriorityEnum.critical})


class NotificationService:
	"""Notification store operations bound to one database session."""

	def __init__(self, db: AsyncSession):
		self.db = db

	async def create(self, payload: NotificationCreate) -> Notification:
		notification = Notification(
			type=payload.type,
			title=payload.title,
			message=payload.message,
			priority=payload.priority,
			target=payload.target,
			source_type=payload.source_type,
			source_id=payload.source_id,
			data=payload.data,
			read=False,
		)
		self.db.add(notification)
		await self.db.flush()
		await self.db.refresh(notification)
		return notification

	async def create_from_candidate(self, candidate: AlertCandidate) -> Notification:
		source_type = candidate.source_type.value if candidate.source_type is not None else None
		return await self.create(
			NotificationCreate(
				type=candidate.type,
				title=candidate.title,
				message=candidate.message,
				priority=candidate.priority,
				target=candidate.target,
				source_type=source_type,
				source_id=candidate.source_id,
				data=candidate.payload(),
			)
		)

	async def list_notifications(
		self,
		target: str | None = None,
		*,
		unread_only: bool = False,
		limit: int = 50,
	) -> list[Notification]:
		stmt = select(Notification).order_by(Notification.created_at.desc()).limit(limit)
		if target is not None:
			stmt = stmt.where(or_(Notification.target == target, Notification.target == "all"))
		if unread_only:
			stmt = stmt.where(Notification.read.is_(False))
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def unread_count(self, target: str | None = None) -> int:
		stmt = select(func.count()).select_from(Notification).where(Notification.read.is_(False))
		if target is not None:
			stmt = stmt.where(or_(Notification.target == target, Notification.target == "all"))
		row = await self.db.execute(stmt)
		return int(row.scalar_one())

	async def mark_read(self, notification_id: uuid.UUID) -> Notification:
		notification = await self._require_notification(notification_id)
		notification.read = True
		await self.db.flush()
		return notification

	async def mark_all_read(self, target: str) -> int:
		stmt = (
			update(Notification)
			.where(Notification.target == target, Notification.read.is_(False))
			.values(read=True)
		)
		result = await self.db.execute(stmt)
		return int(result.rowcount or 0)

	async def delete_notification(self, notification_id: uuid.UUID) -> None:
		await self._require_notification(notification_id)
		await self.db.execute(delete(Notification).where(Notification.id == notification_id))

	async def _require_notification(self, notification_id: uuid.UUID) -> Notification:
		row = await self.db.execute(select(Notification).where(Notification.id == notification_id))
		notification = row.scalar_one_or_none()
		if notification is None:
			raise LookupError(f"Notification {notification_id} not found")
		return notification


class NotificationPublisher:
	"""Pushes stored notifications to live subscribers and the system notifier."""

	def __init__(
		self,
		redis_client: Redis | None,
		channel: str,
		system_notifier: SystemNotifier | None = None,
	):
		self.redis_client = redis_client
		self.channel = channel
		self.system_notifier = system_notifier
		self._pending: set[asyncio.Task[None]] = set()

	async def publish(self, event: NotificationRead) -> None:
		if self.redis_client is not None:
			payload = {"event_type": "notification", **event.model_dump(mode="json")}
			try:
				await self.redis_client.publish(self.channel, json.dumps(payload))
			except Exception as exc:
				logger.warning("live_publish_failed", notification_id=str(event.id), error=str(exc))

		if event.priority not in URGENT_PRIORITIES:
			return
		notifier = self.system_notifier
		if notifier is None or not notifier.permission_granted:
			return
		# Runs in the background so a slow relay never holds up the caller.
		task = asyncio.create_task(self._notify(notifier, event), name=f"farmops-system-notify-{event.id}")
		self._pending.add(task)
		task.add_done_callback(self._pending.discard)

	async def drain(self) -> None:
		"""Wait for in-flight system notifications."""
		if self._pending:
			await asyncio.gather(*self._pending, return_exceptions=True)

	@staticmethod
	async def _notify(notifier: SystemNotifier, event: NotificationRead) -> None:
		try:
			await notifier.notify(title=event.title, body=event.message, tag=event.type.value)
		except Exception as exc:
			logger.warning("system_notification_failed", notification_id=str(event.id), error=str(exc))


class SessionNotificationSink:
	"""Engine-facing sink: one short-lived session per alert, publish after commit."""

	def __init__(
		self,
		session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
		publisher: NotificationPublisher,
	):
		self.session_factory = session_factory
		self.publisher = publisher

	async def create(self, candidate: AlertCandidate) -> NotificationRead:
		async with self.session_factory() as session:
			try:
				notification = await NotificationService(session).create_from_candidate(candidate)
				await session.commit()
			except Exception:
				await session.rollback()
				raise
			event = NotificationRead.model_validate(notification)

		await self.publisher.publish(event)
		return event
