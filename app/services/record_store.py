"""Read/write access to the farm records the engine monitors.

The engine only depends on the store protocols below; ``SqlRecordStore``
implements all of them over the application database.  Every call opens
its own short-lived session so one failed read never poisons the next.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol

import structlog
from redis.asyncio import Redis
from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import CropStatusEnum, SourceCollectionEnum, TaskStatusEnum
from app.models.farm import Crop, Farm
from app.models.operations import FarmTask, InventoryItem, LedgerEntry
from app.services.change_feed import publish_change

logger = structlog.get_logger("farmops.record_store")

_ACTIVE_STATUSES = (CropStatusEnum.planted, CropStatusEnum.growing)


class CropStore(Protocol):
	async def list_monitored_crops(self) -> Sequence[Any]: ...

	async def update_crop(self, crop_id: uuid.UUID, **fields: Any) -> None: ...


class InventoryStore(Protocol):
	async def list_inventory_items(self) -> Sequence[Any]: ...


class TaskStore(Protocol):
	async def list_open_tasks(self) -> Sequence[Any]: ...


class FarmStore(Protocol):
	async def list_farms(self) -> Sequence[Any]: ...


class LedgerStore(Protocol):
	async def list_ledger_entries(self, start: datetime, end: datetime) -> Sequence[Any]: ...


class SqlRecordStore:
	"""SQLAlchemy-backed implementation of every record store protocol."""

	def __init__(
		self,
		session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
		redis_client: Redis | None = None,
		change_prefix: str = "farmops:changes",
	):
		self.session_factory = session_factory
		self.redis_client = redis_client
		self.change_prefix = change_prefix

	async def _fetch_all(self, stmt: Any) -> list[Any]:
		async with self.session_factory() as session:
			rows = await session.execute(stmt)
			return list(rows.scalars().all())

	async def list_monitored_crops(self) -> list[Crop]:
		"""Active crops plus harvested crops whose status alert is still pending."""
		stmt = (
			select(Crop)
			.where(
				or_(
					Crop.status.in_(_ACTIVE_STATUSES),
					and_(Crop.status == CropStatusEnum.harvested, Crop.status_alert_sent.is_(False)),
				)
			)
			.order_by(Crop.planting_date)
		)
		return await self._fetch_all(stmt)

	async def update_crop(self, crop_id: uuid.UUID, **fields: Any) -> None:
		if not fields:
			return
		async with self.session_factory() as session:
			try:
				result = await session.execute(update(Crop).where(Crop.id == crop_id).values(**fields))
				await session.commit()
			except Exception:
				await session.rollback()
				raise
		if not result.rowcount:
			raise LookupError(f"Crop {crop_id} not found")

		if self.redis_client is None:
			return
		try:
			await publish_change(self.redis_client, self.change_prefix, SourceCollectionEnum.crops, str(crop_id))
		except Exception as exc:
			logger.warning("change_publish_failed", collection="crops", entity_id=str(crop_id), error=str(exc))

	async def list_inventory_items(self) -> list[InventoryItem]:
		return await self._fetch_all(select(InventoryItem).order_by(InventoryItem.name))

	async def list_open_tasks(self) -> list[FarmTask]:
		stmt = select(FarmTask).where(FarmTask.status != TaskStatusEnum.completed).order_by(FarmTask.due_date)
		return await self._fetch_all(stmt)

	async def list_farms(self) -> list[Farm]:
		return await self._fetch_all(select(Farm).order_by(Farm.name))

	async def list_ledger_entries(self, start: datetime, end: datetime) -> list[LedgerEntry]:
		"""Entries with ``start <= entry_date < end``."""
		stmt = (
			select(LedgerEntry)
			.where(LedgerEntry.entry_date >= start, LedgerEntry.entry_date < end)
			.order_by(LedgerEntry.entry_date)
		)
		return await self._fetch_all(stmt)
