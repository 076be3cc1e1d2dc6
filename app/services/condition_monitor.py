"""Multi-source condition monitor.

Rules are pure functions of one record (or one month of ledger entries)
and never write back to their source.  ``ConditionMonitor`` loads a
collection, evaluates each record independently and routes the resulting
candidates through the monitoring session.  A failed read skips the whole
collection for this pass; a failing record skips only that record.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from app.config import Settings
from app.models.enums import LedgerEntryTypeEnum, SourceCollectionEnum, TaskStatusEnum
from app.schemas.alerts import (
	AlertCandidate,
	LowInventoryAlert,
	LowMoistureAlert,
	NegativeCashflowAlert,
	OutOfStockAlert,
	SoilPhAlert,
	TaskDueSoonAlert,
	TaskOverdueAlert,
)
from app.schemas.monitoring import PassReport
from app.services.change_feed import ChangeEvent
from app.services.monitoring_session import MonitoringSession
from app.services.record_store import FarmStore, InventoryStore, LedgerStore, TaskStore

logger = structlog.get_logger("farmops.conditions")


def _aware(value: datetime) -> datetime:
	return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


# ── Rules ───────────────────────────────────────────────────────────────────


def evaluate_inventory_item(item: Any, default_threshold: float) -> AlertCandidate | None:
	quantity = float(item.quantity)
	threshold = float(item.min_quantity) if item.min_quantity is not None else default_threshold
	if quantity <= 0:
		return OutOfStockAlert(
			item_id=item.id,
			title="Out of Stock",
			message=f"{item.name} is out of stock",
		)
	if quantity <= threshold:
		unit = item.unit or "units"
		return LowInventoryAlert(
			item_id=item.id,
			title="Low Inventory",
			message=f"{item.name} is running low ({quantity:g} {unit} remaining, threshold {threshold:g})",
			quantity=quantity,
			threshold=threshold,
			unit=unit,
		)
	return None


def evaluate_task(task: Any, now: datetime, due_soon_hours: float) -> AlertCandidate | None:
	if task.status == TaskStatusEnum.completed:
		return None
	due_date = _aware(task.due_date)
	target = task.assigned_to or "all"
	if due_date < now:
		return TaskOverdueAlert(
			task_id=task.id,
			due_date=due_date,
			target=target,
			title="Task Overdue",
			message=f'"{task.title}" is overdue. Assigned to: {task.assigned_to or "Unassigned"}',
		)
	hours_until_due = (due_date - now).total_seconds() / 3600.0
	if 0 < hours_until_due <= due_soon_hours:
		return TaskDueSoonAlert(
			task_id=task.id,
			due_date=due_date,
			target=target,
			title="Task Due Soon",
			message=f'"{task.title}" is due within {due_soon_hours:g} hours (due {due_date.isoformat()})',
			hours_until_due=round(hours_until_due, 2),
		)
	return None


def evaluate_farm_soil(farm: Any, settings: Settings) -> list[AlertCandidate]:
	candidates: list[AlertCandidate] = []
	ph = farm.soil_ph
	if ph is not None and (ph < settings.soil_ph_min or ph > settings.soil_ph_max):
		candidates.append(
			SoilPhAlert(
				farm_id=farm.id,
				title="Soil pH Alert",
				message=(
					f"Soil pH at {farm.name} is {ph:.1f} "
					f"(optimal range {settings.soil_ph_min:g}-{settings.soil_ph_max:g})"
				),
				ph=ph,
			)
		)
	moisture = farm.soil_moisture_pct
	if moisture is not None and moisture < settings.soil_moisture_min_pct:
		candidates.append(
			LowMoistureAlert(
				farm_id=farm.id,
				title="Low Soil Moisture",
				message=(
					f"Soil moisture at {farm.name} is {moisture:.1f}% "
					f"(minimum {settings.soil_moisture_min_pct:g}%)"
				),
				moisture_pct=moisture,
			)
		)
	return candidates


def month_window(now: datetime) -> tuple[str, datetime, datetime]:
	"""``(YYYY-MM, first instant of the month, first instant of the next month)``."""
	start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
	if start.month == 12:
		end = start.replace(year=start.year + 1, month=1)
	else:
		end = start.replace(month=start.month + 1)
	return f"{start.year:04d}-{start.month:02d}", start, end


def evaluate_cashflow(entries: Iterable[Any], period: str, currency: str) -> AlertCandidate | None:
	income = 0.0
	expenses = 0.0
	for entry in entries:
		if entry.entry_type == LedgerEntryTypeEnum.income:
			income += float(entry.amount)
		elif entry.entry_type == LedgerEntryTypeEnum.expense:
			expenses += float(entry.amount)
	if expenses <= income:
		return None
	return NegativeCashflowAlert(
		period=period,
		title="Negative Cash Flow",
		message=(
			f"Expenses ({currency} {expenses:,.2f}) exceed income "
			f"({currency} {income:,.2f}) for {period}"
		),
		expenses=round(expenses, 2),
		income=round(income, 2),
	)


# ── Monitor ─────────────────────────────────────────────────────────────────


class ConditionMonitor:
	def __init__(
		self,
		session: MonitoringSession,
		inventory: InventoryStore,
		tasks: TaskStore,
		farms: FarmStore,
		ledger: LedgerStore,
	):
		self.session = session
		self.inventory = inventory
		self.tasks = tasks
		self.farms = farms
		self.ledger = ledger

	async def _run(
		self,
		collection: SourceCollectionEnum,
		load: Callable[[], Awaitable[Sequence[Any]]],
		evaluate: Callable[[Any], Iterable[AlertCandidate]],
	) -> PassReport:
		report = PassReport()
		try:
			records = await load()
		except Exception as exc:
			logger.error("store_read_failed", collection=collection.value, error=str(exc))
			report.failed += 1
			return report

		for record in records:
			report.evaluated += 1
			try:
				for candidate in evaluate(record):
					await self.session.emit(candidate, report)
			except Exception:
				report.failed += 1
				logger.exception("record_evaluation_failed", collection=collection.value, record_id=str(record.id))
		return report

	async def check_inventory(self) -> PassReport:
		threshold = self.session.settings.default_low_stock_threshold

		def evaluate(item: Any) -> list[AlertCandidate]:
			candidate = evaluate_inventory_item(item, threshold)
			return [candidate] if candidate is not None else []

		return await self._run(SourceCollectionEnum.inventory, self.inventory.list_inventory_items, evaluate)

	async def check_tasks(self, now: datetime | None = None) -> PassReport:
		now = now or self.session.now()
		window = self.session.settings.task_due_soon_hours

		def evaluate(task: Any) -> list[AlertCandidate]:
			candidate = evaluate_task(task, now, window)
			return [candidate] if candidate is not None else []

		return await self._run(SourceCollectionEnum.tasks, self.tasks.list_open_tasks, evaluate)

	async def check_soil(self) -> PassReport:
		settings = self.session.settings
		return await self._run(
			SourceCollectionEnum.farms,
			self.farms.list_farms,
			lambda farm: evaluate_farm_soil(farm, settings),
		)

	async def check_cashflow(self, now: datetime | None = None) -> PassReport:
		now = now or self.session.now()
		period, start, end = month_window(now)
		report = PassReport(evaluated=1)
		try:
			entries = await self.ledger.list_ledger_entries(start, end)
		except Exception as exc:
			logger.error("store_read_failed", collection=SourceCollectionEnum.ledger.value, error=str(exc))
			report.failed += 1
			return report

		candidate = evaluate_cashflow(entries, period, self.session.settings.currency_label)
		if candidate is not None:
			await self.session.emit(candidate, report)
		return report

	async def handle_change(self, event: ChangeEvent) -> PassReport | None:
		"""Re-evaluate the collection named by a change event."""
		if event.collection == SourceCollectionEnum.inventory:
			return await self.check_inventory()
		if event.collection == SourceCollectionEnum.tasks:
			return await self.check_tasks()
		if event.collection == SourceCollectionEnum.farms:
			return await self.check_soil()
		if event.collection == SourceCollectionEnum.ledger:
			return await self.check_cashflow()
		return None
