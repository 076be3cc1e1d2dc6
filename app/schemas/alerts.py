"""Alert candidates — one class per alert category.

Each candidate carries exactly the payload its category needs and is
discriminated by ``type``.  Monitors build candidates; the monitoring
session checks ``dedup_key`` before handing them to the notification sink.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated, Any, ClassVar, Literal, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import (
	AlertPriorityEnum,
	AlertTypeEnum,
	CropStatusEnum,
	MaintenanceCategoryEnum,
	SourceCollectionEnum,
)

_ENVELOPE_FIELDS = {"type", "title", "message", "priority", "target"}


class DedupKey(NamedTuple):
	"""Identity of one logical alert: (type, source entity id, message text)."""

	type: str
	source_id: str
	message: str

	def as_token(self) -> str:
		return f"{self.type}|{self.source_id}|{self.message}"


class AlertCandidateBase(BaseModel):
	model_config = ConfigDict(frozen=True)

	source_type: ClassVar[SourceCollectionEnum | None] = None
	source_field: ClassVar[str | None] = None

	title: str
	message: str
	priority: AlertPriorityEnum
	target: str = "all"

	@property
	def source_id(self) -> str | None:
		if self.source_field is None:
			return None
		return str(getattr(self, self.source_field))

	@property
	def dedup_key(self) -> DedupKey:
		alert_type = getattr(self, "type")
		return DedupKey(str(alert_type), self.source_id or "", self.message)

	def payload(self) -> dict[str, Any]:
		return self.model_dump(mode="json", exclude=_ENVELOPE_FIELDS)


# ── Crop lifecycle ──────────────────────────────────────────────────────────


class _CropAlert(AlertCandidateBase):
	source_type: ClassVar[SourceCollectionEnum | None] = SourceCollectionEnum.crops
	source_field: ClassVar[str | None] = "crop_id"

	crop_id: uuid.UUID


class CropStatusUpdateAlert(_CropAlert):
	type: Literal[AlertTypeEnum.crop_status_update] = AlertTypeEnum.crop_status_update
	priority: AlertPriorityEnum = AlertPriorityEnum.low
	status: CropStatusEnum
	days_grown: int


class CropHarvestedAlert(_CropAlert):
	type: Literal[AlertTypeEnum.crop_harvested] = AlertTypeEnum.crop_harvested
	priority: AlertPriorityEnum = AlertPriorityEnum.high
	days_grown: int


class IrrigationRequiredAlert(_CropAlert):
	type: Literal[AlertTypeEnum.irrigation_required] = AlertTypeEnum.irrigation_required
	priority: AlertPriorityEnum = AlertPriorityEnum.high
	days_grown: int


class WeedingRequiredAlert(_CropAlert):
	type: Literal[AlertTypeEnum.weeding_required] = AlertTypeEnum.weeding_required
	priority: AlertPriorityEnum = AlertPriorityEnum.high
	days_grown: int


class FertilizationRequiredAlert(_CropAlert):
	type: Literal[AlertTypeEnum.fertilization_required] = AlertTypeEnum.fertilization_required
	priority: AlertPriorityEnum = AlertPriorityEnum.medium
	days_grown: int


class HarvestApproachingAlert(_CropAlert):
	type: Literal[AlertTypeEnum.harvest_approaching] = AlertTypeEnum.harvest_approaching
	priority: AlertPriorityEnum = AlertPriorityEnum.medium
	days_remaining: int


class MaintenanceDueAlert(_CropAlert):
	"""Upcoming maintenance occurrence; pest control always lists its pesticides."""

	type: Literal[AlertTypeEnum.maintenance_due] = AlertTypeEnum.maintenance_due
	priority: AlertPriorityEnum = AlertPriorityEnum.low
	category: MaintenanceCategoryEnum
	task_date: date
	pesticides: tuple[str, ...] = ()

	@model_validator(mode="after")
	def _pesticides_only_for_pest_control(self) -> MaintenanceDueAlert:
		if self.category != MaintenanceCategoryEnum.pest_control and self.pesticides:
			raise ValueError("pesticides are only carried by pest_control occurrences")
		return self


# ── Inventory ───────────────────────────────────────────────────────────────


class _InventoryAlert(AlertCandidateBase):
	source_type: ClassVar[SourceCollectionEnum | None] = SourceCollectionEnum.inventory
	source_field: ClassVar[str | None] = "item_id"

	item_id: uuid.UUID


class OutOfStockAlert(_InventoryAlert):
	type: Literal[AlertTypeEnum.out_of_stock] = AlertTypeEnum.out_of_stock
	priority: AlertPriorityEnum = AlertPriorityEnum.high


class LowInventoryAlert(_InventoryAlert):
	type: Literal[AlertTypeEnum.low_inventory] = AlertTypeEnum.low_inventory
	priority: AlertPriorityEnum = AlertPriorityEnum.medium
	quantity: float
	threshold: float
	unit: str


# ── Tasks ───────────────────────────────────────────────────────────────────


class _TaskAlert(AlertCandidateBase):
	source_type: ClassVar[SourceCollectionEnum | None] = SourceCollectionEnum.tasks
	source_field: ClassVar[str | None] = "task_id"

	task_id: uuid.UUID
	due_date: datetime


class TaskOverdueAlert(_TaskAlert):
	type: Literal[AlertTypeEnum.task_overdue] = AlertTypeEnum.task_overdue
	priority: AlertPriorityEnum = AlertPriorityEnum.high


class TaskDueSoonAlert(_TaskAlert):
	type: Literal[AlertTypeEnum.task_due_soon] = AlertTypeEnum.task_due_soon
	priority: AlertPriorityEnum = AlertPriorityEnum.medium
	hours_until_due: float


# ── Soil ────────────────────────────────────────────────────────────────────


class _SoilAlert(AlertCandidateBase):
	source_type: ClassVar[SourceCollectionEnum | None] = SourceCollectionEnum.farms
	source_field: ClassVar[str | None] = "farm_id"

	farm_id: uuid.UUID


class SoilPhAlert(_SoilAlert):
	type: Literal[AlertTypeEnum.soil_ph_alert] = AlertTypeEnum.soil_ph_alert
	priority: AlertPriorityEnum = AlertPriorityEnum.high
	ph: float


class LowMoistureAlert(_SoilAlert):
	type: Literal[AlertTypeEnum.low_moisture] = AlertTypeEnum.low_moisture
	priority: AlertPriorityEnum = AlertPriorityEnum.high
	moisture_pct: float


# ── Finance ─────────────────────────────────────────────────────────────────


class NegativeCashflowAlert(AlertCandidateBase):
	source_type: ClassVar[SourceCollectionEnum | None] = SourceCollectionEnum.ledger
	source_field: ClassVar[str | None] = "period"

	type: Literal[AlertTypeEnum.negative_cashflow] = AlertTypeEnum.negative_cashflow
	priority: AlertPriorityEnum = AlertPriorityEnum.high
	period: str
	expenses: float
	income: float


AlertCandidate = Annotated[
	Union[
		CropStatusUpdateAlert,
		CropHarvestedAlert,
		IrrigationRequiredAlert,
		WeedingRequiredAlert,
		FertilizationRequiredAlert,
		HarvestApproachingAlert,
		MaintenanceDueAlert,
		OutOfStockAlert,
		LowInventoryAlert,
		TaskOverdueAlert,
		TaskDueSoonAlert,
		SoilPhAlert,
		LowMoistureAlert,
		NegativeCashflowAlert,
	],
	Field(discriminator="type"),
]
