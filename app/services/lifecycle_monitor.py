"""Crop lifecycle monitor.

Each pass recomputes every monitored crop's age and derives its status and
due alerts from scratch:

* planted crops older than ``early_growth_days`` become ``growing``;
* active crops older than their growth length become ``harvested``;
* the status alert is owed whenever ``status_alert_sent`` is false, so a
  transition whose alert was lost is re-alerted on the next pass; a planted
  crop found past maturity gets the growing alert before the harvest alert;
* irrigation, weeding and fertilizer alerts fire on the days the schedule
  says they are due, and one harvest reminder fires inside the lookahead
  window.

Growth length comes from the crop's growth profile, then the crop's own
``expected_harvest_days``, then ``Settings.default_growth_days``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from app.config import Settings
from app.models.enums import CropStatusEnum, MaintenanceCategoryEnum, SourceCollectionEnum
from app.schemas.alerts import (
	CropHarvestedAlert,
	CropStatusUpdateAlert,
	FertilizationRequiredAlert,
	HarvestApproachingAlert,
	IrrigationRequiredAlert,
	MaintenanceDueAlert,
	WeedingRequiredAlert,
)
from app.schemas.monitoring import PassReport
from app.schemas.scheduling import CropGrowthProfile, ScheduledTaskOccurrence
from app.services import growth_profiles
from app.services.monitoring_session import MonitoringSession
from app.services.record_store import CropStore
from app.services.schedule_service import calendar_date, generate

logger = structlog.get_logger("farmops.lifecycle")

_ACTIVE = (CropStatusEnum.planted, CropStatusEnum.growing)

_MAINTENANCE_LABELS = {
	MaintenanceCategoryEnum.irrigation: "Irrigation",
	MaintenanceCategoryEnum.weeding: "Weeding",
	MaintenanceCategoryEnum.fertilizer: "Fertilizer application",
	MaintenanceCategoryEnum.pest_control: "Pest control",
}


def days_grown(planting_date: datetime, now: datetime) -> int:
	"""Whole days elapsed since planting, floored."""
	if planting_date.tzinfo is None:
		planting_date = planting_date.replace(tzinfo=UTC)
	return (now - planting_date) // timedelta(days=1)


def next_status(status: CropStatusEnum, age_days: int, growth_days: int, early_growth_days: int) -> CropStatusEnum:
	if status == CropStatusEnum.planted and age_days >= early_growth_days:
		status = CropStatusEnum.growing
	if status in _ACTIVE and age_days >= growth_days:
		status = CropStatusEnum.harvested
	return status


class CropLifecycleMonitor:
	def __init__(self, session: MonitoringSession, store: CropStore):
		self.session = session
		self.store = store

	@property
	def settings(self) -> Settings:
		return self.session.settings

	def growth_days_for(self, crop: Any, profile: CropGrowthProfile | None) -> int:
		if profile is not None:
			return profile.growth_days
		if crop.expected_harvest_days:
			return int(crop.expected_harvest_days)
		return self.settings.default_growth_days

	async def run_pass(self, now: datetime | None = None) -> PassReport:
		now = now or self.session.now()
		report = PassReport()
		try:
			crops = await self.store.list_monitored_crops()
		except Exception as exc:
			logger.error("store_read_failed", collection=SourceCollectionEnum.crops.value, error=str(exc))
			report.failed += 1
			return report

		for crop in crops:
			report.evaluated += 1
			try:
				await self.evaluate_crop(crop, now, report)
			except Exception:
				report.failed += 1
				logger.exception("crop_evaluation_failed", crop_id=str(crop.id))
		return report

	async def evaluate_crop(self, crop: Any, now: datetime, report: PassReport) -> None:
		profile = growth_profiles.lookup(crop.crop_type)
		growth_days = self.growth_days_for(crop, profile)
		age = days_grown(crop.planting_date, now)
		name = crop.name or crop.crop_type

		status = CropStatusEnum(crop.status)
		new_status = next_status(status, age, growth_days, self.settings.early_growth_days)
		status_alert_pending = not crop.status_alert_sent
		if new_status != status:
			fields: dict[str, Any] = {"status": new_status, "status_alert_sent": False}
			if new_status == CropStatusEnum.harvested:
				fields["harvest_date"] = now
			await self.store.update_crop(crop.id, **fields)
			logger.info(
				"crop_transition",
				crop_id=str(crop.id),
				from_status=status.value,
				to_status=new_status.value,
				days_grown=age,
			)
			if status == CropStatusEnum.planted and new_status == CropStatusEnum.harvested:
				# Both thresholds were crossed between passes; the growing stage is announced first.
				await self._emit_status_alert(crop, name, CropStatusEnum.growing, age, growth_days, report)
			status_alert_pending = True

		if status_alert_pending:
			if await self._emit_status_alert(crop, name, new_status, age, growth_days, report):
				await self.store.update_crop(crop.id, status_alert_sent=True)

		if new_status not in _ACTIVE or age < 0:
			return

		occurrences = generate(crop.planting_date, profile) if profile is not None else []
		await self._emit_care_alerts(crop, name, age, occurrences, report)
		await self._emit_harvest_reminder(crop, name, age, growth_days, report)
		if self.settings.maintenance_reminders_enabled:
			await self._emit_maintenance_reminders(crop, name, now, occurrences, report)

	async def _emit_status_alert(
		self,
		crop: Any,
		name: str,
		status: CropStatusEnum,
		age: int,
		growth_days: int,
		report: PassReport,
	) -> bool:
		"""Emit the alert owed for ``status``; True once it is known to be stored.

		Messages carry only values fixed for the crop so a retry maps onto the
		same dedup key as the first attempt.
		"""
		if status == CropStatusEnum.growing:
			planted_on = calendar_date(crop.planting_date)
			candidate: CropStatusUpdateAlert | CropHarvestedAlert = CropStatusUpdateAlert(
				crop_id=crop.id,
				title="Crop Status Update",
				message=f"{name} is now growing (planted {planted_on.isoformat()})",
				status=status,
				days_grown=age,
			)
		elif status == CropStatusEnum.harvested:
			candidate = CropHarvestedAlert(
				crop_id=crop.id,
				title="Crop Harvested",
				message=f"{name} has reached harvest maturity ({growth_days} days)",
				days_grown=age,
			)
		else:
			return False

		return await self.session.deliver(candidate, report)

	async def _emit_care_alerts(
		self,
		crop: Any,
		name: str,
		age: int,
		occurrences: list[ScheduledTaskOccurrence],
		report: PassReport,
	) -> None:
		start = self.settings.irrigation_start_day
		cadence = self.settings.irrigation_cadence_days
		if cadence > 0 and age >= start and (age - start) % cadence == 0:
			await self.session.emit(
				IrrigationRequiredAlert(
					crop_id=crop.id,
					title="Irrigation Required",
					message=f"{name} needs watering. Days since planting: {age}",
					days_grown=age,
				),
				report,
			)

		due_today = {occurrence.category for occurrence in occurrences if occurrence.day_offset == age}
		if MaintenanceCategoryEnum.weeding in due_today:
			await self.session.emit(
				WeedingRequiredAlert(
					crop_id=crop.id,
					title="Weeding Required",
					message=f"{name} requires weeding at {age} days growth",
					days_grown=age,
				),
				report,
			)
		if MaintenanceCategoryEnum.fertilizer in due_today:
			await self.session.emit(
				FertilizationRequiredAlert(
					crop_id=crop.id,
					title="Fertilization Required",
					message=f"{name} needs fertilization at {age} days growth",
					days_grown=age,
				),
				report,
			)

	async def _emit_harvest_reminder(
		self,
		crop: Any,
		name: str,
		age: int,
		growth_days: int,
		report: PassReport,
	) -> None:
		if crop.harvest_reminder_sent:
			return
		if not growth_days - self.settings.harvest_lookahead_days <= age < growth_days:
			return
		ready_on = calendar_date(crop.planting_date) + timedelta(days=growth_days)
		candidate = HarvestApproachingAlert(
			crop_id=crop.id,
			title="Harvest Approaching",
			message=f"{name} will be ready for harvest on {ready_on.isoformat()}",
			days_remaining=growth_days - age,
		)
		if await self.session.deliver(candidate, report):
			await self.store.update_crop(crop.id, harvest_reminder_sent=True)

	async def _emit_maintenance_reminders(
		self,
		crop: Any,
		name: str,
		now: datetime,
		occurrences: list[ScheduledTaskOccurrence],
		report: PassReport,
	) -> None:
		today = calendar_date(now)
		lead_days = self.settings.maintenance_reminder_lead_days
		for occurrence in occurrences:
			if not 0 <= (occurrence.scheduled_date - today).days <= lead_days:
				continue
			label = _MAINTENANCE_LABELS[occurrence.category]
			message = f"{label} for {name} is due on {occurrence.scheduled_date.isoformat()}"
			if occurrence.pesticides:
				message += f". Suggested pesticides: {', '.join(occurrence.pesticides)}"
			await self.session.emit(
				MaintenanceDueAlert(
					crop_id=crop.id,
					title="Maintenance Due",
					message=message,
					category=occurrence.category,
					task_date=occurrence.scheduled_date,
					pesticides=occurrence.pesticides,
				),
				report,
			)
