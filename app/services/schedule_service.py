"""Maintenance schedule generation from growth profiles.

``generate`` is a pure function: the same planting date and profile always
produce the same ordered occurrence list.  Offsets are sorted ascending and
ties are broken in ``MaintenanceCategoryEnum`` declaration order
(irrigation, weeding, fertilizer, pest_control).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import CropStatusEnum, MaintenanceCategoryEnum
from app.models.farm import Crop
from app.schemas.scheduling import (
	CropGrowthProfile,
	CropScheduleRead,
	ScheduledTaskOccurrence,
	UpcomingMaintenanceItem,
	UpcomingMaintenanceRead,
)
from app.services import growth_profiles

_CATEGORY_ORDER = {category: index for index, category in enumerate(MaintenanceCategoryEnum)}


def calendar_date(value: date | datetime) -> date:
	"""Reduce a datetime to its calendar date as stored, without timezone shifting."""
	if isinstance(value, datetime):
		return value.date()
	return value


def _recurring_offsets(frequency_days: int, growth_days: int) -> list[int]:
	if frequency_days <= 0:
		return []
	return list(range(frequency_days, growth_days, frequency_days))


def generate(planting_date: date | datetime, profile: CropGrowthProfile) -> list[ScheduledTaskOccurrence]:
	growth_days = profile.growth_days
	if growth_days <= 0:
		return []

	start = calendar_date(planting_date)
	offsets: list[tuple[MaintenanceCategoryEnum, int]] = []
	offsets += [
		(MaintenanceCategoryEnum.irrigation, day)
		for day in _recurring_offsets(profile.watering_frequency_days, growth_days)
	]
	offsets += [
		(MaintenanceCategoryEnum.weeding, day)
		for day in _recurring_offsets(profile.weeding_frequency_days, growth_days)
	]
	offsets += [
		(MaintenanceCategoryEnum.fertilizer, day)
		for day in profile.fertilizer_schedule_days
		if 0 <= day < growth_days
	]
	offsets += [
		(MaintenanceCategoryEnum.pest_control, day)
		for day in _recurring_offsets(profile.pest_control_frequency_days, growth_days)
	]
	offsets.sort(key=lambda item: (item[1], _CATEGORY_ORDER[item[0]]))

	return [
		ScheduledTaskOccurrence(
			category=category,
			day_offset=day,
			scheduled_date=start + timedelta(days=day),
			pesticides=profile.pesticides if category == MaintenanceCategoryEnum.pest_control else (),
		)
		for category, day in offsets
	]


def harvest_date(planting_date: date | datetime, profile: CropGrowthProfile) -> date:
	return calendar_date(planting_date) + timedelta(days=profile.growth_days)


def upcoming_maintenance(crops: Iterable[Any], today: date, lead_days: int = 1) -> list[UpcomingMaintenanceItem]:
	"""Occurrences falling between ``today`` and ``today + lead_days`` inclusive, soonest first.

	Crops whose type has no growth profile are skipped.
	"""
	items: list[UpcomingMaintenanceItem] = []
	for crop in crops:
		profile = growth_profiles.lookup(crop.crop_type)
		if profile is None:
			continue
		for occurrence in generate(crop.planting_date, profile):
			days_until = (occurrence.scheduled_date - today).days
			if 0 <= days_until <= lead_days:
				items.append(
					UpcomingMaintenanceItem(
						crop_id=crop.id,
						crop_name=crop.name or crop.crop_type,
						farm_id=crop.farm_id,
						category=occurrence.category,
						task_date=occurrence.scheduled_date,
						days_until=days_until,
						pesticides=list(occurrence.pesticides),
					)
				)
	items.sort(key=lambda item: item.days_until)
	return items


class ScheduleService:
	"""Schedule lookups for persisted crops."""

	def __init__(self, db: AsyncSession):
		self.db = db

	async def get_crop_schedule(self, crop_id: uuid.UUID) -> CropScheduleRead:
		row = await self.db.execute(select(Crop).where(Crop.id == crop_id))
		crop = row.scalar_one_or_none()
		if crop is None:
			raise LookupError(f"Crop {crop_id} not found")
		profile = growth_profiles.lookup(crop.crop_type)
		if profile is None:
			raise ValueError(f"no growth profile for crop type '{crop.crop_type}'")
		return CropScheduleRead(
			crop_id=crop.id,
			profile=profile,
			planting_date=calendar_date(crop.planting_date),
			harvest_date=harvest_date(crop.planting_date, profile),
			occurrences=generate(crop.planting_date, profile),
		)

	async def list_upcoming_maintenance(self, today: date, lead_days: int = 1) -> UpcomingMaintenanceRead:
		if lead_days < 0:
			raise ValueError("lead_days must be non-negative")
		stmt = select(Crop).where(Crop.status.in_([CropStatusEnum.planted, CropStatusEnum.growing]))
		rows = await self.db.execute(stmt)
		crops = list(rows.scalars().all())
		return UpcomingMaintenanceRead(
			generated_for=today,
			lead_days=lead_days,
			items=upcoming_maintenance(crops, today, lead_days),
		)
