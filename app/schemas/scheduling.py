"""Pydantic schemas for growth profiles and derived maintenance schedules."""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import MaintenanceCategoryEnum


class CropGrowthProfile(BaseModel):
	"""Static per-crop agronomic parameters (immutable reference data)."""

	model_config = ConfigDict(frozen=True)

	name: str
	category: str
	growth_days: int
	watering_frequency_days: int
	weeding_frequency_days: int
	fertilizer_schedule_days: tuple[int, ...] = ()
	pest_control_frequency_days: int
	pesticides: tuple[str, ...] = ()
	yield_per_area: float
	optimal_temp_range: str
	compatible_soil_types: tuple[str, ...] = ()


class ScheduledTaskOccurrence(BaseModel):
	"""One dated maintenance occurrence; derived on demand, never persisted."""

	model_config = ConfigDict(frozen=True)

	category: MaintenanceCategoryEnum
	day_offset: int = Field(ge=0)
	scheduled_date: date
	pesticides: tuple[str, ...] = ()


class ProfileListRead(BaseModel):
	items: list[CropGrowthProfile]


class ScheduleRead(BaseModel):
	profile: CropGrowthProfile
	planting_date: date
	harvest_date: date
	occurrences: list[ScheduledTaskOccurrence]


class CropScheduleRead(ScheduleRead):
	crop_id: uuid.UUID


class UpcomingMaintenanceItem(BaseModel):
	crop_id: uuid.UUID
	crop_name: str
	farm_id: uuid.UUID | None = None
	category: MaintenanceCategoryEnum
	task_date: date
	days_until: int
	pesticides: list[str] = Field(default_factory=list)


class UpcomingMaintenanceRead(BaseModel):
	generated_for: date
	lead_days: int
	items: list[UpcomingMaintenanceItem]
