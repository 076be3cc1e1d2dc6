"""Growth profile and maintenance schedule routes."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.scheduling import (
	CropGrowthProfile,
	CropScheduleRead,
	ProfileListRead,
	ScheduleRead,
	UpcomingMaintenanceRead,
)
from app.services import growth_profiles, schedule_service
from app.services.schedule_service import ScheduleService

router = APIRouter(tags=["schedules"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="schedule failure")


def _require_profile(name: str) -> CropGrowthProfile:
	profile = growth_profiles.lookup(name)
	if profile is None:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"no growth profile named '{name}'")
	return profile


@router.get("/profiles", response_model=ProfileListRead)
async def list_profiles() -> ProfileListRead:
	return ProfileListRead(items=growth_profiles.list_profiles())


@router.get("/profiles/{name}", response_model=CropGrowthProfile)
async def get_profile(name: str) -> CropGrowthProfile:
	return _require_profile(name)


@router.get("/profiles/{name}/schedule", response_model=ScheduleRead)
async def get_profile_schedule(name: str, planting_date: date) -> ScheduleRead:
	profile = _require_profile(name)
	return ScheduleRead(
		profile=profile,
		planting_date=planting_date,
		harvest_date=schedule_service.harvest_date(planting_date, profile),
		occurrences=schedule_service.generate(planting_date, profile),
	)


@router.get("/crops/{crop_id}/schedule", response_model=CropScheduleRead)
async def get_crop_schedule(crop_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> CropScheduleRead:
	try:
		return await ScheduleService(db).get_crop_schedule(crop_id)
	except Exception as exc:
		raise _map_error(exc) from exc


@router.get("/maintenance/upcoming", response_model=UpcomingMaintenanceRead)
async def list_upcoming_maintenance(
	lead_days: int = Query(default=1, ge=0, le=60),
	db: AsyncSession = Depends(get_db),
) -> UpcomingMaintenanceRead:
	today = datetime.now(UTC).date()
	try:
		return await ScheduleService(db).list_upcoming_maintenance(today, lead_days)
	except Exception as exc:
		raise _map_error(exc) from exc
