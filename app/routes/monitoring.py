"""Monitoring engine status and manual tick routes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status

from app.schemas.monitoring import EngineStatusRead, TickReport
from app.services.alert_engine import AlertEngine

router = APIRouter(prefix="/monitoring", tags=["monitoring"])


def _require_engine(request: Request) -> AlertEngine:
	engine = getattr(request.app.state, "alert_engine", None)
	if engine is None:
		raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="monitoring engine unavailable")
	return engine


@router.get("/status", response_model=EngineStatusRead)
async def get_engine_status(request: Request) -> EngineStatusRead:
	return _require_engine(request).status()


@router.post("/tick", response_model=TickReport)
async def run_tick(request: Request) -> TickReport:
	"""Run one lifecycle and cash-flow pass immediately."""
	engine = _require_engine(request)
	try:
		return await engine.run_tick()
	except Exception as exc:
		raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="tick failure") from exc
