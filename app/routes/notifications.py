"""Notification center routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.schemas.notifications import (
	MarkAllReadRequest,
	MarkReadResponse,
	NotificationCreate,
	NotificationListRead,
	NotificationRead,
	UnreadCountRead,
)
from app.services.notification_service import NotificationPublisher, NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="notification failure")


def _publisher(request: Request) -> NotificationPublisher:
	publisher = getattr(request.app.state, "notification_publisher", None)
	if publisher is not None:
		return publisher
	return NotificationPublisher(
		getattr(request.app.state, "redis", None),
		get_settings().notifications_channel,
	)


@router.get("", response_model=NotificationListRead)
async def list_notifications(
	target: str | None = Query(default=None, min_length=1, max_length=255),
	unread_only: bool = False,
	limit: int | None = Query(default=None, ge=1, le=500),
	db: AsyncSession = Depends(get_db),
) -> NotificationListRead:
	service = NotificationService(db)
	try:
		rows = await service.list_notifications(
			target,
			unread_only=unread_only,
			limit=limit or get_settings().notification_list_limit,
		)
		unread = await service.unread_count(target)
	except Exception as exc:
		raise _map_error(exc) from exc
	return NotificationListRead(items=[NotificationRead.model_validate(row) for row in rows], unread_count=unread)


@router.get("/unread-count", response_model=UnreadCountRead)
async def get_unread_count(
	target: str | None = Query(default=None, min_length=1, max_length=255),
	db: AsyncSession = Depends(get_db),
) -> UnreadCountRead:
	try:
		count = await NotificationService(db).unread_count(target)
	except Exception as exc:
		raise _map_error(exc) from exc
	return UnreadCountRead(target=target, unread_count=count)


@router.post("", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
async def create_notification(
	payload: NotificationCreate,
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> NotificationRead:
	try:
		notification = await NotificationService(db).create(payload)
		await db.commit()
	except Exception as exc:
		raise _map_error(exc) from exc
	event = NotificationRead.model_validate(notification)
	await _publisher(request).publish(event)
	return event


@router.put("/read-all", response_model=MarkReadResponse)
async def mark_all_read(
	payload: MarkAllReadRequest,
	db: AsyncSession = Depends(get_db),
) -> MarkReadResponse:
	try:
		updated = await NotificationService(db).mark_all_read(payload.target)
	except Exception as exc:
		raise _map_error(exc) from exc
	return MarkReadResponse(updated=updated)


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(notification_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> NotificationRead:
	try:
		notification = await NotificationService(db).mark_read(notification_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return NotificationRead.model_validate(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(notification_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Response:
	try:
		await NotificationService(db).delete_notification(notification_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)
