"""Pydantic request/response schemas for notification endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import AlertPriorityEnum, AlertTypeEnum


class NotificationCreate(BaseModel):
	type: AlertTypeEnum = AlertTypeEnum.general
	title: str = Field(min_length=1, max_length=255)
	message: str = Field(min_length=1)
	priority: AlertPriorityEnum = AlertPriorityEnum.medium
	target: str = Field(default="all", min_length=1, max_length=255)
	source_type: str | None = Field(default=None, max_length=32)
	source_id: str | None = Field(default=None, max_length=64)
	data: dict[str, Any] | None = None


class NotificationRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	type: AlertTypeEnum
	title: str
	message: str
	priority: AlertPriorityEnum
	target: str
	source_type: str | None = None
	source_id: str | None = None
	data: dict[str, Any] | None = None
	read: bool
	created_at: datetime


class NotificationListRead(BaseModel):
	items: list[NotificationRead]
	unread_count: int


class MarkAllReadRequest(BaseModel):
	target: str = Field(min_length=1, max_length=255)


class MarkReadResponse(BaseModel):
	updated: int


class UnreadCountRead(BaseModel):
	target: str | None = None
	unread_count: int
