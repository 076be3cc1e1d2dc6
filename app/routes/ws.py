"""WebSocket live notification feed."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.config import get_settings

router = APIRouter(tags=["websocket"])


def _matches_target(payload: Any, target: str | None) -> bool:
	if target is None or not isinstance(payload, dict):
		return True
	return payload.get("target") in (target, "all")


@router.websocket("/ws/notifications/live")
async def ws_notifications_live(websocket: WebSocket) -> None:
	await websocket.accept()

	target = websocket.query_params.get("target")
	if target is not None:
		target = target.strip() or None

	redis_client = getattr(websocket.app.state, "redis", None)
	if redis_client is None:
		await websocket.send_json({"error": "redis_unavailable"})
		await websocket.close(code=1011)
		return

	channel = get_settings().notifications_channel
	pubsub = redis_client.pubsub()
	await pubsub.subscribe(channel)

	try:
		while True:
			message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
			if message is not None and message.get("type") == "message":
				payload = message.get("data")
				if isinstance(payload, bytes):
					payload = payload.decode("utf-8")
				if isinstance(payload, str):
					try:
						event = json.loads(payload)
					except json.JSONDecodeError:
						await websocket.send_text(payload)
					else:
						if _matches_target(event, target):
							await websocket.send_json(event)
			await asyncio.sleep(0.05)
	except WebSocketDisconnect:
		return
	finally:
		await pubsub.unsubscribe(channel)
		await pubsub.close()
