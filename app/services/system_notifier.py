"""Best-effort local system notifications for urgent alerts.

The notifier posts ``{title, body, icon, badge, tag}`` to a local desktop/
push relay.  Delivery failures are the caller's to log; they never roll
back a stored notification.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from app.config import Settings


class SystemNotifier(Protocol):
	@property
	def permission_granted(self) -> bool: ...

	async def notify(self, *, title: str, body: str, tag: str) -> None: ...


class WebhookSystemNotifier:
	def __init__(
		self,
		url: str,
		icon: str,
		timeout_seconds: float = 5.0,
		transport: httpx.AsyncBaseTransport | None = None,
	):
		self.url = url
		self.icon = icon
		self.timeout_seconds = timeout_seconds
		self.transport = transport

	@property
	def permission_granted(self) -> bool:
		return bool(self.url)

	async def notify(self, *, title: str, body: str, tag: str) -> None:
		payload = {
			"title": title,
			"body": body,
			"icon": self.icon,
			"badge": self.icon,
			"tag": tag,
		}
		async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
			response = await client.post(self.url, json=payload)
			response.raise_for_status()


def build_system_notifier(settings: Settings) -> SystemNotifier | None:
	if not settings.system_notification_url:
		return None
	return WebhookSystemNotifier(
		settings.system_notification_url,
		settings.system_notification_icon,
		settings.system_notification_timeout_seconds,
	)
