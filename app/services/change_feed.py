"""Transport-agnostic change subscriptions for external record stores.

``ChangeFeed.subscribe(filter)`` returns a ``Subscription``: an async
iterator of ``ChangeEvent`` that ends once ``cancel()`` is called.  Every
subscription starts with one ``snapshot`` event per collection so rules see
current state immediately, then yields:

* ``RedisChangeFeed``: events published by store writers on
  ``<prefix>:<collection>`` channels (push);
* ``PollingChangeFeed``: a ``poll`` event per collection every interval.
"""

from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from redis.asyncio import Redis

from app.config import ChangeFeedMode, Settings
from app.models.enums import SourceCollectionEnum

logger = structlog.get_logger("farmops.change_feed")


@dataclass(frozen=True, slots=True)
class ChangeEvent:
	collection: SourceCollectionEnum
	op: str
	entity_id: str | None = None


@dataclass(frozen=True, slots=True)
class SubscriptionFilter:
	collections: frozenset[SourceCollectionEnum]

	@classmethod
	def of(cls, *collections: SourceCollectionEnum) -> SubscriptionFilter:
		return cls(frozenset(collections))

	def ordered(self) -> list[SourceCollectionEnum]:
		return [collection for collection in SourceCollectionEnum if collection in self.collections]


class Subscription:
	"""Cancellable async stream of change events."""

	def __init__(self, subscription_filter: SubscriptionFilter):
		self.filter = subscription_filter
		self._pending: deque[ChangeEvent] = deque(
			ChangeEvent(collection=collection, op="snapshot") for collection in subscription_filter.ordered()
		)
		self._cancelled = asyncio.Event()
		self._opened = False

	@property
	def cancelled(self) -> bool:
		return self._cancelled.is_set()

	def __aiter__(self) -> Subscription:
		return self

	async def __anext__(self) -> ChangeEvent:
		if not self._opened and not self.cancelled:
			self._opened = True
			await self._open()
		if self._pending and not self.cancelled:
			return self._pending.popleft()
		while not self.cancelled:
			event = await self._next_event()
			if event is not None and event.collection in self.filter.collections:
				return event
		await self._close()
		raise StopAsyncIteration

	async def cancel(self) -> None:
		self._cancelled.set()

	async def _open(self) -> None:
		return None

	async def _next_event(self) -> ChangeEvent | None:
		raise NotImplementedError

	async def _close(self) -> None:
		return None


class ChangeFeed(Protocol):
	def subscribe(self, subscription_filter: SubscriptionFilter) -> Subscription: ...


# ── Push ────────────────────────────────────────────────────────────────────


def change_channel(prefix: str, collection: SourceCollectionEnum) -> str:
	return f"{prefix}:{collection.value}"


async def publish_change(
	redis_client: Redis,
	prefix: str,
	collection: SourceCollectionEnum,
	entity_id: str | None,
	op: str = "updated",
) -> None:
	"""Announce a record change; called by store writers after commit."""
	payload = {"collection": collection.value, "entity_id": entity_id, "op": op}
	await redis_client.publish(change_channel(prefix, collection), json.dumps(payload))


def _decode_event(raw: Any) -> ChangeEvent | None:
	if isinstance(raw, bytes):
		raw = raw.decode("utf-8")
	if not isinstance(raw, str):
		return None
	try:
		payload = json.loads(raw)
		return ChangeEvent(
			collection=SourceCollectionEnum(payload["collection"]),
			op=str(payload.get("op") or "updated"),
			entity_id=payload.get("entity_id"),
		)
	except (json.JSONDecodeError, KeyError, ValueError, TypeError):
		logger.warning("change_event_malformed", payload=raw[:200])
		return None


class RedisSubscription(Subscription):
	def __init__(
		self,
		redis_client: Redis,
		prefix: str,
		subscription_filter: SubscriptionFilter,
		poll_timeout: float = 1.0,
	):
		super().__init__(subscription_filter)
		self.redis_client = redis_client
		self.channels = [change_channel(prefix, collection) for collection in subscription_filter.ordered()]
		self.poll_timeout = poll_timeout
		self._pubsub: Any = None

	async def _open(self) -> None:
		self._pubsub = self.redis_client.pubsub()
		await self._pubsub.subscribe(*self.channels)

	async def _next_event(self) -> ChangeEvent | None:
		if self._pubsub is None:
			return None
		message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=self.poll_timeout)
		if message is not None and message.get("type") == "message":
			return _decode_event(message.get("data"))
		await asyncio.sleep(0.05)
		return None

	async def _close(self) -> None:
		if self._pubsub is None:
			return
		pubsub, self._pubsub = self._pubsub, None
		await pubsub.unsubscribe(*self.channels)
		await pubsub.close()


class RedisChangeFeed:
	def __init__(self, redis_client: Redis, prefix: str):
		self.redis_client = redis_client
		self.prefix = prefix

	def subscribe(self, subscription_filter: SubscriptionFilter) -> Subscription:
		return RedisSubscription(self.redis_client, self.prefix, subscription_filter)


# ── Poll ────────────────────────────────────────────────────────────────────


class PollingSubscription(Subscription):
	def __init__(self, subscription_filter: SubscriptionFilter, interval_seconds: float):
		super().__init__(subscription_filter)
		self.interval_seconds = interval_seconds

	async def _next_event(self) -> ChangeEvent | None:
		if self._pending:
			return self._pending.popleft()
		try:
			await asyncio.wait_for(self._cancelled.wait(), timeout=self.interval_seconds)
		except TimeoutError:
			self._pending.extend(ChangeEvent(collection=collection, op="poll") for collection in self.filter.ordered())
		return None


class PollingChangeFeed:
	def __init__(self, interval_seconds: float):
		self.interval_seconds = interval_seconds

	def subscribe(self, subscription_filter: SubscriptionFilter) -> Subscription:
		return PollingSubscription(subscription_filter, self.interval_seconds)


def build_change_feed(settings: Settings, redis_client: Redis | None) -> ChangeFeed:
	if settings.change_feed == ChangeFeedMode.push and redis_client is not None:
		return RedisChangeFeed(redis_client, settings.change_channel_prefix)
	return PollingChangeFeed(settings.change_poll_interval_seconds)
