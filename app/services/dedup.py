"""At-most-once alert suppression for a monitoring session.

``SessionDedupStore`` is the default: keys live in process memory and are
cleared on ``reset()`` (engine stop/restart), so alerts emitted in a
previous session may recur.  ``RedisDedupStore`` shares keys across engine
instances and evicts them after a TTL.
"""

from __future__ import annotations

from typing import Protocol

import structlog
from redis.asyncio import Redis

from app.config import DedupBackend, Settings
from app.schemas.alerts import DedupKey

logger = structlog.get_logger("farmops.dedup")


class DedupStore(Protocol):
	session_scoped: bool

	async def should_emit(self, key: DedupKey) -> bool: ...

	async def forget(self, key: DedupKey) -> None: ...

	async def reset(self) -> None: ...


class SessionDedupStore:
	session_scoped = True

	def __init__(self) -> None:
		self._seen: set[DedupKey] = set()

	def __len__(self) -> int:
		return len(self._seen)

	async def should_emit(self, key: DedupKey) -> bool:
		if key in self._seen:
			return False
		self._seen.add(key)
		return True

	async def forget(self, key: DedupKey) -> None:
		self._seen.discard(key)

	async def reset(self) -> None:
		self._seen.clear()


class RedisDedupStore:
	"""Shared dedup keys: ``SET NX`` claims a key, the TTL bounds growth."""

	session_scoped = False

	def __init__(self, redis_client: Redis, namespace: str, ttl_seconds: int):
		self.redis_client = redis_client
		self.namespace = namespace
		self.ttl_seconds = ttl_seconds

	def _redis_key(self, key: DedupKey) -> str:
		return f"{self.namespace}:{key.as_token()}"

	async def should_emit(self, key: DedupKey) -> bool:
		claimed = await self.redis_client.set(self._redis_key(key), "1", nx=True, ex=self.ttl_seconds)
		return bool(claimed)

	async def forget(self, key: DedupKey) -> None:
		await self.redis_client.delete(self._redis_key(key))

	async def reset(self) -> None:
		removed = 0
		async for redis_key in self.redis_client.scan_iter(match=f"{self.namespace}:*"):
			await self.redis_client.delete(redis_key)
			removed += 1
		logger.info("dedup_reset", backend="redis", removed=removed)


def build_dedup_store(settings: Settings, redis_client: Redis | None) -> DedupStore:
	if settings.dedup_backend == DedupBackend.redis:
		if redis_client is None:
			raise ValueError("dedup_backend=redis requires a Redis connection")
		return RedisDedupStore(redis_client, settings.dedup_namespace, settings.dedup_ttl_seconds)
	return SessionDedupStore()
