"""Generic Redis pub/sub layer.

Any feature can reuse it with its own channel prefix: a local callback
is registered per key, one Redis listener task runs per key, and every
message received on the channel is handed to the key's callbacks.
"""

import asyncio
import json
from collections import defaultdict
from typing import Any, Callable

import structlog
from redis.asyncio import Redis

LOG = structlog.get_logger()

Callback = Callable[[Any], None]


class RedisPubSub:
    """Fan-out pub/sub backed by Redis.  One Redis PubSub channel per key."""

    def __init__(self, redis_client: Redis, channel_prefix: str) -> None:
        self._redis = redis_client
        self._channel_prefix = channel_prefix
        self._subscribers: dict[str, list[Callback]] = defaultdict(list)
        # One listener task per key channel
        self._listener_tasks: dict[str, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def subscribe(self, key: str, callback: Callback) -> None:
        # raises outside of an event loop, before any state is touched
        loop = asyncio.get_running_loop()
        self._subscribers[key].append(callback)

        # Spin up a Redis listener if this is the first local subscriber
        if key not in self._listener_tasks:
            task = loop.create_task(self._listen(key))
            self._listener_tasks[key] = task

        LOG.info("PubSub subscriber added", key=key, channel_prefix=self._channel_prefix)

    def unsubscribe(self, key: str, callback: Callback) -> None:
        callbacks = self._subscribers.get(key)
        if callbacks:
            try:
                callbacks.remove(callback)
            except ValueError:
                pass
            if not callbacks:
                del self._subscribers[key]
                self._cancel_listener(key)
        LOG.info("PubSub subscriber removed", key=key, channel_prefix=self._channel_prefix)

    def publish(self, key: str, message: Any) -> None:
        """Fire-and-forget Redis PUBLISH."""
        # fail fast on the caller's side rather than inside the background task
        data = json.dumps(message)
        try:
            loop = asyncio.get_running_loop()
            loop.create_task(self._publish_to_redis(key, data))
        except RuntimeError:
            LOG.warning(
                "No running event loop; cannot publish via Redis",
                key=key,
                channel_prefix=self._channel_prefix,
            )

    async def close(self) -> None:
        """Cancel all listener tasks and clear state.  Call on shutdown."""
        for key in list(self._listener_tasks):
            self._cancel_listener(key)
        self._subscribers.clear()
        LOG.info("RedisPubSub closed", channel_prefix=self._channel_prefix)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _publish_to_redis(self, key: str, data: str) -> None:
        channel = f"{self._channel_prefix}{key}"
        try:
            await self._redis.publish(channel, data)
        except Exception:
            LOG.exception("Failed to publish to Redis", key=key, channel_prefix=self._channel_prefix)

    async def _listen(self, key: str) -> None:
        """Subscribe to a Redis channel and fan out messages locally."""
        channel = f"{self._channel_prefix}{key}"
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(channel)
            LOG.info("Redis listener started", channel=channel)
            async for raw_message in pubsub.listen():
                if raw_message["type"] != "message":
                    continue
                try:
                    data = json.loads(raw_message["data"])
                except (json.JSONDecodeError, TypeError):
                    LOG.warning("Invalid JSON on Redis channel", channel=channel)
                    continue
                self._dispatch_local(key, data)
        except asyncio.CancelledError:
            LOG.info("Redis listener cancelled", channel=channel)
            raise
        except Exception:
            LOG.exception("Redis listener error", channel=channel)
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.close()
            except Exception:
                LOG.warning("Error closing Redis pubsub", channel=channel)

    def _dispatch_local(self, key: str, message: Any) -> None:
        """Hand a message to every local callback for this key."""
        for callback in list(self._subscribers.get(key, [])):
            try:
                callback(message)
            except Exception:
                # one failing callback must not kill the listener task
                LOG.exception(
                    "PubSub callback failed",
                    key=key,
                    channel_prefix=self._channel_prefix,
                )

    def _cancel_listener(self, key: str) -> None:
        task = self._listener_tasks.pop(key, None)
        if task and not task.done():
            task.cancel()
