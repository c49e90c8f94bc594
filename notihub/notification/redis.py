"""Redis-backed notification hub for multi-process fan-out.

Thin adapter around :class:`RedisPubSub`. ``notify`` publishes the
payload on the hub's channel; whatever arrives on that channel, from
this process or any other, is fanned out to a local
:class:`NotificationHub`. Payloads must be JSON-serializable.
"""

from typing import Any

from redis.asyncio import Redis

from notihub.config import settings
from notihub.constants import DEFAULT_HUB_NAME, FailurePolicy
from notihub.exceptions import InvalidHandlerError, RedisUnavailableError
from notihub.notification.base import BaseNotificationHub, Handler
from notihub.notification.local import NotificationHub
from notihub.redis.factory import RedisClientFactory
from notihub.redis.pubsub import RedisPubSub


class RedisNotificationHub(BaseNotificationHub):
    """Fan-out pub/sub backed by Redis.  One Redis PubSub channel per hub."""

    def __init__(
        self,
        redis_client: Redis | None = None,
        channel: str = DEFAULT_HUB_NAME,
        channel_prefix: str | None = None,
        failure_policy: FailurePolicy | str | None = None,
        validate_handlers: bool | None = None,
    ) -> None:
        redis_client = redis_client or RedisClientFactory.get_client()
        if redis_client is None:
            raise RedisUnavailableError()
        self.channel = channel
        self._pubsub = RedisPubSub(
            redis_client,
            channel_prefix=channel_prefix if channel_prefix is not None else settings.NOTIFICATION_CHANNEL_PREFIX,
        )
        self._local = NotificationHub(
            name=f"redis:{channel}",
            failure_policy=failure_policy,
            validate_handlers=validate_handlers,
        )
        # bound once so RedisPubSub can find it again on unsubscribe
        self._dispatch = self._local.notify
        self._listening = False

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def subscribe(self, handler: Handler) -> None:
        # start listening first so a missing event loop leaves no local registration behind
        started_listener = False
        if not self._listening:
            self._pubsub.subscribe(self.channel, self._dispatch)
            self._listening = started_listener = True
        try:
            self._local.subscribe(handler)
        except InvalidHandlerError:
            if started_listener:
                self._pubsub.unsubscribe(self.channel, self._dispatch)
                self._listening = False
            raise

    def unsubscribe(self, handler: Handler) -> None:
        self._local.unsubscribe(handler)
        if self._listening and not len(self._local):
            self._pubsub.unsubscribe(self.channel, self._dispatch)
            self._listening = False

    def notify(self, payload: Any) -> None:
        self._pubsub.publish(self.channel, payload)

    def subscribers(self) -> tuple[Handler, ...]:
        return self._local.subscribers()

    def __len__(self) -> int:
        return len(self._local)

    async def close(self) -> None:
        await self._pubsub.close()
        self._local.clear()
        self._listening = False

    # ------------------------------------------------------------------
    # Internal helper (exposed for tests)
    # ------------------------------------------------------------------

    def _dispatch_local(self, payload: Any) -> None:
        self._pubsub._dispatch_local(self.channel, payload)
