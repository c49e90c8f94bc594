"""Topic-scoped fan-out: one NotificationHub per topic."""

import threading
from typing import Any

import structlog

from notihub.constants import FailurePolicy
from notihub.notification.base import Handler
from notihub.notification.local import NotificationHub

LOG = structlog.get_logger()


class TopicNotificationHub:
    """Routes each payload to the subscribers of a single topic.

    A topic's hub is created on its first subscription and dropped when
    its last subscriber leaves. Payloads never cross topics.
    """

    def __init__(
        self,
        name: str = "topics",
        failure_policy: FailurePolicy | str | None = None,
        validate_handlers: bool | None = None,
    ) -> None:
        self.name = name
        self._failure_policy = failure_policy
        self._validate_handlers = validate_handlers
        self._hubs: dict[str, NotificationHub] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic: str, handler: Handler) -> None:
        with self._lock:
            hub = self._hubs.get(topic)
            if hub is None:
                hub = NotificationHub(
                    name=f"{self.name}:{topic}",
                    failure_policy=self._failure_policy,
                    validate_handlers=self._validate_handlers,
                )
            # validates the handler before the topic is registered
            hub.subscribe(handler)
            self._hubs[topic] = hub
        LOG.info("Topic subscriber added", hub=self.name, topic=topic)

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        with self._lock:
            hub = self._hubs.get(topic)
            if hub is None:
                return
            hub.unsubscribe(handler)
            if not len(hub):
                del self._hubs[topic]
        LOG.info("Topic subscriber removed", hub=self.name, topic=topic)

    def notify(self, topic: str, payload: Any) -> None:
        with self._lock:
            hub = self._hubs.get(topic)
        if hub is None:
            LOG.debug("No subscribers for topic", hub=self.name, topic=topic)
            return
        hub.notify(payload, topic=topic)

    def topics(self) -> list[str]:
        with self._lock:
            return list(self._hubs)

    def subscribers(self, topic: str) -> tuple[Handler, ...]:
        with self._lock:
            hub = self._hubs.get(topic)
        return hub.subscribers() if hub else ()

    def clear(self) -> None:
        with self._lock:
            self._hubs.clear()
