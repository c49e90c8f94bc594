"""In-process notification hub (thread-safe, snapshot dispatch)."""

import threading
from typing import Any

import structlog

from notihub import context
from notihub.config import settings
from notihub.constants import DEFAULT_HUB_NAME, FailurePolicy
from notihub.exceptions import InvalidHandlerError, NotificationDeliveryError, SubscriberFailure
from notihub.ids import generate_notification_id
from notihub.notification.base import BaseNotificationHub, Handler, is_same_handler

LOG = structlog.get_logger()


class SubscriberRegistry:
    """Ordered list of handlers guarded by a single lock.

    Duplicates are kept; every registration is notified once. Readers
    only ever see a tuple snapshot, so a handler may subscribe or
    unsubscribe while a notification is in flight.
    """

    def __init__(self, validate_handlers: bool | None = None) -> None:
        self._subscribers: list[Handler] = []
        self._lock = threading.Lock()
        self._validate_handlers = settings.VALIDATE_HANDLERS if validate_handlers is None else validate_handlers

    def add(self, handler: Handler) -> int:
        if self._validate_handlers and not callable(handler):
            raise InvalidHandlerError(handler)
        with self._lock:
            self._subscribers.append(handler)
            return len(self._subscribers)

    def remove(self, handler: Handler) -> tuple[int, int]:
        """Drop every registration of handler. Returns (removed, remaining)."""
        with self._lock:
            remaining = [registered for registered in self._subscribers if not is_same_handler(registered, handler)]
            removed = len(self._subscribers) - len(remaining)
            if removed:
                self._subscribers = remaining
            return removed, len(remaining)

    def snapshot(self) -> tuple[Handler, ...]:
        with self._lock:
            return tuple(self._subscribers)

    def clear(self) -> None:
        with self._lock:
            self._subscribers = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __contains__(self, handler: object) -> bool:
        return any(is_same_handler(registered, handler) for registered in self.snapshot())  # type: ignore[arg-type]


class NotificationHub(BaseNotificationHub):
    """Fan-out of a payload to every subscribed callable, in subscription order.

    Subscribers run on the notifying thread, outside the registry lock. A
    subscriber failing does not stop the others unless the hub was built
    with ``FailurePolicy.PROPAGATE``.
    """

    def __init__(
        self,
        name: str = DEFAULT_HUB_NAME,
        failure_policy: FailurePolicy | str | None = None,
        validate_handlers: bool | None = None,
    ) -> None:
        self.name = name
        self.failure_policy = FailurePolicy(failure_policy or settings.NOTIFICATION_FAILURE_POLICY)
        self._registry = SubscriberRegistry(validate_handlers=validate_handlers)

    def subscribe(self, handler: Handler) -> None:
        count = self._registry.add(handler)
        LOG.debug("Notification subscriber added", hub=self.name, subscriber_count=count)

    def unsubscribe(self, handler: Handler) -> None:
        removed, remaining = self._registry.remove(handler)
        LOG.debug(
            "Notification subscriber removed",
            hub=self.name,
            removed=removed,
            subscriber_count=remaining,
        )

    def notify(self, payload: Any, topic: str | None = None) -> None:
        subscribers = self._registry.snapshot()
        notification_id = generate_notification_id()
        failures: list[SubscriberFailure] = []

        for index, handler in enumerate(subscribers):
            notification_context = context.NotificationContext(
                notification_id=notification_id,
                hub=self.name,
                topic=topic,
                subscriber_index=index,
                subscriber_count=len(subscribers),
            )
            with context.scoped(notification_context):
                try:
                    handler(payload)
                except Exception as e:
                    failure = SubscriberFailure(handler, e, index=index, notification_id=notification_id)
                    if self.failure_policy == FailurePolicy.PROPAGATE:
                        LOG.warning("Notification subscriber failed, aborting notification", exc_info=True)
                        raise failure from e
                    LOG.exception("Notification subscriber failed")
                    failures.append(failure)

        if failures:
            raise NotificationDeliveryError(failures, notification_id=notification_id)

    def subscribers(self) -> tuple[Handler, ...]:
        return self._registry.snapshot()

    def clear(self) -> None:
        self._registry.clear()
        LOG.debug("Notification hub cleared", hub=self.name)

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, handler: object) -> bool:
        return handler in self._registry

    def __repr__(self) -> str:
        return f"NotificationHub(name={self.name!r}, failure_policy={self.failure_policy}, subscribers={len(self)})"
