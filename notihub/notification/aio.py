"""Asynchronous notification hub: subscribers may be coroutine functions."""

import asyncio
import inspect
from typing import Any

import structlog

from notihub import context
from notihub.config import settings
from notihub.constants import DEFAULT_HUB_NAME, FailurePolicy
from notihub.exceptions import NotificationDeliveryError, SubscriberFailure
from notihub.ids import generate_notification_id
from notihub.notification.base import Handler
from notihub.notification.local import SubscriberRegistry

LOG = structlog.get_logger()


class AsyncNotificationHub:
    """Fan-out to sync or async subscribers from inside an event loop.

    Dispatch always starts in subscription order. Sequential mode awaits
    each subscriber before starting the next; concurrent mode starts them
    all and waits for every one to settle, so completion order is not
    defined.
    """

    def __init__(
        self,
        name: str = DEFAULT_HUB_NAME,
        failure_policy: FailurePolicy | str | None = None,
        validate_handlers: bool | None = None,
        concurrent: bool | None = None,
    ) -> None:
        self.name = name
        self.failure_policy = FailurePolicy(failure_policy or settings.NOTIFICATION_FAILURE_POLICY)
        self.concurrent = settings.ASYNC_NOTIFY_CONCURRENT if concurrent is None else concurrent
        self._registry = SubscriberRegistry(validate_handlers=validate_handlers)

    def subscribe(self, handler: Handler) -> None:
        count = self._registry.add(handler)
        LOG.debug("Async notification subscriber added", hub=self.name, subscriber_count=count)

    def unsubscribe(self, handler: Handler) -> None:
        removed, remaining = self._registry.remove(handler)
        LOG.debug(
            "Async notification subscriber removed",
            hub=self.name,
            removed=removed,
            subscriber_count=remaining,
        )

    async def notify(self, payload: Any, topic: str | None = None) -> None:
        subscribers = self._registry.snapshot()
        notification_id = generate_notification_id()

        if self.concurrent:
            failures = await self._notify_concurrently(subscribers, payload, notification_id, topic)
        else:
            failures = await self._notify_sequentially(subscribers, payload, notification_id, topic)

        if not failures:
            return
        if self.failure_policy == FailurePolicy.PROPAGATE:
            # concurrent mode: everything already ran, report the earliest subscriber
            raise failures[0] from failures[0].error
        raise NotificationDeliveryError(failures, notification_id=notification_id)

    def subscribers(self) -> tuple[Handler, ...]:
        return self._registry.snapshot()

    def clear(self) -> None:
        self._registry.clear()
        LOG.debug("Async notification hub cleared", hub=self.name)

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, handler: object) -> bool:
        return handler in self._registry

    async def _notify_sequentially(
        self,
        subscribers: tuple[Handler, ...],
        payload: Any,
        notification_id: str,
        topic: str | None,
    ) -> list[SubscriberFailure]:
        failures: list[SubscriberFailure] = []
        for index, handler in enumerate(subscribers):
            failure = await self._invoke(handler, payload, index, len(subscribers), notification_id, topic)
            if failure is None:
                continue
            failures.append(failure)
            if self.failure_policy == FailurePolicy.PROPAGATE:
                break
        return failures

    async def _notify_concurrently(
        self,
        subscribers: tuple[Handler, ...],
        payload: Any,
        notification_id: str,
        topic: str | None,
    ) -> list[SubscriberFailure]:
        # tasks are scheduled in creation order, which keeps dispatch initiation in subscription order
        tasks = [
            asyncio.ensure_future(self._invoke(handler, payload, index, len(subscribers), notification_id, topic))
            for index, handler in enumerate(subscribers)
        ]
        try:
            results = await asyncio.gather(*tasks)
        finally:
            # only reached with pending tasks when a subscriber raised a BaseException
            for task in tasks:
                if not task.done():
                    task.cancel()
        return [failure for failure in results if failure is not None]

    async def _invoke(
        self,
        handler: Handler,
        payload: Any,
        index: int,
        subscriber_count: int,
        notification_id: str,
        topic: str | None,
    ) -> SubscriberFailure | None:
        notification_context = context.NotificationContext(
            notification_id=notification_id,
            hub=self.name,
            topic=topic,
            subscriber_index=index,
            subscriber_count=subscriber_count,
        )
        with context.scoped(notification_context):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                if self.failure_policy == FailurePolicy.PROPAGATE:
                    LOG.warning("Async notification subscriber failed", exc_info=True)
                else:
                    LOG.exception("Async notification subscriber failed")
                return SubscriberFailure(handler, e, index=index, notification_id=notification_id)
        return None
