from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator


@dataclass
class NotificationContext:
    notification_id: str | None = None
    hub: str | None = None
    topic: str | None = None
    subscriber_index: int | None = None
    subscriber_count: int | None = None

    def __repr__(self) -> str:
        return (
            f"NotificationContext(notification_id={self.notification_id}, hub={self.hub}, topic={self.topic}, "
            f"subscriber_index={self.subscriber_index}, subscriber_count={self.subscriber_count})"
        )

    def __str__(self) -> str:
        return self.__repr__()


_context: ContextVar[NotificationContext | None] = ContextVar(
    "Notification context",
    default=None,
)


def current() -> NotificationContext | None:
    """
    Get the current notification context

    Returns:
        The context of the notification being dispatched, or None outside of a notify call
    """
    return _context.get()


def ensure_context() -> NotificationContext:
    """
    Get the current notification context, or raise an error if there is none

    Raises:
        RuntimeError: If no notification is being dispatched
    """
    context = current()
    if context is None:
        raise RuntimeError("No notification context")
    return context


def set(context: NotificationContext) -> None:
    _context.set(context)


def reset() -> None:
    _context.set(None)


@contextmanager
def scoped(context: NotificationContext) -> Iterator[NotificationContext]:
    """
    Bind the context for the duration of the block and restore the previous one afterwards.
    Nested notifications (a subscriber calling notify) get their own context.
    """
    token = _context.set(context)
    try:
        yield context
    finally:
        _context.reset(token)
