from typing import Any

from notihub._version import __version__
from notihub.log import setup_logger

setup_logger()

# noinspection PyUnresolvedReferences
__all__ = [
    "__version__",
    "AsyncNotificationHub",
    "BaseNotificationHub",
    "FailurePolicy",
    "InvalidHandlerError",
    "NotiHubException",
    "NotificationDeliveryError",
    "NotificationHub",
    "NotificationHubFactory",
    "RedisNotificationHub",
    "SubscriberFailure",
    "TopicNotificationHub",
]

_lazy_imports = {
    "AsyncNotificationHub": "notihub.notification.aio",
    "BaseNotificationHub": "notihub.notification.base",
    "FailurePolicy": "notihub.constants",
    "InvalidHandlerError": "notihub.exceptions",
    "NotiHubException": "notihub.exceptions",
    "NotificationDeliveryError": "notihub.exceptions",
    "NotificationHub": "notihub.notification.local",
    "NotificationHubFactory": "notihub.notification.factory",
    "RedisNotificationHub": "notihub.notification.redis",
    "SubscriberFailure": "notihub.exceptions",
    "TopicNotificationHub": "notihub.notification.topics",
}


def __getattr__(name: str) -> Any:
    if name in _lazy_imports:
        module_path = _lazy_imports[name]
        from importlib import import_module  # noqa: PLC0415

        value = getattr(import_module(module_path), name)

        # Cache the imported value
        globals()[name] = value
        return value

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
