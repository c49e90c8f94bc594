from notihub.notification.aio import AsyncNotificationHub
from notihub.notification.base import BaseNotificationHub, Handler
from notihub.notification.factory import NotificationHubFactory
from notihub.notification.local import NotificationHub
from notihub.notification.topics import TopicNotificationHub

__all__ = [
    "AsyncNotificationHub",
    "BaseNotificationHub",
    "Handler",
    "NotificationHub",
    "NotificationHubFactory",
    "TopicNotificationHub",
]
