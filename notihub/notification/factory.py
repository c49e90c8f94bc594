from notihub.notification.base import BaseNotificationHub
from notihub.notification.local import NotificationHub


class NotificationHubFactory:
    __hub: BaseNotificationHub = NotificationHub()

    @staticmethod
    def set_hub(hub: BaseNotificationHub) -> None:
        NotificationHubFactory.__hub = hub

    @staticmethod
    def get_hub() -> BaseNotificationHub:
        return NotificationHubFactory.__hub
