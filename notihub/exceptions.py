from typing import Any


class NotiHubException(Exception):
    def __init__(self, message: str | None = None):
        self.message = message
        super().__init__(message)


class InvalidHandlerError(NotiHubException):
    def __init__(self, handler: Any):
        self.handler = handler
        super().__init__(f"Subscriber must be callable, got {type(handler).__name__}: {handler!r}")


class SubscriberFailure(NotiHubException):
    def __init__(
        self,
        handler: Any,
        error: Exception,
        index: int | None = None,
        notification_id: str | None = None,
    ):
        self.handler = handler
        self.error = error
        self.index = index
        self.notification_id = notification_id
        super().__init__(
            f"Subscriber {_handler_name(handler)} failed. index={index} notification_id={notification_id} "
            f"error={type(error).__name__}: {error}"
        )
        self.__cause__ = error


class NotificationDeliveryError(NotiHubException):
    def __init__(self, failures: list[SubscriberFailure], notification_id: str | None = None):
        self.failures = failures
        self.notification_id = notification_id
        super().__init__(
            f"{len(failures)} subscriber(s) failed during notification. notification_id={notification_id}"
        )

    @property
    def errors(self) -> list[Exception]:
        return [failure.error for failure in self.failures]


class RedisUnavailableError(NotiHubException):
    def __init__(self) -> None:
        super().__init__(
            "No Redis client configured. Pass a client explicitly or call RedisClientFactory.set_client()"
        )


def _handler_name(handler: Any) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
