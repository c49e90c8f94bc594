"""Abstract base for notification hubs."""

import inspect
import types
from abc import ABC, abstractmethod
from typing import Any, Callable

Handler = Callable[[Any], Any]

# bound methods implemented in C, e.g. list.append or asyncio.Queue.put_nowait
_BUILTIN_METHOD_TYPES = (types.BuiltinMethodType, types.MethodWrapperType)


class BaseNotificationHub(ABC):
    """Abstract subscriber registry with synchronous fan-out.

    Implementations must fan-out: a single notify call delivers the
    payload to every subscriber registered when the call started, in
    registration order.
    """

    @abstractmethod
    def subscribe(self, handler: Handler) -> None: ...

    @abstractmethod
    def unsubscribe(self, handler: Handler) -> None: ...

    @abstractmethod
    def notify(self, payload: Any) -> None: ...


def is_same_handler(registered: Handler, handler: Handler) -> bool:
    """Reference identity, except that bound methods are rebuilt on every attribute
    access, so two bound methods match when they wrap the same function on the same
    instance."""
    if registered is handler:
        return True
    if inspect.ismethod(registered) and inspect.ismethod(handler):
        return registered.__self__ is handler.__self__ and registered.__func__ is handler.__func__
    if isinstance(registered, _BUILTIN_METHOD_TYPES) and isinstance(handler, _BUILTIN_METHOD_TYPES):
        return registered.__self__ is handler.__self__ and registered.__name__ == handler.__name__
    return False
