import logging
import sys

import structlog
from structlog.typing import EventDict

from notihub import context
from notihub._version import __version__
from notihub.config import settings

LOGGING_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def add_notification_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Tag every log line emitted while a notification is being dispatched, including the ones
    emitted by subscribers themselves.
    """
    notification_context = context.current()
    if notification_context:
        if notification_context.notification_id:
            event_dict.setdefault("notification_id", notification_context.notification_id)
        if notification_context.hub:
            event_dict.setdefault("hub", notification_context.hub)
        if notification_context.topic:
            event_dict.setdefault("topic", notification_context.topic)
        if notification_context.subscriber_index is not None:
            event_dict.setdefault("subscriber_index", notification_context.subscriber_index)

    event_dict["env"] = settings.ENV
    event_dict["version"] = __version__
    return event_dict


def add_kv_pairs_to_msg(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    A custom processor to add key-value pairs to the 'msg' field.
    """
    if method_name not in ["info", "warning", "error", "critical", "exception"]:
        return event_dict

    msg_field = event_dict.get("msg", "")
    kv_pairs = {k: v for k, v in event_dict.items() if k not in ["msg", "timestamp", "level"]}
    if kv_pairs:
        additional_info = ", ".join(f"{k}={v}" for k, v in kv_pairs.items())
        msg_field += f" | {additional_info}"

    event_dict["msg"] = msg_field
    return event_dict


def add_filename_section(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add a fixed-width, bracketed filename:lineno section after the log level for console logs.
    """
    filename = event_dict.get("filename", "")
    lineno = event_dict.get("lineno", "")
    padded = f"[{filename:<20}:{lineno:<4}]" if filename else "[unknown        ]"
    event_dict["file"] = padded
    event_dict.pop("filename", None)
    event_dict.pop("lineno", None)
    return event_dict


class CustomConsoleRenderer(structlog.dev.ConsoleRenderer):
    """
    Show the bracketed filename:lineno section after the log level for console logs, and
    colorize it.
    """

    def __init__(self) -> None:
        super().__init__(sort_keys=False)

    def __call__(self, logger: logging.Logger, name: str, event_dict: EventDict) -> str:
        file_section = event_dict.pop("file", "")
        file_section_colored = f"\x1b[90m{file_section}\x1b[0m" if file_section else ""
        rendered = super().__call__(logger, name, event_dict)
        first_bracket = rendered.find("]")

        if first_bracket != -1:
            return rendered[: first_bracket + 1] + f" {file_section_colored}" + rendered[first_bracket + 1 :]
        else:
            return f"{file_section_colored} {rendered}"


def add_error_processor(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    A custom processor extending error logs with the exception type and category
    """
    exc_info = event_dict.get("exc_info")
    if not exc_info:
        return event_dict

    if exc_info is True:
        exc_info = sys.exc_info()
    elif isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)

    if isinstance(exc_info, tuple) and exc_info[0] is not None:
        exc_type = exc_info[0]
        event_dict["error_type"] = f"{exc_type.__module__}.{exc_type.__name__}"
        event_dict["error_category"] = categorize_exception(exc_type)

    return event_dict


def categorize_exception(exc_type: type) -> str:
    """
    Categorize an exception into TRANSIENT, BUG, or ERROR.

    TRANSIENT: Network/IO errors that might succeed on retry
    BUG: Programming errors indicating bugs
    ERROR: Everything else
    """
    transient_exceptions = (
        OSError,
        ConnectionError,
        TimeoutError,
    )
    bug_exceptions = (
        ZeroDivisionError,
        AttributeError,
        TypeError,
        KeyError,
        IndexError,
        NameError,
        AssertionError,
        NotImplementedError,
        RecursionError,
    )

    if issubclass(exc_type, transient_exceptions):
        return "TRANSIENT"
    if issubclass(exc_type, bug_exceptions):
        return "BUG"
    # redis.exceptions.ConnectionError and friends don't subclass the builtins
    if "Connection" in exc_type.__name__ or "Timeout" in exc_type.__name__:
        return "TRANSIENT"
    return "ERROR"


def setup_logger() -> None:
    """
    Setup the logger with the specified format
    """
    renderer = structlog.processors.JSONRenderer() if settings.JSON_LOGGING else CustomConsoleRenderer()
    additional_processors = (
        [
            structlog.processors.EventRenamer("msg"),
            add_kv_pairs_to_msg,
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.PATHNAME,
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            ),
        ]
        if settings.JSON_LOGGING
        else [
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            ),
            add_filename_section,
        ]
    )
    log_level = LOGGING_LEVEL_MAP.get(settings.LOG_LEVEL.upper(), logging.INFO)

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_notification_context,
            add_error_processor,
            structlog.processors.format_exc_info,
        ]
        + additional_processors
        + [renderer],
    )
