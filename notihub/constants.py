from enum import StrEnum
from pathlib import Path

NOTIHUB_DIR = Path(__file__).parent
REPO_ROOT_DIR = NOTIHUB_DIR.parent

DEFAULT_HUB_NAME = "default"
DEFAULT_CHANNEL_PREFIX = "notihub:notifications:"
NOTIFICATION_ID_PREFIX = "ntf"


class FailurePolicy(StrEnum):
    # keep notifying the remaining subscribers, raise an aggregate afterwards
    ISOLATE = "isolate"
    # stop at the first failing subscriber
    PROPAGATE = "propagate"
