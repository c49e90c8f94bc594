from pydantic_settings import BaseSettings, SettingsConfigDict

from notihub.constants import DEFAULT_CHANNEL_PREFIX, REPO_ROOT_DIR, FailurePolicy

_DEFAULT_ENV_FILES = (
    REPO_ROOT_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_DEFAULT_ENV_FILES, extra="ignore")

    ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    JSON_LOGGING: bool = False

    # What happens when a subscriber raises during notify: "isolate" or "propagate"
    NOTIFICATION_FAILURE_POLICY: FailurePolicy = FailurePolicy.ISOLATE
    # Reject non-callable subscribers at subscribe time
    VALIDATE_HANDLERS: bool = True
    # Start every async subscriber at once instead of awaiting them one by one
    ASYNC_NOTIFY_CONCURRENT: bool = False

    # Format: "redis://<host>:<port>/<db>". Leave unset for in-process only.
    REDIS_URL: str | None = None
    NOTIFICATION_CHANNEL_PREFIX: str = DEFAULT_CHANNEL_PREFIX


settings = Settings()
