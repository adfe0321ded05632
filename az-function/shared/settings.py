import os
from dataclasses import dataclass

DEFAULT_UPSTREAM_SCRIPT_URL = (
    "https://script.google.com/macros/s/"
    "AKfycby69Ngv7yflRCqkOOtRznWOtzcJDMLltSFGkdWMZmTyYYiYvBNZrIkmffXpcdQTrVqk/exec"
)
DEFAULT_CLIENT_ENDPOINT = "/api/proxy"
DEFAULT_HEARTBEAT_INTERVAL_MS = 15000
DEFAULT_POLLING_INTERVAL_MS = 5000


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer number of milliseconds, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    upstream_url: str
    client_endpoint: str
    heartbeat_interval_ms: int
    polling_interval_ms: int
    debug_request_log: bool


def load_settings() -> Settings:
    """Read relay settings from the app settings (environment)."""
    return Settings(
        upstream_url=(os.getenv("UPSTREAM_SCRIPT_URL") or DEFAULT_UPSTREAM_SCRIPT_URL).strip(),
        client_endpoint=(os.getenv("CLIENT_ENDPOINT") or DEFAULT_CLIENT_ENDPOINT).strip(),
        heartbeat_interval_ms=_env_positive_int("HEARTBEAT_INTERVAL_MS", DEFAULT_HEARTBEAT_INTERVAL_MS),
        polling_interval_ms=_env_positive_int("POLLING_INTERVAL_MS", DEFAULT_POLLING_INTERVAL_MS),
        debug_request_log=_env_flag("DEBUG_REQUEST_LOG"),
    )
