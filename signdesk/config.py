"""Runtime configuration read from the environment."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from signdesk.infrastructure import DEFAULT_API_BASE

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_CORS_ORIGINS = ["http://localhost:4200", "http://127.0.0.1:4200", "http://localhost:3000"]


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    api_base: str = DEFAULT_API_BASE
    http_timeout: float = 30.0
    poll_interval: float = 3.0
    poll_max_duration: float = 300.0
    remove_rollback: bool = False
    log_level: str = "INFO"
    notification_buffer: int = 100
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

        return cls(
            api_base=os.getenv("SIGNDESK_API_BASE") or DEFAULT_API_BASE,
            http_timeout=_float_env("SIGNDESK_HTTP_TIMEOUT", 30.0),
            poll_interval=_float_env("SIGNDESK_POLL_INTERVAL", 3.0),
            poll_max_duration=_float_env("SIGNDESK_POLL_MAX_DURATION", 300.0),
            remove_rollback=_bool_env("SIGNDESK_REMOVE_ROLLBACK"),
            log_level=(os.getenv("SIGNDESK_LOG_LEVEL") or "INFO").upper(),
            notification_buffer=int(_float_env("SIGNDESK_NOTIFICATION_BUFFER", 100)),
            cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
        )


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the ``signdesk`` logger."""

    package_logger = logging.getLogger("signdesk")
    package_logger.setLevel(level)
    if not any(getattr(handler, "_signdesk", False) for handler in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._signdesk = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)


__all__ = ["Settings", "configure_logging"]
