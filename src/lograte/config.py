from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .notify import LogNotifier, Notifier, NtfyConfig, NtfyNotifier, WebhookConfig, WebhookNotifier
from .watcher import DEFAULT_THRESHOLD


DEFAULT_DURATION_SECONDS = 300.0
NOTIFIER_TYPES = {"log", "ntfy", "webhook"}


@dataclass(frozen=True)
class NotifierSettings:
    type: str = "log"
    server: str = "https://ntfy.sh"
    topic: str | None = None
    priority: str = "high"
    enabled: bool = True
    url: str | None = None
    secret: str | None = None
    retry_count: int = 2
    retry_delay_sec: float = 5.0


@dataclass(frozen=True)
class WatchConfig:
    path: Path
    threshold_per_minute: int = DEFAULT_THRESHOLD
    duration_seconds: float = DEFAULT_DURATION_SECONDS
    notifier: NotifierSettings = field(default_factory=NotifierSettings)


class ConfigError(ValueError):
    pass


def get_config_path() -> Path | None:
    env_val = os.getenv("LOGRATE_CONFIG")
    if env_val:
        return Path(env_val)
    return None


def _expect_str(data: dict[str, Any], key: str, *, required: bool = True) -> str | None:
    value = data.get(key)
    if value is None and not required:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Config '{key}' must be a non-empty string.")
    return value.strip()


def _expect_positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"Config '{key}' must be a positive integer.")
    return value


def _expect_positive_number(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"Config '{key}' must be a positive number.")
    return float(value)


def _expect_non_negative_number(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(f"Config '{key}' must be a non-negative number.")
    return float(value)


def _expect_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"Config '{key}' must be true or false.")
    return value


def parse_notifier(raw: Any) -> NotifierSettings:
    if raw is None:
        return NotifierSettings()
    if not isinstance(raw, dict):
        raise ConfigError("Config 'notifier' must be an object.")

    kind = raw.get("type", "log")
    if kind not in NOTIFIER_TYPES:
        raise ConfigError(f"Notifier type must be one of {sorted(NOTIFIER_TYPES)}, got '{kind}'.")

    retry_count = raw.get("retry_count", 2)
    if isinstance(retry_count, bool) or not isinstance(retry_count, int) or retry_count < 0:
        raise ConfigError("Config 'retry_count' must be a non-negative integer.")

    settings = NotifierSettings(
        type=kind,
        server=_expect_str(raw, "server", required=False) or "https://ntfy.sh",
        topic=_expect_str(raw, "topic", required=False),
        priority=_expect_str(raw, "priority", required=False) or "high",
        enabled=_expect_bool(raw, "enabled", True),
        url=_expect_str(raw, "url", required=False),
        secret=_expect_str(raw, "secret", required=False),
        retry_count=retry_count,
        retry_delay_sec=_expect_non_negative_number(raw, "retry_delay_sec", 5.0),
    )
    validate_notifier(settings)
    return settings


def validate_notifier(settings: NotifierSettings) -> None:
    if settings.type == "ntfy" and not settings.topic:
        raise ConfigError("Notifier of type 'ntfy' requires 'topic'.")
    if settings.type == "webhook" and not settings.url:
        raise ConfigError("Notifier of type 'webhook' requires 'url'.")


def parse_config(raw: Any) -> WatchConfig:
    if not isinstance(raw, dict):
        raise ConfigError("Config must be a JSON object.")

    path = _expect_str(raw, "path")
    return WatchConfig(
        path=Path(path),
        threshold_per_minute=_expect_positive_int(raw, "threshold_per_minute", DEFAULT_THRESHOLD),
        duration_seconds=_expect_positive_number(raw, "duration_seconds", DEFAULT_DURATION_SECONDS),
        notifier=parse_notifier(raw.get("notifier")),
    )


def load_config(path: Path) -> WatchConfig:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file is not valid JSON: {exc}") from exc
    return parse_config(raw)


def apply_overrides(config: WatchConfig, **overrides: Any) -> WatchConfig:
    """Return a copy with every non-None override applied."""
    values = {k: v for k, v in overrides.items() if v is not None}
    return replace(config, **values)


def build_notifier(settings: NotifierSettings) -> Notifier:
    if settings.type == "ntfy":
        return NtfyNotifier(NtfyConfig(
            server=settings.server,
            topic=settings.topic,
            priority=settings.priority,
            enabled=settings.enabled,
        ))
    if settings.type == "webhook":
        return WebhookNotifier(WebhookConfig(
            url=settings.url,
            secret=settings.secret,
            retry_count=settings.retry_count,
            retry_delay_sec=settings.retry_delay_sec,
        ))
    return LogNotifier()
