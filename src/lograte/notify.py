"""Notification transports (log line, ntfy.sh, webhook)."""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Protocol

import requests

from .errors import NotifierError
from .models import RateAlert

log = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, alert: RateAlert) -> None:
        ...


def resolve_secret(value: str | None) -> str | None:
    """Resolve `env:NAME` references; plain values pass through."""
    if not value:
        return None
    if value.startswith("env:"):
        return os.environ.get(value[4:]) or None
    return value


class LogNotifier:
    """Writes the alert as a warning log line."""

    def notify(self, alert: RateAlert) -> None:
        log.warning(f"{alert.message} ({alert.path}, threshold {alert.threshold})")


@dataclass
class NtfyConfig:
    """ntfy.sh notification configuration."""
    server: str  # e.g., "https://ntfy.sh"
    topic: str   # e.g., "lograte-alerts"
    priority: str = "high"
    enabled: bool = True


class NtfyNotifier:
    def __init__(self, config: NtfyConfig, timeout: float = 10):
        self.config = config
        self.timeout = timeout

    def notify(self, alert: RateAlert) -> None:
        """
        Send push notification via ntfy.sh.

        Raises:
            NotifierError: server unreachable or non-200 response
        """
        if not self.config.enabled:
            log.debug("Notifications disabled, skipping")
            return

        url = f"{self.config.server.rstrip('/')}/{self.config.topic}"

        headers = {"Title": f"Log rate exceeded: {alert.path.name}", "Tags": "warning"}
        if self.config.priority != "default":
            headers["Priority"] = self.config.priority

        try:
            response = requests.post(
                url,
                data=alert.message.encode("utf-8"),
                headers=headers,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise NotifierError(f"Failed to send ntfy push: {e}") from e

        if response.status_code != 200:
            raise NotifierError(f"ntfy push failed: {response.status_code}")

        log.info(f"Sent ntfy push: {alert.message[:30]}")


@dataclass
class WebhookConfig:
    url: str
    secret: str | None = None  # plain value or "env:VAR_NAME"
    retry_count: int = 2
    retry_delay_sec: float = 5.0


def sign_payload(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class WebhookNotifier:
    """
    POSTs the alert as JSON.

    Retries on connection errors and non-2xx responses, `retry_count` extra
    attempts with a fixed delay. When a secret is configured the body is
    signed with HMAC-SHA256 in the X-Lograte-Signature header.
    """

    def __init__(self, config: WebhookConfig, timeout: float = 10, sleep=time.sleep):
        self.config = config
        self.timeout = timeout
        self._sleep = sleep

    def notify(self, alert: RateAlert) -> None:
        body = json.dumps(alert.to_payload()).encode("utf-8")
        headers = {"Content-Type": "application/json"}

        secret = resolve_secret(self.config.secret)
        if secret:
            headers["X-Lograte-Signature"] = sign_payload(body, secret)

        attempts = self.config.retry_count + 1
        last_error = "no attempt made"
        for attempt in range(1, attempts + 1):
            try:
                response = requests.post(self.config.url, data=body, headers=headers, timeout=self.timeout)
                if 200 <= response.status_code < 300:
                    log.info(f"Webhook delivered to {self.config.url}")
                    return
                last_error = f"HTTP {response.status_code}"
            except requests.RequestException as e:
                last_error = str(e)

            log.warning(f"Webhook attempt {attempt}/{attempts} failed: {last_error}")
            if attempt < attempts:
                self._sleep(self.config.retry_delay_sec)

        raise NotifierError(f"Webhook delivery failed after {attempts} attempts: {last_error}")
