"""Logging helpers that keep credentials out of CI job output."""

from __future__ import annotations

import json
import logging
import os
import re
from threading import Lock

_CONFIG_LOCK = Lock()
_CONFIGURED = False

_SECRETS: set[str] = set()
_SECRETS_LOCK = Lock()

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", flags=re.IGNORECASE)
_URI_PASSWORD_PATTERN = re.compile(r"(postgres(?:ql)?://[^:/@\s]+:)[^@\s]+(@)")


def register_secret(value: str | None) -> None:
    """Mask ``value`` verbatim wherever it shows up in later log records."""

    if not value:
        return
    with _SECRETS_LOCK:
        _SECRETS.add(value)


def scrub_text(value: str) -> str:
    """Remove bearer tokens, URI passwords and registered secrets."""

    scrubbed = _BEARER_PATTERN.sub(r"\1[REDACTED]", value)
    scrubbed = _URI_PASSWORD_PATTERN.sub(r"\1[REDACTED]\2", scrubbed)
    with _SECRETS_LOCK:
        secrets = sorted(_SECRETS, key=len, reverse=True)
    for secret in secrets:
        scrubbed = scrubbed.replace(secret, "[REDACTED]")
    return scrubbed


def _scrub_arg(value: object) -> object:
    # Numbers must reach %d/%f untouched; other objects are only replaced
    # by their text when that text carried a secret.
    if isinstance(value, (int, float)):
        return value
    text = str(value)
    scrubbed = scrub_text(text)
    return scrubbed if isinstance(value, str) or scrubbed != text else value


class SecretScrubberFilter(logging.Filter):
    """Scrubs credentials from log messages and their arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = scrub_text(record.msg)

        if record.args:
            if isinstance(record.args, tuple):
                record.args = tuple(_scrub_arg(arg) for arg in record.args)
            elif isinstance(record.args, dict):
                record.args = {key: _scrub_arg(value) for key, value in record.args.items()}

        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if hasattr(record, "event"):
            payload["event"] = record.event
        if hasattr(record, "payload"):
            payload["payload"] = record.payload
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure the root logger with secret scrubbing and a consistent format."""

    global _CONFIGURED
    with _CONFIG_LOCK:
        if _CONFIGURED:
            return

        handler = logging.StreamHandler()
        log_format = os.getenv("NEON_CI_LOG_FORMAT", "plain").lower()
        if log_format == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s - %(message)s"))
        # Handler-level filter so records from child loggers are scrubbed too.
        handler.addFilter(SecretScrubberFilter())
        logging.basicConfig(level=level, handlers=[handler])
        _CONFIGURED = True


def _scrub_payload(value: object) -> object:
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, dict):
        return {key: _scrub_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub_payload(item) for item in value]
    return value


def log_event(event: str, payload: dict | None = None, level: int = logging.INFO) -> None:
    logger = logging.getLogger("neon_ci.events")
    clean = _scrub_payload(payload or {})
    logger.log(
        level,
        "%s %s",
        event,
        json.dumps(clean, ensure_ascii=False),
        extra={"event": event, "payload": clean},
    )


__all__ = ["SecretScrubberFilter", "configure_logging", "log_event", "register_secret", "scrub_text"]
