"""Logging setup: JSON or text lines on stdout, tagged with the request id.

Verification codes, passwords, session tokens, exchange credentials and
Stripe keys are masked before a record is formatted.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from .config import settings


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

REDACTED = "[REDACTED]"

SECRET_FIELDS = frozenset(
    {
        "code",
        "otp",
        "password",
        "new_password",
        "password_hash",
        "token",
        "access_token",
        "authorization",
        "cookie",
        "api_key",
        "api_secret",
        "secret",
    }
)

# key=value, key: value and quoted JSON/dict forms
_SECRET_PAIR_RE = re.compile(
    r"""(?P<key>["']?\b(?:%s)\b["']?\s*[=:]\s*)(?P<value>"[^"]*"|'[^']*'|[^\s,;}\]]+)"""
    % "|".join(sorted(SECRET_FIELDS, key=len, reverse=True)),
    re.IGNORECASE,
)
_STRIPE_KEY_RE = re.compile(r"\b(?:sk|rk|whsec)_(?:live|test)?_?[A-Za-z0-9]{6,}\b")

# Keys of a LogRecord that did not come from ``extra``
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}


def redact(text: str) -> str:
    text = _SECRET_PAIR_RE.sub(lambda m: m.group("key") + REDACTED, text)
    return _STRIPE_KEY_RE.sub(REDACTED, text)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class RedactingFilter(logging.Filter):
    """Masks secrets in the rendered message and in ``extra`` fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg, record.args = masked, ()
        for key in SECRET_FIELDS.intersection(record.__dict__):
            setattr(record, key, REDACTED)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if request_id := request_id_var.get():
            entry["request_id"] = request_id
        entry.update(_extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-8s %(rid)s%(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        request_id = request_id_var.get()
        record.rid = f"[{request_id[:8]}] " if request_id else ""
        return super().format(record)


def setup_logging() -> None:
    """Route all logging to one stdout handler in the configured format."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if settings.log_format == "json" else TextFormatter())
    handler.addFilter(RedactingFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(settings.log_level)

    for noisy in ("uvicorn.access", "httpx", "stripe"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"cryptoinvest.{name}")
