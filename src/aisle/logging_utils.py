"""Logging setup for the API and CLI: plain or JSON lines, with token redaction."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, MutableMapping, Optional, Sequence, Tuple

REDACTED = "[redacted]"

_TOKEN_PATTERNS = (
    re.compile(r"(Bearer\s+)([A-Za-z0-9\-._~+/=]+)", re.IGNORECASE),
    re.compile(r"(api_token=)([^&\s]+)", re.IGNORECASE),
    re.compile(r"(X-API-Key[=:]\s*)([^&\s]+)", re.IGNORECASE),
)

# Record attributes copied into JSON lines when set through ``extra``.
CONTEXT_FIELDS = ("request_id", "operation", "item_id", "store_id")

# Chatty third-party loggers and the level they stay at unless DEBUG is requested.
_LIBRARY_LEVELS = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
}


def redact(message: str, secrets: Sequence[str] = ()) -> str:
    for pattern in _TOKEN_PATTERNS:
        message = pattern.sub(r"\1" + REDACTED, message)
    for secret in secrets:
        if secret:
            message = message.replace(secret, REDACTED)
    return message


class SensitiveDataFilter(logging.Filter):
    """Rewrite records so configured secrets never reach a handler."""

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self._secrets: List[str] = [secret.strip() for secret in secrets if secret and secret.strip()]

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - standard interface
        if not self._secrets:
            return True

        message = record.getMessage()
        cleaned = redact(message, self._secrets)
        if cleaned != message:
            record.msg = cleaned
            record.args = ()

        for key, value in list(vars(record).items()):
            if isinstance(value, str):
                setattr(record, key, redact(value, self._secrets))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, carrying grocery context fields when present."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that merges fixed context fields into every record's ``extra``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def context_logger(name: str, **context: Any) -> ContextAdapter:
    return ContextAdapter(logging.getLogger(name), context)


def _build_formatter(fmt: str) -> logging.Formatter:
    if (fmt or "plain").lower() == "json":
        return JsonFormatter()
    return logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def configure_logging(
    level_name: str,
    fmt: str,
    secrets: Iterable[str],
    *,
    stream: Optional[Any] = None,
) -> None:
    """Install a single redacting handler on the root logger.

    uvicorn's loggers are routed through the same handler. SQLAlchemy stays at
    WARNING unless the configured level is DEBUG.
    """

    numeric_level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(_build_formatter(fmt))
    redaction = SensitiveDataFilter(secrets)
    handler.addFilter(redaction)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)
    logging.captureWarnings(True)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.setLevel(numeric_level)
        server_logger.propagate = True
        server_logger.addFilter(redaction)

    for name, floor in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(numeric_level if numeric_level <= logging.DEBUG else floor)


def configure_from_settings(settings: Any, *, stream: Optional[Any] = None) -> None:
    """Apply the log level/format from ``Settings``, redacting the API token."""

    configure_logging(
        settings.log_level,
        settings.log_format,
        [settings.api_token or ""],
        stream=stream,
    )


__all__ = [
    "CONTEXT_FIELDS",
    "ContextAdapter",
    "JsonFormatter",
    "REDACTED",
    "SensitiveDataFilter",
    "configure_from_settings",
    "configure_logging",
    "context_logger",
    "redact",
]
