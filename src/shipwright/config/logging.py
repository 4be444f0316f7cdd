"""Logging configuration with JSON format support."""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Union

_SECRET_PATTERNS = [
    re.compile(r"gh[pousr]_[A-Za-z0-9]{20,}"),
    re.compile(r"github_pat_[A-Za-z0-9_]{20,}"),
    re.compile(r"oy2[a-z0-9]{40,}"),  # NuGet API keys
    re.compile(r"pypi-[A-Za-z0-9_\-]{20,}"),
    re.compile(r"(?<=Bearer )[A-Za-z0-9\-._~+/]+=*"),
    re.compile(r"(?<=://)[^/\s:@]+:[^/\s@]+(?=@)"),  # user:pass in URLs
]
_KEY_VALUE_PATTERN = re.compile(r"(?i)\b(token|api_key|apikey|password)=[^\s&]+")
_MASK = "***"

# Record attributes set through ``extra=`` by the engine and plugins
_CONTEXT_FIELDS = ("plugin", "stage", "branch", "tag")

_NOISY_LOGGERS = ("github", "urllib3")


def sanitize_log_message(message: str) -> str:
    """Mask tokens and credentials in a log message."""
    for pattern in _SECRET_PATTERNS:
        message = pattern.sub(_MASK, message)
    return _KEY_VALUE_PATTERN.sub(rf"\1={_MASK}", message)


class SanitizingFilter(logging.Filter):
    """Masks secrets in the rendered message before any handler sees it.

    Plugins log command lines and URLs that may carry feed keys or tokens,
    so the message is rendered with its arguments first and then cleaned.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = sanitize_log_message(record.getMessage())
        record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = str(value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Human-readable lines, tagged with the plugin name when there is one."""

    FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
    PLUGIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: [%(plugin)s] %(message)s"

    def __init__(self):
        super().__init__(fmt=self.FORMAT, datefmt="%H:%M:%S")
        self._plugin_style = logging.PercentStyle(self.PLUGIN_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:
        if getattr(record, "plugin", None):
            return self._plugin_style.format(record)
        return super().formatMessage(record)


def configure_logging(
    level: Union[str, int] = "INFO", format: str = "text", sanitize_logs: bool = True
) -> None:
    """Send all log output to stderr, leaving stdout for command results.

    Args:
        level: Log level name or number
        format: Log format ('text' or 'json')
        sanitize_logs: If True, redact tokens and credentials from logs
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if format.lower() == "json" else TextFormatter())
    if sanitize_logs:
        handler.addFilter(SanitizingFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
