import logging
import sys
import re
import json
import hashlib
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import pytz
import requests

from core import constants
from core.config import settings

TZ = pytz.timezone(settings.TIMEZONE)

# Webhook URLs carry their credentials in the path
_WEBHOOK_SECRETS = set(settings.WEBHOOK_URLS)
if settings.ERROR_WEBHOOK_URL:
    _WEBHOOK_SECRETS.add(settings.ERROR_WEBHOOK_URL)


def register_webhook_url(url: str) -> None:
    """Masks the given webhook URL in every log record from now on."""
    if url:
        _WEBHOOK_SECRETS.add(url)


class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data in logs"""

    PATTERNS = [
        (r"(SUPABASE_KEY=|eyJ)[A-Za-z0-9_.-]{100,}", r"\1***MASKED***"),
        (r"https://[a-z0-9-]+\.supabase\.co", r"***SUPABASE_URL***"),
        (r"(PROXY_PASSWORD=)\S+", r"\1***MASKED***"),
        # Credentials embedded in URLs (proxy or target)
        (r"(https?://[^:/\s]+:)[^@/\s]+@", r"\1***MASKED***@"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._mask_sensitive(record.msg)

        if record.args:
            new_args = []
            for arg in record.args:
                if isinstance(arg, str):
                    new_args.append(self._mask_sensitive(arg))
                else:
                    new_args.append(arg)
            record.args = tuple(new_args)
        return True

    def _mask_sensitive(self, text: str) -> str:
        for url in _WEBHOOK_SECRETS:
            text = text.replace(url, "***WEBHOOK_URL***")
        for pattern, replacement in self.PATTERNS:
            text = re.sub(pattern, replacement, text)
        return text


class TZFormatter(logging.Formatter):
    """Formatter that uses the configured timezone with structured context support"""

    def converter(self, timestamp):
        dt = datetime.fromtimestamp(timestamp)
        return dt.astimezone(TZ)

    def formatTime(self, record, datefmt=None):
        dt = self.converter(record.created)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="milliseconds")

    def format(self, record):
        """Override to add structured context"""
        base_msg = super().format(record)

        # Add structured context if present
        if hasattr(record, "context") and record.context:
            context_str = " | ".join(f"{k}={v}" for k, v in record.context.items())
            return f"{base_msg} | {context_str}"

        return base_msg


class PerformanceFormatter(TZFormatter):
    """Specialized formatter for performance logs"""

    def format(self, record):
        base_msg = super().format(record)

        # Add timing information if present
        if hasattr(record, "duration_ms"):
            return f"{base_msg} | ⏱️ {record.duration_ms:.2f}ms"
        elif hasattr(record, "duration"):
            return f"{base_msg} | ⏱️ {record.duration:.2f}s"

        return base_msg


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Adapter to add structured context to log messages"""

    def process(self, msg, kwargs):
        # Extract context from kwargs
        context = kwargs.pop("context", {})

        # Add to extra for formatter to access
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        kwargs["extra"]["context"] = context

        # Add duration if present
        if "duration" in kwargs:
            kwargs["extra"]["duration"] = kwargs.pop("duration")
        if "duration_ms" in kwargs:
            kwargs["extra"]["duration_ms"] = kwargs.pop("duration_ms")

        return msg, kwargs


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_record = {
            "timestamp": datetime.fromtimestamp(record.created)
            .astimezone(TZ)
            .isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
        }

        # Add context if present
        if hasattr(record, "context") and record.context:
            log_record["context"] = record.context

        # Add timing if present
        if hasattr(record, "duration"):
            log_record["duration_seconds"] = record.duration
        if hasattr(record, "duration_ms"):
            log_record["duration_ms"] = record.duration_ms

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class WebhookLogHandler(logging.Handler):
    """
    Sends WARNING/ERROR logs as JSON to a webhook.
    Uses ThreadPoolExecutor to avoid blocking the event loop.
    Implements throttling to prevent spam.
    """

    def __init__(self, webhook_url: str):
        super().__init__()
        self.executor = ThreadPoolExecutor(max_workers=1)
        self.last_errors = {}  # {hash_key: last_time}
        self.webhook_url = webhook_url

    def _build_payload(self, record: logging.LogRecord) -> dict:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": f"{record.module}:{record.lineno}",
            "timestamp": datetime.now(pytz.utc).isoformat(),
        }
        if record.exc_info:
            exc_text = self.formatException(record.exc_info)
            if len(exc_text) > 1000:
                exc_text = exc_text[:1000] + "..."
            payload["traceback"] = exc_text
        return payload

    def _send(self, payload: dict):
        try:
            requests.post(self.webhook_url, json=payload, timeout=2.0)
        except Exception as e:
            # Fallback to stderr if the webhook fails
            sys.stderr.write(f"Failed to send log to webhook: {e}\n")

    def emit(self, record: logging.LogRecord):
        try:
            # Group similar errors by the message template, not the formatted text
            msg_key = hashlib.md5(
                f"{record.pathname}:{record.lineno}:{str(record.msg)}".encode()
            ).hexdigest()
            current_time = time.time()

            if msg_key in self.last_errors:
                if current_time - self.last_errors[msg_key] < constants.LOG_WEBHOOK_THROTTLE:
                    return

            self.last_errors[msg_key] = current_time
            self.executor.submit(self._send, self._build_payload(record))

        except Exception:
            self.handleError(record)

    def close(self):
        """Graceful shutdown"""
        self.executor.shutdown(wait=False)
        super().close()


def get_logger(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Get a configured logger instance with console, file, and webhook handlers.
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return StructuredLoggerAdapter(logger, {})

    if log_level is None:
        log_level = settings.LOG_LEVEL

    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    console_formatter = PerformanceFormatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if settings.LOG_FORMAT.lower() == "json":
        file_formatter = JSONFormatter()
    else:
        file_formatter = PerformanceFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(console_formatter)
    console_handler.addFilter(SensitiveDataFilter())

    if log_file is None:
        log_file = settings.LOG_FILE

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # File gets all levels
        file_handler.setFormatter(file_formatter)
        file_handler.addFilter(SensitiveDataFilter())

        logger.addHandler(file_handler)

    if settings.ERROR_WEBHOOK_URL:
        webhook_handler = WebhookLogHandler(settings.ERROR_WEBHOOK_URL)
        webhook_handler.setLevel(logging.WARNING)
        webhook_handler.addFilter(SensitiveDataFilter())
        logger.addHandler(webhook_handler)

    logger.addHandler(console_handler)

    # Prevent propagation to root logger to avoid duplicate logs
    logger.propagate = False

    return StructuredLoggerAdapter(logger, {})


def set_level(level: str) -> None:
    """Changes the level of every logger created through get_logger."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    for logger in logging.Logger.manager.loggerDict.values():
        if isinstance(logger, logging.Logger) and logger.handlers:
            logger.setLevel(numeric)


def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Setup root logger configuration.

    Args:
        log_level: Log level for root logger
        log_file: Path to log file
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    get_logger("root", log_level, log_file)
