"""Structured logging configuration with suite phase tracking."""

from __future__ import annotations

import json
import logging
import re
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

if TYPE_CHECKING:
    from ledger_e2e.core.config import E2ESettings


# Context variable for the suite phase currently running (init, validators, ...)
phase_var: ContextVar[Optional[str]] = ContextVar("phase", default=None)


@contextmanager
def phase(name: str) -> Iterator[None]:
    """Tag every log record emitted inside the block with ``name``."""
    token = phase_var.set(name)
    try:
        yield
    finally:
        phase_var.reset(token)


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        current_phase = phase_var.get()
        if current_phase:
            log_data["phase"] = current_phase

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for local runs."""

    def format(self, record: logging.LogRecord) -> str:
        current_phase = phase_var.get()
        tag = f"[{current_phase}] " if current_phase else ""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} {record.levelname:8} {tag}{record.name}: {record.getMessage()}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


class MnemonicRedactionFilter(logging.Filter):
    """Mask validator mnemonics that end up in log messages."""

    SENSITIVE_KEYS = ("mnemonic", "MNEMONIC")

    # Exactly 12 or 24 lowercase words filling a quoted value, an assignment or a whole line
    _BARE_MNEMONIC = re.compile(
        r"(?:^|(?<=[\"'=]))(?:[a-z]{3,8} ){11}(?:(?:[a-z]{3,8} ){12})?[a-z]{3,8}(?=[\"']|$)",
        re.MULTILINE,
    )

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self._redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True

    def _redact(self, text: str) -> str:
        for key in self.SENSITIVE_KEYS:
            if key in text:
                text = re.sub(
                    rf"({key}\w*['\"]?\s*[=:]\s*)(['\"]?)[^'\",}}\]\n]+\2",
                    r"\1[REDACTED]",
                    text,
                )
        return self._BARE_MNEMONIC.sub("[REDACTED]", text)


def setup_logging(settings: "E2ESettings") -> None:
    """Configure e2e logging."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, settings.log_level))

    if settings.log_format == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(TextFormatter())

    handler.addFilter(MnemonicRedactionFilter())

    root_logger.addHandler(handler)

    logging.getLogger("docker").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the ledger_e2e prefix."""
    return logging.getLogger(f"ledger_e2e.{name}")
