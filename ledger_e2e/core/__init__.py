"""Core infrastructure: settings, logging, exceptions, polling."""

from .config import E2ESettings, get_settings, load_settings
from .exceptions import (
    CommandError,
    ConfigurationError,
    E2EError,
    PollTimeoutError,
    ProtocolInvariantViolation,
    ResourceError,
)
from .logging import get_logger, phase, setup_logging
from .polling import Poller, PollResult


__all__ = [
    "CommandError",
    "ConfigurationError",
    "E2EError",
    "E2ESettings",
    "PollResult",
    "PollTimeoutError",
    "Poller",
    "ProtocolInvariantViolation",
    "ResourceError",
    "get_logger",
    "get_settings",
    "load_settings",
    "phase",
    "setup_logging",
]
