"""
System Test Configuration.

Controls whether the Docker-backed suite runs and which node log lines fail a test.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class SystemTestConfig:
    """Configuration for system tests."""

    # The suite needs a Docker daemon and the node images, so it is opt-in.
    enabled: bool = False

    # Strictness: fail on warnings in addition to errors
    strict_mode: bool = False

    # Error detection patterns (case-insensitive regex)
    error_patterns: list[str] = field(
        default_factory=lambda: [
            r"CONSENSUS FAILURE",
            r"panic:",
            r"goroutine \d+ \[running\]",
            r"UPGRADE \"\w+\" NEEDED",
            r"wrong Block\.Header\.AppHash",
            r"FATAL",
        ]
    )

    # Warning patterns (only checked in strict mode)
    warning_patterns: list[str] = field(
        default_factory=lambda: [
            r"\bERR\b",
            r"level=error",
        ]
    )

    # Patterns to ignore (false positives, expected behavior)
    ignore_patterns: list[str] = field(
        default_factory=lambda: [
            r"dial tcp",  # peers of removed validators
            r"Stopping peer for error",
            r"Connection is closed",
        ]
    )

    # Timeouts (seconds)
    rpc_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "SystemTestConfig":
        """Load config from environment variables."""
        return cls(
            enabled=os.getenv("E2E_RUN_SYSTEM", "0") == "1",
            strict_mode=os.getenv("SYSTEM_TEST_STRICT", "0") == "1",
            rpc_timeout=float(os.getenv("SYSTEM_TEST_RPC_TIMEOUT", "10")),
        )


# Global default config instance
_config: SystemTestConfig | None = None


def get_config() -> SystemTestConfig:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = SystemTestConfig.from_env()
    return _config
