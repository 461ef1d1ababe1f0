"""Error taxonomy for the e2e control plane.

Every failure carries a stable error code and a ``details`` mapping (chain id,
container name, observed vs expected height) so a failing suite can be
diagnosed from the message alone.
"""

from __future__ import annotations

from typing import Any


class E2EError(Exception):
    """Base e2e exception with structured error context."""

    error_code: str = "E2E_ERROR"
    message: str = "End-to-end setup failed"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({context})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly problem description."""
        return {
            "error": self.error_code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class ResourceError(E2EError):
    """Container runtime, network or volume operation failed."""

    error_code = "RESOURCE_ERROR"
    message = "Container runtime operation failed"


class CommandError(ResourceError):
    """Command executed inside a container did not succeed."""

    error_code = "COMMAND_FAILED"
    message = "Container command failed"


class PollTimeoutError(E2EError, TimeoutError):
    """A bounded poll exhausted its deadline or attempt budget."""

    error_code = "POLL_TIMEOUT"
    message = "Condition not met before deadline"


class ProtocolInvariantViolation(E2EError):
    """Observed chain state contradicts the protocol (e.g. no halt at upgrade height)."""

    error_code = "INVARIANT_VIOLATION"
    message = "Protocol invariant violated"


class ConfigurationError(E2EError):
    """Settings are unparseable or mutually inconsistent."""

    error_code = "CONFIGURATION_ERROR"
    message = "Invalid e2e configuration"
