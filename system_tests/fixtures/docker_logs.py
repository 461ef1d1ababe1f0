"""
Node Log Watcher - captures and scans validator and relayer container logs.

Architecture:
1. mark_positions() - called BEFORE a test, records the current log time
2. Test executes (RPC queries, transfers, ...)
3. capture_since_mark() - called AFTER the test, captures new log lines
4. Lines are matched against error/warning patterns
5. The test fails if a node logged a consensus failure or panic
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

from docker.errors import DockerException

from ledger_e2e.containers.orchestrator import ContainerHandle
from system_tests.config import SystemTestConfig


@dataclass
class LogCapture:
    """Logs captured for one container since the last mark."""

    container: str
    logs: list[str]
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.errors)


class NodeLogWatcher:
    """
    Watches the suite's containers for node failures during a test.

    Usage:
        watcher = NodeLogWatcher(handles, config)
        watcher.mark_positions()  # Before test
        # ... test runs ...
        issues = watcher.get_issues_summary(watcher.capture_since_mark())
        if issues:
            pytest.fail(issues)
    """

    def __init__(self, handles: list[ContainerHandle], config: SystemTestConfig):
        self.handles = handles
        self.config = config
        self._since: datetime | None = None

        self._error_patterns = [re.compile(p, re.IGNORECASE) for p in config.error_patterns]
        self._warning_patterns = [re.compile(p, re.IGNORECASE) for p in config.warning_patterns]
        self._ignore_patterns = [re.compile(p, re.IGNORECASE) for p in config.ignore_patterns]

    def mark_positions(self) -> None:
        self._since = datetime.now(UTC)

    def capture_since_mark(self) -> list[LogCapture]:
        if self._since is None:
            return []

        captures = []
        for handle in self.handles:
            try:
                raw = handle.container.logs(since=self._since).decode("utf-8", errors="replace")
            except DockerException as e:
                raw = f"[ERROR FETCHING LOGS: {e}]"
            lines = [line for line in raw.splitlines() if line.strip()]
            captures.append(self._analyze_logs(handle.name, lines))
        return captures

    def _analyze_logs(self, container: str, lines: list[str]) -> LogCapture:
        capture = LogCapture(container=container, logs=lines)

        for line in lines:
            if any(p.search(line) for p in self._ignore_patterns):
                continue
            if any(p.search(line) for p in self._error_patterns):
                capture.errors.append(line)
            elif any(p.search(line) for p in self._warning_patterns):
                capture.warnings.append(line)

        return capture

    def get_issues_summary(
        self, captures: list[LogCapture], strict_mode: bool = False
    ) -> str | None:
        """None if no issues, otherwise a message naming each offending container."""
        issues = []

        for capture in captures:
            if capture.errors:
                issues.append(
                    f"Container '{capture.container}' logged {len(capture.errors)} failure(s):\n"
                    + "\n".join(f"  -> {e[:300]}" for e in capture.errors[:5])
                )
            if strict_mode and capture.warnings:
                issues.append(
                    f"Container '{capture.container}' logged {len(capture.warnings)} warning(s) (strict mode):\n"
                    + "\n".join(f"  -> {w[:300]}" for w in capture.warnings[:5])
                )

        if not issues:
            return None
        return "\n\n".join(issues)
