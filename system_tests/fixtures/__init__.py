"""
System test fixtures package.
"""

from system_tests.fixtures.docker_logs import LogCapture, NodeLogWatcher

__all__ = [
    "LogCapture",
    "NodeLogWatcher",
]
