"""Docker-backed container orchestration."""

from .images import ImageConfig
from .orchestrator import (
    ClusterRegistry,
    ContainerHandle,
    ContainerOrchestrator,
    ExecResult,
    NetworkHandle,
    RunSpec,
)

__all__ = [
    "ClusterRegistry",
    "ContainerHandle",
    "ContainerOrchestrator",
    "ExecResult",
    "ImageConfig",
    "NetworkHandle",
    "RunSpec",
]
