"""Clients for ledger nodes and the relayer."""

from .node import NodeClient, SyncInfo, parse_sync_info
from .relayer import RelayerClient, is_relayer_ready

__all__ = [
    "NodeClient",
    "RelayerClient",
    "SyncInfo",
    "is_relayer_ready",
    "parse_sync_info",
]
