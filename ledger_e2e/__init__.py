"""
End-to-end test control plane for multi-node ledger clusters.

Provisions chains in Docker, connects them through a relayer, drives a
governance software upgrade and checks that the chains resume afterwards.
"""

__version__ = "0.1.0"
