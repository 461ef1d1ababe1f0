"""
Docker-backed system tests for the ledger e2e cluster.

These tests start real chains, a relayer and the upgrade flow once per
session and then check the resulting cluster from the outside:
- Validator container logs are scanned for consensus failures and panics
- Every chain is queried over its host-bound RPC and REST ports
- IBC vouchers created before and after the upgrade are visible

Run with: E2E_RUN_SYSTEM=1 pytest system_tests/ -v
"""
