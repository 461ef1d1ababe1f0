"""
Node client - height, status and transactions of a ledger node.

Two transports are used:
1. ``docker exec <binary> ...`` for validators without host ports (height
   queries, governance and pool transactions)
2. HTTP against the first validator's host-bound RPC and REST ports
   (health status, balances)
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, ValidationError

from ledger_e2e.core.exceptions import CommandError, ResourceError
from ledger_e2e.core.logging import get_logger

if TYPE_CHECKING:
    from ledger_e2e.containers.orchestrator import (
        ContainerHandle,
        ContainerOrchestrator,
        ExecResult,
    )

logger = get_logger("clients.node")

# Marker of a committed transaction in the daemon's block-mode output.
TX_SUCCESS_MARKER = "code: 0"

# Node is considered to produce blocks from this height on.
MIN_HEALTHY_HEIGHT = 3


class SyncInfo(BaseModel):
    latest_block_height: int
    catching_up: bool = False


def parse_sync_info(payload: dict[str, Any]) -> SyncInfo:
    """Extract sync info from an RPC ``/status`` or CLI ``status`` document."""
    body = payload.get("result", payload)
    info = body.get("sync_info") or body.get("SyncInfo")
    if not isinstance(info, dict):
        raise ValueError("status document has no sync info")
    return SyncInfo.model_validate(info)


def _first_json_object(text: str) -> dict[str, Any]:
    start = text.find("{")
    if start < 0:
        raise ValueError("no JSON object in output")
    document, _ = json.JSONDecoder().raw_decode(text[start:])
    return document


class NodeClient:
    """
    Queries and transactions against validator nodes.

    Args:
        orchestrator: Runs commands inside validator containers
        binary: Ledger daemon binary inside the node image
        http: HTTP client for RPC/REST queries
        request_timeout: Per-request timeout when ``http`` is not given
    """

    def __init__(
        self,
        orchestrator: "ContainerOrchestrator",
        binary: str = "osmosisd",
        http: httpx.Client | None = None,
        request_timeout: float = 5.0,
    ):
        self.orchestrator = orchestrator
        self.binary = binary
        self.http = http or httpx.Client(timeout=request_timeout)

    def close(self) -> None:
        self.http.close()

    # -------------------------------------------------------------------------
    # Heights and status
    # -------------------------------------------------------------------------

    def current_height(self, handle: "ContainerHandle") -> int:
        """Latest block height reported by the node inside ``handle``.

        The daemon prints its status document to stderr on some versions and
        to stdout on others, both are searched.
        """
        result = self.orchestrator.exec(handle, [self.binary, "status"])
        if result.exit_code != 0:
            raise CommandError(
                "Status query failed",
                details={
                    "container": handle.name,
                    "exit_code": result.exit_code,
                    "output": result.output[-500:],
                },
            )
        for stream in (result.stdout, result.stderr):
            try:
                return parse_sync_info(_first_json_object(stream)).latest_block_height
            except (ValueError, ValidationError):
                continue
        raise CommandError(
            "Status output has no block height",
            details={"container": handle.name, "output": result.output[-500:]},
        )

    def rpc_status(self, rpc_url: str) -> SyncInfo:
        response = self.http.get(f"{rpc_url.rstrip('/')}/status")
        response.raise_for_status()
        return parse_sync_info(response.json())

    def is_producing_blocks(self, rpc_url: str, min_height: int = MIN_HEALTHY_HEIGHT) -> bool:
        """Healthy means not catching up and at least ``min_height`` blocks produced."""
        try:
            status = self.rpc_status(rpc_url)
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.debug(f"Node at {rpc_url} not ready: {e}")
            return False

        if status.catching_up or status.latest_block_height < min_height:
            logger.debug(
                f"Node at {rpc_url} at height {status.latest_block_height}, "
                f"catching_up={status.catching_up}"
            )
            return False
        return True

    def query_json(self, url: str) -> dict[str, Any]:
        """GET ``url`` and decode its JSON body."""
        response = self.http.get(url)
        response.raise_for_status()
        return response.json()

    def query_balances(self, api_url: str, address: str) -> dict[str, int]:
        """Bank balances of ``address`` keyed by denom."""
        payload = self.query_json(
            f"{api_url.rstrip('/')}/cosmos/bank/v1beta1/balances/{address}"
        )
        try:
            return {
                coin["denom"]: int(coin["amount"]) for coin in payload.get("balances", [])
            }
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ResourceError(
                "Malformed balances response",
                details={"api_url": api_url, "address": address, "error": repr(e)},
            ) from e

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def tx(self, handle: "ContainerHandle", chain_id: str, args: list[str]) -> "ExecResult":
        """Broadcast a transaction from the node's ``val`` key in block mode."""
        command = [
            self.binary,
            "tx",
            *args,
            f"--chain-id={chain_id}",
            "--from=val",
            "-b=block",
            "--yes",
            "--keyring-backend=test",
            "--log_format=json",
        ]
        result = self.orchestrator.exec(handle, command)
        if result.exit_code != 0 or TX_SUCCESS_MARKER not in result.stdout:
            raise CommandError(
                "Transaction failed",
                details={
                    "chain_id": chain_id,
                    "container": handle.name,
                    "command": " ".join(args[:3]),
                    "exit_code": result.exit_code,
                    "output": result.output[-500:],
                },
            )
        return result

    def submit_upgrade_proposal(
        self, handle: "ContainerHandle", chain_id: str, upgrade_name: str, height: int
    ) -> None:
        self.tx(
            handle,
            chain_id,
            [
                "gov",
                "submit-proposal",
                "software-upgrade",
                upgrade_name,
                f"--title={upgrade_name} upgrade",
                "--description=upgrade proposal submission",
                f"--upgrade-height={height}",
                "--upgrade-info=",
            ],
        )
        logger.info(f"Submitted upgrade proposal {upgrade_name} at height {height} on {chain_id}")

    def deposit_proposal(
        self, handle: "ContainerHandle", chain_id: str, amount: str, proposal_id: int = 1
    ) -> None:
        self.tx(handle, chain_id, ["gov", "deposit", str(proposal_id), amount])
        logger.info(f"Deposited {amount} on proposal {proposal_id} on {chain_id}")

    def vote_proposal(
        self,
        handle: "ContainerHandle",
        chain_id: str,
        proposal_id: int = 1,
        option: str = "yes",
    ) -> None:
        self.tx(handle, chain_id, ["gov", "vote", str(proposal_id), option])
        logger.info(f"Voted {option} on proposal {proposal_id} from {handle.name}")

    def create_pool(self, handle: "ContainerHandle", chain_id: str, pool_file: str) -> None:
        self.tx(handle, chain_id, ["gamm", "create-pool", f"--pool-file={pool_file}"])
        logger.info(f"Created pool from {pool_file} on {chain_id}")
