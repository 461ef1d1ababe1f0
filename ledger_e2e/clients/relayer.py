"""Relayer client - readiness endpoint and in-container relayer commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from ledger_e2e.core.exceptions import CommandError
from ledger_e2e.core.logging import get_logger

if TYPE_CHECKING:
    from ledger_e2e.chain.tokens import Token
    from ledger_e2e.containers.orchestrator import (
        ContainerHandle,
        ContainerOrchestrator,
        ExecResult,
    )

logger = get_logger("clients.relayer")

CHANNEL_OPENED_MARKER = "successfully opened init channel"
TRANSFER_PORT = "transfer"
DEFAULT_CHANNEL = "channel-0"


def is_relayer_ready(payload: Any) -> bool:
    """Ready means ``status == "success"`` and exactly two chains in ``result.chains``."""
    if not isinstance(payload, dict):
        return False
    result = payload.get("result")
    if payload.get("status") != "success" or not isinstance(result, dict):
        return False
    chains = result.get("chains")
    return isinstance(chains, list) and len(chains) == 2


class RelayerClient:
    """
    Talks to a running relayer container.

    Args:
        orchestrator: Runs relayer CLI commands inside the container
        http: HTTP client for the REST state endpoint
        request_timeout: Per-request timeout when ``http`` is not given
    """

    def __init__(
        self,
        orchestrator: "ContainerOrchestrator",
        http: httpx.Client | None = None,
        request_timeout: float = 5.0,
    ):
        self.orchestrator = orchestrator
        self.http = http or httpx.Client(timeout=request_timeout)

    def close(self) -> None:
        self.http.close()

    def state(self, base_url: str) -> Any:
        response = self.http.get(f"{base_url.rstrip('/')}/state")
        response.raise_for_status()
        return response.json()

    def check_ready(self, base_url: str) -> bool:
        try:
            payload = self.state(base_url)
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Relayer at {base_url} not ready: {e}")
            return False
        return is_relayer_ready(payload)

    def _run(self, handle: "ContainerHandle", command: list[str]) -> "ExecResult":
        result = self.orchestrator.exec(handle, command, user="root")
        if result.exit_code != 0:
            raise CommandError(
                "Relayer command failed",
                details={
                    "container": handle.name,
                    "command": " ".join(command[:3]),
                    "exit_code": result.exit_code,
                    "output": result.output[-500:],
                },
            )
        return result

    def create_channel(self, handle: "ContainerHandle", chain_a: str, chain_b: str) -> None:
        """Create client, connection and transfer channel between two chains."""
        logger.info(f"Connecting {chain_a} and {chain_b} chains via IBC")
        result = self._run(
            handle,
            [
                "hermes",
                "create",
                "channel",
                chain_a,
                chain_b,
                f"--port-a={TRANSFER_PORT}",
                f"--port-b={TRANSFER_PORT}",
            ],
        )
        if CHANNEL_OPENED_MARKER not in result.output:
            raise CommandError(
                "Failed to connect chains via IBC",
                details={
                    "chain_a": chain_a,
                    "chain_b": chain_b,
                    "output": result.output[-500:],
                },
            )
        logger.info(f"Connected {chain_a} and {chain_b} chains via IBC")

    def transfer(
        self,
        handle: "ContainerHandle",
        src_chain_id: str,
        dst_chain_id: str,
        recipient: str,
        token: "Token",
        channel: str = DEFAULT_CHANNEL,
    ) -> None:
        """Send ``token`` from ``src_chain_id`` to ``recipient`` on ``dst_chain_id``."""
        self._run(
            handle,
            [
                "hermes",
                "tx",
                "raw",
                "ft-transfer",
                dst_chain_id,
                src_chain_id,
                TRANSFER_PORT,
                channel,
                str(token.amount),
                f"--denom={token.denom}",
                f"--receiver={recipient}",
                "--timeout-height-offset=1000",
            ],
        )
        logger.info(f"Sent {token} from {src_chain_id} to {dst_chain_id} ({recipient})")
