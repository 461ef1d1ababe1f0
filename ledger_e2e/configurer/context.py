"""Suite context - the single owner of per-suite state and resources."""

from __future__ import annotations

import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ledger_e2e.chain.config import ChainConfig
from ledger_e2e.clients.node import NodeClient
from ledger_e2e.clients.relayer import RelayerClient
from ledger_e2e.containers.orchestrator import (
    ClusterRegistry,
    ContainerHandle,
    ContainerOrchestrator,
    NetworkHandle,
)
from ledger_e2e.core.config import E2ESettings
from ledger_e2e.core.exceptions import E2EError, ResourceError
from ledger_e2e.core.logging import get_logger
from ledger_e2e.core.polling import Poller

logger = get_logger("context")

TMP_DIR_PREFIX = "ledger-e2e-testnet-"

# Host ports of the first validator before the per-chain offset.
API_PORT = 1317
GRPC_PORT = 9090
P2P_PORT = 26656
RPC_PORT = 26657


class ValidatorState(Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    HEALTHY = "healthy"
    REMOVED = "removed"


@dataclass
class SuiteContext:
    """
    Everything one suite run creates, passed explicitly to every phase.

    The orchestrator owns containers and networks; the context owns the
    chain configs, the cluster registry, relayer handles and temp dirs, and
    releases all of them in ``teardown``.
    """

    settings: E2ESettings
    orchestrator: ContainerOrchestrator
    node_client: NodeClient
    relayer_client: RelayerClient
    poller: Poller = field(default_factory=Poller)
    registry: ClusterRegistry = field(default_factory=ClusterRegistry)
    chains: list[ChainConfig] = field(default_factory=list)
    network: NetworkHandle | None = None
    relayers: dict[tuple[str, str], ContainerHandle] = field(default_factory=dict)
    validator_states: dict[tuple[str, int], ValidatorState] = field(default_factory=dict)
    tmp_dirs: list[Path] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        settings: E2ESettings,
        orchestrator: ContainerOrchestrator | None = None,
        poller: Poller | None = None,
    ) -> "SuiteContext":
        orchestrator = orchestrator or ContainerOrchestrator()
        return cls(
            settings=settings,
            orchestrator=orchestrator,
            node_client=NodeClient(
                orchestrator,
                binary=settings.node_binary,
                request_timeout=settings.status_request_timeout,
            ),
            relayer_client=RelayerClient(
                orchestrator, request_timeout=settings.status_request_timeout
            ),
            poller=poller or Poller(),
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def chain(self, chain_id: str) -> ChainConfig:
        for chain in self.chains:
            if chain.chain_id == chain_id:
                return chain
        raise E2EError("Unknown chain", details={"chain_id": chain_id})

    @property
    def network_id(self) -> str:
        if self.network is None:
            raise ResourceError("Suite network has not been created")
        return self.network.id

    def validator_handle(self, chain: ChainConfig, index: int) -> ContainerHandle:
        return self.registry.get(chain.chain_id, index)

    def relayer_for(self, chain_a: str, chain_b: str) -> ContainerHandle:
        handle = self.relayers.get((chain_a, chain_b)) or self.relayers.get((chain_b, chain_a))
        if handle is None:
            raise ResourceError(
                "No relayer between chains", details={"chain_a": chain_a, "chain_b": chain_b}
            )
        return handle

    def port_offset(self, chain: ChainConfig) -> int:
        return chain.position * self.settings.port_offset_step

    def node_rpc_url(self, chain: ChainConfig) -> str:
        return f"http://localhost:{RPC_PORT + self.port_offset(chain)}"

    def node_api_url(self, chain: ChainConfig) -> str:
        return f"http://localhost:{API_PORT + self.port_offset(chain)}"

    def make_tmp_dir(self, prefix: str = TMP_DIR_PREFIX) -> Path:
        path = Path(tempfile.mkdtemp(prefix=prefix))
        self.tmp_dirs.append(path)
        return path

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def teardown(self) -> list[ResourceError]:
        """
        Release every resource of the suite, best effort.

        Safe to call more than once and after a partial setup. Skipped
        entirely when ``skip_cleanup`` is set.
        """
        if self.settings.skip_cleanup:
            logger.info("E2E_SKIP_CLEANUP set, leaving containers and networks running")
            return []

        logger.info("Tearing down e2e suite...")
        errors = self.orchestrator.teardown()

        self.relayers.clear()
        for chain_id in self.registry.chain_ids():
            for index in self.registry.indexes(chain_id):
                self.registry.discard(chain_id, index)
                self.validator_states[(chain_id, index)] = ValidatorState.REMOVED
        self.network = None

        # Init containers write as root; whatever cannot be removed stays behind.
        while self.tmp_dirs:
            shutil.rmtree(self.tmp_dirs.pop(), ignore_errors=True)

        self.node_client.close()
        self.relayer_client.close()
        return errors
