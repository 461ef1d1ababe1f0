"""Validator Lifecycle Manager - start, health-check and remove validator containers."""

from __future__ import annotations

from ledger_e2e.chain.config import ChainConfig
from ledger_e2e.chain.models import Validator
from ledger_e2e.configurer.context import (
    API_PORT,
    GRPC_PORT,
    P2P_PORT,
    RPC_PORT,
    SuiteContext,
    ValidatorState,
)
from ledger_e2e.containers.orchestrator import ROLE_VALIDATOR, ContainerHandle, RunSpec
from ledger_e2e.core.exceptions import ResourceError
from ledger_e2e.core.logging import get_logger

logger = get_logger("validators")

# Exposed on the first validator only: REST API, pprof, gRPC, P2P, RPC.
EXPOSED_PORTS = (API_PORT, 6060, 6061, 6062, 6063, 6064, 6065, GRPC_PORT, P2P_PORT, RPC_PORT)


class ValidatorLifecycleManager:
    """
    Runs the validators of a chain.

    Validators whose config has ``auto_start=False`` are skipped by
    ``run_validators`` and can be started later with ``start_validator``.
    """

    def __init__(self, ctx: SuiteContext):
        self.ctx = ctx

    def state(self, chain: ChainConfig, index: int) -> ValidatorState:
        return self.ctx.validator_states.get((chain.chain_id, index), ValidatorState.NOT_STARTED)

    def set_state(self, chain: ChainConfig, index: int, state: ValidatorState) -> None:
        self.ctx.validator_states[(chain.chain_id, index)] = state

    def run_spec(
        self, chain: ChainConfig, validator: Validator, image: str, upgraded: bool = False
    ) -> RunSpec:
        """Container spec of a validator.

        Upgraded validators start on the image's default command as root; the
        mounted config dir is the same before and after the upgrade.
        """
        settings = self.ctx.settings
        spec = RunSpec(
            name=validator.name,
            image=image,
            role=ROLE_VALIDATOR,
            command=None if upgraded else ["start"],
            user="root:root" if upgraded else None,
            mounts=[
                f"{validator.config_dir}/:{settings.node_home}",
                f"{settings.scripts_dir.resolve()}:{settings.scripts_mount}",
            ],
            network=self.ctx.network_id,
        )

        # expose the first validator for debugging and communication
        if validator.index == 0:
            offset = self.ctx.port_offset(chain)
            spec.ports = {f"{port}/tcp": port + offset for port in EXPOSED_PORTS}
        return spec

    def start_validator(
        self, chain: ChainConfig, index: int, image: str | None = None, upgraded: bool = False
    ) -> ContainerHandle:
        """Start a single validator and register its container."""
        if self.ctx.registry.has(chain.chain_id, index):
            raise ResourceError(
                "Validator is already running",
                details={"chain_id": chain.chain_id, "index": index},
            )

        validator = chain.validators[index]
        image = image or self.ctx.settings.images.node_image(upgrade=self.ctx.settings.run_upgrade)

        self.set_state(chain, index, ValidatorState.STARTING)
        handle = self.ctx.orchestrator.run(self.run_spec(chain, validator, image, upgraded=upgraded))
        self.ctx.registry.set(chain.chain_id, index, handle)
        logger.info(f"Started {handle.name} validator container: {handle.id}")
        return handle

    def run_validators(self, chain: ChainConfig, image: str) -> None:
        """Start every auto-start validator of ``chain`` and wait until the chain produces blocks."""
        logger.info(f"Starting {chain.chain_id} validator containers...")

        for validator in chain.validators:
            if not chain.should_run(validator):
                logger.info(f"Skipping {validator.name} validator with index {validator.index} from running...")
                continue
            self.start_validator(chain, validator.index, image=image)

        self.wait_until_healthy(chain)

    def wait_until_healthy(self, chain: ChainConfig) -> None:
        settings = self.ctx.settings
        rpc_url = self.ctx.node_rpc_url(chain)

        self.ctx.poller.require(
            lambda: self.ctx.node_client.is_producing_blocks(rpc_url),
            description=f"{chain.chain_id} node producing blocks",
            details={"chain_id": chain.chain_id, "rpc_url": rpc_url},
            timeout=settings.poll_timeout,
            interval=settings.poll_interval,
        )

        for index in self.ctx.registry.indexes(chain.chain_id):
            self.set_state(chain, index, ValidatorState.HEALTHY)
        logger.info(f"{chain.chain_id} is producing blocks")

    def remove_validator(self, chain: ChainConfig, index: int) -> None:
        """Force-remove a running validator container, leaving its config dir untouched."""
        handle = self.ctx.registry.get(chain.chain_id, index)
        self.ctx.orchestrator.remove(handle, force=True)
        self.ctx.registry.discard(chain.chain_id, index)
        self.set_state(chain, index, ValidatorState.REMOVED)
        logger.info(f"Removed container: {handle.name}")
