"""Relayer Bootstrapper - run a relayer between two chains and open a transfer channel."""

from __future__ import annotations

import shutil

from ledger_e2e.chain.config import ChainConfig
from ledger_e2e.configurer.context import SuiteContext
from ledger_e2e.containers.orchestrator import ROLE_RELAYER, ContainerHandle, RunSpec
from ledger_e2e.core.exceptions import CommandError, ResourceError
from ledger_e2e.core.logging import get_logger

logger = get_logger("relayer")

BOOTSTRAP_SCRIPT = "hermes_bootstrap.sh"
RELAYER_HOME = "/root/hermes"
RELAYER_STATE_PORT = 3031


def relayer_environment(
    chain_a: ChainConfig,
    chain_b: ChainConfig,
    host_a: str,
    host_b: str,
) -> dict[str, str]:
    """Variables read by the bootstrap script. Hosts resolve on the suite network."""
    return {
        "CHAIN_A_E2E_CHAIN_ID": chain_a.chain_id,
        "CHAIN_B_E2E_CHAIN_ID": chain_b.chain_id,
        "CHAIN_A_E2E_VAL_MNEMONIC": chain_a.first_validator.mnemonic,
        "CHAIN_B_E2E_VAL_MNEMONIC": chain_b.first_validator.mnemonic,
        "CHAIN_A_E2E_VAL_HOST": host_a,
        "CHAIN_B_E2E_VAL_HOST": host_b,
    }


class RelayerBootstrapper:
    """Launches one relayer container per chain pair."""

    def __init__(self, ctx: SuiteContext):
        self.ctx = ctx

    def run_all(self) -> None:
        """Run a relayer between every unordered pair of chains, in chain order."""
        chains = self.ctx.chains
        for i in range(len(chains)):
            for j in range(i + 1, len(chains)):
                self.run_relayer(chains[i], chains[j])

    def run_relayer(self, chain_a: ChainConfig, chain_b: ChainConfig) -> ContainerHandle:
        ctx = self.ctx
        settings = ctx.settings
        logger.info("Starting Hermes relayer container...")

        config_dir = ctx.make_tmp_dir(prefix="ledger-e2e-testnet-hermes-") / "hermes"
        config_dir.mkdir(parents=True, exist_ok=True)
        script = settings.scripts_dir / BOOTSTRAP_SCRIPT
        try:
            shutil.copyfile(script, config_dir / BOOTSTRAP_SCRIPT)
        except OSError as e:
            raise ResourceError(
                "Cannot stage relayer bootstrap script",
                details={"script": str(script), "error": str(e)},
            ) from e

        host_a = ctx.validator_handle(chain_a, 0).name
        host_b = ctx.validator_handle(chain_b, 0).name
        host_port = settings.relayer_host_port + len(ctx.relayers)

        handle = ctx.orchestrator.run(
            RunSpec(
                name=f"{chain_a.chain_id}-{chain_b.chain_id}-relayer",
                image=settings.images.relayer_image,
                role=ROLE_RELAYER,
                command=["start"],
                entrypoint=[
                    "sh",
                    "-c",
                    f"chmod +x {RELAYER_HOME}/{BOOTSTRAP_SCRIPT} && {RELAYER_HOME}/{BOOTSTRAP_SCRIPT}",
                ],
                user="root:root",
                environment=relayer_environment(chain_a, chain_b, host_a, host_b),
                mounts=[f"{config_dir}/:{RELAYER_HOME}"],
                ports={f"{RELAYER_STATE_PORT}/tcp": host_port},
                network=ctx.network_id,
            )
        )
        ctx.relayers[(chain_a.chain_id, chain_b.chain_id)] = handle

        base_url = f"http://localhost:{host_port}"
        ctx.poller.require(
            lambda: ctx.relayer_client.check_ready(base_url),
            description="hermes relayer healthy",
            details={"container": handle.name, "id": handle.short_id, "url": base_url},
            timeout=settings.poll_timeout,
            interval=settings.poll_interval,
        )
        logger.info(f"Started Hermes relayer container: {handle.id}")

        self.wait_for_block_progress([chain_a, chain_b])
        # Settle delay against gRPC transport errors right after both chains start.
        ctx.poller.settle(settings.relayer_settle_seconds)

        ctx.relayer_client.create_channel(handle, chain_a.chain_id, chain_b.chain_id)
        return handle

    def wait_for_block_progress(self, chains: list[ChainConfig]) -> None:
        """Block until the first validator of every chain commits at least one more block."""
        settings = self.ctx.settings
        node = self.ctx.node_client

        for chain in chains:
            handle = self.ctx.validator_handle(chain, 0)
            start = node.current_height(handle)
            self.ctx.poller.require(
                lambda: node.current_height(handle) > start,
                description=f"{chain.chain_id} advancing past height {start}",
                details={"chain_id": chain.chain_id, "container": handle.name},
                timeout=settings.poll_timeout,
                interval=settings.poll_interval,
                transient=(CommandError,),
            )
