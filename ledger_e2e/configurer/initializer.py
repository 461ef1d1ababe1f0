"""
Chain Initializer - genesis and node configs via a one-shot init container.

The init container writes every validator's config dir plus a serialized
chain description into a shared temp dir. Its write is not synchronized with
anything the suite can observe, so the description file is polled until it
parses.
"""

from __future__ import annotations

from pathlib import Path

from ledger_e2e.chain.config import ChainConfig, format_duration
from ledger_e2e.chain.models import Chain, ValidatorConfig, encode_validator_configs
from ledger_e2e.configurer.context import SuiteContext
from ledger_e2e.containers.orchestrator import ROLE_INIT, RunSpec
from ledger_e2e.core.logging import get_logger

logger = get_logger("initializer")


def metadata_path(data_dir: Path, chain_id: str) -> Path:
    return data_dir / f"{chain_id}-encode"


def read_chain_metadata(path: Path) -> Chain:
    """Parse the init container's output; raises OSError/ValueError until it is complete."""
    return Chain.model_validate_json(path.read_text(encoding="utf-8"))


def init_command(data_dir: Path, chain_config: ChainConfig) -> list[str]:
    return [
        f"--data-dir={data_dir}",
        f"--chain-id={chain_config.chain_id}",
        f"--config={encode_validator_configs(chain_config.validator_configs)}",
        f"--voting-period={format_duration(chain_config.voting_period_ns)}",
    ]


class ChainInitializer:
    """Turns validator configs into an initialized ``ChainConfig``."""

    def __init__(self, ctx: SuiteContext):
        self.ctx = ctx

    def configure_chain(
        self, chain_id: str, validator_configs: list[ValidatorConfig]
    ) -> ChainConfig:
        ctx = self.ctx
        settings = ctx.settings
        logger.info(f"Starting e2e infrastructure for chain-id: {chain_id}")

        chain_config = ChainConfig(
            chain_id=chain_id,
            validator_configs=list(validator_configs),
            position=len(ctx.chains),
        )

        data_dir = ctx.make_tmp_dir()
        logger.info(f"Temp directory for chain-id {chain_id}: {data_dir}")

        init_handle = ctx.orchestrator.run(
            RunSpec(
                name=chain_id,
                image=settings.images.init_image(upgrade=settings.run_upgrade),
                role=ROLE_INIT,
                command=init_command(data_dir, chain_config),
                user="root:root",
                mounts=[f"{data_dir}:{data_dir}"],
                network=ctx.network_id,
            )
        )

        path = metadata_path(data_dir, chain_id)
        logger.info(f"Serialized init file for chain-id {chain_id}: {path}")

        chain = ctx.poller.require(
            lambda: read_chain_metadata(path),
            description=f"chain metadata for {chain_id} readable",
            details={"chain_id": chain_id, "path": str(path), "container": init_handle.name},
            max_attempts=settings.init_max_attempts,
            interval=settings.init_retry_interval,
            transient=(OSError, ValueError),
        )
        ctx.orchestrator.purge(init_handle)

        chain_config.attach(chain)
        ctx.chains.append(chain_config)
        logger.info(
            f"Initialized {chain_id} with {len(chain.validators)} validators, "
            f"voting period {chain_config.voting_period_blocks} blocks"
        )
        return chain_config
