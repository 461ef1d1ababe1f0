"""
Setup runner - composes the suite phases and owns teardown.

The e2e flow is as follows:

1. Configure chain A, and chain B unless IBC is skipped
   * initialize configs and genesis for all validators
2. Start every network
3. Run a relayer between every pair of chains
4. Unless the upgrade is skipped: create pre-upgrade state, upgrade, and
   repeat the cross-chain scenario on the upgraded chains
"""

from __future__ import annotations

from typing import Callable

from ledger_e2e.chain.models import ValidatorConfig
from ledger_e2e.chain.presets import VALIDATOR_CONFIGS_CHAIN_A, VALIDATOR_CONFIGS_CHAIN_B
from ledger_e2e.configurer.context import SuiteContext
from ledger_e2e.configurer.driver import CrossChainTestDriver
from ledger_e2e.configurer.initializer import ChainInitializer
from ledger_e2e.configurer.relayer import RelayerBootstrapper
from ledger_e2e.configurer.upgrade import UpgradeCoordinator
from ledger_e2e.configurer.validators import ValidatorLifecycleManager
from ledger_e2e.containers.orchestrator import ContainerOrchestrator
from ledger_e2e.core.config import E2ESettings, get_settings
from ledger_e2e.core.logging import get_logger, phase
from ledger_e2e.core.polling import Poller

logger = get_logger("runner")

SetupFn = Callable[[SuiteContext], None]


def chain_definitions(settings: E2ESettings) -> list[tuple[str, list[ValidatorConfig]]]:
    """Chains to configure, in order."""
    chains = [(settings.chain_a_id, VALIDATOR_CONFIGS_CHAIN_A)]
    if settings.run_ibc:
        # Configure second chain for IBC tests only.
        chains.append((settings.chain_b_id, VALIDATOR_CONFIGS_CHAIN_B))
    return chains


def base_setup(ctx: SuiteContext) -> None:
    settings = ctx.settings

    with phase("network"):
        ctx.network = ctx.orchestrator.create_network(
            f"{settings.chain_a_id}-{settings.chain_b_id}-testnet"
        )

    with phase("init"):
        initializer = ChainInitializer(ctx)
        for chain_id, validator_configs in chain_definitions(settings):
            initializer.configure_chain(chain_id, validator_configs)

    with phase("validators"):
        validators = ValidatorLifecycleManager(ctx)
        image = settings.images.node_image(upgrade=settings.run_upgrade)
        for chain in ctx.chains:
            validators.run_validators(chain, image)


def with_ibc(setup: SetupFn) -> SetupFn:
    def run(ctx: SuiteContext) -> None:
        setup(ctx)
        with phase("relayer"):
            RelayerBootstrapper(ctx).run_all()

    return run


def with_upgrade(setup: SetupFn) -> SetupFn:
    def run(ctx: SuiteContext) -> None:
        setup(ctx)
        driver = CrossChainTestDriver(ctx)

        with phase("pre-upgrade"):
            driver.create_pre_upgrade_state()

        with phase("upgrade"):
            UpgradeCoordinator(ctx).run_upgrade()

        with phase("post-upgrade"):
            driver.run_post_upgrade_tests()

    return run


def build_setup(settings: E2ESettings) -> SetupFn:
    """Compose the phases enabled by the skip switches."""
    settings.check_consistency()

    setup: SetupFn = base_setup
    if settings.run_ibc:
        setup = with_ibc(setup)
    if settings.run_upgrade:
        setup = with_upgrade(setup)
    return setup


class E2ESuite:
    """
    One run of the e2e flow with guaranteed teardown.

    Usage:
        with E2ESuite() as ctx:
            ...  # chains are up, relayed and upgraded
        # containers, network and temp dirs are gone here
    """

    def __init__(
        self,
        settings: E2ESettings | None = None,
        orchestrator: ContainerOrchestrator | None = None,
        poller: Poller | None = None,
    ):
        self.settings = settings or get_settings()
        # Inconsistent switches must fail before the Docker client is touched.
        self._setup = build_setup(self.settings)
        self._orchestrator = orchestrator
        self._poller = poller
        self.ctx: SuiteContext | None = None

    def setup(self) -> SuiteContext:
        logger.info("Setting up e2e integration test suite...")
        self.ctx = SuiteContext.create(
            self.settings, orchestrator=self._orchestrator, poller=self._poller
        )
        try:
            self._setup(self.ctx)
        except BaseException:
            logger.exception("E2E setup failed, tearing down")
            self.teardown()
            raise
        return self.ctx

    def teardown(self) -> None:
        if self.ctx is None:
            return
        with phase("teardown"):
            errors = self.ctx.teardown()
        self.ctx = None
        if errors:
            logger.warning(f"Teardown finished with {len(errors)} error(s)")

    def __enter__(self) -> SuiteContext:
        return self.setup()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()
