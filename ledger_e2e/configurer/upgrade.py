"""
Upgrade Coordinator - governance-driven halt and binary swap.

Flow per chain:
1. Read the current height and fix the upgrade height
2. Submit the software-upgrade proposal, deposit, vote yes from every
   running validator
3. Wait until every running validator sits at the upgrade height
4. Once all chains halted: remove every validator container, relaunch it on
   the upgrade image with the same mounts
5. Wait until every validator produces blocks past the upgrade height

The swap assumes the node's data and config dirs are readable by the new
binary; nothing here can check that.
"""

from __future__ import annotations

from ledger_e2e.chain.config import ChainConfig, UpgradeStage, compute_upgrade_height
from ledger_e2e.configurer.context import SuiteContext, ValidatorState
from ledger_e2e.configurer.validators import ValidatorLifecycleManager
from ledger_e2e.core.exceptions import CommandError, E2EError, ProtocolInvariantViolation
from ledger_e2e.core.logging import get_logger

logger = get_logger("upgrade")


class HaltDetector:
    """
    Debounced halt check for one validator.

    A validator counts as halted after ``confirmations`` consecutive
    observations at the halt height; a lower reading resets the count. Any
    reading above the halt height means the chain did not halt and raises
    immediately.
    """

    def __init__(
        self,
        chain_id: str,
        container: str,
        halt_height: int,
        confirmations: int = 3,
    ):
        self.chain_id = chain_id
        self.container = container
        self.halt_height = halt_height
        self.confirmations = confirmations
        self.consecutive = 0

    def observe(self, height: int) -> bool:
        if height > self.halt_height:
            raise ProtocolInvariantViolation(
                "Chain did not halt at upgrade height",
                details={
                    "chain_id": self.chain_id,
                    "container": self.container,
                    "observed_height": height,
                    "halt_height": self.halt_height,
                },
            )

        if height == self.halt_height:
            self.consecutive += 1
        else:
            self.consecutive = 0
            logger.info(
                f"Current block height on {self.container} is {height}, "
                f"waiting for block {self.halt_height}"
            )
        return self.consecutive >= self.confirmations


class UpgradeCoordinator:
    """Drives every chain of the suite through the upgrade protocol."""

    def __init__(self, ctx: SuiteContext, validators: ValidatorLifecycleManager | None = None):
        self.ctx = ctx
        self.validators = validators or ValidatorLifecycleManager(ctx)

    def _advance(self, chain: ChainConfig, stage: UpgradeStage) -> None:
        logger.info(f"{chain.chain_id}: {chain.upgrade_stage.value} -> {stage.value}")
        chain.upgrade_stage = stage

    def run_upgrade(self) -> None:
        for chain in self.ctx.chains:
            self.propose(chain)

        for chain in self.ctx.chains:
            self.wait_for_halt(chain)

        for chain in self.ctx.chains:
            self.remove_validators(chain)

        for chain in self.ctx.chains:
            self.upgrade_containers(chain)

    def propose(self, chain: ChainConfig) -> int:
        """Fix the upgrade height from the live chain, then submit, deposit and vote."""
        ctx = self.ctx
        node = ctx.node_client
        settings = ctx.settings
        first = ctx.validator_handle(chain, 0)

        current_height = node.current_height(first)
        chain.prop_height = compute_upgrade_height(current_height, chain.voting_period_blocks)
        logger.info(
            f"{chain.chain_id}: current height {current_height}, upgrade height {chain.prop_height}"
        )

        node.submit_upgrade_proposal(first, chain.chain_id, settings.upgrade_name, chain.prop_height)
        self._advance(chain, UpgradeStage.PROPOSAL_SUBMITTED)

        node.deposit_proposal(first, chain.chain_id, settings.deposit_amount)
        self._advance(chain, UpgradeStage.DEPOSITED)

        for validator in chain.running_validators:
            node.vote_proposal(ctx.validator_handle(chain, validator.index), chain.chain_id)
        self._advance(chain, UpgradeStage.VOTED)
        return chain.prop_height

    def _require_height(self, chain: ChainConfig) -> int:
        if chain.prop_height is None:
            raise E2EError("Upgrade height not set", details={"chain_id": chain.chain_id})
        return chain.prop_height

    def wait_for_halt(self, chain: ChainConfig) -> None:
        ctx = self.ctx
        settings = ctx.settings
        halt_height = self._require_height(chain)
        self._advance(chain, UpgradeStage.AWAITING_HALT)

        for validator in chain.running_validators:
            handle = ctx.validator_handle(chain, validator.index)
            detector = HaltDetector(
                chain.chain_id,
                handle.name,
                halt_height,
                confirmations=settings.halt_confirmations,
            )
            logger.info(f"Waiting to reach upgrade height on {handle.name} validator container: {handle.id}")
            ctx.poller.require(
                lambda: detector.observe(ctx.node_client.current_height(handle)),
                description=f"{handle.name} halted at height {halt_height}",
                details={"chain_id": chain.chain_id, "container": handle.name, "id": handle.short_id},
                timeout=settings.poll_timeout,
                interval=settings.poll_interval,
                transient=(CommandError,),
            )
            logger.info(f"Reached upgrade height on {handle.name} container: {handle.id}")

        self._advance(chain, UpgradeStage.HALTED)

    def remove_validators(self, chain: ChainConfig) -> None:
        if chain.upgrade_stage is not UpgradeStage.HALTED:
            raise ProtocolInvariantViolation(
                "Refusing to swap containers of a chain that has not halted",
                details={"chain_id": chain.chain_id, "stage": chain.upgrade_stage.value},
            )
        for validator in chain.running_validators:
            self.validators.remove_validator(chain, validator.index)

    def upgrade_containers(self, chain: ChainConfig) -> None:
        """Relaunch the removed validators on the upgrade image and wait for new blocks."""
        ctx = self.ctx
        settings = ctx.settings
        halt_height = self._require_height(chain)
        logger.info(f"Starting upgrade for chain-id: {chain.chain_id}...")

        for validator in chain.running_validators:
            self.validators.start_validator(
                chain, validator.index, image=settings.images.upgrade_image, upgraded=True
            )
        self._advance(chain, UpgradeStage.CONTAINERS_SWAPPED)

        self._advance(chain, UpgradeStage.AWAITING_RESUME)
        for validator in chain.running_validators:
            handle = ctx.validator_handle(chain, validator.index)
            ctx.poller.require(
                lambda: ctx.node_client.current_height(handle) > halt_height,
                description=f"{handle.name} producing blocks past height {halt_height}",
                details={"chain_id": chain.chain_id, "container": handle.name, "id": handle.short_id},
                timeout=settings.poll_timeout,
                interval=settings.poll_interval,
                transient=(CommandError,),
            )
            self.validators.set_state(chain, validator.index, ValidatorState.HEALTHY)
            logger.info(f"Upgrade successful on {handle.name} validator container: {handle.id}")

        self._advance(chain, UpgradeStage.RESUMED)
