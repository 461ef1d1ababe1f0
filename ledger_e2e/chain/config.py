"""Per-chain configuration and the governance height math."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ledger_e2e.chain.models import Chain, Validator, ValidatorConfig
from ledger_e2e.core.exceptions import E2EError, ProtocolInvariantViolation

# Estimated number of blocks it takes to submit a proposal.
PROP_SUBMIT_BLOCKS = 10.0
# Estimated number of blocks it takes to deposit for a proposal.
PROP_DEPOSIT_BLOCKS = 10.0
# Blocks it takes a single validator to vote.
PROP_VOTE_BLOCKS = 1.2
# Calculation buffer.
PROP_BUFFER_BLOCKS = 5.0


def compute_voting_period(num_validators: int) -> float:
    """Voting period in blocks: deposit, one vote per validator, and a buffer."""
    return PROP_DEPOSIT_BLOCKS + num_validators * PROP_VOTE_BLOCKS + PROP_BUFFER_BLOCKS


def compute_upgrade_height(current_height: int, voting_period_blocks: int) -> int:
    """Height the chain halts at when a proposal is submitted at ``current_height``."""
    return (
        current_height
        + voting_period_blocks
        + int(PROP_SUBMIT_BLOCKS)
        + int(PROP_BUFFER_BLOCKS)
    )


def format_duration(nanoseconds: int) -> str:
    """Render whole-second durations the way the init container parses them (``1m5s``)."""
    seconds = nanoseconds // 1_000_000_000
    if seconds == 0:
        return "0s"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


class UpgradeStage(Enum):
    """Progress of a chain through the upgrade protocol."""

    CONFIGURED = "configured"
    PROPOSAL_SUBMITTED = "proposal_submitted"
    DEPOSITED = "deposited"
    VOTED = "voted"
    AWAITING_HALT = "awaiting_halt"
    HALTED = "halted"
    CONTAINERS_SWAPPED = "containers_swapped"
    AWAITING_RESUME = "awaiting_resume"
    RESUMED = "resumed"


@dataclass
class ChainConfig:
    """
    One chain under test.

    The voting period is derived from the validator count when the config is
    created and never changes afterwards; it feeds both the genesis voting
    period and the upgrade height. The upgrade height is assigned once, when
    the upgrade flow starts.

    Args:
        chain_id: Chain identifier
        validator_configs: Ordered validator configuration
        position: Order of the chain in the suite, drives the host port offset
    """

    chain_id: str
    validator_configs: list[ValidatorConfig]
    position: int = 0
    chain: Chain | None = None
    upgrade_stage: UpgradeStage = UpgradeStage.CONFIGURED

    _voting_period: float = field(init=False, repr=False)
    _prop_height: int | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.validator_configs:
            raise E2EError("A chain needs at least one validator", details={"chain_id": self.chain_id})
        if not self.validator_configs[0].auto_start:
            raise E2EError(
                "The first validator must start automatically",
                details={"chain_id": self.chain_id},
            )
        self._voting_period = compute_voting_period(len(self.validator_configs))

    @property
    def voting_period(self) -> float:
        return self._voting_period

    @property
    def voting_period_blocks(self) -> int:
        return int(self._voting_period)

    @property
    def voting_period_ns(self) -> int:
        return self.voting_period_blocks * 1_000_000_000

    @property
    def prop_height(self) -> int | None:
        return self._prop_height

    @prop_height.setter
    def prop_height(self, height: int) -> None:
        if self._prop_height is not None:
            raise ProtocolInvariantViolation(
                "Upgrade height already set",
                details={
                    "chain_id": self.chain_id,
                    "prop_height": self._prop_height,
                    "attempted": height,
                },
            )
        self._prop_height = height

    def attach(self, chain: Chain) -> None:
        """Bind the metadata written by the init container."""
        if chain.id != self.chain_id or len(chain.validators) != len(self.validator_configs):
            raise ProtocolInvariantViolation(
                "Chain metadata does not match configuration",
                details={
                    "chain_id": self.chain_id,
                    "metadata_chain_id": chain.id,
                    "expected_validators": len(self.validator_configs),
                    "metadata_validators": len(chain.validators),
                },
            )
        self.chain = chain

    @property
    def validators(self) -> list[Validator]:
        if self.chain is None:
            raise E2EError("Chain is not initialized", details={"chain_id": self.chain_id})
        return self.chain.validators

    def should_run(self, validator: Validator) -> bool:
        return self.validator_configs[validator.index].auto_start

    @property
    def running_validators(self) -> list[Validator]:
        """Validators started automatically, in index order."""
        return [v for v in self.validators if self.should_run(v)]

    @property
    def skipped_indexes(self) -> set[int]:
        return {i for i, c in enumerate(self.validator_configs) if not c.auto_start}

    @property
    def first_validator(self) -> Validator:
        return self.validators[0]
