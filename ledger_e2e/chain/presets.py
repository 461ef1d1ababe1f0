"""Validator sets the suite spawns on chain A and chain B.

Whatever number of validator configs is listed here is how many validators
spawn on the respective chain.
"""

from __future__ import annotations

from ledger_e2e.chain.models import Pruning, ValidatorConfig

VALIDATOR_CONFIGS_CHAIN_A = [
    ValidatorConfig(pruning=Pruning.DEFAULT),
    ValidatorConfig(pruning=Pruning.NOTHING),
    ValidatorConfig(pruning=Pruning.CUSTOM, pruning_keep_recent=10000, pruning_interval=13),
    # Left stopped after setup for state-sync style tests.
    ValidatorConfig(
        pruning=Pruning.EVERYTHING,
        snapshot_interval=0,
        snapshot_keep_recent=0,
        auto_start=False,
    ),
]

VALIDATOR_CONFIGS_CHAIN_B = [
    ValidatorConfig(pruning=Pruning.DEFAULT),
    ValidatorConfig(pruning=Pruning.NOTHING),
    ValidatorConfig(pruning=Pruning.CUSTOM, pruning_keep_recent=10000, pruning_interval=13),
]
