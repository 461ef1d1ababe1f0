"""Chain and validator models."""

from .config import (
    ChainConfig,
    UpgradeStage,
    compute_upgrade_height,
    compute_voting_period,
    format_duration,
)
from .models import Chain, ChainMeta, Pruning, Validator, ValidatorConfig
from .tokens import OSMO_TOKEN, STAKE_TOKEN, Token


__all__ = [
    "Chain",
    "ChainConfig",
    "ChainMeta",
    "OSMO_TOKEN",
    "Pruning",
    "STAKE_TOKEN",
    "Token",
    "UpgradeStage",
    "Validator",
    "ValidatorConfig",
    "compute_upgrade_height",
    "compute_voting_period",
    "format_duration",
]
