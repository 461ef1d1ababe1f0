"""Suite phases: chain init, validators, relayer, upgrade and cross-chain scenarios."""

from .context import SuiteContext, ValidatorState
from .driver import CrossChainTestDriver
from .initializer import ChainInitializer
from .relayer import RelayerBootstrapper
from .runner import E2ESuite, base_setup, build_setup, with_ibc, with_upgrade
from .upgrade import HaltDetector, UpgradeCoordinator
from .validators import ValidatorLifecycleManager

__all__ = [
    "ChainInitializer",
    "CrossChainTestDriver",
    "E2ESuite",
    "HaltDetector",
    "RelayerBootstrapper",
    "SuiteContext",
    "UpgradeCoordinator",
    "ValidatorLifecycleManager",
    "ValidatorState",
    "base_setup",
    "build_setup",
    "with_ibc",
    "with_upgrade",
]
