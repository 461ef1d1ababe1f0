"""Pytest configuration and fixtures."""

from __future__ import annotations

import itertools
import shutil
from pathlib import Path
from typing import Callable, Iterator
from unittest.mock import MagicMock

import pytest

from ledger_e2e.chain.config import ChainConfig
from ledger_e2e.chain.models import Chain, ValidatorConfig
from ledger_e2e.chain.presets import VALIDATOR_CONFIGS_CHAIN_A, VALIDATOR_CONFIGS_CHAIN_B
from ledger_e2e.clients.node import NodeClient
from ledger_e2e.clients.relayer import RelayerClient
from ledger_e2e.configurer.context import SuiteContext
from ledger_e2e.containers.orchestrator import ContainerOrchestrator
from ledger_e2e.core.config import E2ESettings
from ledger_e2e.core.polling import Poller

TEST_MNEMONIC = (
    "abandon ability able about above absent absorb abstract absurd abuse access accident"
)


class FakeClock:
    """Monotonic clock that only moves when the poller sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def poller(clock: FakeClock) -> Poller:
    return Poller(clock=clock, sleep=clock.sleep)


@pytest.fixture
def scripts_dir(tmp_path: Path) -> Path:
    path = tmp_path / "scripts"
    path.mkdir()
    (path / "hermes_bootstrap.sh").write_text("#!/bin/bash\nhermes start\n")
    for name in ("pool1A.json", "pool1B.json", "pool2A.json", "pool2B.json"):
        (path / name).write_text('{"weights": "1stake,1uosmo"}')
    return path


@pytest.fixture
def settings(scripts_dir: Path) -> E2ESettings:
    return E2ESettings(
        _env_file=None,
        scripts_dir=scripts_dir,
        poll_timeout=30,
        poll_interval=1,
        relayer_settle_seconds=0,
    )


_ids = itertools.count()


def make_container(name: str) -> MagicMock:
    container = MagicMock()
    container.id = f"{next(_ids):064x}"
    container.name = name
    container.exec_run.return_value = (0, (b"", b""))
    return container


@pytest.fixture
def docker_client() -> MagicMock:
    """Docker SDK client whose ``containers.create`` hands out fresh container mocks."""
    client = MagicMock()
    client.containers.create.side_effect = lambda **kwargs: make_container(kwargs["name"])

    network = MagicMock()
    network.id = "f" * 64
    client.networks.create.return_value = network
    return client


@pytest.fixture
def orchestrator(docker_client: MagicMock) -> ContainerOrchestrator:
    return ContainerOrchestrator(client=docker_client)


@pytest.fixture
def ctx(settings: E2ESettings, orchestrator: ContainerOrchestrator, poller: Poller) -> Iterator[SuiteContext]:
    """Suite context with a mocked Docker client and mocked node/relayer clients."""
    context = SuiteContext(
        settings=settings,
        orchestrator=orchestrator,
        node_client=MagicMock(spec=NodeClient),
        relayer_client=MagicMock(spec=RelayerClient),
        poller=poller,
    )
    context.network = orchestrator.create_network("osmo-test-a-osmo-test-b-testnet")
    yield context
    for path in context.tmp_dirs:
        shutil.rmtree(path, ignore_errors=True)


def chain_metadata(chain_id: str, num_validators: int, data_dir: str = "/tmp/data") -> Chain:
    """Chain description as the init container writes it."""
    return Chain.model_validate(
        {
            "chainMeta": {"dataDir": data_dir, "id": chain_id},
            "validators": [
                {
                    "name": f"{chain_id}-osmosis-{i:02d}",
                    "configDir": f"{data_dir}/{chain_id}/osmosis-{i:02d}",
                    "index": i,
                    "mnemonic": TEST_MNEMONIC,
                    "publicAddress": f"osmo1{chain_id.replace('-', '')}{i}",
                }
                for i in range(num_validators)
            ],
        }
    )


@pytest.fixture
def make_chain() -> Callable[..., ChainConfig]:
    def factory(
        chain_id: str = "osmo-test-a",
        configs: list[ValidatorConfig] | None = None,
        position: int = 0,
    ) -> ChainConfig:
        configs = list(configs if configs is not None else VALIDATOR_CONFIGS_CHAIN_A)
        chain = ChainConfig(chain_id=chain_id, validator_configs=configs, position=position)
        chain.attach(chain_metadata(chain_id, len(configs)))
        return chain

    return factory


@pytest.fixture
def two_chains(ctx: SuiteContext, make_chain) -> tuple[ChainConfig, ChainConfig]:
    """Chain A (4 validators, last not auto-started) and chain B (3 validators) in ``ctx``."""
    chain_a = make_chain("osmo-test-a", VALIDATOR_CONFIGS_CHAIN_A, position=0)
    chain_b = make_chain("osmo-test-b", VALIDATOR_CONFIGS_CHAIN_B, position=1)
    ctx.chains.extend([chain_a, chain_b])
    return chain_a, chain_b
