"""
System Test Configuration - session cluster and node log interception.

This conftest creates a "grey-box" testing environment where:
1. One real cluster is provisioned per session (chains, relayer, upgrade)
2. All validator and relayer logs are monitored during each test
3. A consensus failure or panic in any container fails the test
4. The cluster is torn down once the session ends

CRITICAL: This file must be in system_tests/ to apply only to system tests.
The tests/ folder uses its own conftest with mocks.
"""

from __future__ import annotations

import time
from typing import Generator

import httpx
import pytest

from ledger_e2e.configurer.context import SuiteContext
from ledger_e2e.configurer.runner import E2ESuite
from ledger_e2e.core.config import E2ESettings, load_settings
from ledger_e2e.core.logging import setup_logging
from system_tests.config import SystemTestConfig, get_config
from system_tests.fixtures.docker_logs import NodeLogWatcher


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "system: requires a Docker daemon and the node images")
    config.addinivalue_line("markers", "ibc: needs two chains and a relayer")
    config.addinivalue_line("markers", "upgrade: needs the upgrade flow")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if get_config().enabled:
        return
    skip = pytest.mark.skip(reason="set E2E_RUN_SYSTEM=1 to run the Docker-backed suite")
    for item in items:
        item.add_marker(skip)


# =============================================================================
# CONFIGURATION
# =============================================================================


@pytest.fixture(scope="session")
def system_config() -> SystemTestConfig:
    """Load system test configuration from environment."""
    return get_config()


@pytest.fixture(scope="session")
def e2e_settings() -> E2ESettings:
    settings = load_settings()
    setup_logging(settings)
    return settings


# =============================================================================
# CLUSTER (Session-scoped)
# =============================================================================


@pytest.fixture(scope="session")
def cluster(e2e_settings: E2ESettings) -> Generator[SuiteContext, None, None]:
    """
    Provision the full cluster once for the session.

    A failed setup has already torn everything down; the error is reported
    as a session-level failure for every test that needs the cluster.
    """
    print("\n" + "=" * 60)
    print("LEDGER E2E CLUSTER")
    print("=" * 60)
    print(f"  Chains: {', '.join(e2e_settings.chain_ids)}")
    print(f"  IBC: {'ON' if e2e_settings.run_ibc else 'OFF'}")
    print(f"  Upgrade: {'ON' if e2e_settings.run_upgrade else 'OFF'}")
    print("=" * 60)

    suite = E2ESuite(e2e_settings)
    start = time.monotonic()
    ctx = suite.setup()
    print(f"\nCluster ready after {time.monotonic() - start:.0f}s, starting system tests...\n")

    yield ctx

    suite.teardown()


@pytest.fixture(scope="session")
def rest_client(system_config: SystemTestConfig) -> Generator[httpx.Client, None, None]:
    """HTTP client for the host-bound RPC and REST ports."""
    with httpx.Client(timeout=system_config.rpc_timeout) as client:
        yield client


# =============================================================================
# NODE LOG WATCHER (Per-test, autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def node_log_watcher(
    request: pytest.FixtureRequest,
    cluster: SuiteContext,
    system_config: SystemTestConfig,
) -> Generator[NodeLogWatcher, None, None]:
    """
    Intercept container logs before and after each test.

    This fixture:
    1. Marks the current log time before the test
    2. Allows the test to run
    3. Captures all new validator and relayer logs after the test
    4. Fails the test if any node logged a failure
    """
    handles = list(cluster.registry) + list(cluster.relayers.values())
    watcher = NodeLogWatcher(handles, system_config)

    # === BEFORE TEST ===
    watcher.mark_positions()

    yield watcher

    # === AFTER TEST ===
    issues = watcher.get_issues_summary(
        watcher.capture_since_mark(),
        strict_mode=system_config.strict_mode,
    )
    if issues:
        pytest.fail(
            f"\n{'=' * 70}\n"
            f"NODE FAILURE - a container logged errors during the test\n"
            f"{'=' * 70}\n"
            f"Test: {request.node.name}\n\n"
            f"{issues}",
            pytrace=False,
        )
