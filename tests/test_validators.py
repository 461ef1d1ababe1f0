"""Tests for validator container lifecycle."""

from __future__ import annotations

import pytest

from ledger_e2e.configurer.context import ValidatorState
from ledger_e2e.configurer.validators import EXPOSED_PORTS, ValidatorLifecycleManager
from ledger_e2e.core.exceptions import PollTimeoutError, ResourceError


@pytest.fixture
def manager(ctx) -> ValidatorLifecycleManager:
    return ValidatorLifecycleManager(ctx)


class TestRunSpec:
    def test_first_validator_exposes_ports(self, manager, two_chains):
        chain_a, _ = two_chains

        spec = manager.run_spec(chain_a, chain_a.validators[0], "osmosis:debug")

        assert spec.command == ["start"]
        assert spec.user is None
        assert len(spec.ports) == len(EXPOSED_PORTS)
        assert spec.ports["26657/tcp"] == 26657
        assert spec.ports["1317/tcp"] == 1317

    def test_second_chain_ports_are_offset(self, manager, two_chains):
        _, chain_b = two_chains

        spec = manager.run_spec(chain_b, chain_b.validators[0], "osmosis:debug")

        assert spec.ports["26657/tcp"] == 26667
        assert spec.ports["1317/tcp"] == 1327
        assert spec.ports["6065/tcp"] == 6075

    def test_other_validators_have_no_host_ports(self, manager, two_chains):
        chain_a, _ = two_chains

        spec = manager.run_spec(chain_a, chain_a.validators[1], "osmosis:debug")

        assert spec.ports == {}

    def test_mounts(self, manager, two_chains, settings):
        chain_a, _ = two_chains
        validator = chain_a.validators[2]

        spec = manager.run_spec(chain_a, validator, "osmosis:debug")

        assert spec.mounts == [
            f"{validator.config_dir}/:/osmosis/.osmosisd",
            f"{settings.scripts_dir.resolve()}:/osmosis",
        ]
        assert spec.name == validator.name

    def test_upgraded_validator_uses_image_default_command(self, manager, two_chains):
        chain_a, _ = two_chains

        spec = manager.run_spec(chain_a, chain_a.validators[0], "osmosis:debug", upgraded=True)

        assert spec.command is None
        assert spec.user == "root:root"
        assert spec.ports["26657/tcp"] == 26657


class TestRunValidators:
    def test_skips_validators_that_do_not_auto_start(self, ctx, manager, two_chains):
        chain_a, _ = two_chains
        ctx.node_client.is_producing_blocks.return_value = True

        manager.run_validators(chain_a, "osmolabs/osmosis-dev:v8.0.0-debug")

        assert ctx.registry.indexes("osmo-test-a") == [0, 1, 2]
        assert manager.state(chain_a, 3) is ValidatorState.NOT_STARTED
        assert all(manager.state(chain_a, i) is ValidatorState.HEALTHY for i in (0, 1, 2))
        ctx.node_client.is_producing_blocks.assert_called_with("http://localhost:26657")

    def test_health_poll_uses_offset_rpc_port(self, ctx, manager, two_chains):
        _, chain_b = two_chains
        ctx.node_client.is_producing_blocks.return_value = True

        manager.run_validators(chain_b, "osmosis:debug")

        ctx.node_client.is_producing_blocks.assert_called_with("http://localhost:26667")

    def test_never_healthy(self, ctx, manager, two_chains, clock):
        chain_a, _ = two_chains
        ctx.node_client.is_producing_blocks.return_value = False

        with pytest.raises(PollTimeoutError) as exc_info:
            manager.run_validators(chain_a, "osmosis:debug")

        assert exc_info.value.details["chain_id"] == "osmo-test-a"
        assert clock.now >= ctx.settings.poll_timeout
        assert manager.state(chain_a, 0) is ValidatorState.STARTING

    def test_skipped_validator_can_start_later(self, ctx, manager, two_chains):
        chain_a, _ = two_chains
        ctx.node_client.is_producing_blocks.return_value = True
        manager.run_validators(chain_a, "osmosis:debug")

        handle = manager.start_validator(chain_a, 3, image="osmosis:debug")

        assert ctx.registry.get("osmo-test-a", 3) is handle

    def test_double_start_rejected(self, ctx, manager, two_chains):
        chain_a, _ = two_chains
        manager.start_validator(chain_a, 0, image="osmosis:debug")

        with pytest.raises(ResourceError, match="already running"):
            manager.start_validator(chain_a, 0, image="osmosis:debug")


def test_remove_validator_keeps_volumes(ctx, manager, two_chains):
    chain_a, _ = two_chains
    handle = manager.start_validator(chain_a, 1, image="osmosis:debug")

    manager.remove_validator(chain_a, 1)

    handle.container.remove.assert_called_once_with(force=True, v=False)
    assert not ctx.registry.has("osmo-test-a", 1)
    assert manager.state(chain_a, 1) is ValidatorState.REMOVED
