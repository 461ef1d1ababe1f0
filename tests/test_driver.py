"""Tests for the cross-chain transfer and pool scenarios."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from ledger_e2e.chain.tokens import OSMO_TOKEN, STAKE_TOKEN
from ledger_e2e.configurer.driver import CrossChainTestDriver, ibc_balance
from ledger_e2e.configurer.validators import ValidatorLifecycleManager
from ledger_e2e.core.exceptions import E2EError, PollTimeoutError, ResourceError


@pytest.fixture
def relayed(ctx, two_chains):
    """Both chains running with a relayer between them."""
    manager = ValidatorLifecycleManager(ctx)
    for chain in two_chains:
        for validator in chain.running_validators:
            manager.start_validator(chain, validator.index, image="osmosis:debug")
    ctx.relayers[("osmo-test-a", "osmo-test-b")] = MagicMock(name="relayer")
    return two_chains


class Ledger:
    """IBC voucher balances that grow with every relayed transfer."""

    def __init__(self):
        self.balances: dict[str, int] = {}

    def query(self, api_url, address):
        return {"uosmo": 5, "ibc/ABC": self.balances.get(address, 0)}

    def transfer(self, handle, src, dst, recipient, token, channel="channel-0"):
        self.balances[recipient] = self.balances.get(recipient, 0) + token.amount


def test_ibc_balance_sums_vouchers():
    assert ibc_balance({"uosmo": 7, "ibc/A": 2, "ibc/B": 3}) == 5
    assert ibc_balance({"stake": 1}) == 0


def test_pre_upgrade_round(ctx, relayed):
    chain_a, chain_b = relayed
    ledger = Ledger()
    ctx.node_client.query_balances.side_effect = ledger.query
    ctx.relayer_client.transfer.side_effect = ledger.transfer

    CrossChainTestDriver(ctx).create_pre_upgrade_state()

    transfers = [c.args[1:5] for c in ctx.relayer_client.transfer.call_args_list]
    addr_a = chain_a.first_validator.public_address
    addr_b = chain_b.first_validator.public_address
    assert transfers == [
        ("osmo-test-a", "osmo-test-b", addr_b, OSMO_TOKEN),
        ("osmo-test-b", "osmo-test-a", addr_a, OSMO_TOKEN),
        ("osmo-test-a", "osmo-test-b", addr_b, STAKE_TOKEN),
        ("osmo-test-b", "osmo-test-a", addr_a, STAKE_TOKEN),
    ]

    pools = [c.args[1:] for c in ctx.node_client.create_pool.call_args_list]
    assert pools == [
        ("osmo-test-a", "/osmosis/pool1A.json"),
        ("osmo-test-b", "/osmosis/pool1B.json"),
    ]


def test_balances_read_from_recipient_chain(ctx, relayed):
    ledger = Ledger()
    ctx.node_client.query_balances.side_effect = ledger.query
    ctx.relayer_client.transfer.side_effect = ledger.transfer

    CrossChainTestDriver(ctx).create_pre_upgrade_state()

    urls = {c.args[0] for c in ctx.node_client.query_balances.call_args_list}
    assert urls == {"http://localhost:1317", "http://localhost:1327"}


def test_post_upgrade_round_uses_second_pool_files(ctx, relayed):
    ledger = Ledger()
    ctx.node_client.query_balances.side_effect = ledger.query
    ctx.relayer_client.transfer.side_effect = ledger.transfer

    CrossChainTestDriver(ctx).run_post_upgrade_tests()

    pool_files = [c.args[2] for c in ctx.node_client.create_pool.call_args_list]
    assert pool_files == ["/osmosis/pool2A.json", "/osmosis/pool2B.json"]


def test_transfer_never_arrives(ctx, relayed):
    chain_a, chain_b = relayed
    ctx.node_client.query_balances.return_value = {"ibc/ABC": 10}

    with pytest.raises(PollTimeoutError) as exc_info:
        CrossChainTestDriver(ctx).send_ibc(
            chain_a, chain_b, chain_b.first_validator.public_address, OSMO_TOKEN
        )

    assert exc_info.value.details["balance_before"] == 10


def test_rest_unreachable_before_transfer(ctx, relayed):
    chain_a, chain_b = relayed
    ctx.node_client.query_balances.side_effect = httpx.ConnectError("refused")

    with pytest.raises(ResourceError, match="recipient balance"):
        CrossChainTestDriver(ctx).send_ibc(chain_a, chain_b, "osmo1dst", OSMO_TOKEN)

    ctx.relayer_client.transfer.assert_not_called()


def test_missing_pool_file(ctx, relayed, settings):
    chain_a, _ = relayed
    (settings.scripts_dir / "pool1A.json").unlink()

    with pytest.raises(ResourceError, match="Pool file"):
        CrossChainTestDriver(ctx).create_pool(chain_a, "pool1A.json")

    ctx.node_client.create_pool.assert_not_called()


def test_needs_two_chains(ctx, make_chain):
    ctx.chains.append(make_chain("osmo-test-a"))

    with pytest.raises(E2EError, match="exactly two chains"):
        CrossChainTestDriver(ctx).create_pre_upgrade_state()
