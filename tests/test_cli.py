"""Tests for the ledger-e2e command line."""

from __future__ import annotations

import json
import logging
from unittest.mock import MagicMock

import pytest

from ledger_e2e import cli
from ledger_e2e.core.exceptions import PollTimeoutError


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("E2E_SKIP_UPGRADE", "E2E_SKIP_IBC", "E2E_SKIP_CLEANUP"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def suite(monkeypatch) -> MagicMock:
    suite_cls = MagicMock()
    monkeypatch.setattr(cli, "E2ESuite", suite_cls)
    return suite_cls


def test_command_required(capsys):
    assert cli.main([]) == 1
    assert "Command is required" in capsys.readouterr().err


def test_plan_full_flow(capsys):
    assert cli.main(["plan"]) == 0

    plan = json.loads(capsys.readouterr().out)
    assert plan["phases"][-1] == "post-upgrade"
    assert plan["chains"] == {"osmo-test-a": 4, "osmo-test-b": 3}
    assert plan["images"]["relayer"] == "osmolabs/hermes:0.13.0"


def test_plan_single_chain(capsys):
    assert cli.main(["plan", "--skip-upgrade", "--skip-ibc"]) == 0

    plan = json.loads(capsys.readouterr().out)
    assert plan["phases"] == ["network", "init", "validators"]
    assert plan["images"] == {"init": "osmosis-e2e-chain-init:debug", "node": "osmosis:debug"}


def test_inconsistent_flags(capsys):
    assert cli.main(["up", "--skip-ibc"]) == 1

    error = json.loads(capsys.readouterr().err)
    assert error["error"] == "CONFIGURATION_ERROR"


def test_up_tears_down(suite):
    suite.return_value.setup.return_value.chains = []

    assert cli.main(["up"]) == 0

    suite.return_value.teardown.assert_called_once()


def test_up_keep_skips_cleanup(suite):
    suite.return_value.setup.return_value.chains = []

    cli.main(["up", "--keep"])

    settings = suite.call_args.args[0]
    assert settings.skip_cleanup


def test_up_failure_reports_error(suite, capsys):
    suite.return_value.setup.side_effect = PollTimeoutError(
        "hermes relayer healthy not met", details={"attempts": 300}
    )

    assert cli.main(["up"]) == 1

    error = json.loads(capsys.readouterr().err)
    assert error["error"] == "POLL_TIMEOUT"
    assert error["details"]["attempts"] == 300
    suite.return_value.teardown.assert_called_once()
