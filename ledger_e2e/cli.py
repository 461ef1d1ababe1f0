"""Command line entry point: ``ledger-e2e up`` and ``ledger-e2e plan``."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Iterable

from ledger_e2e.configurer.runner import E2ESuite, chain_definitions
from ledger_e2e.core.config import E2ESettings, load_settings
from ledger_e2e.core.exceptions import E2EError
from ledger_e2e.core.logging import get_logger, setup_logging

logger = get_logger("cli")


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="ledger-e2e",
        description="Multi-chain ledger cluster for end-to-end tests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLES:
    # Full run: two chains, relayer, upgrade, teardown
    %(prog)s up

    # Leave everything running for debugging
    %(prog)s up --keep

    # Single chain, no relayer, no upgrade
    %(prog)s up --skip-ibc --skip-upgrade

    # Show what would be started
    %(prog)s plan

ENVIRONMENT VARIABLES:
    E2E_SKIP_UPGRADE       Skip the upgrade flow
    E2E_SKIP_IBC           Skip chain B and the relayer (requires E2E_SKIP_UPGRADE)
    E2E_SKIP_CLEANUP       Leave containers and networks running
    E2E_LOG_LEVEL          DEBUG, INFO, WARNING or ERROR
    E2E_LOG_FORMAT         text or json
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    for name, help_text in (
        ("up", "Provision the cluster and run the configured phases"),
        ("plan", "Print the phases, chains and images without starting anything"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--skip-upgrade", action="store_true", default=None, help="Skip the upgrade flow")
        sub.add_argument("--skip-ibc", action="store_true", default=None, help="Skip chain B and the relayer")
        if name == "up":
            sub.add_argument("--keep", action="store_true", help="Do not tear down afterwards")

    return parser.parse_args(list(argv))


def settings_from_args(args: argparse.Namespace) -> E2ESettings:
    overrides: dict[str, Any] = {}
    if args.skip_upgrade:
        overrides["skip_upgrade"] = True
    if args.skip_ibc:
        overrides["skip_ibc"] = True
    if getattr(args, "keep", False):
        overrides["skip_cleanup"] = True
    return load_settings(**overrides)


def cmd_plan(settings: E2ESettings) -> int:
    images = settings.images
    plan = {
        "phases": ["network", "init", "validators"]
        + (["relayer"] if settings.run_ibc else [])
        + (["pre-upgrade", "upgrade", "post-upgrade"] if settings.run_upgrade else []),
        "chains": {
            chain_id: len(configs) for chain_id, configs in chain_definitions(settings)
        },
        "images": {
            "init": images.init_image(upgrade=settings.run_upgrade),
            "node": images.node_image(upgrade=settings.run_upgrade),
            **({"upgrade": images.upgrade_image} if settings.run_upgrade else {}),
            **({"relayer": images.relayer_image} if settings.run_ibc else {}),
        },
    }
    print(json.dumps(plan, indent=2))
    return 0


def cmd_up(settings: E2ESettings) -> int:
    suite = E2ESuite(settings)
    try:
        ctx = suite.setup()
        for chain in ctx.chains:
            logger.info(
                f"{chain.chain_id}: {ctx.registry.count(chain.chain_id)} validators running, "
                f"RPC {ctx.node_rpc_url(chain)}, REST {ctx.node_api_url(chain)}"
            )
        logger.info("E2E setup finished")
    finally:
        suite.teardown()
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(sys.argv[1:] if argv is None else argv)

    if not args.command:
        print("ERROR: Command is required. Use --help for usage information.", file=sys.stderr)
        return 1

    try:
        settings = settings_from_args(args)
        setup_logging(settings)
        if args.command == "plan":
            return cmd_plan(settings)
        return cmd_up(settings)
    except E2EError as exc:
        print(json.dumps(exc.to_dict(), default=str), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
