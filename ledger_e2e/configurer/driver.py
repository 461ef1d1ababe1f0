"""Cross-Chain Test Driver - scripted transfers and pool creation around the upgrade."""

from __future__ import annotations

import httpx

from ledger_e2e.chain.config import ChainConfig
from ledger_e2e.chain.tokens import IBC_DENOM_PREFIX, OSMO_TOKEN, STAKE_TOKEN, Token
from ledger_e2e.configurer.context import SuiteContext
from ledger_e2e.core.exceptions import E2EError, ResourceError
from ledger_e2e.core.logging import get_logger

logger = get_logger("driver")


def ibc_balance(balances: dict[str, int]) -> int:
    """Total amount held in IBC vouchers."""
    return sum(amount for denom, amount in balances.items() if denom.startswith(IBC_DENOM_PREFIX))


class CrossChainTestDriver:
    """Generates observable chain state before and after an upgrade."""

    def __init__(self, ctx: SuiteContext):
        self.ctx = ctx

    def _chain_pair(self) -> tuple[ChainConfig, ChainConfig]:
        if len(self.ctx.chains) != 2:
            raise E2EError(
                "Cross-chain scenarios need exactly two chains",
                details={"chains": [c.chain_id for c in self.ctx.chains]},
            )
        return self.ctx.chains[0], self.ctx.chains[1]

    def create_pre_upgrade_state(self) -> None:
        self._run_round(pool_round=1)

    def run_post_upgrade_tests(self) -> None:
        self._run_round(pool_round=2)

    def _run_round(self, pool_round: int) -> None:
        chain_a, chain_b = self._chain_pair()

        for token in (OSMO_TOKEN, STAKE_TOKEN):
            self.send_ibc(chain_a, chain_b, chain_b.first_validator.public_address, token)
            self.send_ibc(chain_b, chain_a, chain_a.first_validator.public_address, token)

        self.create_pool(chain_a, f"pool{pool_round}A.json")
        self.create_pool(chain_b, f"pool{pool_round}B.json")

    def _ibc_balance(self, chain: ChainConfig, address: str) -> int:
        return ibc_balance(
            self.ctx.node_client.query_balances(self.ctx.node_api_url(chain), address)
        )

    def send_ibc(
        self, src: ChainConfig, dst: ChainConfig, recipient: str, token: Token
    ) -> None:
        """Transfer ``token`` and wait until the recipient holds more IBC vouchers."""
        ctx = self.ctx
        settings = ctx.settings
        logger.info(f"Sending {token} from {src.chain_id} to {dst.chain_id}")

        try:
            before = self._ibc_balance(dst, recipient)
        except httpx.HTTPError as e:
            raise ResourceError(
                "Cannot query recipient balance",
                details={"chain_id": dst.chain_id, "address": recipient, "error": str(e)},
            ) from e

        relayer = ctx.relayer_for(src.chain_id, dst.chain_id)
        ctx.relayer_client.transfer(relayer, src.chain_id, dst.chain_id, recipient, token)

        ctx.poller.require(
            lambda: self._ibc_balance(dst, recipient) > before,
            description=f"{token} from {src.chain_id} arriving on {dst.chain_id}",
            details={"chain_id": dst.chain_id, "recipient": recipient, "balance_before": before},
            timeout=settings.poll_timeout,
            interval=settings.poll_interval,
            transient=(httpx.HTTPError, ValueError),
        )
        logger.info(f"Successfully sent {token} from {src.chain_id} to {dst.chain_id}")

    def create_pool(self, chain: ChainConfig, pool_file: str) -> None:
        settings = self.ctx.settings
        if not (settings.scripts_dir / pool_file).is_file():
            raise ResourceError(
                "Pool file not found",
                details={"chain_id": chain.chain_id, "pool_file": str(settings.scripts_dir / pool_file)},
            )

        handle = self.ctx.validator_handle(chain, 0)
        self.ctx.node_client.create_pool(
            handle, chain.chain_id, f"{settings.scripts_mount}/{pool_file}"
        )
