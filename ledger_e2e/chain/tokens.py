"""Test token amounts moved between chains."""

from __future__ import annotations

from dataclasses import dataclass

OSMO_DENOM = "uosmo"
STAKE_DENOM = "stake"
IBC_DENOM_PREFIX = "ibc/"


@dataclass(frozen=True)
class Token:
    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


OSMO_TOKEN = Token(OSMO_DENOM, 2_000_000)
STAKE_TOKEN = Token(STAKE_DENOM, 2_000_000)
