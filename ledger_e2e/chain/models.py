"""Validator and chain metadata models.

``ValidatorConfig`` is what the suite hands to the init container; ``Chain``
is what the init container writes back. Field aliases match the JSON both
sides exchange.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, TypeAdapter, model_validator

# The init container expects pruning counters as strings.
_StrInt = Annotated[int, PlainSerializer(lambda v: str(v), return_type=str)]


class Pruning(str, Enum):
    """Pruning strategy of a validator's state store."""

    DEFAULT = "default"
    NOTHING = "nothing"
    CUSTOM = "custom"
    EVERYTHING = "everything"


class ValidatorConfig(BaseModel):
    """Per-validator node configuration for a chain under test.

    ``auto_start`` marks validators the suite leaves stopped after
    initialization so tests can start them later (e.g. to exercise state
    sync). It never reaches the init container.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pruning: Pruning = Field(default=Pruning.DEFAULT, alias="Pruning")
    pruning_keep_recent: _StrInt = Field(default=0, ge=0, alias="PruningKeepRecent")
    pruning_interval: _StrInt = Field(default=0, ge=0, alias="PruningInterval")
    snapshot_interval: int = Field(default=1500, ge=0, alias="SnapshotInterval")
    snapshot_keep_recent: int = Field(default=2, ge=0, alias="SnapshotKeepRecent")
    auto_start: bool = Field(default=True, exclude=True)

    @model_validator(mode="after")
    def check_custom_pruning(self) -> "ValidatorConfig":
        if self.pruning is Pruning.CUSTOM and not (
            self.pruning_keep_recent > 0 and self.pruning_interval > 0
        ):
            raise ValueError(
                "custom pruning requires positive pruning_keep_recent and pruning_interval"
            )
        return self


class ChainMeta(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    data_dir: str = Field(alias="dataDir")
    id: str


class Validator(BaseModel):
    """A validator as initialized on disk by the init container."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    config_dir: str = Field(alias="configDir")
    index: int = Field(ge=0)
    mnemonic: str
    public_address: str = Field(alias="publicAddress")
    public_key: str = Field(default="", alias="publicKey")

    def __repr__(self) -> str:
        return f"Validator(name={self.name!r}, index={self.index})"


class Chain(BaseModel):
    """Chain metadata parsed from ``{data_dir}/{chain_id}-encode``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    chain_meta: ChainMeta = Field(alias="chainMeta")
    validators: list[Validator]

    @property
    def id(self) -> str:
        return self.chain_meta.id

    @property
    def data_dir(self) -> str:
        return self.chain_meta.data_dir


_VALIDATOR_CONFIGS = TypeAdapter(list[ValidatorConfig])


def encode_validator_configs(configs: list[ValidatorConfig]) -> str:
    """JSON array passed to the init container's ``--config`` flag."""
    return _VALIDATOR_CONFIGS.dump_json(list(configs), by_alias=True).decode()
