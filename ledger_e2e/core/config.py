"""E2E settings with Pydantic validation and environment loading."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledger_e2e.containers.images import ImageConfig
from ledger_e2e.core.exceptions import ConfigurationError


class E2ESettings(BaseSettings):
    """Settings loaded from ``E2E_``-prefixed environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="E2E_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    # Phase switches
    skip_upgrade: bool = Field(default=False, description="Skip the upgrade flow")
    skip_ibc: bool = Field(
        default=False, description="Skip the second chain and the relayer"
    )
    skip_cleanup: bool = Field(
        default=False, description="Leave containers and networks running after teardown"
    )

    # Chains
    chain_a_id: str = Field(default="osmo-test-a", min_length=1)
    chain_b_id: str = Field(default="osmo-test-b", min_length=1)

    # Images
    images: ImageConfig = Field(default_factory=ImageConfig)

    # Node layout inside the validator containers
    node_binary: str = Field(default="osmosisd", description="Ledger daemon binary")
    node_home: str = Field(
        default="/osmosis/.osmosisd", description="Mount point of a validator's config dir"
    )
    scripts_mount: str = Field(
        default="/osmosis", description="Mount point of the scripts dir in validators"
    )
    scripts_dir: Path = Field(
        default=Path("scripts"),
        description="Host dir with relayer bootstrap script and pool files",
    )

    # Polling
    poll_timeout: float = Field(
        default=300.0, gt=0, description="Deadline for health/halt/resume polls in seconds"
    )
    poll_interval: float = Field(default=1.0, gt=0, description="Seconds between polls")
    init_max_attempts: int = Field(
        default=60, ge=1, description="Attempts to read the chain metadata file"
    )
    init_retry_interval: float = Field(default=1.0, ge=0)
    status_request_timeout: float = Field(
        default=5.0, gt=0, description="Per-request timeout of status/state queries"
    )

    # Ports
    port_offset_step: int = Field(
        default=10, ge=1, description="Host port shift applied per chain"
    )
    relayer_host_port: int = Field(default=3031, ge=1, le=65535)
    relayer_settle_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Delay between relayer readiness and channel creation",
    )

    # Governance
    upgrade_name: str = Field(default="v9", description="Software upgrade plan name")
    deposit_amount: str = Field(default="10000000stake")
    halt_confirmations: int = Field(
        default=3, ge=1, description="Consecutive polls at the halt height required"
    )

    # Logging
    log_level: str = Field(
        default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR"
    )
    log_format: str = Field(default="text", description="Log format: json or text")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"json", "text"}:
            raise ValueError("log_format must be 'json' or 'text'")
        return lower

    @property
    def run_upgrade(self) -> bool:
        return not self.skip_upgrade

    @property
    def run_ibc(self) -> bool:
        return not self.skip_ibc

    @property
    def chain_ids(self) -> list[str]:
        if self.skip_ibc:
            return [self.chain_a_id]
        return [self.chain_a_id, self.chain_b_id]

    def check_consistency(self) -> None:
        """Reject switch combinations that cannot run.

        Called before any container or network is created.
        """
        if self.skip_ibc and not self.skip_upgrade:
            raise ConfigurationError(
                "IBC must be enabled for upgrade tests, either set "
                "E2E_SKIP_IBC to false or E2E_SKIP_UPGRADE to true",
                details={"skip_ibc": self.skip_ibc, "skip_upgrade": self.skip_upgrade},
            )
        if not self.skip_ibc and self.chain_a_id == self.chain_b_id:
            raise ConfigurationError(
                "Chain ids must differ", details={"chain_id": self.chain_a_id}
            )


def load_settings(**overrides) -> E2ESettings:
    """Build and validate settings, surfacing bad input as ConfigurationError."""
    try:
        settings = E2ESettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(
            "Unparseable e2e settings", details={"errors": e.errors(include_url=False)}
        ) from e
    settings.check_consistency()
    return settings


@lru_cache
def get_settings() -> E2ESettings:
    """Cached settings factory."""
    return load_settings()
