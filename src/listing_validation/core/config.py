"""Harness configuration loaded from the environment (.env supported)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from listing_validation.data.constants import AAVE_V2_MAINNET_ADDRESSES

IMPERSONATION_PREFIXES = ("anvil", "hardhat")


class ConfigError(Exception):
    """Raised when a configuration value is missing or invalid."""

    pass


@dataclass
class HarnessConfig:
    """Connection and runtime settings for a scenario run."""

    rpc_url: str = "http://127.0.0.1:8545"
    fork_block_number: int | None = None
    log_dir: Path = Path("logs")
    impersonation_rpc_prefix: str = "anvil"
    freeze_block_time: bool = True

    # Protocol contracts (Aave v2 mainnet unless overridden)
    addresses: dict[str, str] = field(
        default_factory=lambda: dict(AAVE_V2_MAINNET_ADDRESSES)
    )

    def __post_init__(self) -> None:
        if self.impersonation_rpc_prefix not in IMPERSONATION_PREFIXES:
            raise ConfigError(
                f"IMPERSONATION_RPC_PREFIX must be one of {IMPERSONATION_PREFIXES}, "
                f"got '{self.impersonation_rpc_prefix}'"
            )
        if not self.rpc_url:
            raise ConfigError("RPC_URL cannot be empty.")
        if self.freeze_block_time and self.impersonation_rpc_prefix != "anvil":
            raise ConfigError(
                "FREEZE_BLOCK_TIME requires an anvil fork; "
                f"set FREEZE_BLOCK_TIME=false for {self.impersonation_rpc_prefix}"
            )

    @classmethod
    def from_env(cls) -> HarnessConfig:
        """Build a configuration from environment variables.

        Recognised variables: RPC_URL, FORK_BLOCK_NUMBER, LOG_DIR,
        IMPERSONATION_RPC_PREFIX, FREEZE_BLOCK_TIME, ADDRESSES_PROVIDER,
        DATA_PROVIDER, LENDING_POOL.

        Raises:
            ConfigError: If a value cannot be parsed.
        """
        load_dotenv()

        fork_block_raw = os.getenv("FORK_BLOCK_NUMBER", "").strip()
        try:
            fork_block = int(fork_block_raw) if fork_block_raw else None
        except ValueError as e:
            raise ConfigError(
                f"FORK_BLOCK_NUMBER must be an integer, got '{fork_block_raw}'"
            ) from e

        addresses = dict(AAVE_V2_MAINNET_ADDRESSES)
        overrides = {
            "addresses_provider": os.getenv("ADDRESSES_PROVIDER"),
            "data_provider": os.getenv("DATA_PROVIDER"),
            "lending_pool": os.getenv("LENDING_POOL"),
        }
        for key, value in overrides.items():
            if value:
                addresses[key] = value

        return cls(
            rpc_url=os.getenv("RPC_URL", "http://127.0.0.1:8545"),
            fork_block_number=fork_block,
            log_dir=Path(os.getenv("LOG_DIR", "logs")),
            impersonation_rpc_prefix=os.getenv("IMPERSONATION_RPC_PREFIX", "anvil").lower(),
            freeze_block_time=os.getenv("FREEZE_BLOCK_TIME", "true").lower() == "true",
            addresses=addresses,
        )
