"""FORK_MODE enforcement for the listing validation harness.

The harness impersonates whales and governance executors and sends real
transactions, so it must never be pointed at a live network:
- Local development nodes are accepted as-is
- Ethereum mainnet is accepted only as an explicitly declared fork
- Impersonation refuses to start before the environment is verified

FORK_MODE must be enabled for any state-changing operation.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv


class ForkGuardError(Exception):
    """Raised when a FORK_MODE violation is detected."""

    pass


# Known local chain IDs
LOCAL_CHAIN_IDS: dict[int, str] = {
    31337: "Local Anvil/Hardhat",
    1337: "Local Ganache",
}

# Ethereum mainnet chain ID - requires fork verification
ETHEREUM_MAINNET_CHAIN_ID = 1

# web3_clientVersion prefixes of local development nodes
FORK_CLIENT_MARKERS = ("anvil", "hardhat", "ganache")


def is_fork_client(client_version: str) -> bool:
    """True if ``web3_clientVersion`` names a local development node.

    Anvil reports e.g. ``anvil/v0.2.0``, Hardhat ``HardhatNetwork/2.22.0/...``;
    Geth and other live clients never match.
    """
    version = client_version.strip().lower()
    return any(marker in version for marker in FORK_CLIENT_MARKERS)


@dataclass
class ForkGuardConfig:
    """Configuration for FORK_MODE enforcement."""

    enabled: bool = True
    require_fork_block: bool = True


class ForkGuard:
    """FORK_MODE enforcement singleton.

    Usage:
        guard = ForkGuard.initialize()
        guard.verify_environment(chain_id, is_fork=True, block_number=14302075)
        guard.require_verification()
    """

    _instance: ForkGuard | None = None
    _initialized: bool = False

    def __init__(self, config: ForkGuardConfig | None = None) -> None:
        """Initialize FORK_MODE with configuration.

        Args:
            config: ForkGuardConfig instance, or None to load from environment.

        Raises:
            ForkGuardError: If FORK_MODE is not enabled in environment.
        """
        load_dotenv()

        fork_mode_env = os.getenv("FORK_MODE", "").lower()
        if fork_mode_env != "true":
            raise ForkGuardError(
                "FORK_MODE must be set to 'true' in environment. "
                "The harness impersonates accounts and sends transactions, "
                "which is only allowed against a forked node. "
                "Set FORK_MODE=true in your .env file."
            )

        self.config = config or self._load_config_from_env()
        self._verification_hash: str | None = None
        self._verified_chain_id: int | None = None
        self._is_fork: bool = False
        self._fork_block: int | None = None

    @classmethod
    def initialize(cls, config: ForkGuardConfig | None = None) -> ForkGuard:
        """Initialize or return the FORK_MODE singleton."""
        if cls._instance is None:
            cls._instance = cls(config)
            cls._initialized = True
        return cls._instance

    @classmethod
    def get_instance(cls) -> ForkGuard:
        """Get the initialized FORK_MODE instance.

        Raises:
            ForkGuardError: If FORK_MODE has not been initialized.
        """
        if cls._instance is None:
            raise ForkGuardError(
                "FORK_MODE not initialized. Call ForkGuard.initialize() first."
            )
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing only)."""
        cls._instance = None
        cls._initialized = False

    def _load_config_from_env(self) -> ForkGuardConfig:
        require_block = os.getenv("REQUIRE_FORK_BLOCK", "true").lower() == "true"
        return ForkGuardConfig(enabled=True, require_fork_block=require_block)

    def verify_environment(
        self,
        chain_id: int,
        is_fork: bool = False,
        block_number: int | None = None,
    ) -> bool:
        """Verify the connected node is safe to impersonate against.

        Args:
            chain_id: The chain ID reported by the node.
            is_fork: Whether the node is a fork of a live network.
            block_number: Block the fork was created from.

        Returns:
            True if environment is verified safe.

        Raises:
            ForkGuardError: If environment fails safety checks.
        """
        if chain_id in LOCAL_CHAIN_IDS:
            self._mark_verified(chain_id, is_fork, block_number)
            return True

        if chain_id == ETHEREUM_MAINNET_CHAIN_ID:
            if not is_fork:
                raise ForkGuardError(
                    f"Chain ID {chain_id} (Ethereum Mainnet) detected but is_fork=False. "
                    "Governance execution and whale impersonation require a local fork "
                    "(Anvil/Hardhat)."
                )
            if self.config.require_fork_block and block_number is None:
                raise ForkGuardError(
                    "Fork verification requires block_number to be specified. "
                    "Provide the block number the fork was created from."
                )
            self._mark_verified(chain_id, True, block_number)
            return True

        raise ForkGuardError(
            f"Unknown chain ID {chain_id}. "
            f"Local chain IDs: {list(LOCAL_CHAIN_IDS.keys())} or "
            f"Ethereum mainnet ({ETHEREUM_MAINNET_CHAIN_ID}) with is_fork=True."
        )

    def _mark_verified(
        self, chain_id: int, is_fork: bool, block_number: int | None
    ) -> None:
        self._verified_chain_id = chain_id
        self._is_fork = is_fork
        self._fork_block = block_number
        data = f"chain_id={chain_id}|is_fork={is_fork}|block={block_number}"
        self._verification_hash = hashlib.sha256(data.encode()).hexdigest()[:16]

    @property
    def verification_hash(self) -> str | None:
        """Get the current verification hash."""
        return self._verification_hash

    @property
    def is_verified(self) -> bool:
        """Check if environment has been verified."""
        return self._verified_chain_id is not None

    def get_verification_context(self) -> dict[str, Any]:
        """Get the current verification context for logging."""
        return {
            "fork_mode_enabled": self.config.enabled,
            "verified_chain_id": self._verified_chain_id,
            "is_fork": self._is_fork,
            "fork_block": self._fork_block,
            "verification_hash": self._verification_hash,
        }

    def require_verification(self) -> None:
        """Require that environment has been verified.

        Raises:
            ForkGuardError: If environment not yet verified.
        """
        if not self.is_verified:
            raise ForkGuardError(
                "Operation requires verified environment. "
                "Call verify_environment() with chain_id first."
            )
