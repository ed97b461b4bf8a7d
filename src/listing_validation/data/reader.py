"""Reserve configuration reader.

Builds a snapshot of every listed reserve by merging, per registry entry:
1. Configuration flags and risk parameters
2. Receipt and debt token addresses
3. The currently attached interest rate strategy

Registry order is preserved. Any failing per-asset query aborts the read.
"""

from __future__ import annotations

from listing_validation.core.errors import AssetQueryError, ProtocolCallError
from listing_validation.core.logging import ScenarioLogger
from listing_validation.data.models import ReserveConfig, Snapshot, TokenDescriptor
from listing_validation.data.protocol import ProtocolClient


class ReserveConfigReader:
    """Read all reserve configurations from the protocol.

    Usage:
        reader = ReserveConfigReader(client, logger)
        before = reader.read_all_reserves()
        after = reader.read_all_reserves(include_logging=True)
    """

    def __init__(
        self,
        client: ProtocolClient,
        logger: ScenarioLogger | None = None,
    ) -> None:
        self.client = client
        self.logger = logger

    def read_all_reserves(self, include_logging: bool = False) -> Snapshot:
        """Read a snapshot of every listed reserve, in registry order.

        Args:
            include_logging: Log each reserve's configuration (requires a logger).

        Returns:
            Tuple of ReserveConfig in registry order.

        Raises:
            AssetQueryError: If the registry or any per-asset query fails.
        """
        try:
            tokens = self.client.get_all_reserves_tokens()
        except ProtocolCallError as e:
            raise AssetQueryError("registry", e.method, e.reason) from e

        snapshot = tuple(self.read_reserve(token) for token in tokens)

        if include_logging and self.logger:
            for config in snapshot:
                self.logger.debug(
                    f"Reserve {config.symbol}",
                    config.model_dump(),
                )

        if self.logger:
            self.logger.log_event(
                "snapshot",
                {"count": len(snapshot), "symbols": [c.symbol for c in snapshot]},
            )

        return snapshot

    def read_reserve(self, token: TokenDescriptor) -> ReserveConfig:
        """Merge configuration, token addresses and strategy for one asset."""
        try:
            config = self.client.get_reserve_configuration_data(token.address)
            tokens = self.client.get_reserve_tokens_addresses(token.address)
            strategy = self.client.get_interest_rate_strategy_address(token.address)
        except ProtocolCallError as e:
            raise AssetQueryError(token.address, e.method, e.reason) from e

        try:
            return ReserveConfig(
                symbol=token.symbol,
                underlying=token.address,
                a_token=tokens.a_token,
                stable_debt_token=tokens.stable_debt_token,
                variable_debt_token=tokens.variable_debt_token,
                decimals=config.decimals,
                ltv=config.ltv,
                liquidation_threshold=config.liquidation_threshold,
                liquidation_bonus=config.liquidation_bonus,
                reserve_factor=config.reserve_factor,
                usage_as_collateral_enabled=config.usage_as_collateral_enabled,
                borrowing_enabled=config.borrowing_enabled,
                interest_rate_strategy=strategy,
                stable_borrow_rate_enabled=config.stable_borrow_rate_enabled,
                is_active=config.is_active,
                is_frozen=config.is_frozen,
            )
        except ValueError as e:
            raise AssetQueryError(token.address, "getReserveData", f"malformed data: {e}") from e
