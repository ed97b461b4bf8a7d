"""Protocol client: the harness's only view of the lending protocol.

Validators, the reserve reader and the action simulator receive a
ProtocolClient by injection, so the same code runs against a forked node
(AaveV2Client) or a programmable in-memory fake.

Any failing call raises ProtocolCallError with the bare revert reason.
"""

from __future__ import annotations

from typing import Protocol

from listing_validation.core.impersonation import ActingAs
from listing_validation.data.models import (
    InterestStrategySpec,
    RateMode,
    ReserveConfigurationData,
    ReserveTokenAddresses,
    TokenDescriptor,
)


class ProtocolClient(Protocol):
    """Read and action surface of a lending protocol deployment."""

    @property
    def pool_address(self) -> str: ...

    # Registry and configuration reads
    def get_all_reserves_tokens(self) -> list[TokenDescriptor]: ...

    def get_reserve_configuration_data(self, asset: str) -> ReserveConfigurationData: ...

    def get_reserve_tokens_addresses(self, asset: str) -> ReserveTokenAddresses: ...

    def get_interest_rate_strategy_address(self, asset: str) -> str: ...

    # Interest rate strategy
    def get_interest_strategy_parameters(self, strategy: str) -> InterestStrategySpec: ...

    def get_max_variable_borrow_rate(self, strategy: str) -> int: ...

    # Oracle
    def get_asset_source(self, asset: str) -> str: ...

    # Upgradeable proxies
    def get_proxy_admin(self) -> str: ...

    def get_implementation(self, authority: ActingAs, proxy: str) -> str: ...

    # Balances
    def balance_of(self, token: str, holder: str) -> int: ...

    # Impersonation primitives (driven by ImpersonationScope)
    def start_impersonating(self, address: str) -> None: ...

    def stop_impersonating(self, address: str) -> None: ...

    # State-changing actions
    def approve(self, authority: ActingAs, token: str, spender: str, amount: int) -> None: ...

    def deposit(
        self, authority: ActingAs, asset: str, amount: int, on_behalf_of: str
    ) -> None: ...

    def borrow(
        self,
        authority: ActingAs,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        on_behalf_of: str,
    ) -> None: ...

    def repay(
        self,
        authority: ActingAs,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        on_behalf_of: str,
    ) -> None: ...

    def withdraw(self, authority: ActingAs, asset: str, amount: int, to: str) -> None: ...

    def send_transaction(self, authority: ActingAs, to: str, data: str) -> None: ...
