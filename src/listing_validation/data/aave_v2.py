"""Aave v2 contract interface for a forked Ethereum mainnet node.

Provides typed access to:
- Reserve registry, configuration and token addresses
- Interest rate strategy curves
- Oracle price sources and token proxy implementations
- Pool actions (deposit, borrow, repay, withdraw) as impersonated accounts

All impersonation respects FORK_MODE constraints.
"""

from __future__ import annotations

from typing import Any, Callable

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from listing_validation.core.errors import ProtocolCallError
from listing_validation.core.fork_guard import ForkGuard
from listing_validation.core.impersonation import ActingAs
from listing_validation.data.constants import (
    ADDRESSES_PROVIDER_ABI,
    DATA_PROVIDER_ABI,
    ERC20_ABI,
    INTEREST_RATE_STRATEGY_ABI,
    LENDING_POOL_ABI,
    ORACLE_ABI,
    PROXY_ABI,
    REFERRAL_CODE,
)
from listing_validation.data.models import (
    InterestStrategySpec,
    RateMode,
    ReserveConfigurationData,
    ReserveTokenAddresses,
    TokenDescriptor,
)

# Send-time failures: reverts, node RPC errors (ValueError in web3 v6), receipt timeouts
_TRANSACTION_ERRORS = (Web3Exception, ValueError)

_REVERT_PREFIXES = (
    "execution reverted: ",
    "execution reverted",
    "VM Exception while processing transaction: revert ",
)


def revert_reason(error: Exception) -> str:
    """Extract the bare revert string from a web3 error.

    ``ContractLogicError("execution reverted: 12")`` yields ``"12"``.
    """
    message = getattr(error, "message", None)
    if not message and error.args and isinstance(error.args[0], dict):
        message = error.args[0].get("message")
    message = message or str(error)
    for prefix in _REVERT_PREFIXES:
        if message.startswith(prefix):
            return message[len(prefix):].strip()
    return message.strip()


class AaveV2Client:
    """Client for a forked Aave v2 deployment.

    Usage:
        client = AaveV2Client(web3_instance, config.addresses)
        tokens = client.get_all_reserves_tokens()
        with ImpersonationScope(client, whale) as authority:
            client.deposit(authority, asset, amount, whale)
    """

    def __init__(
        self,
        web3: Web3,
        addresses: dict[str, str],
        impersonation_rpc_prefix: str = "anvil",
    ) -> None:
        """Initialize the client.

        Args:
            web3: Connected Web3 instance.
            addresses: Must contain 'addresses_provider', 'lending_pool' and
                'data_provider'.
            impersonation_rpc_prefix: 'anvil' or 'hardhat'.
        """
        self.web3 = web3
        self._rpc_prefix = impersonation_rpc_prefix

        self._pool: Contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(addresses["lending_pool"]),
            abi=LENDING_POOL_ABI,
        )
        self._data_provider: Contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(addresses["data_provider"]),
            abi=DATA_PROVIDER_ABI,
        )
        self._addresses_provider: Contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(addresses["addresses_provider"]),
            abi=ADDRESSES_PROVIDER_ABI,
        )

    @property
    def pool_address(self) -> str:
        return self._pool.address.lower()

    def _call(self, method: str, fn: Callable[[], Any]) -> Any:
        """Run a read call, converting node errors into ProtocolCallError."""
        try:
            return fn()
        except (ContractLogicError, BadFunctionCallOutput) as e:
            raise ProtocolCallError(method, revert_reason(e)) from e

    def _contract(self, address: str, abi: list[dict[str, Any]]) -> Contract:
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_all_reserves_tokens(self) -> list[TokenDescriptor]:
        result = self._call(
            "getAllReservesTokens",
            lambda: self._data_provider.functions.getAllReservesTokens().call(),
        )
        return [TokenDescriptor(symbol=symbol, address=address) for symbol, address in result]

    def get_reserve_configuration_data(self, asset: str) -> ReserveConfigurationData:
        config = self._call(
            "getReserveConfigurationData",
            lambda: self._data_provider.functions.getReserveConfigurationData(
                Web3.to_checksum_address(asset)
            ).call(),
        )
        return ReserveConfigurationData(
            decimals=config[0],
            ltv=config[1],
            liquidation_threshold=config[2],
            liquidation_bonus=config[3],
            reserve_factor=config[4],
            usage_as_collateral_enabled=config[5],
            borrowing_enabled=config[6],
            stable_borrow_rate_enabled=config[7],
            is_active=config[8],
            is_frozen=config[9],
        )

    def get_reserve_tokens_addresses(self, asset: str) -> ReserveTokenAddresses:
        result = self._call(
            "getReserveTokensAddresses",
            lambda: self._data_provider.functions.getReserveTokensAddresses(
                Web3.to_checksum_address(asset)
            ).call(),
        )
        return ReserveTokenAddresses(
            a_token=result[0],
            stable_debt_token=result[1],
            variable_debt_token=result[2],
        )

    def get_interest_rate_strategy_address(self, asset: str) -> str:
        reserve_data = self._call(
            "getReserveData",
            lambda: self._pool.functions.getReserveData(
                Web3.to_checksum_address(asset)
            ).call(),
        )
        # interestRateStrategyAddress
        return str(reserve_data[10]).lower()

    def get_interest_strategy_parameters(self, strategy: str) -> InterestStrategySpec:
        contract = self._contract(strategy, INTEREST_RATE_STRATEGY_ABI)

        def read(name: str) -> int:
            return self._call(name, lambda: getattr(contract.functions, name)().call())

        return InterestStrategySpec(
            excess_utilization=read("EXCESS_UTILIZATION_RATE"),
            optimal_utilization=read("OPTIMAL_UTILIZATION_RATE"),
            base_variable_borrow_rate=read("baseVariableBorrowRate"),
            stable_rate_slope1=read("stableRateSlope1"),
            stable_rate_slope2=read("stableRateSlope2"),
            variable_rate_slope1=read("variableRateSlope1"),
            variable_rate_slope2=read("variableRateSlope2"),
        )

    def get_max_variable_borrow_rate(self, strategy: str) -> int:
        contract = self._contract(strategy, INTEREST_RATE_STRATEGY_ABI)
        return self._call(
            "getMaxVariableBorrowRate",
            lambda: contract.functions.getMaxVariableBorrowRate().call(),
        )

    def get_asset_source(self, asset: str) -> str:
        oracle_address = self._call(
            "getPriceOracle",
            lambda: self._addresses_provider.functions.getPriceOracle().call(),
        )
        oracle = self._contract(oracle_address, ORACLE_ABI)
        source = self._call(
            "getSourceOfAsset",
            lambda: oracle.functions.getSourceOfAsset(
                Web3.to_checksum_address(asset)
            ).call(),
        )
        return str(source).lower()

    def get_proxy_admin(self) -> str:
        configurator = self._call(
            "getLendingPoolConfigurator",
            lambda: self._addresses_provider.functions.getLendingPoolConfigurator().call(),
        )
        return str(configurator).lower()

    def get_implementation(self, authority: ActingAs, proxy: str) -> str:
        authority.require_active("read implementation")
        contract = self._contract(proxy, PROXY_ABI)
        implementation = self._call(
            "implementation",
            lambda: contract.functions.implementation().call(
                {"from": Web3.to_checksum_address(authority.address)}
            ),
        )
        return str(implementation).lower()

    def balance_of(self, token: str, holder: str) -> int:
        contract = self._contract(token, ERC20_ABI)
        return self._call(
            "balanceOf",
            lambda: contract.functions.balanceOf(Web3.to_checksum_address(holder)).call(),
        )

    # -------------------------------------------------------------------------
    # Fork node control
    # -------------------------------------------------------------------------

    def _rpc(self, method: str, params: list[Any]) -> Any:
        """Send a raw node request; JSON-RPC errors become ProtocolCallError."""
        response = self.web3.provider.make_request(method, params)
        error = response.get("error") if isinstance(response, dict) else None
        if error:
            reason = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise ProtocolCallError(method, reason)
        return response.get("result") if isinstance(response, dict) else response

    def start_impersonating(self, address: str) -> None:
        ForkGuard.get_instance().require_verification()
        self._rpc(
            f"{self._rpc_prefix}_impersonateAccount",
            [Web3.to_checksum_address(address)],
        )

    def stop_impersonating(self, address: str) -> None:
        self._rpc(
            f"{self._rpc_prefix}_stopImpersonatingAccount",
            [Web3.to_checksum_address(address)],
        )

    def freeze_block_time(self) -> None:
        """Mine subsequent blocks without advancing the timestamp.

        Keeps interest from accruing between a balance read and the action
        that follows it, so exact floor checks hold. Only anvil exposes a
        block timestamp interval.
        """
        ForkGuard.get_instance().require_verification()
        if self._rpc_prefix != "anvil":
            raise ProtocolCallError(
                "freeze_block_time",
                f"block timestamp interval is not supported by {self._rpc_prefix}",
            )
        self._rpc("anvil_setBlockTimestampInterval", [0])

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def _wait_for_success(self, method: str, tx_hash: Any) -> None:
        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash)
        except _TRANSACTION_ERRORS as e:
            raise ProtocolCallError(method, revert_reason(e)) from e
        if receipt["status"] != 1:
            raise ProtocolCallError(method, f"transaction {tx_hash.hex()} failed")

    def _transact(self, method: str, authority: ActingAs, build: Callable[[], Any]) -> None:
        authority.require_active(method)
        sender = Web3.to_checksum_address(authority.address)
        try:
            tx_hash = build().transact({"from": sender})
        except _TRANSACTION_ERRORS as e:
            raise ProtocolCallError(method, revert_reason(e)) from e
        self._wait_for_success(method, tx_hash)

    def approve(self, authority: ActingAs, token: str, spender: str, amount: int) -> None:
        contract = self._contract(token, ERC20_ABI)
        self._transact(
            "approve",
            authority,
            lambda: contract.functions.approve(Web3.to_checksum_address(spender), amount),
        )

    def deposit(
        self, authority: ActingAs, asset: str, amount: int, on_behalf_of: str
    ) -> None:
        self._transact(
            "deposit",
            authority,
            lambda: self._pool.functions.deposit(
                Web3.to_checksum_address(asset),
                amount,
                Web3.to_checksum_address(on_behalf_of),
                REFERRAL_CODE,
            ),
        )

    def borrow(
        self,
        authority: ActingAs,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        on_behalf_of: str,
    ) -> None:
        self._transact(
            "borrow",
            authority,
            lambda: self._pool.functions.borrow(
                Web3.to_checksum_address(asset),
                amount,
                int(rate_mode),
                REFERRAL_CODE,
                Web3.to_checksum_address(on_behalf_of),
            ),
        )

    def repay(
        self,
        authority: ActingAs,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        on_behalf_of: str,
    ) -> None:
        self._transact(
            "repay",
            authority,
            lambda: self._pool.functions.repay(
                Web3.to_checksum_address(asset),
                amount,
                int(rate_mode),
                Web3.to_checksum_address(on_behalf_of),
            ),
        )

    def withdraw(self, authority: ActingAs, asset: str, amount: int, to: str) -> None:
        self._transact(
            "withdraw",
            authority,
            lambda: self._pool.functions.withdraw(
                Web3.to_checksum_address(asset),
                amount,
                Web3.to_checksum_address(to),
            ),
        )

    def send_transaction(self, authority: ActingAs, to: str, data: str) -> None:
        authority.require_active("send transaction")
        tx = {
            "from": Web3.to_checksum_address(authority.address),
            "to": Web3.to_checksum_address(to),
            "data": data,
        }
        try:
            tx_hash = self.web3.eth.send_transaction(tx)
        except _TRANSACTION_ERRORS as e:
            raise ProtocolCallError("send_transaction", revert_reason(e)) from e
        self._wait_for_success("send_transaction", tx_hash)
