"""Pytest configuration and fixtures for listing validation tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Generator

import pytest

from listing_validation.core.errors import ProtocolCallError
from listing_validation.core.fork_guard import ForkGuard
from listing_validation.core.impersonation import ActingAs
from listing_validation.data.constants import MAX_UINT256, RAY, ZERO_ADDRESS
from listing_validation.data.models import (
    Actor,
    InterestStrategySpec,
    RateMode,
    ReserveConfig,
    ReserveConfigurationData,
    ReserveTokenAddresses,
    ReserveTokenImpls,
    TokenDescriptor,
)
from listing_validation.scenario.expectations import ListingExpectations


def addr(n: int) -> str:
    """Deterministic test address."""
    return "0x" + f"{n:040x}"


POOL = addr(0xB001)
CONFIGURATOR = addr(0xC0F1)
LUSD = addr(0x1005D)
DAI = addr(0xDA1)
LUSD_STRATEGY = addr(0x5757)
LUSD_FEED = addr(0xFEED)
LUSD_WHALE = addr(0xAAA1)
DAI_WHALE = addr(0xAAA2)
EXECUTOR = addr(0xE8EC)
PAYLOAD = addr(0xBA1D)

A_TOKEN_IMPL = addr(0x1A01)
STABLE_DEBT_IMPL = addr(0x1A02)
VARIABLE_DEBT_IMPL = addr(0x1A03)


def make_reserve(symbol: str, seed: int, **overrides: object) -> ReserveConfig:
    """Build a ReserveConfig with distinct addresses derived from ``seed``."""
    values: dict[str, object] = {
        "symbol": symbol,
        "underlying": addr(seed),
        "a_token": addr(seed + 1),
        "stable_debt_token": addr(seed + 2),
        "variable_debt_token": addr(seed + 3),
        "decimals": 18,
        "ltv": 7500,
        "liquidation_threshold": 8000,
        "liquidation_bonus": 10500,
        "reserve_factor": 1000,
        "usage_as_collateral_enabled": True,
        "borrowing_enabled": True,
        "interest_rate_strategy": addr(seed + 4),
        "stable_borrow_rate_enabled": True,
        "is_active": True,
        "is_frozen": False,
    }
    values.update(overrides)
    return ReserveConfig.model_validate(values)


LUSD_CONFIG = make_reserve(
    "LUSD",
    0x5000,
    underlying=LUSD,
    ltv=5000,
    liquidation_threshold=6000,
    liquidation_bonus=10800,
    reserve_factor=2000,
    decimals=18,
    usage_as_collateral_enabled=True,
    borrowing_enabled=True,
    stable_borrow_rate_enabled=False,
    interest_rate_strategy=LUSD_STRATEGY,
)

LUSD_STRATEGY_SPEC = InterestStrategySpec(
    excess_utilization=RAY * 20 // 100,
    optimal_utilization=RAY * 80 // 100,
    base_variable_borrow_rate=0,
    stable_rate_slope1=RAY * 2 // 100,
    stable_rate_slope2=RAY * 60 // 100,
    variable_rate_slope1=RAY * 4 // 100,
    variable_rate_slope2=RAY * 87 // 100,
)


class FakeProtocolClient:
    """Programmable in-memory lending protocol.

    Mirrors the on-chain behaviour the harness relies on: registry order,
    1:1 receipt/debt minting (plus optional rounding), floor semantics on
    repay/withdraw and the stable-borrow-disabled revert ('12').
    """

    def __init__(self) -> None:
        self.pool_address = POOL
        self.proxy_admin = CONFIGURATOR
        self.reserves: list[ReserveConfig] = []
        self.strategies: dict[str, InterestStrategySpec] = {}
        self.max_rate_overrides: dict[str, int] = {}
        self.oracle_sources: dict[str, str] = {}
        self.implementations: dict[str, str] = {}
        self.balances: dict[tuple[str, str], int] = {}
        self.allowances: dict[tuple[str, str, str], int] = {}
        self.failing_queries: dict[str, str] = {}
        self.action_reverts: dict[str, str] = {}
        self.payload_effects: dict[str, Callable[[FakeProtocolClient], None]] = {}
        self.mint_rounding = 0
        self.ignore_stable_flag = False
        self.impersonation_log: list[tuple[str, str]] = []
        self.sent_transactions: list[tuple[str, str, str]] = []
        # addresses whose impersonation request the node rejects
        self.impersonation_failures: set[str] = set()

    # Setup helpers ----------------------------------------------------------

    def add_reserve(
        self,
        config: ReserveConfig,
        strategy: InterestStrategySpec | None = None,
        impls: ReserveTokenImpls | None = None,
        source: str | None = None,
    ) -> None:
        self.reserves.append(config)
        self.strategies[config.interest_rate_strategy] = strategy or LUSD_STRATEGY_SPEC
        self.oracle_sources[config.underlying] = source or addr(0xF000)
        impls = impls or ReserveTokenImpls(
            a_token=A_TOKEN_IMPL,
            stable_debt_token=STABLE_DEBT_IMPL,
            variable_debt_token=VARIABLE_DEBT_IMPL,
        )
        self.implementations[config.a_token] = impls.a_token
        self.implementations[config.stable_debt_token] = impls.stable_debt_token
        self.implementations[config.variable_debt_token] = impls.variable_debt_token

    def fund(self, token: str, holder: str, amount: int) -> None:
        key = (token.lower(), holder.lower())
        self.balances[key] = self.balances.get(key, 0) + amount

    def _reserve(self, method: str, asset: str) -> ReserveConfig:
        for config in self.reserves:
            if config.underlying == asset.lower():
                return config
        raise ProtocolCallError(method, "reserve not listed")

    def _check_query(self, method: str, asset: str) -> None:
        if asset.lower() in self.failing_queries:
            raise ProtocolCallError(method, self.failing_queries[asset.lower()])

    def _move(self, method: str, token: str, holder: str, delta: int) -> None:
        key = (token.lower(), holder.lower())
        balance = self.balances.get(key, 0) + delta
        if balance < 0:
            raise ProtocolCallError(method, "transfer amount exceeds balance")
        self.balances[key] = balance

    def _check_action(self, method: str, authority: ActingAs) -> None:
        authority.require_active(method)
        if method in self.action_reverts:
            raise ProtocolCallError(method, self.action_reverts[method])

    # Reads ------------------------------------------------------------------

    def get_all_reserves_tokens(self) -> list[TokenDescriptor]:
        if "registry" in self.failing_queries:
            raise ProtocolCallError("getAllReservesTokens", self.failing_queries["registry"])
        return [TokenDescriptor(symbol=c.symbol, address=c.underlying) for c in self.reserves]

    def get_reserve_configuration_data(self, asset: str) -> ReserveConfigurationData:
        self._check_query("getReserveConfigurationData", asset)
        c = self._reserve("getReserveConfigurationData", asset)
        return ReserveConfigurationData(
            decimals=c.decimals,
            ltv=c.ltv,
            liquidation_threshold=c.liquidation_threshold,
            liquidation_bonus=c.liquidation_bonus,
            reserve_factor=c.reserve_factor,
            usage_as_collateral_enabled=c.usage_as_collateral_enabled,
            borrowing_enabled=c.borrowing_enabled,
            stable_borrow_rate_enabled=c.stable_borrow_rate_enabled,
            is_active=c.is_active,
            is_frozen=c.is_frozen,
        )

    def get_reserve_tokens_addresses(self, asset: str) -> ReserveTokenAddresses:
        c = self._reserve("getReserveTokensAddresses", asset)
        return ReserveTokenAddresses(
            a_token=c.a_token,
            stable_debt_token=c.stable_debt_token,
            variable_debt_token=c.variable_debt_token,
        )

    def get_interest_rate_strategy_address(self, asset: str) -> str:
        return self._reserve("getReserveData", asset).interest_rate_strategy

    def get_interest_strategy_parameters(self, strategy: str) -> InterestStrategySpec:
        if strategy not in self.strategies:
            raise ProtocolCallError("baseVariableBorrowRate", "no code at address")
        return self.strategies[strategy]

    def get_max_variable_borrow_rate(self, strategy: str) -> int:
        if strategy in self.max_rate_overrides:
            return self.max_rate_overrides[strategy]
        return self.get_interest_strategy_parameters(strategy).max_variable_borrow_rate

    def get_asset_source(self, asset: str) -> str:
        return self.oracle_sources.get(asset.lower(), ZERO_ADDRESS)

    def get_proxy_admin(self) -> str:
        return self.proxy_admin

    def get_implementation(self, authority: ActingAs, proxy: str) -> str:
        authority.require_active("read implementation")
        if authority.address != self.proxy_admin:
            raise ProtocolCallError("implementation", "caller is not the proxy admin")
        return self.implementations[proxy]

    def balance_of(self, token: str, holder: str) -> int:
        return self.balances.get((token.lower(), holder.lower()), 0)

    # Impersonation ----------------------------------------------------------

    def start_impersonating(self, address: str) -> None:
        if address in self.impersonation_failures:
            raise ProtocolCallError("anvil_impersonateAccount", "Method not found")
        self.impersonation_log.append(("start", address))

    def stop_impersonating(self, address: str) -> None:
        self.impersonation_log.append(("stop", address))

    # Actions ----------------------------------------------------------------

    def approve(self, authority: ActingAs, token: str, spender: str, amount: int) -> None:
        self._check_action("approve", authority)
        self.allowances[(token.lower(), authority.address, spender.lower())] = amount

    def deposit(self, authority: ActingAs, asset: str, amount: int, on_behalf_of: str) -> None:
        self._check_action("deposit", authority)
        c = self._reserve("deposit", asset)
        if c.is_frozen:
            raise ProtocolCallError("deposit", "3")
        self._move("deposit", asset, authority.address, -amount)
        self._move("deposit", c.a_token, on_behalf_of, amount + self.mint_rounding)

    def borrow(
        self,
        authority: ActingAs,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        on_behalf_of: str,
    ) -> None:
        self._check_action("borrow", authority)
        c = self._reserve("borrow", asset)
        if not c.borrowing_enabled:
            raise ProtocolCallError("borrow", "7")
        if rate_mode == RateMode.STABLE:
            if not c.stable_borrow_rate_enabled and not self.ignore_stable_flag:
                raise ProtocolCallError("borrow", "12")
            debt_token = c.stable_debt_token
        else:
            debt_token = c.variable_debt_token
        self._move("borrow", debt_token, on_behalf_of, amount + self.mint_rounding)
        self._move("borrow", asset, authority.address, amount)

    def repay(
        self,
        authority: ActingAs,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        on_behalf_of: str,
    ) -> None:
        self._check_action("repay", authority)
        c = self._reserve("repay", asset)
        debt_token = c.stable_debt_token if rate_mode == RateMode.STABLE else c.variable_debt_token
        debt = self.balance_of(debt_token, on_behalf_of)
        if debt == 0:
            raise ProtocolCallError("repay", "39")
        paid = min(amount, debt)
        self._move("repay", asset, authority.address, -paid)
        self._move("repay", debt_token, on_behalf_of, -paid)

    def withdraw(self, authority: ActingAs, asset: str, amount: int, to: str) -> None:
        self._check_action("withdraw", authority)
        c = self._reserve("withdraw", asset)
        balance = self.balance_of(c.a_token, authority.address)
        to_withdraw = balance if amount == MAX_UINT256 else amount
        if to_withdraw > balance:
            raise ProtocolCallError("withdraw", "32")
        self._move("withdraw", c.a_token, authority.address, -to_withdraw)
        self._move("withdraw", asset, to, to_withdraw)

    def send_transaction(self, authority: ActingAs, to: str, data: str) -> None:
        self._check_action("send_transaction", authority)
        self.sent_transactions.append((authority.address, to, data))
        effect = self.payload_effects.get(to)
        if effect is not None:
            effect(self)


@pytest.fixture(autouse=True)
def setup_fork_mode_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure FORK_MODE is enabled for all tests."""
    monkeypatch.setenv("FORK_MODE", "true")
    monkeypatch.setenv("REQUIRE_FORK_BLOCK", "true")


@pytest.fixture
def reset_fork_guard() -> Generator[None, None, None]:
    """Reset ForkGuard singleton between tests."""
    ForkGuard.reset()
    yield
    ForkGuard.reset()


@pytest.fixture
def fork_guard_instance(reset_fork_guard: None) -> ForkGuard:
    """Provide an initialized ForkGuard instance."""
    return ForkGuard.initialize()


@pytest.fixture
def temp_log_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for log files."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return log_dir


@pytest.fixture
def reserve_factory() -> Callable[..., ReserveConfig]:
    """Factory for ReserveConfig with distinct addresses."""
    return make_reserve


@pytest.fixture
def base_reserves() -> list[ReserveConfig]:
    """Three reserves listed before the change (DAI first, used as collateral)."""
    return [
        make_reserve("DAI", 0x1000, underlying=DAI),
        make_reserve("USDC", 0x2000, decimals=6),
        make_reserve("WETH", 0x3000, reserve_factor=1500),
    ]


@pytest.fixture
def lusd_config() -> ReserveConfig:
    return LUSD_CONFIG


@pytest.fixture
def lusd_strategy_spec() -> InterestStrategySpec:
    return LUSD_STRATEGY_SPEC


@pytest.fixture
def fake_client(base_reserves: list[ReserveConfig]) -> FakeProtocolClient:
    """Protocol with base reserves and funded whales, LUSD not yet listed."""
    client = FakeProtocolClient()
    for config in base_reserves:
        client.add_reserve(config)
    client.fund(LUSD, LUSD_WHALE, 10_000 * 10**18)
    client.fund(DAI, DAI_WHALE, 10_000 * 10**18)
    return client


def list_lusd(client: FakeProtocolClient) -> None:
    """The listing payload: append LUSD with its strategy, impls and feed."""
    client.add_reserve(LUSD_CONFIG, LUSD_STRATEGY_SPEC, source=LUSD_FEED)


@pytest.fixture
def listed_client(fake_client: FakeProtocolClient) -> FakeProtocolClient:
    """Protocol after the LUSD listing has been applied."""
    list_lusd(fake_client)
    return fake_client


@pytest.fixture
def lusd_payload_client(fake_client: FakeProtocolClient) -> FakeProtocolClient:
    """Protocol where executing PAYLOAD lists LUSD."""
    fake_client.payload_effects[PAYLOAD] = list_lusd
    return fake_client


@pytest.fixture
def lusd_expectations() -> ListingExpectations:
    """Expected outcome of the LUSD listing (token proxies unconstrained)."""
    return ListingExpectations(
        name="lusd_listing",
        expected_new_listings=1,
        reserve=LUSD_CONFIG.model_copy(
            update={
                "a_token": ZERO_ADDRESS,
                "stable_debt_token": ZERO_ADDRESS,
                "variable_debt_token": ZERO_ADDRESS,
            }
        ),
        strategy_address=LUSD_STRATEGY,
        strategy=LUSD_STRATEGY_SPEC,
        token_impls=ReserveTokenImpls(
            a_token=A_TOKEN_IMPL,
            stable_debt_token=STABLE_DEBT_IMPL,
            variable_debt_token=VARIABLE_DEBT_IMPL,
        ),
        oracle_source=LUSD_FEED,
        asset_whale=Actor(label="lusd_whale", address=LUSD_WHALE, asset_symbol="LUSD"),
        collateral_whale=Actor(label="dai_whale", address=DAI_WHALE, asset_symbol="DAI"),
    )
