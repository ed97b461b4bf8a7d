"""Data models for listing validation.

Immutable pydantic records for:
- Reserve identity and configuration snapshots
- Interest rate strategy curves
- Expected token implementations
- Scenario actors

Snapshots are plain tuples of ReserveConfig in registry order.
"""

from __future__ import annotations

import re
from enum import IntEnum
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from listing_validation.data.constants import ZERO_ADDRESS

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def normalize_address(value: str) -> str:
    """Normalize an address to lowercase 0x-prefixed hex.

    Raises:
        ValueError: If the value is not a 20-byte hex address.
    """
    if not isinstance(value, str):
        raise ValueError(f"Address must be a string, got {type(value).__name__}")
    v = value.strip()
    if not v.startswith("0x"):
        v = "0x" + v
    v = v.lower()
    if not _ADDRESS_RE.match(v):
        raise ValueError(f"Invalid address: {value!r}")
    return v


class RateMode(IntEnum):
    """Borrow interest rate mode (on-chain encoding)."""

    STABLE = 1
    VARIABLE = 2


class TokenDescriptor(BaseModel):
    """Symbol and address of a listed asset, as reported by the registry."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    address: str

    @field_validator("address", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_address(v)


class ReserveConfigurationData(BaseModel):
    """Raw scalar/boolean configuration of one reserve."""

    model_config = ConfigDict(frozen=True)

    decimals: int = Field(ge=0)
    ltv: int = Field(ge=0)
    liquidation_threshold: int = Field(ge=0)
    liquidation_bonus: int = Field(ge=0)
    reserve_factor: int = Field(ge=0)
    usage_as_collateral_enabled: bool
    borrowing_enabled: bool
    stable_borrow_rate_enabled: bool
    is_active: bool
    is_frozen: bool


class ReserveTokenAddresses(BaseModel):
    """Receipt and debt token addresses of one reserve."""

    model_config = ConfigDict(frozen=True)

    a_token: str
    stable_debt_token: str
    variable_debt_token: str

    @field_validator("a_token", "stable_debt_token", "variable_debt_token", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_address(v)


class ReserveConfig(BaseModel):
    """Normalized snapshot of one listed asset.

    Field declaration order is the comparison order used by the validators,
    so the first reported mismatch is deterministic.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    underlying: str = Field(description="Underlying asset address")
    a_token: str = Field(description="Receipt (aToken) address")
    stable_debt_token: str
    variable_debt_token: str
    decimals: int = Field(ge=0)
    ltv: int = Field(ge=0, description="Loan to value in basis points")
    liquidation_threshold: int = Field(ge=0, description="Basis points")
    liquidation_bonus: int = Field(ge=0, description="Basis points (10500 = 5% bonus)")
    reserve_factor: int = Field(ge=0, description="Basis points")
    usage_as_collateral_enabled: bool
    borrowing_enabled: bool
    interest_rate_strategy: str
    stable_borrow_rate_enabled: bool
    is_active: bool
    is_frozen: bool

    @field_validator(
        "underlying",
        "a_token",
        "stable_debt_token",
        "variable_debt_token",
        "interest_rate_strategy",
        mode="before",
    )
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_address(v)

    @classmethod
    def address_fields(cls) -> tuple[str, ...]:
        return (
            "underlying",
            "a_token",
            "stable_debt_token",
            "variable_debt_token",
            "interest_rate_strategy",
        )

    @classmethod
    def compared_fields(cls) -> tuple[str, ...]:
        """All fields in comparison order."""
        return tuple(cls.model_fields.keys())

    def whole_units(self, amount: int) -> int:
        """Scale a whole-unit amount by the asset's decimals."""
        return amount * 10**self.decimals


def is_unconstrained(value: object) -> bool:
    """Whether an expected address means 'not known in advance'."""
    return value == ZERO_ADDRESS


class InterestStrategySpec(BaseModel):
    """Kinked interest rate curve, all values in ray (1e27)."""

    model_config = ConfigDict(frozen=True)

    excess_utilization: int = Field(ge=0)
    optimal_utilization: int = Field(ge=0)
    base_variable_borrow_rate: int = Field(ge=0)
    stable_rate_slope1: int = Field(ge=0)
    stable_rate_slope2: int = Field(ge=0)
    variable_rate_slope1: int = Field(ge=0)
    variable_rate_slope2: int = Field(ge=0)

    @property
    def max_variable_borrow_rate(self) -> int:
        """base + slope1 + slope2, as the strategy contract reports it."""
        return (
            self.base_variable_borrow_rate
            + self.variable_rate_slope1
            + self.variable_rate_slope2
        )


class ReserveTokenImpls(BaseModel):
    """Expected implementation addresses behind a reserve's token proxies."""

    model_config = ConfigDict(frozen=True)

    a_token: str
    stable_debt_token: str
    variable_debt_token: str

    @field_validator("a_token", "stable_debt_token", "variable_debt_token", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_address(v)


class Actor(BaseModel):
    """A pre-funded external holder used as an action participant."""

    model_config = ConfigDict(frozen=True)

    label: str
    address: str
    asset_symbol: str = Field(description="Asset this actor is presumed to hold")

    @field_validator("address", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_address(v)


Snapshot = tuple[ReserveConfig, ...]


def find_reserve(snapshot: Sequence[ReserveConfig], symbol: str) -> ReserveConfig | None:
    """First reserve in the snapshot with the given symbol, or None."""
    for config in snapshot:
        if config.symbol == symbol:
            return config
    return None

