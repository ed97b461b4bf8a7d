"""Expected outcome of a listing, loaded from JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from listing_validation.data.constants import MAX_UINT256, VL_STABLE_BORROWING_NOT_ENABLED
from listing_validation.data.models import (
    Actor,
    InterestStrategySpec,
    ReserveConfig,
    ReserveTokenImpls,
    normalize_address,
)
from listing_validation.validation.token_impl import TOKEN_KINDS


class ActionAmounts(BaseModel):
    """Amounts for the post-listing action script, in whole token units."""

    deposit: int = Field(default=666, gt=0, description="New asset supplied by its whale")
    collateral_deposit: int = Field(default=1000, gt=0)
    borrow: int = Field(default=222, gt=0, description="Variable borrow of the new asset")
    stable_borrow: int = Field(default=10, gt=0, description="Stable borrow that must revert")
    repay: int = Field(default=100, gt=0)
    withdraw: int | Literal["max"] = Field(
        default=333, description="Whole units, or 'max' for the entire balance"
    )

    def withdraw_raw(self, decimals: int) -> int:
        if self.withdraw == "max":
            return MAX_UINT256
        return self.withdraw * 10**decimals


class ListingExpectations(BaseModel):
    """Everything a listing is expected to produce.

    ``reserve`` address fields set to the zero address are not compared.
    """

    name: str
    expected_new_listings: int = Field(default=1, ge=0)
    reserve: ReserveConfig
    strategy_address: str
    strategy: InterestStrategySpec
    token_impls: ReserveTokenImpls
    checked_token_impls: list[str] = Field(default_factory=lambda: ["a_token"])
    oracle_source: str
    asset_whale: Actor
    collateral_whale: Actor
    stable_borrow_revert_reason: str = VL_STABLE_BORROWING_NOT_ENABLED
    amounts: ActionAmounts = Field(default_factory=ActionAmounts)

    @field_validator("strategy_address", "oracle_source", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_address(v)

    @field_validator("checked_token_impls")
    @classmethod
    def known_token_kinds(cls, v: list[str]) -> list[str]:
        unknown = [t for t in v if t not in TOKEN_KINDS]
        if unknown:
            raise ValueError(f"Unknown token kinds {unknown}; expected subset of {TOKEN_KINDS}")
        return v

    @classmethod
    def load(cls, file_path: str | Path) -> ListingExpectations:
        """Load expectations from a JSON file."""
        with open(Path(file_path)) as f:
            return cls.model_validate(json.load(f))
