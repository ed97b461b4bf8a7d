"""Tests for data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from listing_validation.data.constants import RAY, ZERO_ADDRESS
from listing_validation.data.models import (
    Actor,
    InterestStrategySpec,
    RateMode,
    ReserveConfig,
    TokenDescriptor,
    find_reserve,
    is_unconstrained,
    normalize_address,
)

LUSD_CHECKSUM = "0x5f98805A4E8be255a32880FDeC7F6728C6568bA0"


class TestNormalizeAddress:
    """Tests for address normalization."""

    def test_lowercases_checksum_address(self) -> None:
        """Checksummed and lowercase forms should normalize identically."""
        assert normalize_address(LUSD_CHECKSUM) == LUSD_CHECKSUM.lower()

    def test_adds_prefix(self) -> None:
        """Bare hex should gain a 0x prefix."""
        assert normalize_address(LUSD_CHECKSUM[2:]) == LUSD_CHECKSUM.lower()

    @pytest.mark.parametrize("value", ["0x1234", "0x" + "zz" * 20, "", 42])
    def test_rejects_invalid(self, value: object) -> None:
        """Should reject anything that is not a 20-byte hex address."""
        with pytest.raises(ValueError):
            normalize_address(value)  # type: ignore[arg-type]


class TestReserveConfig:
    """Tests for ReserveConfig model."""

    def test_addresses_normalized(self, reserve_factory) -> None:
        """Address fields should be stored lowercase."""
        config = reserve_factory("LUSD", 0x10, underlying=LUSD_CHECKSUM)
        assert config.underlying == LUSD_CHECKSUM.lower()

    def test_checksum_and_lowercase_compare_equal(self, reserve_factory) -> None:
        """Configs differing only in address case should be equal."""
        a = reserve_factory("LUSD", 0x10, underlying=LUSD_CHECKSUM)
        b = reserve_factory("LUSD", 0x10, underlying=LUSD_CHECKSUM.lower())
        assert a == b

    def test_frozen(self, reserve_factory) -> None:
        """Snapshots should be immutable."""
        config = reserve_factory("DAI", 0x10)
        with pytest.raises(ValidationError):
            config.ltv = 0  # type: ignore[misc]

    def test_negative_parameters_rejected(self, reserve_factory) -> None:
        """Risk parameters are unsigned."""
        with pytest.raises(ValidationError):
            reserve_factory("DAI", 0x10, ltv=-1)

    def test_compared_fields_order(self) -> None:
        """Comparison order should start with identity and cover every field."""
        fields = ReserveConfig.compared_fields()
        assert fields[0] == "symbol"
        assert fields[1] == "underlying"
        assert len(fields) == 16
        assert set(ReserveConfig.address_fields()) <= set(fields)

    def test_whole_units(self, reserve_factory) -> None:
        """Whole units should scale by the asset decimals."""
        assert reserve_factory("LUSD", 0x10).whole_units(666) == 666 * 10**18
        assert reserve_factory("USDC", 0x20, decimals=6).whole_units(1) == 1_000_000


class TestInterestStrategySpec:
    """Tests for InterestStrategySpec."""

    def test_max_variable_borrow_rate(self) -> None:
        """Max rate is base + slope1 + slope2."""
        spec = InterestStrategySpec(
            excess_utilization=RAY * 20 // 100,
            optimal_utilization=RAY * 80 // 100,
            base_variable_borrow_rate=0,
            stable_rate_slope1=RAY * 2 // 100,
            stable_rate_slope2=RAY * 60 // 100,
            variable_rate_slope1=RAY * 4 // 100,
            variable_rate_slope2=RAY * 87 // 100,
        )
        assert spec.max_variable_borrow_rate == RAY * 91 // 100

    def test_max_rate_includes_base(self) -> None:
        """A non-zero base rate should be included."""
        spec = InterestStrategySpec(
            excess_utilization=0,
            optimal_utilization=0,
            base_variable_borrow_rate=5,
            stable_rate_slope1=0,
            stable_rate_slope2=0,
            variable_rate_slope1=7,
            variable_rate_slope2=11,
        )
        assert spec.max_variable_borrow_rate == 23


class TestSmallModels:
    """Tests for descriptors, actors and helpers."""

    def test_token_descriptor_normalizes(self) -> None:
        token = TokenDescriptor(symbol="LUSD", address=LUSD_CHECKSUM)
        assert token.address == LUSD_CHECKSUM.lower()

    def test_actor_normalizes(self) -> None:
        actor = Actor(label="whale", address=LUSD_CHECKSUM, asset_symbol="LUSD")
        assert actor.address == LUSD_CHECKSUM.lower()

    def test_rate_mode_encoding(self) -> None:
        """Rate modes should use the on-chain encoding."""
        assert int(RateMode.STABLE) == 1
        assert int(RateMode.VARIABLE) == 2

    def test_is_unconstrained(self) -> None:
        assert is_unconstrained(ZERO_ADDRESS) is True
        assert is_unconstrained(LUSD_CHECKSUM.lower()) is False


class TestSnapshotHelpers:
    """Tests for snapshot lookup helpers."""

    def test_find_reserve(self, base_reserves) -> None:
        """Should find by symbol, or return None."""
        snapshot = tuple(base_reserves)
        assert find_reserve(snapshot, "USDC") is snapshot[1]
        assert find_reserve(snapshot, "LUSD") is None

    def test_find_reserve_first_wins(self, reserve_factory) -> None:
        """Duplicate symbols resolve to the first entry."""
        first = reserve_factory("DUP", 0x100)
        second = reserve_factory("DUP", 0x200)
        assert find_reserve((first, second), "DUP") is first
