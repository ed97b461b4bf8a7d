"""Interest rate strategy validation.

Checks, in order:
1. The strategy attached to the asset is the expected contract
2. Each of the seven curve coefficients equals the expected value
3. The contract's reported max variable rate equals base + slope1 + slope2

All comparisons are exact integer equality in ray units.
"""

from __future__ import annotations

from listing_validation.core.errors import (
    AssetQueryError,
    CurveParameterMismatch,
    DerivedRateMismatch,
    ProtocolCallError,
    StrategyAddressMismatch,
)
from listing_validation.core.logging import ScenarioLogger
from listing_validation.data.models import InterestStrategySpec, normalize_address
from listing_validation.data.protocol import ProtocolClient


class RateCurveValidator:
    """Validate an asset's interest rate strategy against an expected curve."""

    def __init__(
        self,
        client: ProtocolClient,
        logger: ScenarioLogger | None = None,
    ) -> None:
        self.client = client
        self.logger = logger

    def validate(
        self,
        asset: str,
        expected_strategy_address: str,
        expected: InterestStrategySpec,
    ) -> None:
        """Validate the strategy attached to ``asset``.

        Raises:
            StrategyAddressMismatch: If a different strategy is attached.
            CurveParameterMismatch: On the first differing coefficient.
            DerivedRateMismatch: If the reported max rate is inconsistent.
            AssetQueryError: If a strategy read fails.
        """
        expected_address = normalize_address(expected_strategy_address)
        try:
            strategy = self.client.get_interest_rate_strategy_address(asset)
            if strategy != expected_address:
                self._fail("strategy_address", expected_address, strategy)
                raise StrategyAddressMismatch(asset, expected_address, strategy)

            actual = self.client.get_interest_strategy_parameters(strategy)
            reported_max = self.client.get_max_variable_borrow_rate(strategy)
        except ProtocolCallError as e:
            raise AssetQueryError(asset, e.method, e.reason) from e

        for field in InterestStrategySpec.model_fields:
            expected_value = getattr(expected, field)
            actual_value = getattr(actual, field)
            if expected_value != actual_value:
                self._fail(field, expected_value, actual_value)
                raise CurveParameterMismatch(field, expected_value, actual_value)

        if reported_max != expected.max_variable_borrow_rate:
            self._fail(
                "max_variable_borrow_rate", expected.max_variable_borrow_rate, reported_max
            )
            raise DerivedRateMismatch(expected.max_variable_borrow_rate, reported_max)

        if self.logger:
            self.logger.log_check(
                "rate_curve",
                True,
                {
                    "asset": asset,
                    "strategy": strategy,
                    "max_variable_borrow_rate": reported_max,
                },
            )

    def _fail(self, field: str, expected: object, actual: object) -> None:
        if self.logger:
            self.logger.log_check(
                "rate_curve",
                False,
                {"field": field, "expected": expected, "actual": actual},
            )
