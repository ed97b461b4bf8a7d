"""Price oracle source validation."""

from __future__ import annotations

from listing_validation.core.errors import (
    AssetQueryError,
    OracleSourceMismatch,
    ProtocolCallError,
)
from listing_validation.core.logging import ScenarioLogger
from listing_validation.data.models import normalize_address
from listing_validation.data.protocol import ProtocolClient


class OracleSourceValidator:
    """Check that the protocol's oracle resolves an asset to the expected feed."""

    def __init__(
        self,
        client: ProtocolClient,
        logger: ScenarioLogger | None = None,
    ) -> None:
        self.client = client
        self.logger = logger

    def validate(self, asset: str, expected_source: str) -> None:
        """Raises OracleSourceMismatch if the registered source differs."""
        expected = normalize_address(expected_source)
        try:
            actual = self.client.get_asset_source(asset)
        except ProtocolCallError as e:
            raise AssetQueryError(asset, e.method, e.reason) from e

        passed = actual == expected
        if self.logger:
            self.logger.log_check(
                "oracle_source",
                passed,
                {"asset": asset, "expected": expected, "actual": actual},
            )
        if not passed:
            raise OracleSourceMismatch(asset, expected, actual)
