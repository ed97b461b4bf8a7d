"""Token proxy implementation validation.

Reserve tokens are deployed behind admin-only upgradeable proxies, so the
implementation address can only be read while acting as the proxy admin
(the pool configurator). The admin identity is held just for the read.
"""

from __future__ import annotations

from typing import Sequence

from listing_validation.core.errors import (
    AssetQueryError,
    ImplementationMismatch,
    ProtocolCallError,
)
from listing_validation.core.impersonation import ImpersonationScope
from listing_validation.core.logging import ScenarioLogger
from listing_validation.data.models import ReserveConfig, ReserveTokenImpls
from listing_validation.data.protocol import ProtocolClient

TOKEN_KINDS = ("a_token", "stable_debt_token", "variable_debt_token")


class TokenImplValidator:
    """Validate the implementations behind a reserve's token proxies.

    By default only the receipt token is checked; pass ``tokens`` to cover the
    debt tokens as well.
    """

    def __init__(
        self,
        client: ProtocolClient,
        logger: ScenarioLogger | None = None,
        tokens: Sequence[str] = ("a_token",),
    ) -> None:
        unknown = [t for t in tokens if t not in TOKEN_KINDS]
        if unknown:
            raise ValueError(f"Unknown token kinds {unknown}; expected subset of {TOKEN_KINDS}")
        self.client = client
        self.logger = logger
        self.tokens = tuple(tokens)

    def validate(self, config: ReserveConfig, expected: ReserveTokenImpls) -> None:
        """Compare each selected proxy's implementation with ``expected``.

        Raises:
            ImplementationMismatch: On the first proxy pointing elsewhere.
            AssetQueryError: If the admin or implementation read fails.
        """
        try:
            admin = self.client.get_proxy_admin()
        except ProtocolCallError as e:
            raise AssetQueryError(config.underlying, e.method, e.reason) from e

        for kind in self.tokens:
            proxy = getattr(config, kind)
            expected_impl = getattr(expected, kind)

            try:
                with ImpersonationScope(self.client, admin) as authority:
                    actual_impl = self.client.get_implementation(authority, proxy)
            except ProtocolCallError as e:
                raise AssetQueryError(proxy, e.method, e.reason) from e

            passed = actual_impl == expected_impl
            if self.logger:
                self.logger.log_check(
                    f"token_impl.{kind}",
                    passed,
                    {
                        "symbol": config.symbol,
                        "proxy": proxy,
                        "expected": expected_impl,
                        "actual": actual_impl,
                    },
                )
            if not passed:
                raise ImplementationMismatch(kind, proxy, expected_impl, actual_impl)
