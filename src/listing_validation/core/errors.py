"""Error taxonomy for listing validation.

Every violated invariant raises a dedicated error carrying the literal
expected/actual values involved. All validation errors are fatal to the
enclosing scenario: the first one raised is the single reported reason.
"""

from __future__ import annotations

from typing import Any


class ListingValidationError(Exception):
    """Base class for all validation failures."""

    pass


class AssetQueryError(ListingValidationError):
    """An external per-asset read reverted or returned malformed data."""

    def __init__(self, asset: str, query: str, reason: str) -> None:
        self.asset = asset
        self.query = query
        self.reason = reason
        super().__init__(f"Query {query} failed for asset {asset}: {reason}")


class CountMismatch(ListingValidationError):
    """Snapshot sizes do not differ by the expected number of listings."""

    def __init__(self, expected_new: int, count_before: int, count_after: int) -> None:
        self.expected_new = expected_new
        self.count_before = count_before
        self.count_after = count_after
        super().__init__(
            f"Expected {count_before} + {expected_new} = "
            f"{count_before + expected_new} reserves after the change, "
            f"got {count_after}"
        )


class UnexpectedConfigChange(ListingValidationError):
    """A pre-existing reserve changed during the governance action."""

    def __init__(self, index: int, field: str, before: Any, after: Any) -> None:
        self.index = index
        self.field = field
        self.before = before
        self.after = after
        super().__init__(
            f"Reserve at index {index} changed field '{field}': "
            f"before={before!r}, after={after!r}"
        )


class ReserveNotFound(ListingValidationError):
    """No reserve with the requested symbol exists in the snapshot."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"Reserve '{symbol}' not found in snapshot")


class FieldMismatch(ListingValidationError):
    """A reserve field differs from its expected value."""

    def __init__(self, field: str, expected: Any, actual: Any) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Field '{field}' mismatch: expected={expected!r}, actual={actual!r}"
        )


class StrategyAddressMismatch(ListingValidationError):
    """The asset's interest rate strategy is not the expected contract."""

    def __init__(self, asset: str, expected: str, actual: str) -> None:
        self.asset = asset
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Interest rate strategy of {asset}: expected={expected}, actual={actual}"
        )


class CurveParameterMismatch(ListingValidationError):
    """One of the strategy's curve coefficients differs from the expected value."""

    def __init__(self, field: str, expected: int, actual: int) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Curve parameter '{field}' mismatch: expected={expected}, actual={actual}"
        )


class DerivedRateMismatch(ListingValidationError):
    """Reported max variable rate differs from base + slope1 + slope2."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Max variable borrow rate mismatch: expected={expected}, actual={actual}"
        )


class ImplementationMismatch(ListingValidationError):
    """A token proxy points to an unexpected implementation."""

    def __init__(self, token: str, proxy: str, expected: str, actual: str) -> None:
        self.token = token
        self.proxy = proxy
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Implementation of {token} proxy {proxy}: "
            f"expected={expected}, actual={actual}"
        )


class OracleSourceMismatch(ListingValidationError):
    """The price oracle resolves the asset to an unexpected feed."""

    def __init__(self, asset: str, expected: str, actual: str) -> None:
        self.asset = asset
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Oracle source of {asset}: expected={expected}, actual={actual}"
        )


class ActionFailed(ListingValidationError):
    """A pool action reverted unexpectedly or left an unexpected balance."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation.upper()}() failed: {reason}")


class UnexpectedSuccess(ListingValidationError):
    """An action that must revert went through."""

    def __init__(self, operation: str, expected_reason: str) -> None:
        self.operation = operation
        self.expected_reason = expected_reason
        super().__init__(
            f"{operation.upper()}() succeeded but was expected to revert "
            f"with reason '{expected_reason}'"
        )


class ProtocolCallError(Exception):
    """Raw failure of a call against the external protocol.

    ``reason`` holds the bare revert string (e.g. ``"12"``) when the node
    reported one.
    """

    def __init__(self, method: str, reason: str) -> None:
        self.method = method
        self.reason = reason
        super().__init__(f"{method} reverted: {reason}")
