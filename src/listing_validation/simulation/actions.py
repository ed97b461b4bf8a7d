"""Pool action simulation with balance-delta verification.

Each action runs inside its own impersonation scope for the acting address and
checks the relevant receipt/debt token balance before and after:
- deposit / borrow: after == before + amount, within 1 wei (mint rounding)
- repay / withdraw: after == max(before - amount, 0), exactly

The single expected-failure path is a borrow that must revert with a known
reason code (stable borrowing disabled on the reserve).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from listing_validation.core.errors import ActionFailed, ProtocolCallError, UnexpectedSuccess
from listing_validation.core.impersonation import ActingAs, ImpersonationScope
from listing_validation.core.logging import ScenarioLogger
from listing_validation.data.constants import VL_STABLE_BORROWING_NOT_ENABLED
from listing_validation.data.models import RateMode, normalize_address
from listing_validation.data.protocol import ProtocolClient

# Maximum tolerated difference, in the token's smallest unit
BALANCE_TOLERANCE = 1


def almost_equal(a: int, b: int) -> bool:
    """True when a and b differ by at most one unit."""
    return abs(a - b) <= BALANCE_TOLERANCE


def floor_subtract(before: int, amount: int) -> int:
    """Balance left after removing ``amount``, floored at zero."""
    return before - amount if before > amount else 0


class ActionSimulator:
    """Drive pool actions as impersonated actors and verify balance deltas.

    Usage:
        simulator = ActionSimulator(client, logger)
        simulator.deposit(whale, whale, lusd, 666 * 10**18, lusd_config.a_token)
        simulator.expect_borrow_revert(borrower, borrower, lusd, amount, RateMode.STABLE)
    """

    def __init__(
        self,
        client: ProtocolClient,
        logger: ScenarioLogger | None = None,
    ) -> None:
        self.client = client
        self.logger = logger

    @contextmanager
    def _acting_as(self, operation: str, address: str) -> Iterator[ActingAs]:
        # Only scope entry and exit can leak ProtocolCallError past the action bodies
        try:
            with ImpersonationScope(self.client, address) as authority:
                yield authority
        except ProtocolCallError as e:
            raise ActionFailed(operation, f"impersonation of {address} failed: {e.reason}") from e

    def _balance(self, operation: str, token: str, holder: str) -> int:
        try:
            return self.client.balance_of(token, holder)
        except ProtocolCallError as e:
            raise ActionFailed(operation, f"balanceOf({holder}) on {token}: {e.reason}") from e

    def _approve(self, operation: str, authority: ActingAs, asset: str, amount: int) -> None:
        try:
            self.client.approve(authority, asset, self.client.pool_address, amount)
        except ProtocolCallError as e:
            raise ActionFailed(operation, f"approve reverted: {e.reason}") from e

    def _record(
        self, operation: str, actor: str, asset: str, amount: int, before: int, after: int
    ) -> None:
        if self.logger:
            self.logger.log_event(
                operation,
                {
                    "actor": actor,
                    "asset": asset,
                    "amount": amount,
                    "balance_before": before,
                    "balance_after": after,
                },
            )

    def deposit(
        self,
        depositor: str,
        beneficiary: str,
        asset: str,
        amount: int,
        receipt_token: str,
        approve_first: bool = True,
    ) -> int:
        """Supply ``amount`` of ``asset`` on behalf of ``beneficiary``.

        Returns:
            The beneficiary's receipt token balance after the deposit.

        Raises:
            ActionFailed: On revert or if the balance did not grow by ~amount.
        """
        beneficiary = normalize_address(beneficiary)
        with self._acting_as("deposit", depositor) as authority:
            before = self._balance("deposit", receipt_token, beneficiary)
            if approve_first:
                self._approve("deposit", authority, asset, amount)
            try:
                self.client.deposit(authority, asset, amount, beneficiary)
            except ProtocolCallError as e:
                raise ActionFailed("deposit", e.reason) from e
            after = self._balance("deposit", receipt_token, beneficiary)

        self._record("deposit", depositor, asset, amount, before, after)
        if not almost_equal(after, before + amount):
            raise ActionFailed(
                "deposit",
                f"receipt balance of {beneficiary}: expected {before + amount} "
                f"(±{BALANCE_TOLERANCE}), got {after}",
            )
        return after

    def borrow(
        self,
        borrower: str,
        beneficiary: str,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        debt_token: str,
    ) -> int:
        """Borrow ``amount`` of ``asset`` with debt assigned to ``beneficiary``.

        Returns:
            The beneficiary's debt token balance after the borrow.

        Raises:
            ActionFailed: On revert or if the debt did not grow by ~amount.
        """
        beneficiary = normalize_address(beneficiary)
        with self._acting_as("borrow", borrower) as authority:
            before = self._balance("borrow", debt_token, beneficiary)
            try:
                self.client.borrow(authority, asset, amount, rate_mode, beneficiary)
            except ProtocolCallError as e:
                raise ActionFailed("borrow", e.reason) from e
            after = self._balance("borrow", debt_token, beneficiary)

        self._record("borrow", borrower, asset, amount, before, after)
        if not almost_equal(after, before + amount):
            raise ActionFailed(
                "borrow",
                f"{rate_mode.name.lower()} debt of {beneficiary}: expected "
                f"{before + amount} (±{BALANCE_TOLERANCE}), got {after}",
            )
        return after

    def expect_borrow_revert(
        self,
        borrower: str,
        beneficiary: str,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        expected_reason: str = VL_STABLE_BORROWING_NOT_ENABLED,
    ) -> str:
        """Attempt a borrow that must revert with ``expected_reason``.

        Returns:
            The revert reason observed.

        Raises:
            UnexpectedSuccess: If the borrow went through.
            ActionFailed: If it reverted with a different reason.
        """
        beneficiary = normalize_address(beneficiary)
        with self._acting_as("borrow", borrower) as authority:
            try:
                self.client.borrow(authority, asset, amount, rate_mode, beneficiary)
            except ProtocolCallError as e:
                passed = e.reason == expected_reason
                if self.logger:
                    self.logger.log_check(
                        "expected_borrow_revert",
                        passed,
                        {
                            "rate_mode": rate_mode.name,
                            "expected_reason": expected_reason,
                            "actual_reason": e.reason,
                        },
                    )
                if not passed:
                    raise ActionFailed(
                        "borrow",
                        f"expected revert reason '{expected_reason}', got '{e.reason}'",
                    ) from e
                return e.reason

            if self.logger:
                self.logger.log_check(
                    "expected_borrow_revert",
                    False,
                    {"rate_mode": rate_mode.name, "expected_reason": expected_reason},
                )
            raise UnexpectedSuccess("borrow", expected_reason)

    def repay(
        self,
        payer: str,
        debtor: str,
        asset: str,
        amount: int,
        rate_mode: RateMode,
        debt_token: str,
        approve_first: bool = True,
    ) -> int:
        """Repay ``amount`` of ``debtor``'s debt.

        Returns:
            The debtor's debt token balance after the repayment.

        Raises:
            ActionFailed: On revert or if after != max(before - amount, 0).
        """
        debtor = normalize_address(debtor)
        with self._acting_as("repay", payer) as authority:
            before = self._balance("repay", debt_token, debtor)
            if approve_first:
                self._approve("repay", authority, asset, amount)
            try:
                self.client.repay(authority, asset, amount, rate_mode, debtor)
            except ProtocolCallError as e:
                raise ActionFailed("repay", e.reason) from e
            after = self._balance("repay", debt_token, debtor)

        self._record("repay", payer, asset, amount, before, after)
        expected = floor_subtract(before, amount)
        if after != expected:
            raise ActionFailed(
                "repay",
                f"{rate_mode.name.lower()} debt of {debtor}: expected {expected}, got {after}",
            )
        return after

    def withdraw(
        self,
        withdrawer: str,
        recipient: str,
        asset: str,
        amount: int,
        receipt_token: str,
    ) -> int:
        """Withdraw ``amount`` (MAX_UINT256 for the whole balance) to ``recipient``.

        Returns:
            The withdrawer's receipt token balance after the withdrawal.

        Raises:
            ActionFailed: On revert or if after != max(before - amount, 0).
        """
        withdrawer = normalize_address(withdrawer)
        with self._acting_as("withdraw", withdrawer) as authority:
            before = self._balance("withdraw", receipt_token, withdrawer)
            try:
                self.client.withdraw(authority, asset, amount, normalize_address(recipient))
            except ProtocolCallError as e:
                raise ActionFailed("withdraw", e.reason) from e
            after = self._balance("withdraw", receipt_token, withdrawer)

        self._record("withdraw", withdrawer, asset, amount, before, after)
        expected = floor_subtract(before, amount)
        if after != expected:
            raise ActionFailed(
                "withdraw",
                f"receipt balance of {withdrawer}: expected {expected}, got {after}",
            )
        return after
