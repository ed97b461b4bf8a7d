"""Listing scenario orchestration.

Runs the fixed validation script for one governance listing:
1. Snapshot before, apply the change, snapshot after
2. Listing count, reserve spec, no drift on other reserves
3. Token implementations, oracle source, interest rate curve
4. Deposit / borrow / rejected stable borrow / repay / withdraw

Execution is strictly sequential and stops at the first violated invariant,
which is recorded on the report and re-raised.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from listing_validation.core.errors import (
    ActionFailed,
    ListingValidationError,
    ProtocolCallError,
    ReserveNotFound,
)
from listing_validation.core.logging import ScenarioLogger
from listing_validation.data.models import RateMode, ReserveConfig, Snapshot, find_reserve
from listing_validation.data.protocol import ProtocolClient
from listing_validation.data.reader import ReserveConfigReader
from listing_validation.scenario.expectations import ListingExpectations
from listing_validation.scenario.governance import GovernanceChange
from listing_validation.simulation.actions import ActionSimulator
from listing_validation.validation.config_diff import ConfigDiffValidator
from listing_validation.validation.oracle_source import OracleSourceValidator
from listing_validation.validation.rate_curve import RateCurveValidator
from listing_validation.validation.reserve_spec import ReserveSpecValidator
from listing_validation.validation.token_impl import TokenImplValidator


class ScenarioReport(BaseModel):
    """Outcome of a scenario run."""

    name: str
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    count_before: int | None = None
    count_after: int | None = None
    governance_change: str = ""
    passed_steps: list[str] = Field(default_factory=list)
    failure: str | None = None
    failure_type: str | None = None

    @property
    def passed(self) -> bool:
        return self.completed_at is not None and self.failure is None


class ListingScenario:
    """Validate a single asset listing end to end.

    Usage:
        scenario = ListingScenario(client, expectations, change, logger)
        report = scenario.run()
    """

    def __init__(
        self,
        client: ProtocolClient,
        expectations: ListingExpectations,
        change: GovernanceChange,
        logger: ScenarioLogger | None = None,
    ) -> None:
        self.client = client
        self.expectations = expectations
        self.change = change
        self.logger = logger

        self.reader = ReserveConfigReader(client, logger)
        self.diff_validator = ConfigDiffValidator(logger)
        self.spec_validator = ReserveSpecValidator(logger)
        self.rate_validator = RateCurveValidator(client, logger)
        self.impl_validator = TokenImplValidator(
            client, logger, tokens=expectations.checked_token_impls
        )
        self.oracle_validator = OracleSourceValidator(client, logger)
        self.simulator = ActionSimulator(client, logger)

        self.report = ScenarioReport(
            name=expectations.name, governance_change=change.description
        )
        self.before: Snapshot = ()
        self.after: Snapshot = ()

    def run(self) -> ScenarioReport:
        """Run every step in order.

        Returns:
            The completed report.

        Raises:
            ListingValidationError: The first violated invariant.
        """
        try:
            self._run_steps()
        except ListingValidationError as e:
            self.report.failure = str(e)
            self.report.failure_type = type(e).__name__
            if self.logger:
                self.logger.error(
                    f"Scenario failed: {e}",
                    {"failure_type": type(e).__name__, "passed_steps": self.report.passed_steps},
                )
            raise

        self.report.completed_at = datetime.now(timezone.utc)
        if self.logger:
            self.logger.info(
                "Scenario passed",
                {"passed_steps": self.report.passed_steps},
            )
        return self.report

    def _step(self, name: str) -> None:
        self.report.passed_steps.append(name)

    def _run_steps(self) -> None:
        exp = self.expectations

        self.before = self.reader.read_all_reserves(include_logging=False)
        self.report.count_before = len(self.before)
        self._step("snapshot_before")

        self._apply_change()
        self._step("governance_change")

        self.after = self.reader.read_all_reserves(include_logging=True)
        self.report.count_after = len(self.after)
        self._step("snapshot_after")

        self.diff_validator.validate_listing_count(
            exp.expected_new_listings, self.before, self.after
        )
        self._step("listing_count")

        listed = self.spec_validator.validate(exp.reserve, self.after)
        self._step("reserve_spec")

        self.diff_validator.validate_no_unintended_drift(self.before, self.after)
        self._step("no_unintended_drift")

        self.impl_validator.validate(listed, exp.token_impls)
        self._step("token_impls")

        self.oracle_validator.validate(listed.underlying, exp.oracle_source)
        self._step("oracle_source")

        self.rate_validator.validate(listed.underlying, exp.strategy_address, exp.strategy)
        self._step("rate_curve")

        self._run_actions(listed)

    def _apply_change(self) -> None:
        if self.logger:
            self.logger.log_event(
                "governance_change", {"description": self.change.description}
            )
        try:
            self.change.apply(self.client)
        except ProtocolCallError as e:
            raise ActionFailed("apply_governance_change", e.reason) from e

    def _collateral_reserve(self) -> ReserveConfig:
        symbol = self.expectations.collateral_whale.asset_symbol
        config = find_reserve(self.after, symbol)
        if config is None:
            raise ReserveNotFound(symbol)
        return config

    def _run_actions(self, listed: ReserveConfig) -> None:
        exp = self.expectations
        amounts = exp.amounts
        asset_whale = exp.asset_whale.address
        collateral_whale = exp.collateral_whale.address
        collateral = self._collateral_reserve()

        self.simulator.deposit(
            asset_whale,
            asset_whale,
            listed.underlying,
            listed.whole_units(amounts.deposit),
            listed.a_token,
        )
        self._step("deposit")

        self.simulator.deposit(
            collateral_whale,
            collateral_whale,
            collateral.underlying,
            collateral.whole_units(amounts.collateral_deposit),
            collateral.a_token,
        )
        self._step("collateral_deposit")

        self.simulator.borrow(
            collateral_whale,
            collateral_whale,
            listed.underlying,
            listed.whole_units(amounts.borrow),
            RateMode.VARIABLE,
            listed.variable_debt_token,
        )
        self._step("variable_borrow")

        if not listed.stable_borrow_rate_enabled:
            self.simulator.expect_borrow_revert(
                collateral_whale,
                collateral_whale,
                listed.underlying,
                listed.whole_units(amounts.stable_borrow),
                RateMode.STABLE,
                exp.stable_borrow_revert_reason,
            )
            self._step("stable_borrow_rejected")

        self.simulator.repay(
            collateral_whale,
            collateral_whale,
            listed.underlying,
            listed.whole_units(amounts.repay),
            RateMode.VARIABLE,
            listed.variable_debt_token,
        )
        self._step("repay")

        self.simulator.withdraw(
            asset_whale,
            asset_whale,
            listed.underlying,
            amounts.withdraw_raw(listed.decimals),
            listed.a_token,
        )
        self._step("withdraw")
