"""Scenario orchestration for a single governance listing."""

from listing_validation.scenario.expectations import ActionAmounts, ListingExpectations
from listing_validation.scenario.governance import (
    CallableChange,
    GovernanceChange,
    ImpersonatedExecution,
)
from listing_validation.scenario.runner import ListingScenario, ScenarioReport

__all__ = [
    "ActionAmounts",
    "CallableChange",
    "GovernanceChange",
    "ImpersonatedExecution",
    "ListingExpectations",
    "ListingScenario",
    "ScenarioReport",
]
