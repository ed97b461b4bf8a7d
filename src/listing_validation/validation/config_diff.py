"""Differential checks between before/after reserve snapshots.

A listing must add exactly the expected number of reserves and leave every
pre-existing reserve untouched. Existing entries are compared by position,
which additionally catches reordering of the registry.
"""

from __future__ import annotations

from typing import Sequence

from listing_validation.core.errors import CountMismatch, UnexpectedConfigChange
from listing_validation.core.logging import ScenarioLogger
from listing_validation.data.models import ReserveConfig


def first_field_difference(
    before: ReserveConfig, after: ReserveConfig
) -> tuple[str, object, object] | None:
    """First (field, before, after) that differs, in comparison order."""
    for field in ReserveConfig.compared_fields():
        before_value = getattr(before, field)
        after_value = getattr(after, field)
        if before_value != after_value:
            return field, before_value, after_value
    return None


class ConfigDiffValidator:
    """Compare two snapshots around a configuration change."""

    def __init__(self, logger: ScenarioLogger | None = None) -> None:
        self.logger = logger

    def validate_listing_count(
        self,
        expected_new_count: int,
        before: Sequence[ReserveConfig],
        after: Sequence[ReserveConfig],
    ) -> None:
        """Require len(after) == len(before) + expected_new_count.

        Only counts; it does not check which assets are new.

        Raises:
            CountMismatch: If the sizes do not match.
        """
        passed = len(after) == len(before) + expected_new_count
        if self.logger:
            self.logger.log_check(
                "listing_count",
                passed,
                {
                    "expected_new": expected_new_count,
                    "count_before": len(before),
                    "count_after": len(after),
                },
            )
        if not passed:
            raise CountMismatch(expected_new_count, len(before), len(after))

    def validate_no_unintended_drift(
        self,
        before: Sequence[ReserveConfig],
        after: Sequence[ReserveConfig],
    ) -> None:
        """Require after[i] == before[i] field for field for every i < len(before).

        Raises:
            UnexpectedConfigChange: On the first differing field.
        """
        if len(after) < len(before):
            # A reserve disappeared: report the first index with no counterpart.
            raise UnexpectedConfigChange(len(after), "symbol", before[len(after)].symbol, None)

        for index, (old, new) in enumerate(zip(before, after)):
            difference = first_field_difference(old, new)
            if difference is None:
                continue

            field, old_value, new_value = difference
            if self.logger:
                self.logger.log_check(
                    "no_unintended_drift",
                    False,
                    {
                        "index": index,
                        "symbol": old.symbol,
                        "field": field,
                        "before": old_value,
                        "after": new_value,
                    },
                )
            raise UnexpectedConfigChange(index, field, old_value, new_value)

        if self.logger:
            self.logger.log_check(
                "no_unintended_drift", True, {"compared": len(before)}
            )
