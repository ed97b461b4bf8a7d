"""Pool action simulation against a freshly listed reserve."""

from listing_validation.simulation.actions import (
    BALANCE_TOLERANCE,
    ActionSimulator,
    almost_equal,
    floor_subtract,
)

__all__ = [
    "BALANCE_TOLERANCE",
    "ActionSimulator",
    "almost_equal",
    "floor_subtract",
]
