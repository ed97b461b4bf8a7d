"""Listing Validation - post-execution checks for lending protocol asset listings.

This package verifies that a governance action listing a new asset on an
Aave-style lending protocol:
- adds exactly the expected reserves and leaves every other reserve untouched
- configures the new reserve, its rate curve, tokens and oracle as specified
- supports supply, borrow, repay and withdraw on the new asset

Validation runs against a forked node only - no live network exposure.
"""

__version__ = "0.1.0"

from listing_validation.core.errors import ListingValidationError
from listing_validation.core.fork_guard import ForkGuard, ForkGuardError

__all__ = ["ForkGuard", "ForkGuardError", "ListingValidationError", "__version__"]
