"""Validators comparing protocol state against expected listing outcomes."""

from listing_validation.validation.config_diff import ConfigDiffValidator
from listing_validation.validation.oracle_source import OracleSourceValidator
from listing_validation.validation.rate_curve import RateCurveValidator
from listing_validation.validation.reserve_spec import ReserveSpecValidator
from listing_validation.validation.token_impl import TokenImplValidator

__all__ = [
    "ConfigDiffValidator",
    "OracleSourceValidator",
    "RateCurveValidator",
    "ReserveSpecValidator",
    "TokenImplValidator",
]
