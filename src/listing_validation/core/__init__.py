"""Core modules: configuration, logging, fork safety, errors, impersonation."""

from listing_validation.core.config import ConfigError, HarnessConfig
from listing_validation.core.errors import (
    ActionFailed,
    AssetQueryError,
    CountMismatch,
    CurveParameterMismatch,
    DerivedRateMismatch,
    FieldMismatch,
    ImplementationMismatch,
    ListingValidationError,
    OracleSourceMismatch,
    ProtocolCallError,
    ReserveNotFound,
    StrategyAddressMismatch,
    UnexpectedConfigChange,
    UnexpectedSuccess,
)
from listing_validation.core.fork_guard import ForkGuard, ForkGuardError
from listing_validation.core.impersonation import ActingAs, ImpersonationError, ImpersonationScope
from listing_validation.core.logging import LogEntry, ScenarioLogger, verify_log_integrity

__all__ = [
    # Configuration
    "ConfigError",
    "HarnessConfig",
    # Fork safety
    "ForkGuard",
    "ForkGuardError",
    # Logging
    "LogEntry",
    "ScenarioLogger",
    "verify_log_integrity",
    # Impersonation
    "ActingAs",
    "ImpersonationError",
    "ImpersonationScope",
    # Errors
    "ActionFailed",
    "AssetQueryError",
    "CountMismatch",
    "CurveParameterMismatch",
    "DerivedRateMismatch",
    "FieldMismatch",
    "ImplementationMismatch",
    "ListingValidationError",
    "OracleSourceMismatch",
    "ProtocolCallError",
    "ReserveNotFound",
    "StrategyAddressMismatch",
    "UnexpectedConfigChange",
    "UnexpectedSuccess",
]
