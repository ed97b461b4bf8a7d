"""Data handling modules: models, protocol client, reserve reader."""

from listing_validation.data.models import (
    Actor,
    InterestStrategySpec,
    RateMode,
    ReserveConfig,
    ReserveConfigurationData,
    ReserveTokenAddresses,
    ReserveTokenImpls,
    Snapshot,
    TokenDescriptor,
    find_reserve,
)
from listing_validation.data.protocol import ProtocolClient
from listing_validation.data.reader import ReserveConfigReader
from listing_validation.data.snapshot_io import load_snapshot_from_json, save_snapshot_to_json

__all__ = [
    # Models
    "Actor",
    "InterestStrategySpec",
    "RateMode",
    "ReserveConfig",
    "ReserveConfigurationData",
    "ReserveTokenAddresses",
    "ReserveTokenImpls",
    "Snapshot",
    "TokenDescriptor",
    "find_reserve",
    # Protocol access
    "ProtocolClient",
    "ReserveConfigReader",
    # Persistence
    "load_snapshot_from_json",
    "save_snapshot_to_json",
]
