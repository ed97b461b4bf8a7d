"""Snapshot persistence.

Reserve snapshots are saved as JSON arrays in registry order so a run can be
audited or its before/after states re-diffed offline.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from listing_validation.data.models import ReserveConfig, Snapshot


def save_snapshot_to_json(
    snapshot: Sequence[ReserveConfig],
    file_path: str | Path,
) -> None:
    """Save a snapshot to a JSON file.

    Args:
        snapshot: Reserve configurations in registry order.
        file_path: Output file path.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = [config.model_dump() for config in snapshot]
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def load_snapshot_from_json(file_path: str | Path) -> Snapshot:
    """Load a snapshot saved by save_snapshot_to_json.

    Expected JSON format:
        [
            {"symbol": "USDT", "underlying": "0xdac1...", ...},
            {"symbol": "WBTC", "underlying": "0x2260...", ...}
        ]

    Returns:
        Tuple of ReserveConfig in file order.
    """
    with open(Path(file_path)) as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Snapshot file must contain a JSON array: {file_path}")

    return tuple(ReserveConfig.model_validate(item) for item in data)
