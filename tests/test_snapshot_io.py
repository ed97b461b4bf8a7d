"""Tests for snapshot persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from listing_validation.data.snapshot_io import load_snapshot_from_json, save_snapshot_to_json


class TestSnapshotIO:
    """Tests for saving and loading snapshots."""

    def test_save_and_load(self, base_reserves, tmp_path: Path) -> None:
        """A saved snapshot should load back identical and in order."""
        path = tmp_path / "nested" / "before.json"
        save_snapshot_to_json(tuple(base_reserves), path)
        assert load_snapshot_from_json(path) == tuple(base_reserves)

    def test_file_is_json_array(self, base_reserves, tmp_path: Path) -> None:
        path = tmp_path / "before.json"
        save_snapshot_to_json(base_reserves, path)
        data = json.loads(path.read_text())
        assert isinstance(data, list)
        assert data[0]["symbol"] == "DAI"

    def test_reject_non_array(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"symbol": "DAI"}))
        with pytest.raises(ValueError, match="JSON array"):
            load_snapshot_from_json(path)
