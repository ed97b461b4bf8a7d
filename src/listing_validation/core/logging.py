"""Hash-chained audit logging for scenario runs.

Every snapshot, governance application, validator outcome and pool action is
written twice:
- to loguru sinks (console + human-readable text file)
- to a JSONL audit log where each entry carries the hash of the previous one

Tampering with the audit log after the fact breaks the chain and is reported
by ``verify_log_integrity``.
"""

from __future__ import annotations

import hashlib
import json
import os
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError


class LogEntry(BaseModel):
    """A single hash-chained log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    run_id: str
    level: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    previous_hash: str | None = None
    entry_hash: str | None = None

    def compute_hash(self) -> str:
        """Compute the hash of this entry (excluding entry_hash field)."""
        data_for_hash = self.model_dump(exclude={"entry_hash"})
        json_str = json.dumps(data_for_hash, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()

    def finalize(self) -> LogEntry:
        """Finalize the entry by computing its hash."""
        self.entry_hash = self.compute_hash()
        return self


class ScenarioLogger:
    """Hash-chained logger for one validation run.

    Usage:
        run_logger = ScenarioLogger.create_run("lusd_listing")
        run_logger.log_event("snapshot", {"phase": "before", "count": 27})
        run_logger.log_check("listing_count", True, {"expected_new": 1})
    """

    def __init__(self, run_id: str, log_dir: Path) -> None:
        """Initialize the run logger.

        Args:
            run_id: Unique identifier for this run.
            log_dir: Directory to store log files.
        """
        self.run_id = run_id
        self.log_dir = log_dir
        self._previous_hash: str | None = None
        self._entry_count = 0
        self._failed_checks = 0

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._json_log_path = self.log_dir / f"{run_id}.jsonl"
        self._setup_loguru()

    def _setup_loguru(self) -> None:
        """Configure loguru sinks for this run."""
        logger.remove()

        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[run_id]}</cyan> | "
                "{message}"
            ),
            level="DEBUG",
            filter=lambda record: record["extra"].get("run_id") == self.run_id,
        )

        text_log_path = self.log_dir / f"{self.run_id}.log"
        logger.add(
            text_log_path,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}",
            level="DEBUG",
            filter=lambda record: record["extra"].get("run_id") == self.run_id,
        )

        self._logger = logger.bind(run_id=self.run_id)

    @classmethod
    def create_run(
        cls,
        name: str,
        log_dir: str | Path | None = None,
    ) -> ScenarioLogger:
        """Create a logger for a new run.

        Args:
            name: Human-readable scenario name.
            log_dir: Directory for logs (default: from env or ./logs).
        """
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        short_uuid = str(uuid.uuid4())[:8]
        run_id = f"{name}_{timestamp}_{short_uuid}"

        if log_dir is None:
            log_dir = Path(os.getenv("LOG_DIR", "logs"))
        else:
            log_dir = Path(log_dir)

        return cls(run_id, log_dir)

    def _write(self, level: str, message: str, data: dict[str, Any] | None) -> None:
        entry = LogEntry(
            run_id=self.run_id,
            level=level,
            message=message,
            data=data or {},
            previous_hash=self._previous_hash,
        ).finalize()
        self._previous_hash = entry.entry_hash
        self._entry_count += 1

        with open(self._json_log_path, "a") as f:
            f.write(entry.model_dump_json() + "\n")

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a debug message."""
        self._write("DEBUG", message, data)
        self._logger.debug(message)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an info message."""
        self._write("INFO", message, data)
        self._logger.info(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an error message."""
        self._write("ERROR", message, data)
        self._logger.error(message)

    def log_check(
        self,
        check_name: str,
        passed: bool,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Log the outcome of a validation check.

        Args:
            check_name: Name of the check (e.g., 'listing_count', 'rate_curve').
            passed: Whether the check held.
            context: Literal values involved in the check.
        """
        data = {"check": check_name, "passed": passed, **(context or {})}
        status = "PASS" if passed else "FAIL"
        self._write("CHECK", f"{check_name}: {status}", data)
        if passed:
            self._logger.info(f"CHECK {check_name}: PASS")
        else:
            self._failed_checks += 1
            self._logger.error(f"CHECK {check_name}: FAIL")

    def log_event(self, event_type: str, event_data: dict[str, Any]) -> None:
        """Log a structured event.

        Args:
            event_type: Type of event (e.g., 'snapshot', 'governance_applied', 'deposit').
            event_data: Event-specific data.
        """
        data = {"event_type": event_type, **event_data}
        self._write("EVENT", f"Event: {event_type}", data)
        self._logger.info(f"EVENT: {event_type}")

    @property
    def json_log_path(self) -> Path:
        return self._json_log_path

    @property
    def entry_count(self) -> int:
        return self._entry_count

    @property
    def failed_checks(self) -> int:
        """Number of checks logged as failed so far."""
        return self._failed_checks


def verify_log_integrity(log_path: Path) -> tuple[bool, list[str]]:
    """Verify the integrity of a hash-chained log file.

    Args:
        log_path: Path to the JSONL log file.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors: list[str] = []
    previous_hash: str | None = None

    with open(log_path) as f:
        for line_num, line in enumerate(f, 1):
            try:
                entry = LogEntry.model_validate_json(line)
            except ValidationError as e:
                errors.append(f"Line {line_num}: Parse error - {e}")
                continue

            if entry.previous_hash != previous_hash:
                errors.append(
                    f"Line {line_num}: Hash chain broken. "
                    f"Expected previous_hash={previous_hash}, "
                    f"got {entry.previous_hash}"
                )

            computed_hash = entry.compute_hash()
            if entry.entry_hash != computed_hash:
                errors.append(
                    f"Line {line_num}: Entry hash mismatch. "
                    f"Expected {computed_hash}, got {entry.entry_hash}"
                )

            previous_hash = entry.entry_hash

    return len(errors) == 0, errors
