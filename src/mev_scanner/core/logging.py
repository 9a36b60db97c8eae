"""Hash-chained scan logging.

Structured logging for scan sessions:
- Console output through loguru, bound to the session ID
- Every entry is hash-chained to the previous one, so a trail of scans
  can be verified independently
- Entries are kept in memory; a JSONL trail is written only when a log
  directory is given

The engine logs through this class when one is supplied and stays
silent otherwise.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from loguru import logger
from pydantic import BaseModel, Field


class LogEntry(BaseModel):
    """A single hash-chained log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    session_id: str
    sequence: int
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


class ScanLogger:
    """Hash-chained logger for scan sessions.

    Usage:
        scan_logger = ScanLogger.create_session("cli")
        scan_logger.info("Loaded batch", {"size": 42})
        scan_logger.log_metric("risk_score", 61, {"venue": "uniswap-v2"})
    """

    def __init__(
        self,
        session_id: str,
        log_dir: Path | None = None,
        console_level: str = "INFO",
    ) -> None:
        """Initialize the scan logger.

        Args:
            session_id: Unique identifier for this session.
            log_dir: Directory for the JSONL trail (None keeps entries in memory only).
            console_level: Minimum loguru level printed to stderr.
        """
        self.session_id = session_id
        self.log_dir = log_dir
        self._entries: list[LogEntry] = []
        self._previous_hash: str | None = None
        self._handler_ids: list[int] = []
        self._lock = threading.Lock()

        self._json_log_path: Path | None = None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._json_log_path = self.log_dir / f"{session_id}.jsonl"

        self._setup_loguru(console_level)

    def _setup_loguru(self, console_level: str) -> None:
        """Configure loguru sinks for this session."""
        # Remove default handler
        logger.remove()

        def session_filter(record: dict[str, Any]) -> bool:
            return record["extra"].get("session_id") == self.session_id

        self._handler_ids.append(
            logger.add(
                sys.stderr,
                format=(
                    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                    "<level>{level: <8}</level> | "
                    "<cyan>{extra[session_id]}</cyan> | "
                    "{message}"
                ),
                level=console_level,
                filter=session_filter,
            )
        )

        if self.log_dir is not None:
            self._handler_ids.append(
                logger.add(
                    self.log_dir / f"{self.session_id}.log",
                    format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}",
                    level="DEBUG",
                    filter=session_filter,
                )
            )

        self._logger = logger.bind(session_id=self.session_id)

    @classmethod
    def create_session(
        cls,
        name: str,
        log_dir: str | Path | None = None,
        console_level: str = "INFO",
    ) -> ScanLogger:
        """Create a logger with a generated session ID.

        Args:
            name: Human-readable prefix for the session.
            log_dir: Directory for the JSONL trail, or None.
            console_level: Minimum loguru level printed to stderr.
        """
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        short_uuid = str(uuid.uuid4())[:8]
        session_id = f"{name}_{timestamp}_{short_uuid}"
        return cls(
            session_id,
            Path(log_dir) if log_dir is not None else None,
            console_level,
        )

    def _create_entry(
        self,
        level: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> LogEntry:
        """Create, chain and record an entry."""
        with self._lock:
            entry = LogEntry(
                session_id=self.session_id,
                sequence=len(self._entries),
                level=level,
                message=message,
                data=data or {},
                previous_hash=self._previous_hash,
            )
            entry.finalize()
            self._previous_hash = entry.entry_hash
            self._entries.append(entry)

            if self._json_log_path is not None:
                with open(self._json_log_path, "a") as f:
                    f.write(entry.model_dump_json() + "\n")
        return entry

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a debug message."""
        self._create_entry("DEBUG", message, data)
        self._logger.debug(message)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an info message."""
        self._create_entry("INFO", message, data)
        self._logger.info(message)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a warning message."""
        self._create_entry("WARNING", message, data)
        self._logger.warning(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an error message."""
        self._create_entry("ERROR", message, data)
        self._logger.error(message)

    def log_metric(
        self,
        metric_name: str,
        value: float | int,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Log a metric value with context."""
        data = {"metric_name": metric_name, "value": value, **(context or {})}
        self._create_entry("METRIC", f"{metric_name}={value}", data)
        self._logger.info(f"METRIC: {metric_name}={value}")

    def log_event(self, event_type: str, event_data: dict[str, Any]) -> None:
        """Log a structured event (e.g. 'scan_started', 'scan_completed')."""
        data = {"event_type": event_type, **event_data}
        self._create_entry("EVENT", f"Event: {event_type}", data)
        self._logger.info(f"EVENT: {event_type}")

    @property
    def entries(self) -> list[LogEntry]:
        """Entries recorded so far, oldest first."""
        return list(self._entries)

    @property
    def json_log_path(self) -> Path | None:
        """Path of the JSONL trail, if one is being written."""
        return self._json_log_path

    def get_log_summary(self) -> dict[str, Any]:
        """Get a summary of the current log state."""
        return {
            "session_id": self.session_id,
            "entry_count": len(self._entries),
            "last_hash": self._previous_hash,
            "json_log_path": str(self._json_log_path) if self._json_log_path else None,
        }

    def close(self) -> None:
        """Detach this session's loguru sinks."""
        for handler_id in self._handler_ids:
            # A later session's setup may already have removed it
            with contextlib.suppress(ValueError):
                logger.remove(handler_id)
        self._handler_ids.clear()


def verify_entries(entries: Iterable[LogEntry]) -> tuple[bool, list[str]]:
    """Verify the hash chain of in-memory entries.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors: list[str] = []
    previous_hash: str | None = None

    for index, entry in enumerate(entries):
        if entry.previous_hash != previous_hash:
            errors.append(
                f"Entry {index}: Hash chain broken. "
                f"Expected previous_hash={previous_hash}, got {entry.previous_hash}"
            )
        computed_hash = entry.compute_hash()
        if entry.entry_hash != computed_hash:
            errors.append(
                f"Entry {index}: Entry hash mismatch. "
                f"Expected {computed_hash}, got {entry.entry_hash}"
            )
        previous_hash = entry.entry_hash

    return len(errors) == 0, errors


def verify_log_integrity(log_path: Path) -> tuple[bool, list[str]]:
    """Verify the integrity of a hash-chained JSONL log file.

    Args:
        log_path: Path to the JSONL log file.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    entries: list[LogEntry] = []
    errors: list[str] = []

    with open(log_path) as f:
        for line_num, line in enumerate(f, 1):
            try:
                entries.append(LogEntry.model_validate_json(line))
            except ValueError as e:
                errors.append(f"Line {line_num}: Parse error - {e}")

    chain_ok, chain_errors = verify_entries(entries)
    errors.extend(chain_errors)
    return chain_ok and not errors, errors
