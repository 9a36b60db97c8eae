"""Tests for hash-chained scan logging."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Generator

import pytest

from mev_scanner.core.logging import LogEntry, ScanLogger, verify_entries, verify_log_integrity


@pytest.fixture
def scan_logger(temp_log_dir: Path) -> Generator[ScanLogger, None, None]:
    """Logger writing a JSONL trail into a temporary directory."""
    logger = ScanLogger.create_session("test_run", temp_log_dir)
    yield logger
    logger.close()


@pytest.fixture
def memory_logger() -> Generator[ScanLogger, None, None]:
    """Logger that keeps entries in memory only."""
    logger = ScanLogger.create_session("memory")
    yield logger
    logger.close()


def _read_entries(path: Path) -> list[dict]:
    with open(path) as f:
        return [json.loads(line) for line in f]


class TestLogEntry:
    """Tests for LogEntry model."""

    def test_log_entry_hash_computation(self) -> None:
        """Should compute a consistent SHA256 hash."""
        entry = LogEntry(
            session_id="s",
            sequence=0,
            level="INFO",
            message="Test message",
            timestamp="2024-01-01T00:00:00+00:00",
        )
        assert entry.compute_hash() == entry.compute_hash()
        assert len(entry.compute_hash()) == 64

    def test_log_entry_finalize(self) -> None:
        """Should finalize with hash."""
        entry = LogEntry(session_id="s", sequence=0, level="INFO", message="m").finalize()
        assert entry.entry_hash == entry.compute_hash()

    def test_hash_covers_data(self) -> None:
        """Changing the payload changes the hash."""
        common = {
            "session_id": "s",
            "sequence": 0,
            "level": "EVENT",
            "message": "Event: scan_completed",
            "timestamp": "2024-01-01T00:00:00+00:00",
        }
        first = LogEntry(**common, data={"risk_score": 33})
        second = LogEntry(**common, data={"risk_score": 34})
        assert first.compute_hash() != second.compute_hash()


class TestScanLogger:
    """Tests for ScanLogger."""

    def test_create_session(self, scan_logger: ScanLogger) -> None:
        """Session IDs carry the given prefix."""
        assert scan_logger.session_id.startswith("test_run_")
        assert scan_logger.json_log_path is not None
        assert scan_logger.json_log_path.suffix == ".jsonl"

    def test_memory_only(self, memory_logger: ScanLogger) -> None:
        """Without a log directory nothing is written to disk."""
        memory_logger.info("hello", {"k": 1})
        assert memory_logger.json_log_path is None
        assert len(memory_logger.entries) == 1
        assert memory_logger.entries[0].data == {"k": 1}

    def test_log_info(self, scan_logger: ScanLogger) -> None:
        """Info messages are written with their data."""
        scan_logger.info("Loaded batch", {"size": 42})

        entry = _read_entries(scan_logger.json_log_path)[0]
        assert entry["level"] == "INFO"
        assert entry["message"] == "Loaded batch"
        assert entry["data"]["size"] == 42
        assert entry["sequence"] == 0

    def test_log_metric(self, scan_logger: ScanLogger) -> None:
        """Metrics carry name, value and context."""
        scan_logger.log_metric("risk_score", 61, {"scan_id": "abc"})

        entry = _read_entries(scan_logger.json_log_path)[0]
        assert entry["level"] == "METRIC"
        assert entry["data"] == {"metric_name": "risk_score", "value": 61, "scan_id": "abc"}

    def test_log_event(self, scan_logger: ScanLogger) -> None:
        """Events carry their type."""
        scan_logger.log_event("scan_started", {"venue_id": "uniswap-v2"})

        entry = _read_entries(scan_logger.json_log_path)[0]
        assert entry["level"] == "EVENT"
        assert entry["data"]["event_type"] == "scan_started"

    def test_all_levels(self, memory_logger: ScanLogger) -> None:
        """Every level helper records an entry."""
        memory_logger.debug("d")
        memory_logger.info("i")
        memory_logger.warning("w")
        memory_logger.error("e")
        assert [e.level for e in memory_logger.entries] == ["DEBUG", "INFO", "WARNING", "ERROR"]

    def test_hash_chaining(self, scan_logger: ScanLogger) -> None:
        """Each entry links to the previous entry's hash."""
        for n in range(3):
            scan_logger.info(f"Message {n}")

        entries = _read_entries(scan_logger.json_log_path)
        assert entries[0]["previous_hash"] is None
        assert entries[1]["previous_hash"] == entries[0]["entry_hash"]
        assert entries[2]["previous_hash"] == entries[1]["entry_hash"]

    def test_get_log_summary(self, scan_logger: ScanLogger) -> None:
        """Summary reports count and the last hash."""
        scan_logger.info("Message 1")
        scan_logger.info("Message 2")

        summary = scan_logger.get_log_summary()
        assert summary["entry_count"] == 2
        assert summary["last_hash"] == scan_logger.entries[-1].entry_hash

    def test_close_after_newer_session(self) -> None:
        """Closing an older session after a newer one was set up is safe."""
        first = ScanLogger("first")
        second = ScanLogger("second")
        first.close()
        second.close()
        first.close()

    def test_concurrent_writes_keep_chain(self, memory_logger: ScanLogger) -> None:
        """Entries logged from several threads still form one valid chain."""

        def worker(n: int) -> None:
            for i in range(25):
                memory_logger.info(f"worker {n} message {i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        entries = memory_logger.entries
        assert [e.sequence for e in entries] == list(range(100))
        is_valid, errors = verify_entries(entries)
        assert is_valid, errors


class TestLogIntegrityVerification:
    """Tests for log integrity verification."""

    def test_verify_valid_log(self, scan_logger: ScanLogger) -> None:
        """A freshly written trail verifies."""
        scan_logger.info("Message 1")
        scan_logger.log_event("scan_completed", {"risk_score": 12})

        is_valid, errors = verify_log_integrity(scan_logger.json_log_path)
        assert is_valid is True
        assert errors == []

    def test_detect_tampered_data(self, scan_logger: ScanLogger) -> None:
        """Editing a logged score breaks the entry hash."""
        scan_logger.log_metric("risk_score", 80)
        scan_logger.info("done")
        path = scan_logger.json_log_path

        lines = path.read_text().splitlines()
        entry = json.loads(lines[0])
        entry["data"]["value"] = 5
        path.write_text(json.dumps(entry) + "\n" + lines[1] + "\n")

        is_valid, errors = verify_log_integrity(path)
        assert is_valid is False
        assert any("Entry hash mismatch" in e for e in errors)

    def test_detect_broken_chain(self, scan_logger: ScanLogger) -> None:
        """Re-hashing an edited entry still breaks the chain link."""
        scan_logger.info("Message 1")
        scan_logger.info("Message 2")
        path = scan_logger.json_log_path

        lines = path.read_text().splitlines()
        entry = json.loads(lines[1])
        entry["previous_hash"] = "wrong_previous_hash"
        entry["entry_hash"] = LogEntry.model_validate(entry).compute_hash()
        path.write_text(lines[0] + "\n" + json.dumps(entry) + "\n")

        is_valid, errors = verify_log_integrity(path)
        assert is_valid is False
        assert any("Hash chain broken" in e for e in errors)

    def test_unparseable_line(self, scan_logger: ScanLogger) -> None:
        """Garbage lines are reported."""
        scan_logger.info("Message 1")
        path = scan_logger.json_log_path
        with open(path, "a") as f:
            f.write("not json\n")

        is_valid, errors = verify_log_integrity(path)
        assert is_valid is False
        assert any("Parse error" in e for e in errors)
