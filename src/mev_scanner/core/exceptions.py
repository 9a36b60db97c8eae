"""Exception hierarchy for the MEV scanner."""

from __future__ import annotations


class ScannerError(Exception):
    """Base class for scanner errors."""

    pass


class UnsupportedVenue(ScannerError):
    """Raised when a venue identifier is not in the configured venue table."""

    def __init__(self, venue_id: str, supported: list[str]) -> None:
        self.venue_id = venue_id
        self.supported = supported
        super().__init__(
            f"Unsupported DEX: {venue_id}. Supported venues: {', '.join(supported)}"
        )


class BatchLoadError(ScannerError):
    """Raised by a batch loader when pending transactions cannot be fetched."""

    pass


class ConfigError(ScannerError):
    """Raised when environment configuration cannot be parsed."""

    pass
