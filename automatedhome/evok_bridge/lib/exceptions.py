"""Exception hierarchy for the EVOK MQTT bridge."""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all bridge errors."""


class ConfigError(BridgeError, ValueError):
    """Invalid or missing configuration."""


class DeliveryError(BridgeError):
    """Downstream write failed: publish/send error or deadline expired."""

    def __init__(self, message: str, *, downstream: str = "", address: str = "") -> None:
        self.downstream = downstream
        self.address = address
        super().__init__(message)


class FetchError(BridgeError):
    """Snapshot fetch failed (network, non-2xx status, timeout)."""

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)
