"""Error taxonomy for the media bridge.

Every failure raised by the stores, the storage backends or the settings
loader derives from :class:`BridgeError`, so the dispatcher can catch one
type, log it, and notify the operator.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class BridgeError(Exception):
    """Base error for the media bridge."""

    def __init__(
        self,
        message: str,
        error_code: str = "BRIDGE_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class AuthError(BridgeError):
    """Missing or invalid credentials. Fatal at startup."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, error_code="AUTH_ERROR", details=details)


class TransportError(BridgeError):
    """Network, HTTP or SDK failure during an external call."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, error_code="TRANSPORT_ERROR", details=details)


class NotFoundError(BridgeError):
    """No record matched a label. Drives the create-on-miss branch."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"No record matches '{label}'", error_code="NOT_FOUND")


class ValidationError(BridgeError):
    """Inbound event rejected before touching any store."""

    def __init__(self, message: str, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.reason = reason
        super().__init__(message, error_code="VALIDATION_ERROR", details=details)
