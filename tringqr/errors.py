"""Error taxonomy shared by the capture and history subsystems."""

from __future__ import annotations


class TringQRError(RuntimeError):
    """Base class for every recoverable capture-core failure."""


class PermissionDenied(TringQRError):
    """Camera access was refused or restricted for this session."""


class AuthCredentialUnavailable(TringQRError):
    """The credential provider could not supply a bearer token."""


class NetworkFailure(TringQRError):
    """Transport error or non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidResponseShape(TringQRError):
    """A response body matched none of the tolerated shapes."""


class CapabilityUnsupported(TringQRError):
    """The device lacks the requested hardware capability."""


class InvalidURIFormat(TringQRError):
    """A payload could not be turned into a usable target URI."""


class DeviceConfigurationError(TringQRError):
    """The exclusive device configuration lock could not be acquired."""


__all__ = [
    "TringQRError",
    "PermissionDenied",
    "AuthCredentialUnavailable",
    "NetworkFailure",
    "InvalidResponseShape",
    "CapabilityUnsupported",
    "InvalidURIFormat",
    "DeviceConfigurationError",
]
