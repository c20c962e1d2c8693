"""TringQR capture core: live scanning session and history sync."""

from .app import AppContext, configure_logging
from .config import constants, settings
from .errors import (
    AuthCredentialUnavailable,
    CapabilityUnsupported,
    DeviceConfigurationError,
    InvalidResponseShape,
    InvalidURIFormat,
    NetworkFailure,
    PermissionDenied,
    TringQRError,
)
from .pipeline import ScanPipeline

__all__ = [
    "AppContext",
    "configure_logging",
    "constants",
    "settings",
    "AuthCredentialUnavailable",
    "CapabilityUnsupported",
    "DeviceConfigurationError",
    "InvalidResponseShape",
    "InvalidURIFormat",
    "NetworkFailure",
    "PermissionDenied",
    "TringQRError",
    "ScanPipeline",
]

__version__ = "0.1.0"
