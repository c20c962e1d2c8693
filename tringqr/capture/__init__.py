"""Live capture session helpers."""

from __future__ import annotations

from .device import CameraDevice, PermissionGate, PermissionStatus, configuration
from .session import CAMERA_PERMISSION_MESSAGE, CaptureSessionController, SessionState

__all__ = [
    "CameraDevice",
    "PermissionGate",
    "PermissionStatus",
    "configuration",
    "CAMERA_PERMISSION_MESSAGE",
    "CaptureSessionController",
    "SessionState",
]
