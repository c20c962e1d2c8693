"""Camera hardware and permission collaborators."""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Protocol

from ..errors import DeviceConfigurationError


class PermissionStatus(Enum):
    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    RESTRICTED = "restricted"


class PermissionGate(Protocol):
    def status(self) -> PermissionStatus:
        ...

    def request_access(self) -> bool:
        ...


class CameraDevice(Protocol):
    """Handle to the capture hardware.

    ``lock_for_configuration`` must be held around every zoom or torch change
    and raises when another client owns the device.
    """

    @property
    def has_torch(self) -> bool:
        ...

    @property
    def max_zoom(self) -> float:
        ...

    def lock_for_configuration(self) -> None:
        ...

    def unlock_for_configuration(self) -> None:
        ...

    def set_zoom(self, factor: float) -> None:
        ...

    def set_torch(self, on: bool) -> None:
        ...

    def start_running(self) -> None:
        ...

    def stop_running(self) -> None:
        ...


@contextmanager
def configuration(device: CameraDevice) -> Iterator[CameraDevice]:
    """Hold the device configuration lock for the duration of the block."""

    try:
        device.lock_for_configuration()
    except Exception as exc:
        raise DeviceConfigurationError(f"device configuration lock unavailable: {exc}") from exc
    try:
        yield device
    finally:
        device.unlock_for_configuration()
