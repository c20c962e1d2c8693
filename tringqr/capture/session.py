"""Live capture session state machine."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable

from ..config import constants
from ..errors import CapabilityUnsupported, PermissionDenied
from .device import CameraDevice, PermissionGate, PermissionStatus, configuration

logger = logging.getLogger(__name__)

CAMERA_PERMISSION_MESSAGE = "Please provide access to the camera for scanning codes"

DetectionListener = Callable[[str], None]


class SessionState(Enum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    DENIED = "denied"
    RUNNING = "running"
    DETECTING = "detecting"
    COOLDOWN = "cooldown"
    STOPPED = "stopped"


_ACTIVE_STATES = (SessionState.RUNNING, SessionState.DETECTING, SessionState.COOLDOWN)


class CaptureSessionController:
    """Owns one live decoding session for the lifetime of a capture view.

    The decode pipeline calls :meth:`handle_decoded` from its own thread.
    Every detection opens a cooldown window during which further payloads
    are dropped, whether or not the session was stopped in between.
    """

    def __init__(
        self,
        device: CameraDevice,
        permissions: PermissionGate,
        *,
        cooldown_seconds: float = constants.DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._device = device
        self._permissions = permissions
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self._cooldown_until: float | None = None
        self._zoom = constants.MIN_ZOOM_FACTOR
        self._torch_on = False
        self._listeners: list[DetectionListener] = []

    def subscribe(self, listener: DetectionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    @property
    def state(self) -> SessionState:
        with self._lock:
            self._expire_cooldown(self._clock())
            return self._state

    @property
    def cooldown_until(self) -> float | None:
        return self._cooldown_until

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def torch_on(self) -> bool:
        return self._torch_on

    def activate(self) -> SessionState:
        """Start or resume capture, asking for camera access when needed."""

        with self._lock:
            if self._state is SessionState.DENIED:
                raise PermissionDenied(CAMERA_PERMISSION_MESSAGE)
            if self._state in _ACTIVE_STATES:
                self._expire_cooldown(self._clock())
                return self._state
            if self._state is SessionState.STOPPED and (
                self._permissions.status() is PermissionStatus.AUTHORIZED
            ):
                return self._start()
            self._state = SessionState.REQUESTING_PERMISSION

        granted = self._acquire_permission()

        with self._lock:
            if self._state is not SessionState.REQUESTING_PERMISSION:
                return self._state
            if not granted:
                self._state = SessionState.DENIED
                logger.warning("camera permission denied; session is terminal")
                raise PermissionDenied(CAMERA_PERMISSION_MESSAGE)
            return self._start()

    def deactivate(self) -> SessionState:
        with self._lock:
            if self._state in (SessionState.IDLE, SessionState.DENIED, SessionState.STOPPED):
                return self._state
            was_running = self._state in _ACTIVE_STATES
            self._state = SessionState.STOPPED
        if was_running:
            self._device.stop_running()
        logger.info("capture session stopped")
        return SessionState.STOPPED

    def handle_decoded(self, payload: str) -> bool:
        """Dispatch a decoded payload unless the session is busy or cooling down."""

        if not payload:
            return False
        with self._lock:
            now = self._clock()
            self._expire_cooldown(now)
            if self._state is not SessionState.RUNNING:
                logger.debug("dropping payload in state %s", self._state.value)
                return False
            self._state = SessionState.DETECTING
            self._cooldown_until = now + self._cooldown_seconds
            listeners = list(self._listeners)

        try:
            for listener in listeners:
                listener(payload)
        finally:
            with self._lock:
                if self._state is SessionState.DETECTING:
                    self._state = SessionState.COOLDOWN
        return True

    def set_zoom(self, factor: float) -> float:
        clamped = max(constants.MIN_ZOOM_FACTOR, min(float(factor), self._device.max_zoom))
        with configuration(self._device) as device:
            device.set_zoom(clamped)
        self._zoom = clamped
        return clamped

    def toggle_torch(self) -> bool:
        if not self._device.has_torch:
            raise CapabilityUnsupported("Torch is not available on this device")
        target = not self._torch_on
        with configuration(self._device) as device:
            device.set_torch(target)
        self._torch_on = target
        return target

    def _acquire_permission(self) -> bool:
        status = self._permissions.status()
        if status is PermissionStatus.AUTHORIZED:
            return True
        if status is PermissionStatus.NOT_DETERMINED:
            return bool(self._permissions.request_access())
        return False

    def _start(self) -> SessionState:
        # caller holds self._lock
        now = self._clock()
        if self._cooldown_until is not None and now < self._cooldown_until:
            self._state = SessionState.COOLDOWN
        else:
            self._state = SessionState.RUNNING
        self._device.start_running()
        logger.info("capture session %s", self._state.value)
        return self._state

    def _expire_cooldown(self, now: float) -> None:
        if (
            self._state is SessionState.COOLDOWN
            and self._cooldown_until is not None
            and now >= self._cooldown_until
        ):
            self._state = SessionState.RUNNING
