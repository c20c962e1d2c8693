"""Interfaces to the host platform: URL opening, prompts and timers."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class InstallChoice(Enum):
    CANCEL = "cancel"
    INSTALL = "install"


class ExternalOpener(Protocol):
    """Hands URLs over to other apps."""

    def can_open(self, scheme: str) -> bool:
        ...

    def open(self, url: str) -> bool:
        ...


class Presenter(Protocol):
    """User-facing prompts and notices."""

    def show_notice(self, message: str) -> None:
        ...

    def show_remediation(self, message: str) -> None:
        ...

    def prompt_install(self, app_name: str) -> InstallChoice:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        ...


class TimerScheduler:
    """Runs callbacks on daemon timer threads."""

    def __init__(self) -> None:
        self._timers: list[threading.Timer] = []
        self._lock = threading.Lock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        timer = threading.Timer(max(0.0, delay), self._run, args=(callback,))
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()

    def _run(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:  # pragma: no cover - surfaced through logs only
            logger.exception("scheduled callback failed")

    def cancel_all(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()


class LoggingPresenter:
    """Presenter that only logs; used when no UI is attached."""

    def show_notice(self, message: str) -> None:
        logger.warning("notice: %s", message)

    def show_remediation(self, message: str) -> None:
        logger.error("remediation required: %s", message)

    def prompt_install(self, app_name: str) -> InstallChoice:
        logger.info("install prompt for %s dismissed (no UI attached)", app_name)
        return InstallChoice.CANCEL
