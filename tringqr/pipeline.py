"""Wire a capture session to classification, redirects and history."""

from __future__ import annotations

import logging
import threading

from .capture.session import CaptureSessionController, SessionState
from .dispatch.classifier import ScanDecodeDispatcher
from .dispatch.redirect import RedirectOutcome, RedirectResolver
from .errors import PermissionDenied
from .history.engine import HistorySyncEngine
from .platform import Presenter

logger = logging.getLogger(__name__)

NO_CODE_IN_IMAGE = "No QR code found in the image."


class ScanPipeline:
    def __init__(
        self,
        controller: CaptureSessionController,
        dispatcher: ScanDecodeDispatcher,
        resolver: RedirectResolver,
        engine: HistorySyncEngine,
        presenter: Presenter,
    ) -> None:
        self._controller = controller
        self._dispatcher = dispatcher
        self._resolver = resolver
        self._engine = engine
        self._presenter = presenter
        self._lock = threading.Lock()
        self._paused_for_redirect = False
        controller.subscribe(self.on_detected)

    @property
    def controller(self) -> CaptureSessionController:
        return self._controller

    def start(self) -> SessionState:
        with self._lock:
            self._paused_for_redirect = False
        try:
            return self._controller.activate()
        except PermissionDenied as exc:
            self._presenter.show_remediation(str(exc))
            return SessionState.DENIED

    def stop(self) -> SessionState:
        with self._lock:
            self._paused_for_redirect = False
        return self._controller.deactivate()

    def on_detected(self, payload: str) -> RedirectOutcome:
        """Pause the feed, log the scan and hand the payload to the resolver."""

        with self._lock:
            self._paused_for_redirect = True
        self._controller.deactivate()
        return self._handle(payload)

    def scan_still(self, payload: str | None) -> RedirectOutcome | None:
        """Handle the result of decoding a picked gallery image."""

        if not payload:
            self._presenter.show_notice(NO_CODE_IN_IMAGE)
            return None
        return self._handle(payload)

    def _handle(self, payload: str) -> RedirectOutcome:
        self._engine.record_scan(payload)
        classification = self._dispatcher.classify(payload)
        logger.info("resolving %s payload", type(classification).__name__)
        return self._resolver.resolve(classification, resume=self._resume)

    def _resume(self) -> None:
        with self._lock:
            if not self._paused_for_redirect:
                logger.debug("capture was stopped by its owner; not resuming")
                return
            self._paused_for_redirect = False
        try:
            state = self._controller.activate()
        except PermissionDenied as exc:
            self._presenter.show_remediation(str(exc))
            return
        logger.debug("capture resumed in state %s", state.value)
