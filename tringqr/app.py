"""Process-wide application context."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .auth.credentials import (
    CredentialProvider,
    StaticCredentialProvider,
    credential_provider_factory,
)
from .capture.device import CameraDevice, PermissionGate
from .capture.session import CaptureSessionController
from .config.settings import Settings, get_settings
from .dispatch.classifier import ScanDecodeDispatcher
from .dispatch.redirect import RedirectResolver
from .errors import AuthCredentialUnavailable, InvalidResponseShape, NetworkFailure
from .history.client import HistoryApiClient
from .history.engine import HistorySyncEngine, SyncOutcome
from .history.identity import KeyStore, load_or_create_device_id
from .history.writer import SingleWriter
from .pipeline import ScanPipeline
from .platform import ExternalOpener, LoggingPresenter, Presenter, Scheduler, TimerScheduler

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def sync_failure_message(outcome: SyncOutcome) -> str:
    error = outcome.error
    if isinstance(error, AuthCredentialUnavailable):
        return "Sign in again to sync your history."
    if isinstance(error, NetworkFailure):
        return "Couldn't reach the history service. Showing saved history."
    if isinstance(error, InvalidResponseShape):
        return "The history service sent an unexpected response."
    return "History sync failed."


class AppContext:
    """Owns the shared collaborators for one process.

    Create it once at start-up with :meth:`create`, pass it to whatever needs
    history or capture wiring, and close it once at shutdown.
    """

    def __init__(
        self,
        settings: Settings,
        credentials: CredentialProvider,
        writer: SingleWriter,
        api: HistoryApiClient,
        engine: HistorySyncEngine,
        presenter: Presenter,
        scheduler: Scheduler,
    ) -> None:
        self.settings = settings
        self.credentials = credentials
        self.writer = writer
        self.api = api
        self.engine = engine
        self.presenter = presenter
        self.scheduler = scheduler
        self._closed = False

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        *,
        credentials: CredentialProvider | None = None,
        presenter: Presenter | None = None,
        scheduler: Scheduler | None = None,
        http_client: httpx.Client | None = None,
        keystore: KeyStore | None = None,
        log_level: int | None = logging.INFO,
    ) -> "AppContext":
        if log_level is not None:
            configure_logging(log_level)
        settings = settings or get_settings()
        if credentials is None:
            credentials = _default_credentials(settings)
        keystore = keystore or KeyStore(settings.keystore_dir)
        device_id = load_or_create_device_id(keystore)
        presenter = presenter or LoggingPresenter()
        scheduler = scheduler or TimerScheduler()

        writer = SingleWriter().start()
        api = HistoryApiClient(settings.api_base_url, credentials, http_client=http_client)

        def notify(outcome: SyncOutcome) -> None:
            presenter.show_notice(sync_failure_message(outcome))

        engine = HistorySyncEngine.from_settings(
            settings, api, writer, device_id, on_failure=notify
        )
        logger.info("app context ready (api=%s)", settings.api_base_url)
        return cls(settings, credentials, writer, api, engine, presenter, scheduler)

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def capture_pipeline(
        self,
        device: CameraDevice,
        permissions: PermissionGate,
        opener: ExternalOpener,
    ) -> ScanPipeline:
        """Build the capture wiring for one capture view."""

        controller = CaptureSessionController(
            device, permissions, cooldown_seconds=self.settings.cooldown_seconds
        )
        dispatcher = ScanDecodeDispatcher(opener.can_open, self.settings.payment_schemes)
        resolver = RedirectResolver.from_settings(
            self.settings, opener, self.presenter, self.scheduler
        )
        return ScanPipeline(controller, dispatcher, resolver, self.engine, self.presenter)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        cancel = getattr(self.scheduler, "cancel_all", None)
        if callable(cancel):
            cancel()
        self.engine.close()
        self.writer.stop()
        self.api.close()
        _close_if_possible(self.credentials)
        logger.info("app context closed")


def _default_credentials(settings: Settings) -> CredentialProvider:
    if settings.refresh_token and settings.api_key:
        return credential_provider_factory(settings)
    logger.warning("no refresh token or API key configured; history calls will fail")
    return StaticCredentialProvider(None)


def _close_if_possible(resource: Any) -> None:
    closeable = getattr(resource, "close", None)
    if callable(closeable):
        closeable()
