"""Turn classified payloads into external actions and resume capture."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import quote, urlsplit

from ..config import constants
from ..errors import InvalidURIFormat
from ..platform import ExternalOpener, InstallChoice, Presenter, Scheduler
from .classifier import Classification, FreeText, Payment, WebLink, payload_scheme

logger = logging.getLogger(__name__)

DEFAULT_WALLET_APP_NAME = "Google Pay"


@dataclass(frozen=True)
class RedirectOutcome:
    action: str
    target: str | None
    opened: bool
    resume_immediately: bool = False


class _ResumeOnce:
    def __init__(self, resume: Callable[[], None]) -> None:
        self._resume = resume
        self._lock = threading.Lock()
        self._fired = False

    def __call__(self) -> None:
        with self._lock:
            if self._fired:
                return
            self._fired = True
        self._resume()


def build_wallet_uri(
    payment_uri: str,
    wallet_uri: str = constants.DEFAULT_WALLET_PAY_URI,
    source_param: str = constants.DEFAULT_TRAFFIC_SOURCE_PARAM,
    source_value: str = constants.DEFAULT_TRAFFIC_SOURCE_VALUE,
) -> str:
    """Carry every query pair over verbatim and tag the traffic source."""

    query = urlsplit(payment_uri).query
    pairs = [pair for pair in query.split("&") if pair]
    if not pairs:
        raise InvalidURIFormat(f"payment URI carries no parameters: {payment_uri!r}")
    connector = "&" if "?" in wallet_uri else "?"
    marker = f"{quote(source_param, safe='')}={quote(source_value, safe='')}"
    return f"{wallet_uri}{connector}{'&'.join(pairs)}&{marker}"


def build_search_url(text: str, search_url: str = constants.DEFAULT_SEARCH_URL) -> str:
    return f"{search_url}{quote(text, safe='')}"


class RedirectResolver:
    def __init__(
        self,
        opener: ExternalOpener,
        presenter: Presenter,
        scheduler: Scheduler,
        *,
        wallet_pay_uri: str = constants.DEFAULT_WALLET_PAY_URI,
        wallet_store_url: str = constants.DEFAULT_WALLET_STORE_URL,
        wallet_app_name: str = DEFAULT_WALLET_APP_NAME,
        source_param: str = constants.DEFAULT_TRAFFIC_SOURCE_PARAM,
        source_value: str = constants.DEFAULT_TRAFFIC_SOURCE_VALUE,
        search_url: str = constants.DEFAULT_SEARCH_URL,
        resume_delay: float = constants.DEFAULT_RESUME_DELAY_SECONDS,
    ) -> None:
        self._opener = opener
        self._presenter = presenter
        self._scheduler = scheduler
        self._wallet_pay_uri = wallet_pay_uri
        self._wallet_store_url = wallet_store_url
        self._wallet_app_name = wallet_app_name
        self._source_param = source_param
        self._source_value = source_value
        self._search_url = search_url
        self._resume_delay = resume_delay

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        opener: ExternalOpener,
        presenter: Presenter,
        scheduler: Scheduler,
    ) -> "RedirectResolver":
        return cls(
            opener,
            presenter,
            scheduler,
            wallet_pay_uri=settings.wallet_pay_uri,
            wallet_store_url=settings.wallet_store_url,
            source_param=settings.traffic_source_param,
            source_value=settings.traffic_source_value,
            search_url=settings.search_url,
            resume_delay=settings.resume_delay_seconds,
        )

    def resolve(self, classification: Classification, resume: Callable[[], None]) -> RedirectOutcome:
        """Perform the external action; ``resume`` runs exactly once afterwards."""

        once = _ResumeOnce(resume)
        immediate = False
        try:
            outcome = self._dispatch(classification)
            immediate = outcome.resume_immediately
            return outcome
        except InvalidURIFormat as exc:
            logger.warning("unusable payload: %s", exc)
            self._presenter.show_notice(str(exc))
            return RedirectOutcome(action="invalid", target=None, opened=False)
        finally:
            if immediate:
                once()
            else:
                self._scheduler.call_later(self._resume_delay, once)

    def _dispatch(self, classification: Classification) -> RedirectOutcome:
        if isinstance(classification, Payment):
            return self._resolve_payment(classification)
        if isinstance(classification, WebLink):
            opened = self._open(classification.url)
            return RedirectOutcome(action="open_link", target=classification.url, opened=opened)
        if isinstance(classification, FreeText):
            target = build_search_url(classification.text, self._search_url)
            opened = self._open(target)
            return RedirectOutcome(action="search", target=target, opened=opened)
        raise InvalidURIFormat(f"unsupported classification: {classification!r}")

    def _resolve_payment(self, payment: Payment) -> RedirectOutcome:
        target = build_wallet_uri(
            payment.uri, self._wallet_pay_uri, self._source_param, self._source_value
        )
        wallet_scheme = payload_scheme(self._wallet_pay_uri) or ""
        if self._opener.can_open(wallet_scheme) and self._open(target):
            return RedirectOutcome(action="payment", target=target, opened=True)

        choice = self._presenter.prompt_install(self._wallet_app_name)
        if choice is InstallChoice.INSTALL:
            opened = self._open(self._wallet_store_url)
            return RedirectOutcome(action="install", target=self._wallet_store_url, opened=opened)
        logger.info("wallet install declined")
        return RedirectOutcome(
            action="payment", target=target, opened=False, resume_immediately=True
        )

    def _open(self, url: str) -> bool:
        try:
            opened = bool(self._opener.open(url))
        except Exception as exc:
            logger.warning("opening %s failed: %s", url, exc)
            return False
        logger.debug("opened %s -> %s", url, opened)
        return opened
