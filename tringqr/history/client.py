"""Remote history API client.

Every call follows the same three steps, each feeding its result into the
next: obtain a fresh bearer credential, perform the HTTP request, and parse
the body. The first failing step ends the call with an explicit
:class:`CallResult`; nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

import httpx

from ..auth.credentials import CredentialProvider, fetch_fresh_token
from ..errors import AuthCredentialUnavailable, InvalidResponseShape, NetworkFailure, TringQRError

logger = logging.getLogger(__name__)


class CallState(Enum):
    NOT_STARTED = "not_started"
    CREDENTIAL_PENDING = "credential_pending"
    CREDENTIAL_FAILED = "credential_failed"
    REQUESTING = "requesting"
    NETWORK_FAILED = "network_failed"
    RESPONDED = "responded"
    PARSE_FAILED = "parse_failed"
    COMPLETED = "completed"


TERMINAL_FAILURES = frozenset(
    {CallState.CREDENTIAL_FAILED, CallState.NETWORK_FAILED, CallState.PARSE_FAILED}
)


@dataclass(frozen=True)
class CallResult:
    state: CallState
    trace: tuple[CallState, ...]
    payload: Any = None
    status_code: int | None = None
    error: TringQRError | None = None

    @property
    def ok(self) -> bool:
        return self.state is CallState.COMPLETED


class HistoryApiClient:
    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider | None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url
        self._credentials = credentials
        self._http_client = http_client or httpx.Client(base_url=base_url)

    def __enter__(self) -> "HistoryApiClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        closeable = getattr(self._http_client, "close", None)
        if callable(closeable):
            closeable()

    def fetch(
        self,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        parse: Callable[[Any], Any],
    ) -> CallResult:
        return self.call("GET", path, params=params, parse=parse)

    def send(self, path: str, body: Mapping[str, Any]) -> CallResult:
        return self.call("POST", path, body=body)

    def call(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Mapping[str, Any] | None = None,
        parse: Callable[[Any], Any] | None = None,
    ) -> CallResult:
        trace = [CallState.NOT_STARTED, CallState.CREDENTIAL_PENDING]
        try:
            token = fetch_fresh_token(self._credentials)
        except AuthCredentialUnavailable as exc:
            trace.append(CallState.CREDENTIAL_FAILED)
            return CallResult(CallState.CREDENTIAL_FAILED, tuple(trace), error=exc)

        trace.append(CallState.REQUESTING)
        try:
            response = self._request(method, path, token, params, body)
        except NetworkFailure as exc:
            trace.append(CallState.NETWORK_FAILED)
            return CallResult(
                CallState.NETWORK_FAILED, tuple(trace), status_code=exc.status_code, error=exc
            )

        trace.append(CallState.RESPONDED)
        if parse is None:
            trace.append(CallState.COMPLETED)
            return CallResult(
                CallState.COMPLETED,
                tuple(trace),
                payload=_json_or_none(response),
                status_code=response.status_code,
            )

        try:
            value = parse(response.json())
        except ValueError as exc:
            trace.append(CallState.PARSE_FAILED)
            error = InvalidResponseShape(f"response body is not JSON: {exc}")
            return CallResult(
                CallState.PARSE_FAILED, tuple(trace), status_code=response.status_code, error=error
            )
        except InvalidResponseShape as exc:
            trace.append(CallState.PARSE_FAILED)
            return CallResult(
                CallState.PARSE_FAILED, tuple(trace), status_code=response.status_code, error=exc
            )

        trace.append(CallState.COMPLETED)
        return CallResult(
            CallState.COMPLETED, tuple(trace), payload=value, status_code=response.status_code
        )

    def _request(
        self,
        method: str,
        path: str,
        token: str,
        params: Mapping[str, str] | None,
        body: Mapping[str, Any] | None,
    ) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        logger.debug("history API %s %s params=%s", method, path, params)
        try:
            response = self._http_client.request(
                method, path, params=params, json=body, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise NetworkFailure(
                f"history API returned {status_code} for {method} {path}", status_code=status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkFailure(f"history API unreachable: {exc}") from exc
        return response


def _json_or_none(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
