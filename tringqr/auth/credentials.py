"""Credential providers that mint a bearer token on demand."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from ..errors import AuthCredentialUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BearerCredential:
    token: str
    expires_in: int | None = None


class CredentialProvider(Protocol):
    """Supplies a bearer credential; may raise or return nothing."""

    def fresh_credential(self) -> BearerCredential | None:
        ...


class StaticCredentialProvider:
    """Hands out a fixed token, e.g. one obtained by an external sign-in flow."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    def fresh_credential(self) -> BearerCredential | None:
        if not self._token:
            return None
        return BearerCredential(token=self._token)


class RefreshTokenCredentialProvider:
    """Exchanges a long-lived refresh token for a new ID token on every call."""

    def __init__(
        self,
        token_endpoint: str,
        api_key: str,
        refresh_token: str,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._token_endpoint = token_endpoint
        self._api_key = api_key
        self._refresh_token = refresh_token
        self._http_client = http_client or httpx.Client()

    def close(self) -> None:
        closeable = getattr(self._http_client, "close", None)
        if callable(closeable):
            closeable()

    def fresh_credential(self) -> BearerCredential:
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": self._refresh_token,
        }
        params = {"key": self._api_key} if self._api_key else None
        response = self._http_client.post(self._token_endpoint, data=payload, params=params)
        response.raise_for_status()
        body: dict[str, Any] = response.json()
        token = body.get("id_token") or body.get("access_token")
        if not token:
            raise ValueError("token endpoint returned no id_token")
        rotated = body.get("refresh_token")
        if rotated:
            self._refresh_token = rotated
        expires_value = body.get("expires_in")
        expires_seconds = None if expires_value is None else int(expires_value)
        return BearerCredential(token=token, expires_in=expires_seconds)


def fetch_fresh_token(provider: CredentialProvider | None) -> str:
    """Ask the provider for a new token, mapping every failure to one error."""

    if provider is None:
        raise AuthCredentialUnavailable("no credential provider configured")
    try:
        credential = provider.fresh_credential()
    except AuthCredentialUnavailable:
        raise
    except Exception as exc:
        logger.warning("credential refresh failed: %s", exc)
        raise AuthCredentialUnavailable(f"credential refresh failed: {exc}") from exc
    if credential is None or not credential.token:
        raise AuthCredentialUnavailable("credential provider returned no token")
    return credential.token


def credential_provider_factory(
    settings: Any, *, http_client: httpx.Client | None = None
) -> CredentialProvider:
    if not settings.refresh_token:
        raise ValueError("TRINGQR_REFRESH_TOKEN is missing")
    if not settings.api_key:
        raise ValueError("TRINGQR_API_KEY is missing")
    return RefreshTokenCredentialProvider(
        settings.token_endpoint,
        settings.api_key,
        settings.refresh_token,
        http_client=http_client,
    )
