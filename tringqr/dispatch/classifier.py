"""Classify decoded payloads into payment, web link or free text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Union

from ..config import constants

_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):(.+)$", re.DOTALL)


@dataclass(frozen=True)
class Payment:
    uri: str


@dataclass(frozen=True)
class WebLink:
    url: str


@dataclass(frozen=True)
class FreeText:
    text: str


Classification = Union[Payment, WebLink, FreeText]


def payload_scheme(payload: str) -> str | None:
    """Return the lower-cased URI scheme, or None when the payload has none."""

    match = _SCHEME_RE.match(payload.strip())
    if not match:
        return None
    return match.group(1).lower()


def is_absolute_url(payload: str) -> bool:
    match = _SCHEME_RE.match(payload)
    if not match:
        return False
    remainder = match.group(2)
    return bool(remainder) and not any(ch.isspace() for ch in payload)


class ScanDecodeDispatcher:
    """Pure classification of scanned payload strings."""

    def __init__(
        self,
        can_open_scheme: Callable[[str], bool],
        payment_schemes: Iterable[str] = constants.DEFAULT_PAYMENT_SCHEMES,
    ) -> None:
        self._can_open_scheme = can_open_scheme
        self._payment_schemes = frozenset(scheme.lower() for scheme in payment_schemes)

    def classify(self, payload: str) -> Classification:
        scheme = payload_scheme(payload)
        if scheme is not None and scheme in self._payment_schemes:
            return Payment(payload.strip())
        if scheme is not None and is_absolute_url(payload) and self._can_open_scheme(scheme):
            return WebLink(payload)
        return FreeText(payload)
