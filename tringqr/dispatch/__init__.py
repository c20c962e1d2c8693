"""Payload classification and redirect handling."""

from .classifier import (
    Classification,
    FreeText,
    Payment,
    ScanDecodeDispatcher,
    WebLink,
    is_absolute_url,
    payload_scheme,
)
from .redirect import RedirectOutcome, RedirectResolver, build_search_url, build_wallet_uri

__all__ = [
    "Classification",
    "FreeText",
    "Payment",
    "ScanDecodeDispatcher",
    "WebLink",
    "is_absolute_url",
    "payload_scheme",
    "RedirectOutcome",
    "RedirectResolver",
    "build_search_url",
    "build_wallet_uri",
]
