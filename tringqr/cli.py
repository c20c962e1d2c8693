"""TringQR operator CLI: payload classification and history inspection."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

from . import __version__
from .app import AppContext, configure_logging
from .config import settings
from .dispatch.classifier import FreeText, Payment, ScanDecodeDispatcher, WebLink
from .dispatch.redirect import build_search_url, build_wallet_uri
from .errors import InvalidURIFormat
from .history.engine import CREATED_CODES, SCANS, SyncStatus

logger = logging.getLogger(__name__)

OPENABLE_SCHEMES = ("http", "https", "mailto", "tel", "sms")

_KINDS = {"scans": SCANS, "codes": CREATED_CODES}


def _describe(payload: str, cfg: settings.Settings) -> dict[str, Any]:
    dispatcher = ScanDecodeDispatcher(
        lambda scheme: scheme in OPENABLE_SCHEMES, cfg.payment_schemes
    )
    classification = dispatcher.classify(payload)
    if isinstance(classification, Payment):
        target = build_wallet_uri(
            classification.uri,
            cfg.wallet_pay_uri,
            cfg.traffic_source_param,
            cfg.traffic_source_value,
        )
        return {"kind": "payment", "target": target}
    if isinstance(classification, WebLink):
        return {"kind": "link", "target": classification.url}
    assert isinstance(classification, FreeText)
    return {"kind": "text", "target": build_search_url(classification.text, cfg.search_url)}


def _record_row(record: Any) -> dict[str, Any]:
    row = {
        "id": record.identifier,
        "key": record.key,
        "timestamp": record.timestamp.isoformat() if record.timestamp else None,
    }
    image_ref = getattr(record, "image_ref", None)
    if image_ref:
        row["image"] = image_ref
    return row


def _run_classify(payload: str) -> int:
    try:
        described = _describe(payload, settings.get_settings())
    except InvalidURIFormat as exc:
        print(f"invalid payload: {exc}", file=sys.stderr)
        return 2
    print(json.dumps(described))
    return 0


def _run_history(kind: str, timeout: float) -> int:
    with AppContext.create(log_level=None) as context:
        outcome = context.engine.load_remote(_KINDS[kind]).result(timeout)
        if outcome.status is not SyncStatus.APPLIED:
            logger.error("history reload %s: %s", outcome.status.value, outcome.error)
            return 1
        for record in context.engine.records(_KINDS[kind]):
            print(json.dumps(_record_row(record)))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(prog="tringqr-cli")
    parser.add_argument(
        "--version",
        action="version",
        version=f"tringqr {__version__}",
        help="Show version",
    )
    subparsers = parser.add_subparsers(dest="command", required=False)
    classify_parser = subparsers.add_parser("classify", help="Show where a payload would lead")
    classify_parser.add_argument("payload", help="Decoded QR payload")
    history_parser = subparsers.add_parser("history", help="Reload and print remote history")
    history_parser.add_argument("kind", choices=sorted(_KINDS), help="History list to load")
    history_parser.add_argument(
        "--timeout", type=float, default=30.0, help="Seconds to wait for the reload"
    )

    args = parser.parse_args(argv)
    if args.command == "classify":
        return _run_classify(args.payload)
    if args.command == "history":
        configure_logging()
        return _run_history(args.kind, args.timeout)
    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
