"""Scan and created-code history kept in step with the remote activity log."""

from __future__ import annotations

from .client import CallResult, CallState, HistoryApiClient
from .engine import CREATED_CODES, SCANS, HistorySyncEngine, SyncOutcome, SyncStatus
from .identity import KeyStore, load_or_create_device_id
from .records import CreatedCodeRecord, ScanRecord
from .schemas import extract_entries
from .store import RecordStore
from .writer import SingleWriter

__all__ = [
    "CallResult",
    "CallState",
    "HistoryApiClient",
    "CREATED_CODES",
    "SCANS",
    "HistorySyncEngine",
    "SyncOutcome",
    "SyncStatus",
    "KeyStore",
    "load_or_create_device_id",
    "CreatedCodeRecord",
    "ScanRecord",
    "extract_entries",
    "RecordStore",
    "SingleWriter",
]
