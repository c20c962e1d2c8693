"""Synchronize local scan and created-code history with the remote log."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, InvalidStateError, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Mapping, TypeVar

from ..config import constants
from ..errors import TringQRError
from .client import CallResult, HistoryApiClient
from .records import (
    CreatedCodeRecord,
    ScanRecord,
    confirmed_created_code,
    confirmed_scan,
    created_code_from_remote,
    scan_from_remote,
)
from .schemas import extract_entries
from .store import RecordStore
from .writer import SingleWriter

logger = logging.getLogger(__name__)

SCANS = "scans"
CREATED_CODES = "created_codes"

R = TypeVar("R", ScanRecord, CreatedCodeRecord)


class SyncStatus(Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    SUPERSEDED = "superseded"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncOutcome:
    kind: str
    status: SyncStatus
    call: CallResult | None = None
    dropped: int = 0

    @property
    def error(self) -> TringQRError | None:
        return self.call.error if self.call is not None else None


@dataclass(frozen=True)
class RecordKind(Generic[R]):
    name: str
    list_path: str
    append_path: str
    from_remote: Callable[[Any], R | None]
    confirmed: Callable[[str, Mapping[str, Any], Any], R]
    prepare: Callable[[str, Mapping[str, Any]], dict[str, Any]]
    append_body: Callable[[str, Mapping[str, Any]], dict[str, Any]]


@dataclass
class _Channel(Generic[R]):
    kind: RecordKind[R]
    store: RecordStore[R]
    pending: set[str] = field(default_factory=set)
    generation: int = 0


@dataclass(frozen=True)
class _Reload(Generic[R]):
    records: list[R]
    malformed: int


class HistorySyncEngine:
    """Keeps both history kinds in step with the remote activity log.

    Local lists only ever hold what the remote has accepted: appends insert
    after a 2xx and reloads replace the list wholesale. All store access runs
    on the :class:`SingleWriter`; HTTP calls run on the network pool and hand
    their results back to the writer.
    """

    def __init__(
        self,
        api: HistoryApiClient,
        writer: SingleWriter,
        device_id: str,
        *,
        network: Executor | None = None,
        network_workers: int = constants.DEFAULT_NETWORK_WORKERS,
        platform: str = constants.DEFAULT_PLATFORM,
        scan_event_category: str = constants.DEFAULT_SCAN_EVENT_CATEGORY,
        scan_history_path: str = constants.DEFAULT_SCAN_HISTORY_PATH,
        scan_append_path: str = constants.DEFAULT_SCAN_APPEND_PATH,
        codes_history_path: str = constants.DEFAULT_CODES_HISTORY_PATH,
        codes_create_path: str = constants.DEFAULT_CODES_CREATE_PATH,
        on_failure: Callable[[SyncOutcome], None] | None = None,
    ) -> None:
        self._api = api
        self._writer = writer
        self._device_id = device_id
        self._platform = platform
        self._scan_event_category = scan_event_category
        self._owns_network = network is None
        self._network = network or ThreadPoolExecutor(
            max_workers=max(1, network_workers), thread_name_prefix="tringqr-net"
        )
        self._on_failure = on_failure

        scans: RecordKind[ScanRecord] = RecordKind(
            name=SCANS,
            list_path=scan_history_path,
            append_path=scan_append_path,
            from_remote=scan_from_remote,
            confirmed=confirmed_scan,
            prepare=self._scan_metadata,
            append_body=self._scan_body,
        )
        codes: RecordKind[CreatedCodeRecord] = RecordKind(
            name=CREATED_CODES,
            list_path=codes_history_path,
            append_path=codes_create_path,
            from_remote=created_code_from_remote,
            confirmed=confirmed_created_code,
            prepare=lambda key, metadata: dict(metadata),
            append_body=self._created_code_body,
        )
        self._channels: dict[str, _Channel[Any]] = {
            SCANS: _Channel(scans, RecordStore(guard=writer.ensure_owned)),
            CREATED_CODES: _Channel(codes, RecordStore(guard=writer.ensure_owned)),
        }

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        api: HistoryApiClient,
        writer: SingleWriter,
        device_id: str,
        *,
        network: Executor | None = None,
        on_failure: Callable[[SyncOutcome], None] | None = None,
    ) -> "HistorySyncEngine":
        return cls(
            api,
            writer,
            device_id,
            network=network,
            network_workers=settings.network_workers,
            platform=settings.platform,
            scan_event_category=settings.scan_event_category,
            scan_history_path=settings.scan_history_path,
            scan_append_path=settings.scan_append_path,
            codes_history_path=settings.codes_history_path,
            codes_create_path=settings.codes_create_path,
            on_failure=on_failure,
        )

    @property
    def device_id(self) -> str:
        return self._device_id

    def close(self) -> None:
        if self._owns_network:
            self._network.shutdown(wait=True)

    def load_remote(self, kind: str) -> "Future[SyncOutcome]":
        """Replace the local list of ``kind`` with the remote collection."""

        channel = self._channel(kind)
        outcome: "Future[SyncOutcome]" = Future()

        def begin() -> None:
            channel.generation += 1
            generation = channel.generation
            params = {"deviceId": self._device_id}

            def fetch() -> CallResult:
                return self._api.fetch(
                    channel.kind.list_path,
                    params=params,
                    parse=lambda body: self._parse_collection(channel.kind, body),
                )

            self._run_call(
                outcome,
                fetch,
                lambda result: self._apply_reload(channel, generation, result),
            )

        self._submit(outcome, begin)
        return outcome

    def record_local_event(
        self, kind: str, key: str, metadata: Mapping[str, Any] | None = None
    ) -> "Future[SyncOutcome]":
        """Append ``key`` remotely, then insert it locally once accepted."""

        channel = self._channel(kind)
        prepared = channel.kind.prepare(key, metadata or {})
        outcome: "Future[SyncOutcome]" = Future()

        def begin() -> None:
            if key in channel.store or key in channel.pending:
                logger.debug("%s already holds %r; skipping append", kind, key)
                outcome.set_result(SyncOutcome(kind, SyncStatus.DUPLICATE))
                return
            channel.pending.add(key)
            body = channel.kind.append_body(key, prepared)
            try:
                self._run_call(
                    outcome,
                    lambda: self._api.send(channel.kind.append_path, body),
                    lambda result: self._apply_append(channel, key, prepared, result),
                    cleanup=lambda: channel.pending.discard(key),
                )
            except RuntimeError:
                channel.pending.discard(key)
                raise

        self._submit(outcome, begin)
        return outcome

    def delete(self, kind: str, key: str) -> "Future[bool]":
        """Drop a record locally; the remote log keeps it."""

        channel = self._channel(kind)
        return self._writer.submit(channel.store.remove, key)

    def records(self, kind: str) -> list[Any]:
        return self._writer.call(self._channel(kind).store.records)

    def keys(self, kind: str) -> frozenset[str]:
        return self._writer.call(self._channel(kind).store.keys)

    def is_consistent(self, kind: str) -> bool:
        return self._writer.call(self._channel(kind).store.is_consistent)

    def load_scans(self) -> "Future[SyncOutcome]":
        return self.load_remote(SCANS)

    def record_scan(
        self,
        code: str,
        *,
        event_category: str | None = None,
        event_name: str | None = None,
    ) -> "Future[SyncOutcome]":
        metadata: dict[str, Any] = {}
        if event_category:
            metadata["eventCategory"] = event_category
        if event_name:
            metadata["eventName"] = event_name
        return self.record_local_event(SCANS, code, metadata)

    def delete_scan(self, code: str) -> "Future[bool]":
        return self.delete(SCANS, code)

    def scans(self) -> list[ScanRecord]:
        return self.records(SCANS)

    def load_created_codes(self) -> "Future[SyncOutcome]":
        return self.load_remote(CREATED_CODES)

    def record_created_code(
        self, content: str, *, image_ref: str | None = None
    ) -> "Future[SyncOutcome]":
        metadata = {"imageRef": image_ref} if image_ref else {}
        return self.record_local_event(CREATED_CODES, content, metadata)

    def delete_created_code(self, content: str) -> "Future[bool]":
        return self.delete(CREATED_CODES, content)

    def created_codes(self) -> list[CreatedCodeRecord]:
        return self.records(CREATED_CODES)

    def _channel(self, kind: str) -> _Channel[Any]:
        try:
            return self._channels[kind]
        except KeyError:
            raise ValueError(f"unknown history kind {kind!r}") from None

    def _scan_metadata(self, key: str, metadata: Mapping[str, Any]) -> dict[str, Any]:
        prepared = dict(metadata)
        prepared.setdefault("eventCategory", self._scan_event_category)
        prepared.setdefault("eventName", key)
        return prepared

    def _scan_body(self, key: str, metadata: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "code": key,
            "deviceId": self._device_id,
            "platform": self._platform,
            "eventCategory": metadata["eventCategory"],
            "eventName": metadata["eventName"],
        }

    def _created_code_body(self, key: str, metadata: Mapping[str, Any]) -> dict[str, Any]:
        return {"content": key, "deviceId": self._device_id}

    @staticmethod
    def _parse_collection(kind: RecordKind[Any], body: Any) -> _Reload[Any]:
        entries = extract_entries(body)
        records = [record for record in map(kind.from_remote, entries) if record is not None]
        return _Reload(records=records, malformed=len(entries) - len(records))

    def _apply_reload(self, channel: _Channel[Any], generation: int, result: CallResult) -> SyncOutcome:
        kind = channel.kind.name
        if generation != channel.generation:
            logger.info(
                "discarding stale %s reload (generation %s, latest %s)",
                kind,
                generation,
                channel.generation,
            )
            return SyncOutcome(kind, SyncStatus.SUPERSEDED, call=result)
        if not result.ok:
            logger.warning("%s reload failed in %s: %s", kind, result.state.value, result.error)
            return SyncOutcome(kind, SyncStatus.FAILED, call=result)
        reload: _Reload[Any] = result.payload
        duplicates = channel.store.replace(reload.records)
        logger.info(
            "%s reloaded: %d records (%d malformed, %d duplicate)",
            kind,
            len(channel.store),
            reload.malformed,
            duplicates,
        )
        return SyncOutcome(
            kind, SyncStatus.APPLIED, call=result, dropped=reload.malformed + duplicates
        )

    def _apply_append(
        self,
        channel: _Channel[Any],
        key: str,
        metadata: Mapping[str, Any],
        result: CallResult,
    ) -> SyncOutcome:
        kind = channel.kind.name
        channel.pending.discard(key)
        if not result.ok:
            logger.warning("%s append failed in %s: %s", kind, result.state.value, result.error)
            return SyncOutcome(kind, SyncStatus.FAILED, call=result)
        record = channel.kind.confirmed(key, metadata, result.payload)
        inserted = channel.store.insert_head(record)
        status = SyncStatus.APPLIED if inserted else SyncStatus.DUPLICATE
        return SyncOutcome(kind, status, call=result)

    def _submit(self, outcome: "Future[SyncOutcome]", fn: Callable[[], None]) -> None:
        submitted = self._writer.submit(fn)
        submitted.add_done_callback(lambda done: _forward_error(done, outcome))

    def _run_call(
        self,
        outcome: "Future[SyncOutcome]",
        call: Callable[[], CallResult],
        finish: Callable[[CallResult], SyncOutcome],
        cleanup: Callable[[], None] | None = None,
    ) -> None:
        def completed(done: "Future[CallResult]") -> None:
            error = done.exception()
            if error is not None:
                logger.error("history call crashed: %s", error)

                def fail() -> None:
                    if cleanup is not None:
                        cleanup()
                    raise error

                self._submit(outcome, fail)
                return
            self._submit(outcome, lambda: self._settle(outcome, finish, done.result()))

        self._network.submit(call).add_done_callback(completed)

    def _settle(
        self,
        outcome: "Future[SyncOutcome]",
        finish: Callable[[CallResult], SyncOutcome],
        result: CallResult,
    ) -> None:
        sync = finish(result)
        if sync.status is SyncStatus.FAILED and self._on_failure is not None:
            try:
                self._on_failure(sync)
            except Exception:
                logger.exception("history failure hook raised")
        outcome.set_result(sync)


def _forward_error(done: "Future[Any]", outcome: "Future[SyncOutcome]") -> None:
    error = done.exception()
    if error is None or outcome.done():
        return
    try:
        outcome.set_exception(error)
    except InvalidStateError:
        pass
