"""Single-writer execution context for history state."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class SingleWriter:
    """Serializes every mutation of the history stores onto one thread.

    Work arrives through :meth:`submit` from capture callbacks, network
    completions and user deletions alike; because only this thread touches
    the stores, check-then-insert needs no extra lock.
    """

    def __init__(self, name: str = "tringqr-history-writer") -> None:
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._started = False
        self._stopped = False
        self._lock = threading.Lock()

    def start(self) -> "SingleWriter":
        with self._lock:
            if not self._started:
                self._thread.start()
                self._started = True
        return self

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            if not self._started or self._stopped:
                self._stopped = True
                return
            self._stopped = True
        self._queue.put(_STOP)
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def __enter__(self) -> "SingleWriter":
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()

    def owns_current_thread(self) -> bool:
        return threading.current_thread() is self._thread

    def ensure_owned(self) -> None:
        if not self.owns_current_thread():
            raise RuntimeError(
                f"history state mutated outside the writer thread ({threading.current_thread().name})"
            )

    def submit(self, fn: Callable[..., T], *args: Any) -> "Future[T]":
        future: "Future[T]" = Future()
        if self._stopped:
            future.set_exception(RuntimeError("writer is stopped"))
            return future
        self.start()
        self._queue.put((fn, args, future))
        return future

    def call(self, fn: Callable[..., T], *args: Any, timeout: float | None = None) -> T:
        """Run ``fn`` on the writer and wait; runs inline when already on it."""

        if self.owns_current_thread():
            return fn(*args)
        return self.submit(fn, *args).result(timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            fn, args, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args)
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)
        self._drain()

    def _drain(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            if item is _STOP:
                continue
            _, _, future = item
            if future.set_running_or_notify_cancel():
                future.set_exception(RuntimeError("writer is stopped"))
