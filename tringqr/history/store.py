"""Ordered, deduplicated record store."""

from __future__ import annotations

from typing import Callable, Generic, Iterable, Iterator, Protocol, TypeVar


class Keyed(Protocol):
    @property
    def key(self) -> str:
        ...


R = TypeVar("R", bound=Keyed)


class RecordStore(Generic[R]):
    """Most-recent-first record list paired with its key set.

    A key is in the set exactly when one record carrying it is in the list.
    ``guard`` is called before every mutation so the owner can pin writes to
    a single thread.
    """

    def __init__(self, guard: Callable[[], None] | None = None) -> None:
        self._records: list[R] = []
        self._keys: set[str] = set()
        self._guard = guard

    def records(self) -> list[R]:
        return list(self._records)

    def keys(self) -> frozenset[str]:
        return frozenset(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[R]:
        return iter(list(self._records))

    def insert_head(self, record: R) -> bool:
        self._check_owner()
        if record.key in self._keys:
            return False
        self._records.insert(0, record)
        self._keys.add(record.key)
        return True

    def replace(self, records: Iterable[R]) -> int:
        """Swap in a full reload in the given order; returns duplicates dropped."""

        self._check_owner()
        fresh: list[R] = []
        keys: set[str] = set()
        dropped = 0
        for record in records:
            if record.key in keys:
                dropped += 1
                continue
            keys.add(record.key)
            fresh.append(record)
        self._records = fresh
        self._keys = keys
        return dropped

    def remove(self, key: str) -> bool:
        self._check_owner()
        if key not in self._keys:
            return False
        self._records = [record for record in self._records if record.key != key]
        self._keys.discard(key)
        return True

    def is_consistent(self) -> bool:
        listed = [record.key for record in self._records]
        return len(listed) == len(set(listed)) and set(listed) == self._keys

    def _check_owner(self) -> None:
        if self._guard is not None:
            self._guard()
