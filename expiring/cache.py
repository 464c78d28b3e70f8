from __future__ import annotations

import logging
import reprlib
from collections.abc import Callable, Hashable, Iterator
from typing import Any, Generic, NamedTuple, TypeVar

from expiring.scheduler import Scheduler, TimerHandle, running_loop
from expiring.schemas import validate_ttl

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
T = TypeVar("T", bound=Hashable)

_MISSING: Any = object()


class _Expiring:
    """Owns the TTL and the scheduler; subclasses own the entries."""

    _log: logging.Logger

    def __init__(self, ttl: float, scheduler: Scheduler | None = None) -> None:
        self._ttl = validate_ttl(ttl)
        self._scheduler = scheduler

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def size(self) -> int:
        return len(self)  # type: ignore[arg-type]

    def _schedule(self, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        scheduler = self._scheduler if self._scheduler is not None else running_loop()
        return scheduler.call_later(self._ttl, callback, *args)


class Entry(NamedTuple):
    value: Any
    handle: TimerHandle


class ExpiringMap(_Expiring, Generic[K, V]):
    """
    Mapping whose entries are evicted ``ttl`` seconds after their last ``set``.

    Every present key owns exactly one live timer. Overwriting a key cancels
    its old timer and restarts the clock; ``delete`` and ``clear`` cancel
    eagerly. Timers hold a reference to the map until they fire, so a map
    dropped without ``clear()`` lives on until its last entry expires.
    """

    _log = logging.getLogger("expiring.map")

    def __init__(self, ttl: float, scheduler: Scheduler | None = None) -> None:
        super().__init__(ttl, scheduler)
        self._store: dict[K, Entry] = {}

    def set(self, key: K, value: V) -> ExpiringMap[K, V]:
        old = self._store.get(key)
        handle = self._schedule(self._evict, key)
        if old is not None:
            old.handle.cancel()
            self._log.debug("ttl refreshed for %r", key)
        self._store[key] = Entry(value, handle)
        return self

    def _evict(self, key: K) -> None:
        if self._store.pop(key, None) is not None:
            self._log.debug("evicted %r after %ss", key, self._ttl)

    def get(self, key: K, default: Any = None) -> V | Any:
        entry = self._store.get(key)
        return default if entry is None else entry.value

    def has(self, key: K) -> bool:
        return key in self._store

    def delete(self, key: K) -> bool:
        entry = self._store.pop(key, None)
        if entry is None:
            return False
        entry.handle.cancel()
        return True

    def clear(self) -> None:
        for entry in self._store.values():
            entry.handle.cancel()
        if self._store:
            self._log.debug("cleared %d entries", len(self._store))
        self._store.clear()

    # ---------- iteration (snapshots) ----------
    def keys(self) -> Iterator[K]:
        return iter(list(self._store))

    def values(self) -> Iterator[V]:
        return iter([entry.value for entry in self._store.values()])

    def entries(self) -> Iterator[tuple[K, V]]:
        return iter([(key, entry.value) for key, entry in self._store.items()])

    items = entries

    def __iter__(self) -> Iterator[tuple[K, V]]:
        return self.entries()

    # ---------- dict-style access ----------
    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __getitem__(self, key: K) -> V:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __setitem__(self, key: K, value: V) -> None:
        self.set(key, value)

    def __delitem__(self, key: K) -> None:
        if not self.delete(key):
            raise KeyError(key)

    @reprlib.recursive_repr()
    def __repr__(self) -> str:
        body = {key: entry.value for key, entry in self._store.items()}
        return f"{type(self).__name__}(ttl={self._ttl!r}, {body!r})"


class ExpiringSet(_Expiring, Generic[T]):
    """
    Set whose members are evicted ``ttl`` seconds after their last ``add``.

    Membership and timers live in separate structures that always cover the
    same values. Like ``ExpiringMap``, pending timers keep the set alive
    until they fire unless ``clear()`` is called.
    """

    _log = logging.getLogger("expiring.set")

    def __init__(self, ttl: float, scheduler: Scheduler | None = None) -> None:
        super().__init__(ttl, scheduler)
        self._members: set[T] = set()
        self._timers: dict[T, TimerHandle] = {}

    def add(self, value: T) -> ExpiringSet[T]:
        present = value in self._members
        handle = self._schedule(self._evict, value)
        if present:
            self._timers[value].cancel()
            self._log.debug("ttl refreshed for %r", value)
        self._members.add(value)
        self._timers[value] = handle
        return self

    def _evict(self, value: T) -> None:
        self._members.discard(value)
        if self._timers.pop(value, None) is not None:
            self._log.debug("evicted %r after %ss", value, self._ttl)

    def has(self, value: T) -> bool:
        return value in self._members

    def delete(self, value: T) -> bool:
        if value not in self._members:
            return False
        self._members.remove(value)
        self._timers.pop(value).cancel()
        return True

    def discard(self, value: T) -> None:
        self.delete(value)

    def remove(self, value: T) -> None:
        if not self.delete(value):
            raise KeyError(value)

    def clear(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        if self._timers:
            self._log.debug("cleared %d members", len(self._timers))
        self._members.clear()
        self._timers.clear()

    # ---------- iteration (snapshots) ----------
    def values(self) -> Iterator[T]:
        return iter(list(self._members))

    keys = values

    def entries(self) -> Iterator[tuple[T, T]]:
        return iter([(value, value) for value in self._members])

    def __iter__(self) -> Iterator[T]:
        return self.values()

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, value: object) -> bool:
        return value in self._members

    @reprlib.recursive_repr()
    def __repr__(self) -> str:
        return f"{type(self).__name__}(ttl={self._ttl!r}, {self._members!r})"
