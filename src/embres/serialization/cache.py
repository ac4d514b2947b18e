"""Thread-safe cache of built XML mapping plans."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Hashable, TypeVar

from embres.serialization.schemas import CacheStats
from embres.utils.logging import configure_module_logger

logger = configure_module_logger(__name__, level=logging.INFO)

T = TypeVar("T")


class XmlSerializerCache:
    """Keeps one mapping plan per ``(model, key)`` for the process lifetime.

    Keys are compared by equality, so callers control reuse through the key
    they pass rather than through the identity of override objects.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, object] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get_or_create(self, key: Hashable, factory: Callable[[], T]) -> T:
        """Return the entry stored under *key*, building it on a miss.

        The factory runs under the lock, so concurrent misses for the same
        key build the plan once.
        """
        with self._lock:
            if key in self._entries:
                self._hits += 1
                return self._entries[key]  # type: ignore[return-value]

            self._misses += 1
            logger.debug(f"[cyan]cache miss[/cyan] for {key!r}, building plan")
            value = factory()
            self._entries[key] = value
            return value

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits, misses=self._misses, size=len(self._entries)
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
