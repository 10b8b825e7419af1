from __future__ import annotations

from collections.abc import Callable, Hashable
from typing import Any, TypeVar

T = TypeVar("T")


class MatchingSessionCache:
    """Memo table scoped to one matching run.

    The orchestrator creates one per run and drops it afterwards; nothing here is
    shared between requests.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, Hashable], Any] = {}
        self.hits = 0
        self.misses = 0

    def get_or_compute(self, namespace: str, key: Hashable, factory: Callable[[], T]) -> T:
        slot = (namespace, key)
        if slot in self._entries:
            self.hits += 1
            return self._entries[slot]
        self.misses += 1
        value = factory()
        self._entries[slot] = value
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
