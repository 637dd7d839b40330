"""In-memory session store used by the test-suite and local runs."""

from __future__ import annotations

import copy
import threading
from collections import defaultdict
from typing import Any, Callable, TypeVar

from quiet_hours.repos.base import Document, SortSpec, Store

T = TypeVar("T")

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$lt": lambda value, operand: value is not None and value < operand,
    "$lte": lambda value, operand: value is not None and value <= operand,
    "$gte": lambda value, operand: value is not None and value >= operand,
    "$in": lambda value, operand: value in operand,
    "$ne": lambda value, operand: value != operand,
}


def matches(doc: Document, filter: Document) -> bool:
    """Return True if ``doc`` satisfies every clause of ``filter``."""
    for field, condition in filter.items():
        value = doc.get(field)
        if isinstance(condition, dict):
            for op, operand in condition.items():
                test = _OPERATORS.get(op)
                if test is None:
                    raise ValueError(f"Unsupported filter operator: {op}")
                if not test(value, operand):
                    return False
        elif value != condition:
            return False
    return True


class MemoryStore:
    """Dict-backed store for session documents, keyed by ``_id``."""

    def __init__(self) -> None:
        self._store: dict[str, Document] = {}
        self._lock = threading.RLock()
        self._owner_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)

    def insert_one(self, doc: Document) -> str:
        with self._lock:
            doc_id = str(doc["_id"])
            if doc_id in self._store:
                raise ValueError(f"Duplicate _id: {doc_id}")
            self._store[doc_id] = copy.deepcopy(doc)
            return doc_id

    def find(
        self,
        filter: Document,
        sort: SortSpec | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        with self._lock:
            found = [copy.deepcopy(d) for d in self._store.values() if matches(d, filter)]
        # Apply keys last-to-first so the first key dominates (stable sort).
        for field, direction in reversed(sort or []):
            found.sort(key=lambda d: d.get(field), reverse=direction < 0)
        if limit:
            found = found[:limit]
        return found

    def find_one(self, filter: Document) -> Document | None:
        found = self.find(filter, limit=1)
        return found[0] if found else None

    def update_one(self, filter: Document, values: Document) -> int:
        with self._lock:
            for doc in self._store.values():
                if matches(doc, filter):
                    doc.update(copy.deepcopy(values))
                    return 1
            return 0

    def update_many(self, filter: Document, values: Document) -> int:
        modified = 0
        with self._lock:
            for doc in self._store.values():
                if not matches(doc, filter):
                    continue
                if any(doc.get(k) != v for k, v in values.items()):
                    modified += 1
                doc.update(copy.deepcopy(values))
        return modified

    def delete_one(self, filter: Document) -> int:
        with self._lock:
            for doc_id, doc in self._store.items():
                if matches(doc, filter):
                    del self._store[doc_id]
                    return 1
            return 0

    def count(self, filter: Document | None = None) -> int:
        with self._lock:
            return sum(1 for d in self._store.values() if matches(d, filter or {}))

    def ping(self) -> None:
        return None

    def run_exclusive(self, owner_id: str, fn: Callable[[Store], T]) -> T:
        with self._lock:
            owner_lock = self._owner_locks[owner_id]
        with owner_lock:
            return fn(self)

    def close(self) -> None:
        return None
