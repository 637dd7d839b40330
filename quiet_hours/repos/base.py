"""Storage interface shared by the MongoDB and in-memory session stores."""

from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar

T = TypeVar("T")

Document = dict[str, Any]
SortSpec = list[tuple[str, int]]

ASCENDING = 1
DESCENDING = -1

# Filters are Mongo-shaped: {"field": value} for equality, or
# {"field": {"$op": operand}} with $op one of $lt, $lte, $gte, $in, $ne.


class Store(Protocol):
    """A collection of session documents keyed by ``_id``."""

    def insert_one(self, doc: Document) -> str: ...

    def find(
        self,
        filter: Document,
        sort: SortSpec | None = None,
        limit: int | None = None,
    ) -> list[Document]: ...

    def find_one(self, filter: Document) -> Document | None: ...

    def update_one(self, filter: Document, values: Document) -> int:
        """Set ``values`` on the first match. Returns the matched count."""
        ...

    def update_many(self, filter: Document, values: Document) -> int:
        """Set ``values`` on every match. Returns the modified count."""
        ...

    def delete_one(self, filter: Document) -> int: ...

    def count(self, filter: Document | None = None) -> int: ...

    def ping(self) -> None: ...

    def run_exclusive(self, owner_id: str, fn: Callable[[Store], T]) -> T:
        """Run ``fn`` against the store with writes for ``owner_id`` serialized.

        ``fn`` receives the store handle it must use; anything it raises
        aborts the unit of work and propagates.
        """
        ...

    def close(self) -> None: ...
