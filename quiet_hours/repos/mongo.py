"""MongoDB-backed session store."""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from pymongo import ASCENDING, MongoClient
from pymongo.client_session import ClientSession
from pymongo.errors import PyMongoError

from quiet_hours.errors import StoreError
from quiet_hours.repos.base import Document, SortSpec, Store

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MongoStore:
    """Session documents in one collection, plus a per-owner guard collection.

    ``run_exclusive`` opens a multi-document transaction and bumps the owner's
    guard document first, so two concurrent bookings for the same owner
    write-conflict and one of them is retried against the other's result.
    Transactions need a replica set (Atlas clusters are one).
    """

    def __init__(
        self,
        uri: str,
        db_name: str,
        collection_name: str,
        client: MongoClient | None = None,
    ) -> None:
        self._client = client or MongoClient(
            uri, tz_aware=True, serverSelectionTimeoutMS=5000
        )
        db = self._client[db_name]
        self._collection = db[collection_name]
        self._guards = db[f"{collection_name}_owner_guards"]
        self._session: ClientSession | None = None

    def _bind(self, session: ClientSession) -> MongoStore:
        view = copy.copy(self)
        view._session = session
        return view

    @contextmanager
    def _wrap(self, operation: str) -> Iterator[None]:
        # Inside a transaction the raw error must reach with_transaction so
        # its retry logic can read the error labels.
        if self._session is not None:
            yield
            return
        try:
            yield
        except PyMongoError as exc:
            logger.error("MongoDB %s failed: %s", operation, exc)
            raise StoreError(f"Database {operation} failed") from exc

    def ensure_indexes(self) -> None:
        with self._wrap("create_index"):
            self._collection.create_index(
                [("owner_id", ASCENDING), ("start_time", ASCENDING)]
            )
            self._collection.create_index(
                [
                    ("status", ASCENDING),
                    ("notification_sent", ASCENDING),
                    ("start_time", ASCENDING),
                ]
            )

    def insert_one(self, doc: Document) -> str:
        with self._wrap("insert"):
            result = self._collection.insert_one(doc, session=self._session)
        return str(result.inserted_id)

    def find(
        self,
        filter: Document,
        sort: SortSpec | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        with self._wrap("find"):
            cursor = self._collection.find(filter, session=self._session)
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)

    def find_one(self, filter: Document) -> Document | None:
        with self._wrap("find"):
            return self._collection.find_one(filter, session=self._session)

    def update_one(self, filter: Document, values: Document) -> int:
        with self._wrap("update"):
            result = self._collection.update_one(
                filter, {"$set": values}, session=self._session
            )
        return result.matched_count

    def update_many(self, filter: Document, values: Document) -> int:
        with self._wrap("update"):
            result = self._collection.update_many(
                filter, {"$set": values}, session=self._session
            )
        return result.modified_count

    def delete_one(self, filter: Document) -> int:
        with self._wrap("delete"):
            result = self._collection.delete_one(filter, session=self._session)
        return result.deleted_count

    def count(self, filter: Document | None = None) -> int:
        with self._wrap("count"):
            return self._collection.count_documents(filter or {}, session=self._session)

    def ping(self) -> None:
        with self._wrap("ping"):
            self._client.admin.command("ping")

    def run_exclusive(self, owner_id: str, fn: Callable[[Store], T]) -> T:
        def _callback(session: ClientSession) -> T:
            self._guards.update_one(
                {"_id": owner_id}, {"$inc": {"version": 1}}, upsert=True, session=session
            )
            return fn(self._bind(session))

        with self._wrap("transaction"):
            with self._client.start_session() as session:
                return session.with_transaction(_callback)

    def close(self) -> None:
        self._client.close()
