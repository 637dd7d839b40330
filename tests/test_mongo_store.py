"""Tests for MongoStore's exclusive-write transaction against a fake client."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from pymongo.errors import OperationFailure, PyMongoError

from quiet_hours.errors import SessionConflictError, StoreError
from quiet_hours.repos.mongo import MongoStore


class FakeCollection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.calls: list[tuple] = []
        self.fail_with: PyMongoError | None = None

    def update_one(self, filter, update, upsert=False, session=None):
        self.calls.append(("update_one", filter, update, upsert, session))
        return SimpleNamespace(matched_count=1)

    def insert_one(self, doc, session=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append(("insert_one", doc, session))
        return SimpleNamespace(inserted_id=doc["_id"])


class FakeSession:
    def __init__(self) -> None:
        self.ended = False
        self.callback_errors: list[BaseException] = []

    def __enter__(self) -> FakeSession:
        return self

    def __exit__(self, *exc) -> None:
        self.ended = True

    def with_transaction(self, callback):
        try:
            return callback(self)
        except BaseException as exc:
            self.callback_errors.append(exc)
            raise


class FakeClient:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}
        self.sessions: list[FakeSession] = []
        self.start_error: PyMongoError | None = None

    def __getitem__(self, db_name: str) -> FakeDatabase:
        return FakeDatabase(self)

    def collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection(name))

    def start_session(self) -> FakeSession:
        if self.start_error is not None:
            raise self.start_error
        session = FakeSession()
        self.sessions.append(session)
        return session

    def close(self) -> None:
        pass


class FakeDatabase:
    def __init__(self, client: FakeClient) -> None:
        self.client = client

    def __getitem__(self, name: str) -> FakeCollection:
        return self.client.collection(name)


@pytest.fixture()
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture()
def mongo(client) -> MongoStore:
    return MongoStore("mongodb://unused", "quiet_hours", "study_blocks", client=client)


def test_run_exclusive_bumps_owner_guard_in_the_same_session(mongo, client):
    seen = []

    def _insert(store):
        seen.append(store)
        return store.insert_one({"_id": "s1", "owner_id": "alice"})

    assert mongo.run_exclusive("alice", _insert) == "s1"

    [session] = client.sessions
    guards = client.collections["study_blocks_owner_guards"]
    assert guards.calls == [
        ("update_one", {"_id": "alice"}, {"$inc": {"version": 1}}, True, session)
    ]
    assert seen[0] is not mongo
    assert seen[0]._session is session
    assert client.collections["study_blocks"].calls == [
        ("insert_one", {"_id": "s1", "owner_id": "alice"}, session)
    ]
    assert mongo._session is None
    assert session.ended


def test_run_exclusive_lets_domain_errors_through(mongo, client):
    def _reject(store):
        raise SessionConflictError(["existing"])

    with pytest.raises(SessionConflictError):
        mongo.run_exclusive("alice", _reject)


def test_driver_error_inside_transaction_reaches_with_transaction_raw(mongo, client):
    client.collection("study_blocks").fail_with = OperationFailure("write conflict")

    with pytest.raises(StoreError, match="Database transaction failed"):
        mongo.run_exclusive("alice", lambda store: store.insert_one({"_id": "s1"}))

    [session] = client.sessions
    assert isinstance(session.callback_errors[0], OperationFailure)


def test_session_start_failure_becomes_store_error(mongo, client):
    client.start_error = PyMongoError("no replica set")

    with pytest.raises(StoreError, match="Database transaction failed"):
        mongo.run_exclusive("alice", lambda store: None)
