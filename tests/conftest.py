# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Main conftest for shared fixtures and in-process stand-ins for the driver.

The unit tests run against `mongomock`. Since mongomock has no asyncio
flavour, a thin wrapper exposes its collections with the interface of the
pymongo AsyncCollection (awaitable methods, async cursors).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Dict

import mongomock
import pytest

from mongoeasy import AsyncCollection, Collection

DefaultCollection = Collection[Dict[str, Any]]
DefaultAsyncCollection = AsyncCollection[Dict[str, Any]]

TEST_DATABASE_NAME = "exampleDB"
TEST_COLLECTION_NAME = "test"


@dataclass
class Person:
    name: str
    surname: str
    id: Any = field(default=None, metadata={"field_name": "_id"})


BOB = {"name": "bob", "surname": "joe"}
SALLY = {"name": "sally", "surname": "joe"}


class TrackedCursor:
    """A cursor remembering whether it has been closed."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self.closed = False

    def __iter__(self) -> TrackedCursor:
        return self

    def __next__(self) -> Any:
        return next(self._cursor)

    def close(self) -> None:
        self.closed = True
        self._cursor.close()


class TrackedAsyncCursor:
    """Async iteration over a mongomock cursor, remembering its closure."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self.closed = False

    def __aiter__(self) -> TrackedAsyncCursor:
        return self

    async def __anext__(self) -> Any:
        try:
            return next(self._cursor)
        except StopIteration:
            raise StopAsyncIteration from None

    async def close(self) -> None:
        self.closed = True
        self._cursor.close()


class CursorTrackingCollection:
    """A mongomock collection whose `find` cursors are kept for inspection."""

    def __init__(self, collection: mongomock.Collection) -> None:
        self._collection = collection
        self.cursors: list[TrackedCursor] = []

    def __getattr__(self, attr_name: str) -> Any:
        return getattr(self._collection, attr_name)

    def find(self, *pargs: Any, **kwargs: Any) -> TrackedCursor:
        cursor = TrackedCursor(self._collection.find(*pargs, **kwargs))
        self.cursors.append(cursor)
        return cursor


class FakeAsyncCollection:
    """A mongomock collection behind the interface of pymongo's AsyncCollection."""

    def __init__(self, collection: mongomock.Collection) -> None:
        self._collection = collection
        self.cursors: list[TrackedAsyncCursor] = []

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FakeAsyncCollection):
            return self._collection == other._collection  # type: ignore[no-any-return]
        return False

    @property
    def name(self) -> str:
        return self._collection.name  # type: ignore[no-any-return]

    @property
    def database(self) -> Any:
        return self._collection.database

    def find(self, *pargs: Any, **kwargs: Any) -> TrackedAsyncCursor:
        cursor = TrackedAsyncCursor(self._collection.find(*pargs, **kwargs))
        self.cursors.append(cursor)
        return cursor

    async def find_one(self, *pargs: Any, **kwargs: Any) -> Any:
        return self._collection.find_one(*pargs, **kwargs)

    async def insert_one(self, *pargs: Any, **kwargs: Any) -> Any:
        return self._collection.insert_one(*pargs, **kwargs)

    async def insert_many(self, *pargs: Any, **kwargs: Any) -> Any:
        return self._collection.insert_many(*pargs, **kwargs)

    async def update_one(self, *pargs: Any, **kwargs: Any) -> Any:
        return self._collection.update_one(*pargs, **kwargs)

    async def update_many(self, *pargs: Any, **kwargs: Any) -> Any:
        return self._collection.update_many(*pargs, **kwargs)

    async def delete_one(self, *pargs: Any, **kwargs: Any) -> Any:
        return self._collection.delete_one(*pargs, **kwargs)

    async def delete_many(self, *pargs: Any, **kwargs: Any) -> Any:
        return self._collection.delete_many(*pargs, **kwargs)

    async def drop(self, *pargs: Any, **kwargs: Any) -> None:
        self._collection.drop(*pargs, **kwargs)


class FakeAsyncClient:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def mongomock_collection() -> Iterator[mongomock.Collection]:
    client = mongomock.MongoClient()
    yield client[TEST_DATABASE_NAME][TEST_COLLECTION_NAME]
    client.close()


@pytest.fixture
def tracking_collection(
    mongomock_collection: mongomock.Collection,
) -> CursorTrackingCollection:
    mongomock_collection.insert_many([dict(BOB), dict(SALLY)])
    return CursorTrackingCollection(mongomock_collection)


@pytest.fixture
def collection(tracking_collection: CursorTrackingCollection) -> DefaultCollection:
    """A collection with bob and sally (both surnamed joe) in it."""
    return Collection(tracking_collection)  # type: ignore[arg-type]


@pytest.fixture
def people_collection(
    tracking_collection: CursorTrackingCollection,
) -> Collection[Person]:
    return Collection(tracking_collection, document_type=Person)  # type: ignore[arg-type]


@pytest.fixture
def fake_async_collection(
    mongomock_collection: mongomock.Collection,
) -> FakeAsyncCollection:
    mongomock_collection.insert_many([dict(BOB), dict(SALLY)])
    return FakeAsyncCollection(mongomock_collection)


@pytest.fixture
def acollection(
    fake_async_collection: FakeAsyncCollection,
) -> DefaultAsyncCollection:
    """An async collection with bob and sally (both surnamed joe) in it."""
    return AsyncCollection(fake_async_collection)  # type: ignore[arg-type]


@pytest.fixture
def people_acollection(
    fake_async_collection: FakeAsyncCollection,
) -> AsyncCollection[Person]:
    return AsyncCollection(fake_async_collection, document_type=Person)  # type: ignore[arg-type]


__all__ = [
    "BOB",
    "SALLY",
    "CursorTrackingCollection",
    "DefaultAsyncCollection",
    "DefaultCollection",
    "FakeAsyncClient",
    "FakeAsyncCollection",
    "Person",
    "TrackedAsyncCursor",
    "TrackedCursor",
]
