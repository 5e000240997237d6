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

from __future__ import annotations

import asyncio

import pytest

from mongoeasy import AsyncCollection, SortMode
from mongoeasy.api_options import APIOptions, TimeoutOptions
from mongoeasy.exceptions import (
    CollectionInsertManyException,
    DocumentDecodeException,
    DocumentNotFoundException,
    DocumentStoreResponseException,
)

from ..conftest import (
    BOB,
    DefaultAsyncCollection,
    FakeAsyncClient,
    FakeAsyncCollection,
    Person,
)


class TestCollectionsAsync:
    @pytest.mark.describe("test of instantiating Collection, async")
    async def test_instantiate_collection_async(
        self,
        fake_async_collection: FakeAsyncCollection,
    ) -> None:
        col1: DefaultAsyncCollection = AsyncCollection(
            fake_async_collection,  # type: ignore[arg-type]
            api_options=APIOptions(callers=[("cn", "cv")]),
        )
        col2: DefaultAsyncCollection = AsyncCollection(
            fake_async_collection,  # type: ignore[arg-type]
            api_options=APIOptions(callers=[("cn", "cv")]),
        )
        assert col1 == col2
        assert col1 != AsyncCollection(fake_async_collection)  # type: ignore[arg-type]
        assert col1.full_name == "exampleDB.test"
        assert 'name="test"' in repr(col1)

        col3 = col1.with_options(
            api_options=APIOptions(
                timeout_options=TimeoutOptions(general_method_timeout_ms=4321),
            ),
        )
        assert col3.api_options.timeout_options.general_method_timeout_ms == 4321
        assert col3.api_options.callers == [("cn", "cv")]

    @pytest.mark.describe("test of Collection rich callable error, async")
    async def test_collection_callable_error_async(
        self,
        acollection: DefaultAsyncCollection,
    ) -> None:
        with pytest.raises(TypeError, match="not callable"):
            acollection("find_one")  # type: ignore[operator]

    @pytest.mark.describe("test of Collection owned-client closing, async")
    async def test_collection_close_async(
        self,
        fake_async_collection: FakeAsyncCollection,
    ) -> None:
        client = FakeAsyncClient()
        async with AsyncCollection(
            fake_async_collection,  # type: ignore[arg-type]
            client=client,  # type: ignore[arg-type]
        ) as acol:
            await acol.find_one({"name": "bob"})
            assert not client.closed
        assert client.closed

    @pytest.mark.describe("test of find_one and find_many, async")
    async def test_find_async(
        self,
        acollection: DefaultAsyncCollection,
        people_acollection: AsyncCollection[Person],
        fake_async_collection: FakeAsyncCollection,
    ) -> None:
        doc = await acollection.find_one([("name", "bob")])
        assert {k: v for k, v in doc.items() if k != "_id"} == BOB

        person = await people_acollection.find_one({"name": "sally"})
        assert (person.name, person.surname) == ("sally", "joe")

        with pytest.raises(DocumentNotFoundException):
            await acollection.find_one({"name": "john"})

        people = await people_acollection.find_many(
            {"surname": "joe"}, sort={"name": SortMode.ASCENDING}
        )
        assert [p.name for p in people] == ["bob", "sally"]
        assert fake_async_collection.cursors[-1].closed

        assert await acollection.find_many({"name": "john"}) == []
        assert fake_async_collection.cursors[-1].closed

    @pytest.mark.describe("test of find_many with a document not fitting the type, async")
    async def test_find_many_decode_error_async(
        self,
        people_acollection: AsyncCollection[Person],
        fake_async_collection: FakeAsyncCollection,
    ) -> None:
        await people_acollection.insert_one({"name": "nosurname"})
        with pytest.raises(DocumentDecodeException):
            await people_acollection.find_many({}, sort={"name": 1})
        assert fake_async_collection.cursors[-1].closed

    @pytest.mark.describe("test of insert_one and insert_many, async")
    async def test_insert_async(
        self,
        acollection: DefaultAsyncCollection,
        people_acollection: AsyncCollection[Person],
    ) -> None:
        io_result = await people_acollection.insert_one(Person("john", "smith"))
        john = await acollection.find_one({"_id": io_result.inserted_id})
        assert john["surname"] == "smith"

        im_result = await acollection.insert_many(
            [{"name": "alex", "surname": "smith"}, {"name": "alex", "surname": "hansen"}]
        )
        alexes = await acollection.find_many({"name": "alex"})
        assert {alex["_id"] for alex in alexes} == set(im_result.inserted_ids)

        await acollection.insert_one({"_id": "dup"})
        with pytest.raises(DocumentStoreResponseException):
            await acollection.insert_one({"_id": "dup"})
        with pytest.raises(CollectionInsertManyException) as exc:
            await acollection.insert_many(
                [{"_id": "x"}, {"_id": "dup"}, {"_id": "y"}], ordered=False
            )
        assert exc.value.partial_result.inserted_ids == ["x", "y"]

    @pytest.mark.describe("test of update_one and update_many, async")
    async def test_update_async(
        self,
        acollection: DefaultAsyncCollection,
    ) -> None:
        uo_result = await acollection.update_one(
            {"surname": "joe"}, [("$set", [("surname", "wu")])]
        )
        assert (uo_result.matched_count, uo_result.modified_count) == (1, 1)

        um_result = await acollection.update_many(
            {"surname": {"$in": ["joe", "wu"]}}, {"$set": {"surname": "young"}}
        )
        assert (um_result.matched_count, um_result.modified_count) == (2, 2)
        um_result2 = await acollection.update_many(
            {"surname": "young"}, {"$set": {"surname": "young"}}
        )
        assert (um_result2.matched_count, um_result2.modified_count) == (2, 0)

    @pytest.mark.describe("test of delete_one, delete_many and drop, async")
    async def test_delete_async(
        self,
        acollection: DefaultAsyncCollection,
    ) -> None:
        do_result = await acollection.delete_one({"name": "bob"})
        assert do_result.deleted_count == 1
        with pytest.raises(DocumentNotFoundException):
            await acollection.find_one({"name": "bob"})
        assert (await acollection.delete_one({"name": "bob"})).deleted_count == 0

        dm_result = await acollection.delete_many({"surname": "joe"})
        assert dm_result.deleted_count == 1
        assert (await acollection.delete_many({})).deleted_count == 0

        await acollection.insert_one({"name": "again"})
        await acollection.drop()
        assert await acollection.find_many() == []

    @pytest.mark.describe("test of concurrent tasks on a single Collection, async")
    async def test_concurrent_tasks_async(
        self,
        acollection: DefaultAsyncCollection,
    ) -> None:
        results = await asyncio.gather(
            acollection.find_one({"name": "bob"}, timeout_ms=1000),
            acollection.find_one({"name": "sally"}, timeout_ms=2000),
            acollection.find_many({"surname": "joe"}),
        )
        assert results[0]["name"] == "bob"
        assert results[1]["name"] == "sally"
        assert len(results[2]) == 2
