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

import pytest

from mongoeasy import AsyncCollection, SortMode
from mongoeasy.exceptions import DocumentNotFoundException

from .conftest import Doc, requires_live_server

BY_INSERTION = {"_id": SortMode.ASCENDING}


@requires_live_server
class TestCollectionFindAsync:
    @pytest.mark.describe("test of find_one with a match, async")
    async def test_find_one_present_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        assert await live_acollection.find_one({"name": "bob"}) == Doc("bob", "joe")
        # one document, even when more satisfy the filter
        assert (await live_acollection.find_one({"surname": "joe"})).surname == "joe"

    @pytest.mark.describe("test of find_one without a match, async")
    async def test_find_one_absent_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        with pytest.raises(DocumentNotFoundException):
            await live_acollection.find_one({"name": "john"})
        with pytest.raises(DocumentNotFoundException):
            await live_acollection.find_one({"birthday": "04/16/01"})

    @pytest.mark.describe("test of find_many, async")
    async def test_find_many_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        found = await live_acollection.find_many({"surname": "joe"}, sort=BY_INSERTION)
        assert found == [
            Doc("bob", "joe"),
            Doc("sally", "joe"),
        ]
        assert await live_acollection.find_many({"name": "john"}) == []


@requires_live_server
class TestCollectionInsertAsync:
    @pytest.mark.describe("test of insert_one, async")
    async def test_insert_one_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        with pytest.raises(DocumentNotFoundException):
            await live_acollection.find_one({"name": "john"})
        result = await live_acollection.insert_one(Doc("john", "smith"))
        assert result.inserted_id is not None
        assert await live_acollection.find_one({"name": "john"}) == Doc("john", "smith")

    @pytest.mark.describe("test of insert_many, async")
    async def test_insert_many_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        result = await live_acollection.insert_many(
            [Doc("alex", "smith"), Doc("alex", "hansen")]
        )
        assert len(result.inserted_ids) == 2
        found = await live_acollection.find_many({"name": "alex"}, sort=BY_INSERTION)
        assert found == [
            Doc("alex", "smith"),
            Doc("alex", "hansen"),
        ]


@requires_live_server
class TestCollectionUpdateAsync:
    @pytest.mark.describe("test of update_one on an existing field, async")
    async def test_update_one_existing_field_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        await live_acollection.insert_one(Doc("rebecca", "joe"))
        target = {"name": "rebecca", "surname": "o'connor"}
        with pytest.raises(DocumentNotFoundException):
            await live_acollection.find_one(target)

        result = await live_acollection.update_one(
            {"name": "rebecca"},
            {"$set": {"surname": "o'connor"}},
        )
        assert (result.matched_count, result.modified_count) == (1, 1)
        await live_acollection.find_one(target)

    @pytest.mark.describe("test of update_one adding a field, async")
    async def test_update_one_new_field_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        await live_acollection.insert_one(Doc("kevin", "kwon"))
        with pytest.raises(DocumentNotFoundException):
            await live_acollection.find_one({"age": 24})

        result = await live_acollection.update_one(
            [("name", "kevin"), ("surname", "kwon")],
            [("$set", [("age", 24)])],
        )
        assert (result.matched_count, result.modified_count) == (1, 1)
        assert await live_acollection.find_one({"age": 24}) == Doc("kevin", "kwon")

    @pytest.mark.describe("test of update_one with several matches, async")
    async def test_update_one_many_matches_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        await live_acollection.insert_many(
            [Doc("jessica", "wu"), Doc("sherry", "wu")]
        )
        result = await live_acollection.update_one(
            {"surname": "wu"},
            {"$set": {"surname": "o'connor"}},
        )
        assert (result.matched_count, result.modified_count) == (1, 1)
        assert len(await live_acollection.find_many({"surname": "wu"})) == 1

    @pytest.mark.describe("test of update_many, async")
    async def test_update_many_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        await live_acollection.insert_many(
            [Doc("clement", "hii"), Doc("john", "hii")]
        )
        result = await live_acollection.update_many(
            {"surname": "hii"},
            {"$set": {"surname": "young"}},
        )
        assert (result.matched_count, result.modified_count) == (2, 2)
        result_again = await live_acollection.update_many(
            {"surname": "young"},
            {"$set": {"surname": "young"}},
        )
        assert (result_again.matched_count, result_again.modified_count) == (2, 0)

    @pytest.mark.describe("test of update_many without matches, async")
    async def test_update_many_no_matches_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        await live_acollection.insert_many(
            [Doc("sebastian", "chan"), Doc("sebastian", "wang")]
        )
        result = await live_acollection.update_many(
            {"likesPeanuts": True},
            {"$set": {"name": "seb"}},
        )
        assert (result.matched_count, result.modified_count) == (0, 0)
        assert result.upserted_id is None


@requires_live_server
class TestCollectionDeleteAsync:
    @pytest.mark.describe("test of delete_one, async")
    async def test_delete_one_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        await live_acollection.insert_one(Doc("albert", "yip"))
        target = {"name": "albert", "surname": "yip"}
        await live_acollection.find_one(target)

        assert (await live_acollection.delete_one(target)).deleted_count == 1
        with pytest.raises(DocumentNotFoundException):
            await live_acollection.find_one(target)

    @pytest.mark.describe("test of delete_many, async")
    async def test_delete_many_async(
        self,
        live_acollection: AsyncCollection[Doc],
    ) -> None:
        await live_acollection.insert_many(
            [Doc("nick", "zheng"), Doc("stephen", "zheng")]
        )
        target = {"surname": "zheng"}
        assert await live_acollection.find_many(target, sort=BY_INSERTION) == [
            Doc("nick", "zheng"),
            Doc("stephen", "zheng"),
        ]

        assert (await live_acollection.delete_many(target)).deleted_count == 2
        assert await live_acollection.find_many(target) == []
