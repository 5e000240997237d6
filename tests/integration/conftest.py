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
Fixtures for the tests running against a live server, whose connection
string is read from the MONGOEASY_TEST_URI environment variable.
Each test gets a freshly-seeded collection (bob and sally, both surnamed joe)
which is dropped afterwards.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass

import pytest

from mongoeasy import AsyncCollection, Collection, async_connect, connect

from ..conftest import BOB, SALLY
from ..preprocess_env import (
    IS_LIVE_SERVER_AVAILABLE,
    MONGOEASY_TEST_COLLECTION,
    MONGOEASY_TEST_DATABASE,
    MONGOEASY_TEST_URI,
)

requires_live_server = pytest.mark.skipif(
    not IS_LIVE_SERVER_AVAILABLE,
    reason="MONGOEASY_TEST_URI is not set",
)


@dataclass
class Doc:
    name: str
    surname: str


@pytest.fixture
def live_collection() -> Iterator[Collection[Doc]]:
    assert MONGOEASY_TEST_URI is not None
    with connect(
        MONGOEASY_TEST_URI,
        MONGOEASY_TEST_DATABASE,
        MONGOEASY_TEST_COLLECTION,
        document_type=Doc,
    ) as collection:
        collection.drop()
        collection.insert_many([dict(BOB), dict(SALLY)])
        yield collection
        collection.drop()


@pytest.fixture
async def live_acollection() -> AsyncIterator[AsyncCollection[Doc]]:
    assert MONGOEASY_TEST_URI is not None
    async with await async_connect(
        MONGOEASY_TEST_URI,
        MONGOEASY_TEST_DATABASE,
        MONGOEASY_TEST_COLLECTION,
        document_type=Doc,
    ) as acollection:
        await acollection.drop()
        await acollection.insert_many([dict(BOB), dict(SALLY)])
        yield acollection
        await acollection.drop()


__all__ = ["Doc", "requires_live_server"]
