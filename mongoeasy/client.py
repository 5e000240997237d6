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

import logging
from typing import Any, NoReturn

from pymongo import AsyncMongoClient, MongoClient
from pymongo.errors import PyMongoError

from mongoeasy.collection import AsyncCollection, Collection
from mongoeasy.exceptions import (
    DocumentStoreConnectionException,
    MongoEasyException,
    _TimeoutContext,
)
from mongoeasy.settings.defaults import DEFAULT_PING_COMMAND, FAIL_FAST_EXIT_CODE
from mongoeasy.utils.api_options import APIOptions, FullAPIOptions, defaultAPIOptions
from mongoeasy.utils.request_tools import driver_timeout, redact_uri
from mongoeasy.utils.user_agents import compose_driver_info, compose_full_user_agent

logger = logging.getLogger(__name__)


def _client_kwargs(api_options: FullAPIOptions) -> dict[str, Any]:
    client_kwargs: dict[str, Any] = {"driver": compose_driver_info()}
    connect_timeout_ms = api_options.timeout_options.connect_timeout_ms
    if connect_timeout_ms:
        client_kwargs["connectTimeoutMS"] = connect_timeout_ms
        client_kwargs["serverSelectionTimeoutMS"] = connect_timeout_ms
    appname = compose_full_user_agent(api_options.callers)
    if appname:
        client_kwargs["appname"] = appname
    return client_kwargs


def _connect_timeout_context(api_options: FullAPIOptions) -> _TimeoutContext:
    return _TimeoutContext(
        request_ms=api_options.timeout_options.connect_timeout_ms,
        label="connect_timeout_ms",
    )


def _raise_connection_failure(
    error: Exception, redacted_uri: str, fail_fast: bool
) -> NoReturn:
    text = f"Could not connect to '{redacted_uri}': {error}"
    if fail_fast:
        logger.critical(text)
        raise SystemExit(FAIL_FAST_EXIT_CODE) from error
    logger.error(text)
    raise DocumentStoreConnectionException(text, uri=redacted_uri) from error


def connect(
    uri: str,
    database_name: str,
    collection_name: str,
    *,
    document_type: Any = dict,
    api_options: APIOptions | None = None,
    check_connection: bool = True,
    fail_fast: bool = False,
) -> Collection[Any]:
    """
    Connect to a MongoDB deployment and return a handle on one of its
    collections. The handle owns the underlying client: closing the handle
    (or using it as a context manager) releases the connections.

    Args:
        uri: a MongoDB connection string, such as "mongodb://localhost:27017".
        database_name: the name of the database.
        collection_name: the name of the collection. It does not need to exist:
            it is created by the server upon the first write.
        document_type: the type documents read from the collection are
            decoded into. See `Collection` for the admitted types.
        api_options: options overriding the defaults for timeouts and
            for the caller identity reported to the server.
        check_connection: if True (default), the server is pinged within
            the connect timeout before returning. If False, the connection
            is only attempted by the first operation on the collection.
        fail_fast: if True, a connection failure is logged as critical and
            terminates the process (by raising `SystemExit`) instead of
            raising a DocumentStoreConnectionException.

    Returns:
        a Collection instance.

    Raises:
        DocumentStoreConnectionException: if the connection string is invalid
            or the server does not respond within the connect timeout.

    Example:
        >>> with connect("mongodb://localhost:27017", "exampleDB", "users") as users:
        ...     users.delete_many({"surname": "joe"})
        ...
        CollectionDeleteResult(deleted_count=2, raw_results=...)
    """

    full_api_options = defaultAPIOptions().with_override(api_options)
    redacted_uri = redact_uri(uri)
    logger.info(f"attempting to connect to '{redacted_uri}'")
    client: MongoClient[Any] | None = None
    try:
        client = MongoClient(uri, **_client_kwargs(full_api_options))
        pymongo_collection = client[database_name][collection_name]
        if check_connection:
            with driver_timeout(_connect_timeout_context(full_api_options)):
                client.admin.command(DEFAULT_PING_COMMAND)
    except (PyMongoError, MongoEasyException, ValueError) as exc:
        if client is not None:
            client.close()
        _raise_connection_failure(exc, redacted_uri, fail_fast)
    logger.info(f"connection established to '{redacted_uri}'")
    return Collection(
        pymongo_collection,
        document_type=document_type,
        api_options=full_api_options,
        client=client,
    )


async def async_connect(
    uri: str,
    database_name: str,
    collection_name: str,
    *,
    document_type: Any = dict,
    api_options: APIOptions | None = None,
    check_connection: bool = True,
    fail_fast: bool = False,
) -> AsyncCollection[Any]:
    """
    Connect to a MongoDB deployment and return an async handle on one of its
    collections. This is the asyncio counterpart of `connect`, to which
    the parameters are identical.

    Returns:
        an AsyncCollection instance.

    Raises:
        DocumentStoreConnectionException: if the connection string is invalid
            or the server does not respond within the connect timeout.
    """

    full_api_options = defaultAPIOptions().with_override(api_options)
    redacted_uri = redact_uri(uri)
    logger.info(f"attempting to connect to '{redacted_uri}'")
    client: AsyncMongoClient[Any] | None = None
    try:
        client = AsyncMongoClient(uri, **_client_kwargs(full_api_options))
        pymongo_collection = client[database_name][collection_name]
        if check_connection:
            with driver_timeout(_connect_timeout_context(full_api_options)):
                await client.admin.command(DEFAULT_PING_COMMAND)
    except (PyMongoError, MongoEasyException, ValueError) as exc:
        if client is not None:
            await client.close()
        _raise_connection_failure(exc, redacted_uri, fail_fast)
    logger.info(f"connection established to '{redacted_uri}'")
    return AsyncCollection(
        pymongo_collection,
        document_type=document_type,
        api_options=full_api_options,
        client=client,
    )
