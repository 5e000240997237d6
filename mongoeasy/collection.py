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
from types import TracebackType
from typing import TYPE_CHECKING, Any, Generic, Iterable, overload

from pymongo.errors import BulkWriteError

from mongoeasy.constants import (
    DOC,
    DOC2,
    FilterType,
    ProjectionType,
    SortType,
    UpdateType,
    normalize_optional_filter,
    normalize_optional_projection,
    normalize_optional_sort,
    normalize_update,
)
from mongoeasy.exceptions import (
    CollectionInsertManyException,
    DocumentNotFoundException,
    UnexpectedResponseException,
    _select_singlereq_timeout_ca,
    _select_singlereq_timeout_gm,
    _TimeoutContext,
)
from mongoeasy.results import (
    CollectionDeleteResult,
    CollectionInsertManyResult,
    CollectionInsertOneResult,
    CollectionUpdateResult,
)
from mongoeasy.utils.api_options import APIOptions, FullAPIOptions, defaultAPIOptions
from mongoeasy.utils.document_codec import decode_document, encode_document
from mongoeasy.utils.request_tools import driver_timeout, log_command

if TYPE_CHECKING:
    from pymongo import AsyncMongoClient, MongoClient
    from pymongo.asynchronous.collection import AsyncCollection as DriverAsyncCollection
    from pymongo.collection import Collection as DriverCollection
    from pymongo.results import DeleteResult, UpdateResult


logger = logging.getLogger(__name__)


def _to_update_result(update_result: UpdateResult) -> CollectionUpdateResult:
    if not update_result.acknowledged:
        raise UnexpectedResponseException(
            text="Unacknowledged update: matched/modified counts are not available.",
            raw_response=None,
        )
    return CollectionUpdateResult(
        raw_results=[dict(update_result.raw_result or {})],
        matched_count=update_result.matched_count,
        modified_count=update_result.modified_count,
        upserted_id=update_result.upserted_id,
    )


def _to_delete_result(delete_result: DeleteResult) -> CollectionDeleteResult:
    if not delete_result.acknowledged:
        raise UnexpectedResponseException(
            text="Unacknowledged delete: the deleted count is not available.",
            raw_response=None,
        )
    return CollectionDeleteResult(
        raw_results=[dict(delete_result.raw_result or {})],
        deleted_count=delete_result.deleted_count,
    )


def _insert_many_partial_result(
    bulk_error: BulkWriteError,
    documents: list[dict[str, Any]],
    ordered: bool,
) -> CollectionInsertManyResult:
    """
    Reconstruct which documents made it to the collection before (or despite,
    for unordered inserts) the errors reported in a BulkWriteError.
    """

    details = bulk_error.details or {}
    failed_indices = {
        write_error["index"]
        for write_error in details.get("writeErrors") or []
        if "index" in write_error
    }
    if ordered:
        n_inserted = details.get("nInserted", 0)
        inserted_ids = [doc.get("_id") for doc in documents[:n_inserted]]
    else:
        inserted_ids = [
            doc.get("_id")
            for doc_i, doc in enumerate(documents)
            if doc_i not in failed_indices
        ]
    return CollectionInsertManyResult(
        raw_results=[dict(details)],
        inserted_ids=inserted_ids,
    )


class Collection(Generic[DOC]):
    """
    A handle on a single collection of the document store, exposing the basic
    CRUD operations. This class has a synchronous interface.

    Each method call sets up its own timeout (from the per-call parameters or,
    if these are not given, from the `api_options`), which applies to that call
    only and never to other calls running concurrently on the same object.

    Instances are usually obtained through `mongoeasy.connect`, which also
    owns (and closes, with the handle) the underlying client. They can also be
    created directly from a pymongo collection, e.g. to share one client across
    several handles.

    Args:
        collection: the pymongo Collection to wrap.
        document_type: the type documents read from the collection are
            decoded into. A plain dict by default; dataclasses and classes
            providing a `from_dict` method are also supported.
        api_options: the options (timeouts, caller identity) for this handle.
            Unspecified members take the library defaults.
        client: the MongoClient this handle owns, if any. It is closed
            when the handle is closed.

    Example:
        >>> from mongoeasy import connect
        >>> users = connect("mongodb://localhost:27017", "exampleDB", "users")
        >>> users.insert_one({"name": "bob", "surname": "joe"})
        CollectionInsertOneResult(inserted_id=6650..., raw_results=...)
        >>> users.find_one({"name": "bob"})
        {'_id': ObjectId('6650...'), 'name': 'bob', 'surname': 'joe'}
    """

    def __init__(
        self,
        collection: DriverCollection[Any],
        *,
        document_type: type[DOC] | Any = dict,
        api_options: APIOptions | None = None,
        client: MongoClient[Any] | None = None,
    ) -> None:
        self._pymongo_collection = collection
        self.document_type = document_type
        self.api_options: FullAPIOptions = defaultAPIOptions().with_override(
            api_options
        )
        self._client = client

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f'database="{self.database_name}", '
            f"api_options={self.api_options})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Collection):
            return all(
                [
                    self._pymongo_collection == other._pymongo_collection,
                    self.document_type == other.document_type,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def __call__(self, *pargs: Any, **kwargs: Any) -> None:
        raise TypeError(
            f"'{self.__class__.__name__}' object is not callable. If you "
            f"meant to call the '{self.name}' method on a "
            "database object, it is failing because no such method exists."
        )

    def __enter__(self) -> Collection[DOC]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()

    @property
    def name(self) -> str:
        """
        The name of this collection.
        """

        return self._pymongo_collection.name

    @property
    def database_name(self) -> str:
        """
        The name of the database this collection belongs to.
        """

        return self._pymongo_collection.database.name

    @property
    def full_name(self) -> str:
        """
        The fully-qualified collection name, in the form "database.collection".
        """

        return f"{self.database_name}.{self.name}"

    def with_options(
        self,
        *,
        document_type: type[DOC2] | Any = None,
        api_options: APIOptions | None = None,
    ) -> Collection[Any]:
        """
        Create a clone of this collection with some changed attributes.
        The clone shares the underlying client, but does not own it.

        Args:
            document_type: a new type to decode documents into.
            api_options: options overriding the ones of this collection.

        Returns:
            a new Collection instance.
        """

        return Collection(
            self._pymongo_collection,
            document_type=(
                document_type if document_type is not None else self.document_type
            ),
            api_options=self.api_options.with_override(api_options),
        )

    def close(self) -> None:
        """
        Release the client owned by this handle, if any. A handle created
        around an externally-provided pymongo collection leaves it open.
        """

        if self._client is not None:
            logger.info(f"closing client for '{self.full_name}'")
            self._client.close()
            self._client = None

    def _timeout_context(
        self,
        general_method_timeout_ms: int | None,
        request_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> _TimeoutContext:
        _request_timeout_ms, _rt_label = _select_singlereq_timeout_gm(
            timeout_options=self.api_options.timeout_options,
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_request_timeout_ms, label=_rt_label)

    def drop(
        self,
        *,
        collection_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Drop the collection, i.e. delete it from the database along with
        all the documents it contains.

        Args:
            collection_admin_timeout_ms: a timeout, in milliseconds, for the
                operation. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `collection_admin_timeout_ms`.
            timeout_ms: an alias for `collection_admin_timeout_ms`.

        Note:
            Use with caution. This is meant for cleanup, e.g. after tests:
            the handle itself stays usable, and writing to it again would
            recreate the collection.
        """

        _request_timeout_ms, _rt_label = _select_singlereq_timeout_ca(
            timeout_options=self.api_options.timeout_options,
            collection_admin_timeout_ms=collection_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        timeout_context = _TimeoutContext(
            request_ms=_request_timeout_ms, label=_rt_label
        )
        logger.info(f"dropping collection '{self.name}'")
        log_command("drop", self.full_name, None, timeout_context)
        with driver_timeout(timeout_context):
            self._pymongo_collection.drop()
        logger.info(f"finished dropping collection '{self.name}'")

    @overload
    def find_one(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        document_type: None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DOC: ...

    @overload
    def find_one(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        document_type: type[DOC2],
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DOC2: ...

    def find_one(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        document_type: type[DOC2] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DOC | DOC2:
        """
        Run a search, returning the first document in the collection that matches
        the provided filter.

        Args:
            filter: a predicate, either as a dictionary or as an ordered sequence
                of (field, value) pairs, according to the MongoDB query syntax.
                Examples are:
                    {}
                    {"name": "John"}
                    [("name", "John"), ("surname", "Smith")]
                    {"price": {"$lt": 100}}
            projection: it controls which parts of the document are returned.
                It can be an allow-list: `{"f1": True, "f2": True}`,
                or a deny-list: `{"fx": False, "fy": False}`.
                An iterable over strings will be treated implicitly as an allow-list.
            sort: with this parameter one can control which document comes
                first among the matches, e.g. `{"age": SortMode.DESCENDING}`.
            document_type: a type to decode the document into, overriding
                the one set for this collection.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                operation. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            the matching document, decoded into the document type.

        Raises:
            DocumentNotFoundException: if no documents match the filter.
            DocumentDecodeException: if the document does not fit the type.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        _document_type = document_type if document_type is not None else self.document_type
        logger.info(f"findOne on '{self.name}'")
        log_command("findOne", self.full_name, {"filter": _filter}, timeout_context)
        with driver_timeout(timeout_context):
            raw_document = self._pymongo_collection.find_one(
                _filter,
                projection=normalize_optional_projection(projection),
                sort=normalize_optional_sort(sort),
            )
        logger.info(f"finished findOne on '{self.name}'")
        if raw_document is None:
            raise DocumentNotFoundException(
                text=f"No document in '{self.full_name}' matches the filter.",
                filter=dict(_filter),
            )
        return decode_document(raw_document, _document_type)  # type: ignore[no-any-return]

    @overload
    def find_many(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        skip: int | None = None,
        limit: int | None = None,
        document_type: None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[DOC]: ...

    @overload
    def find_many(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        skip: int | None = None,
        limit: int | None = None,
        document_type: type[DOC2],
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[DOC2]: ...

    def find_many(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        skip: int | None = None,
        limit: int | None = None,
        document_type: type[DOC2] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[DOC] | list[DOC2]:
        """
        Find all documents matching a filter and return them, decoded,
        in the order the server provides them.

        The cursor opened for the search is always closed before returning,
        also when decoding fails or the operation times out. The timeout
        covers the whole method call, i.e. the consumption of the cursor.

        Args:
            filter: a predicate as for the `find_one` method.
            projection: which parts of the documents to return, as for
                the `find_one` method.
            sort: the order of the returned documents. If not provided, the
                order is whatever the server returns and should not be relied upon.
            skip: the number of matching documents to skip before returning any.
            limit: the maximum number of documents to return.
            document_type: a type to decode the documents into, overriding
                the one set for this collection.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                method call. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a list of documents. An empty list if there are no matches.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        _document_type = document_type if document_type is not None else self.document_type
        logger.info(f"find on '{self.name}'")
        log_command("find", self.full_name, {"filter": _filter}, timeout_context)
        with driver_timeout(timeout_context):
            cursor = self._pymongo_collection.find(
                _filter,
                projection=normalize_optional_projection(projection),
                skip=skip or 0,
                limit=limit or 0,
                sort=normalize_optional_sort(sort),
            )
            try:
                documents = [
                    decode_document(raw_document, _document_type)
                    for raw_document in cursor
                ]
            finally:
                cursor.close()
        logger.info(f"finished find on '{self.name}' ({len(documents)} documents)")
        return documents

    def insert_one(
        self,
        document: DOC | dict[str, Any],
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionInsertOneResult:
        """
        Insert a single document in the collection in an atomic operation.

        Args:
            document: the document to insert, as a dictionary or as an instance
                of the document type (e.g. a dataclass). The `_id` field can be
                left out, in which case it is assigned automatically.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                operation. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionInsertOneResult object.

        Note:
            If an `_id` is explicitly provided, which corresponds to a document
            that exists already in the collection, the error reported by the
            server is raised as a DocumentStoreResponseException.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _document = encode_document(document)
        logger.info(f"insertOne on '{self.name}'")
        log_command("insertOne", self.full_name, {"document": _document}, timeout_context)
        with driver_timeout(timeout_context):
            io_result = self._pymongo_collection.insert_one(_document)
        logger.info(f"finished insertOne on '{self.name}'")
        return CollectionInsertOneResult(
            raw_results=[
                {"insertedId": io_result.inserted_id, "ok": io_result.acknowledged}
            ],
            inserted_id=io_result.inserted_id,
        )

    def insert_many(
        self,
        documents: Iterable[DOC | dict[str, Any]],
        *,
        ordered: bool = True,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionInsertManyResult:
        """
        Insert a list of documents into the collection.
        This is not an atomic operation.

        Args:
            documents: an iterable of documents to insert (dictionaries or
                instances of the document type).
            ordered: if True (default), the insertions are performed in the
                order provided and stop at the first failure. If False, the
                server attempts all of them and reports all failures at the end.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                method call. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionInsertManyResult object, with the IDs in the same order
            as the input documents.

        Raises:
            CollectionInsertManyException: if any of the insertions fails. The
                exception carries a partial result with the IDs of the documents
                that were written.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _documents = [encode_document(document) for document in documents]
        if not _documents:
            return CollectionInsertManyResult(raw_results=[], inserted_ids=[])
        logger.info(f"insertMany on '{self.name}' ({len(_documents)} documents)")
        log_command(
            "insertMany", self.full_name, {"documents": _documents}, timeout_context
        )
        with driver_timeout(timeout_context):
            try:
                im_result = self._pymongo_collection.insert_many(
                    _documents, ordered=ordered
                )
            except BulkWriteError as bulk_error:
                if bulk_error.timeout:
                    raise
                raise CollectionInsertManyException.from_driver_error(
                    bulk_error,
                    partial_result=_insert_many_partial_result(
                        bulk_error, _documents, ordered
                    ),
                ) from bulk_error
        logger.info(f"finished insertMany on '{self.name}'")
        return CollectionInsertManyResult(
            raw_results=[
                {"insertedIds": im_result.inserted_ids, "ok": im_result.acknowledged}
            ],
            inserted_ids=list(im_result.inserted_ids),
        )

    def update_one(
        self,
        filter: FilterType,
        update: UpdateType,
        *,
        upsert: bool = False,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionUpdateResult:
        """
        Update a single document on the collection as requested,
        optionally inserting a new one if no match is found.

        Args:
            filter: a predicate as for the `find_one` method.
            update: the update prescription to apply to the document, either
                as a dictionary or as an ordered sequence of (operator, operand)
                pairs. Examples are:
                    {"$set": {"field": "value"}}
                    [("$set", [("field", "value")])]
                    {"$inc": {"counter": 10}}
                    {"$unset": {"field": ""}}
            upsert: this parameter controls the behavior in absence of matches.
                If True, a new document (resulting from applying the `update`
                to an empty document) is inserted if no matches are found on
                the collection. If False, the operation silently does nothing
                in case of no matches.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                operation. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionUpdateResult object. Its counts are either 0 or 1,
            no matter how many documents match the filter.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        _update = normalize_update(update)
        logger.info(f"updateOne on '{self.name}'")
        log_command(
            "updateOne",
            self.full_name,
            {"filter": _filter, "update": _update},
            timeout_context,
        )
        with driver_timeout(timeout_context):
            uo_result = self._pymongo_collection.update_one(
                _filter, _update, upsert=upsert
            )
        logger.info(f"finished updateOne on '{self.name}'")
        return _to_update_result(uo_result)

    def update_many(
        self,
        filter: FilterType,
        update: UpdateType,
        *,
        upsert: bool = False,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionUpdateResult:
        """
        Apply an update operation to all documents matching a condition,
        optionally inserting one document in absence of matches.

        Args:
            filter: a predicate as for the `find_one` method.
            update: the update prescription, as for the `update_one` method.
            upsert: if True, a single new document is inserted when
                no matches are found on the collection.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                method call. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionUpdateResult object. Matched documents that already held
            the target values count as matched but not as modified.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        _update = normalize_update(update)
        logger.info(f"updateMany on '{self.name}'")
        log_command(
            "updateMany",
            self.full_name,
            {"filter": _filter, "update": _update},
            timeout_context,
        )
        with driver_timeout(timeout_context):
            um_result = self._pymongo_collection.update_many(
                _filter, _update, upsert=upsert
            )
        logger.info(f"finished updateMany on '{self.name}'")
        return _to_update_result(um_result)

    def delete_one(
        self,
        filter: FilterType,
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionDeleteResult:
        """
        Delete one document matching a provided filter.
        This method never deletes more than a single document, regardless
        of the number of matches to the provided filters.

        Args:
            filter: a predicate as for the `find_one` method.
            general_method_timeout_ms: a timeout, in milliseconds, to impose on the
                operation. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionDeleteResult object. A `deleted_count` of zero
            (no matches) is not an error.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        logger.info(f"deleteOne on '{self.name}'")
        log_command("deleteOne", self.full_name, {"filter": _filter}, timeout_context)
        with driver_timeout(timeout_context):
            do_result = self._pymongo_collection.delete_one(_filter)
        logger.info(f"finished deleteOne on '{self.name}'")
        return _to_delete_result(do_result)

    def delete_many(
        self,
        filter: FilterType,
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionDeleteResult:
        """
        Delete all documents matching a provided filter.

        Args:
            filter: a predicate as for the `find_one` method. An empty filter
                deletes every document in the collection.
            general_method_timeout_ms: a timeout, in milliseconds, for the whole
                method call. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `general_method_timeout_ms`.
            timeout_ms: an alias for `general_method_timeout_ms`.

        Returns:
            a CollectionDeleteResult object. A `deleted_count` of zero
            (no matches) is not an error.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        logger.info(f"deleteMany on '{self.name}'")
        log_command("deleteMany", self.full_name, {"filter": _filter}, timeout_context)
        with driver_timeout(timeout_context):
            dm_result = self._pymongo_collection.delete_many(_filter)
        logger.info(f"finished deleteMany on '{self.name}'")
        return _to_delete_result(dm_result)


class AsyncCollection(Generic[DOC]):
    """
    A handle on a single collection of the document store, exposing the basic
    CRUD operations. This class has an asynchronous interface for use with asyncio.

    Each method call owns its timeout, as for the sync `Collection`: this
    also means that cancelling the task running a call does not affect other
    calls in progress on the same object.

    Instances are usually obtained through `mongoeasy.async_connect`.

    Args:
        collection: the pymongo AsyncCollection to wrap.
        document_type: the type documents read from the collection are
            decoded into. A plain dict by default.
        api_options: the options (timeouts, caller identity) for this handle.
        client: the AsyncMongoClient this handle owns, if any.

    Example:
        >>> from mongoeasy import async_connect
        >>> users = await async_connect("mongodb://localhost:27017", "exampleDB", "users")
        >>> await users.update_many({"surname": "joe"}, {"$set": {"surname": "doe"}})
        CollectionUpdateResult(matched_count=2, modified_count=2, raw_results=...)
    """

    def __init__(
        self,
        collection: DriverAsyncCollection[Any],
        *,
        document_type: type[DOC] | Any = dict,
        api_options: APIOptions | None = None,
        client: AsyncMongoClient[Any] | None = None,
    ) -> None:
        self._pymongo_collection = collection
        self.document_type = document_type
        self.api_options: FullAPIOptions = defaultAPIOptions().with_override(
            api_options
        )
        self._client = client

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(name="{self.name}", '
            f'database="{self.database_name}", '
            f"api_options={self.api_options})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, AsyncCollection):
            return all(
                [
                    self._pymongo_collection == other._pymongo_collection,
                    self.document_type == other.document_type,
                    self.api_options == other.api_options,
                ]
            )
        else:
            return False

    def __call__(self, *pargs: Any, **kwargs: Any) -> None:
        raise TypeError(
            f"'{self.__class__.__name__}' object is not callable. If you "
            f"meant to call the '{self.name}' method on a "
            "database object, it is failing because no such method exists."
        )

    async def __aenter__(self) -> AsyncCollection[DOC]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self.close()

    @property
    def name(self) -> str:
        """
        The name of this collection.
        """

        return self._pymongo_collection.name

    @property
    def database_name(self) -> str:
        """
        The name of the database this collection belongs to.
        """

        return self._pymongo_collection.database.name

    @property
    def full_name(self) -> str:
        """
        The fully-qualified collection name, in the form "database.collection".
        """

        return f"{self.database_name}.{self.name}"

    def with_options(
        self,
        *,
        document_type: type[DOC2] | Any = None,
        api_options: APIOptions | None = None,
    ) -> AsyncCollection[Any]:
        """
        Create a clone of this collection with some changed attributes.
        The clone shares the underlying client, but does not own it.
        """

        return AsyncCollection(
            self._pymongo_collection,
            document_type=(
                document_type if document_type is not None else self.document_type
            ),
            api_options=self.api_options.with_override(api_options),
        )

    async def close(self) -> None:
        """
        Release the client owned by this handle, if any.
        """

        if self._client is not None:
            logger.info(f"closing client for '{self.full_name}'")
            await self._client.close()
            self._client = None

    def _timeout_context(
        self,
        general_method_timeout_ms: int | None,
        request_timeout_ms: int | None,
        timeout_ms: int | None,
    ) -> _TimeoutContext:
        _request_timeout_ms, _rt_label = _select_singlereq_timeout_gm(
            timeout_options=self.api_options.timeout_options,
            general_method_timeout_ms=general_method_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        return _TimeoutContext(request_ms=_request_timeout_ms, label=_rt_label)

    async def drop(
        self,
        *,
        collection_admin_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        """
        Drop the collection, i.e. delete it from the database along with
        all the documents it contains.

        Args:
            collection_admin_timeout_ms: a timeout, in milliseconds, for the
                operation. If not provided, this object's defaults apply.
            request_timeout_ms: an alias for `collection_admin_timeout_ms`.
            timeout_ms: an alias for `collection_admin_timeout_ms`.

        Note:
            Use with caution.
        """

        _request_timeout_ms, _rt_label = _select_singlereq_timeout_ca(
            timeout_options=self.api_options.timeout_options,
            collection_admin_timeout_ms=collection_admin_timeout_ms,
            request_timeout_ms=request_timeout_ms,
            timeout_ms=timeout_ms,
        )
        timeout_context = _TimeoutContext(
            request_ms=_request_timeout_ms, label=_rt_label
        )
        logger.info(f"dropping collection '{self.name}'")
        log_command("drop", self.full_name, None, timeout_context)
        with driver_timeout(timeout_context):
            await self._pymongo_collection.drop()
        logger.info(f"finished dropping collection '{self.name}'")

    @overload
    async def find_one(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        document_type: None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DOC: ...

    @overload
    async def find_one(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        document_type: type[DOC2],
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DOC2: ...

    async def find_one(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        document_type: type[DOC2] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> DOC | DOC2:
        """
        Run a search, returning the first document in the collection that matches
        the provided filter. See the sync `Collection.find_one` for the parameters.

        Raises:
            DocumentNotFoundException: if no documents match the filter.
            DocumentDecodeException: if the document does not fit the type.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        _document_type = document_type if document_type is not None else self.document_type
        logger.info(f"findOne on '{self.name}'")
        log_command("findOne", self.full_name, {"filter": _filter}, timeout_context)
        with driver_timeout(timeout_context):
            raw_document = await self._pymongo_collection.find_one(
                _filter,
                projection=normalize_optional_projection(projection),
                sort=normalize_optional_sort(sort),
            )
        logger.info(f"finished findOne on '{self.name}'")
        if raw_document is None:
            raise DocumentNotFoundException(
                text=f"No document in '{self.full_name}' matches the filter.",
                filter=dict(_filter),
            )
        return decode_document(raw_document, _document_type)  # type: ignore[no-any-return]

    @overload
    async def find_many(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        skip: int | None = None,
        limit: int | None = None,
        document_type: None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[DOC]: ...

    @overload
    async def find_many(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        skip: int | None = None,
        limit: int | None = None,
        document_type: type[DOC2],
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[DOC2]: ...

    async def find_many(
        self,
        filter: FilterType | None = None,
        *,
        projection: ProjectionType | None = None,
        sort: SortType | None = None,
        skip: int | None = None,
        limit: int | None = None,
        document_type: type[DOC2] | None = None,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> list[DOC] | list[DOC2]:
        """
        Find all documents matching a filter and return them, decoded,
        in the order the server provides them. See the sync
        `Collection.find_many` for the parameters.

        The cursor is closed on every exit path, including cancellation
        of the task awaiting this method.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        _document_type = document_type if document_type is not None else self.document_type
        logger.info(f"find on '{self.name}'")
        log_command("find", self.full_name, {"filter": _filter}, timeout_context)
        with driver_timeout(timeout_context):
            cursor = self._pymongo_collection.find(
                _filter,
                projection=normalize_optional_projection(projection),
                skip=skip or 0,
                limit=limit or 0,
                sort=normalize_optional_sort(sort),
            )
            try:
                documents = [
                    decode_document(raw_document, _document_type)
                    async for raw_document in cursor
                ]
            finally:
                await cursor.close()
        logger.info(f"finished find on '{self.name}' ({len(documents)} documents)")
        return documents

    async def insert_one(
        self,
        document: DOC | dict[str, Any],
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionInsertOneResult:
        """
        Insert a single document in the collection in an atomic operation.
        See the sync `Collection.insert_one` for the parameters.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _document = encode_document(document)
        logger.info(f"insertOne on '{self.name}'")
        log_command("insertOne", self.full_name, {"document": _document}, timeout_context)
        with driver_timeout(timeout_context):
            io_result = await self._pymongo_collection.insert_one(_document)
        logger.info(f"finished insertOne on '{self.name}'")
        return CollectionInsertOneResult(
            raw_results=[
                {"insertedId": io_result.inserted_id, "ok": io_result.acknowledged}
            ],
            inserted_id=io_result.inserted_id,
        )

    async def insert_many(
        self,
        documents: Iterable[DOC | dict[str, Any]],
        *,
        ordered: bool = True,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionInsertManyResult:
        """
        Insert a list of documents into the collection.
        See the sync `Collection.insert_many` for the parameters.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _documents = [encode_document(document) for document in documents]
        if not _documents:
            return CollectionInsertManyResult(raw_results=[], inserted_ids=[])
        logger.info(f"insertMany on '{self.name}' ({len(_documents)} documents)")
        log_command(
            "insertMany", self.full_name, {"documents": _documents}, timeout_context
        )
        with driver_timeout(timeout_context):
            try:
                im_result = await self._pymongo_collection.insert_many(
                    _documents, ordered=ordered
                )
            except BulkWriteError as bulk_error:
                if bulk_error.timeout:
                    raise
                raise CollectionInsertManyException.from_driver_error(
                    bulk_error,
                    partial_result=_insert_many_partial_result(
                        bulk_error, _documents, ordered
                    ),
                ) from bulk_error
        logger.info(f"finished insertMany on '{self.name}'")
        return CollectionInsertManyResult(
            raw_results=[
                {"insertedIds": im_result.inserted_ids, "ok": im_result.acknowledged}
            ],
            inserted_ids=list(im_result.inserted_ids),
        )

    async def update_one(
        self,
        filter: FilterType,
        update: UpdateType,
        *,
        upsert: bool = False,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionUpdateResult:
        """
        Update a single document on the collection as requested.
        See the sync `Collection.update_one` for the parameters.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        _update = normalize_update(update)
        logger.info(f"updateOne on '{self.name}'")
        log_command(
            "updateOne",
            self.full_name,
            {"filter": _filter, "update": _update},
            timeout_context,
        )
        with driver_timeout(timeout_context):
            uo_result = await self._pymongo_collection.update_one(
                _filter, _update, upsert=upsert
            )
        logger.info(f"finished updateOne on '{self.name}'")
        return _to_update_result(uo_result)

    async def update_many(
        self,
        filter: FilterType,
        update: UpdateType,
        *,
        upsert: bool = False,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionUpdateResult:
        """
        Apply an update operation to all documents matching a condition.
        See the sync `Collection.update_many` for the parameters.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        _update = normalize_update(update)
        logger.info(f"updateMany on '{self.name}'")
        log_command(
            "updateMany",
            self.full_name,
            {"filter": _filter, "update": _update},
            timeout_context,
        )
        with driver_timeout(timeout_context):
            um_result = await self._pymongo_collection.update_many(
                _filter, _update, upsert=upsert
            )
        logger.info(f"finished updateMany on '{self.name}'")
        return _to_update_result(um_result)

    async def delete_one(
        self,
        filter: FilterType,
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionDeleteResult:
        """
        Delete one document matching a provided filter.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        logger.info(f"deleteOne on '{self.name}'")
        log_command("deleteOne", self.full_name, {"filter": _filter}, timeout_context)
        with driver_timeout(timeout_context):
            do_result = await self._pymongo_collection.delete_one(_filter)
        logger.info(f"finished deleteOne on '{self.name}'")
        return _to_delete_result(do_result)

    async def delete_many(
        self,
        filter: FilterType,
        *,
        general_method_timeout_ms: int | None = None,
        request_timeout_ms: int | None = None,
        timeout_ms: int | None = None,
    ) -> CollectionDeleteResult:
        """
        Delete all documents matching a provided filter.
        """

        timeout_context = self._timeout_context(
            general_method_timeout_ms, request_timeout_ms, timeout_ms
        )
        _filter = normalize_optional_filter(filter)
        logger.info(f"deleteMany on '{self.name}'")
        log_command("deleteMany", self.full_name, {"filter": _filter}, timeout_context)
        with driver_timeout(timeout_context):
            dm_result = await self._pymongo_collection.delete_many(_filter)
        logger.info(f"finished deleteMany on '{self.name}'")
        return _to_delete_result(dm_result)
