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

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

if TYPE_CHECKING:
    from mongoeasy.results import CollectionInsertManyResult


class MongoEasyException(Exception):
    """
    Any exception raised by mongoeasy while working with the document store,
    such as:
      - a find_one that finds no documents,
      - the server reporting an error for a command,
      - an operation exceeding its timeout,
    but not, for instance,
      - a wrong type passed as argument to a method.
    """

    pass


@dataclass
class DocumentStoreConnectionException(MongoEasyException):
    """
    The connection to the document store could not be established, either
    because the connection string is invalid or because the server could not
    be reached within the connection timeout.

    Attributes:
        text: a text message about the exception.
        uri: the connection string, with any credentials redacted.
    """

    text: str
    uri: str

    def __init__(
        self,
        text: str,
        *,
        uri: str,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.uri = uri


@dataclass
class DocumentNotFoundException(MongoEasyException):
    """
    A `find_one` operation found no documents matching the filter.

    Attributes:
        text: a text message about the exception.
        filter: the filter that matched no documents.
    """

    text: str
    filter: dict[str, Any]

    def __init__(
        self,
        text: str,
        *,
        filter: dict[str, Any],
    ) -> None:
        super().__init__(text)
        self.text = text
        self.filter = filter


@dataclass
class DocumentDecodeException(MongoEasyException):
    """
    A document read from the collection could not be converted into
    the requested document type.

    Attributes:
        text: a text message about the exception.
        document_type: the type the document was to be decoded into.
        raw_document: the document as returned by the driver.
    """

    text: str
    document_type: Any
    raw_document: dict[str, Any]

    def __init__(
        self,
        text: str,
        *,
        document_type: Any,
        raw_document: dict[str, Any],
    ) -> None:
        super().__init__(text)
        self.text = text
        self.document_type = document_type
        self.raw_document = raw_document


@dataclass
class DocumentStoreResponseException(MongoEasyException):
    """
    The driver or the server reported an error for an operation, for instance
    a duplicate-key violation or a network failure in the middle of a command.
    The original driver exception is kept unchanged.

    Attributes:
        text: the message of the driver exception.
        driver_error: the exception raised by pymongo.
        code: the server error code, if any.
        details: the server error document, if any.
    """

    text: str
    driver_error: PyMongoError
    code: int | None
    details: dict[str, Any] | None

    def __init__(
        self,
        text: str,
        *,
        driver_error: PyMongoError,
        code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.driver_error = driver_error
        self.code = code
        self.details = details

    @classmethod
    def from_driver_error(
        cls,
        driver_error: PyMongoError,
        **kwargs: Any,
    ) -> DocumentStoreResponseException:
        """Parse a pymongo error into this exception."""

        # network errors carry a (possibly empty) list of server errors instead
        raw_details = getattr(driver_error, "details", None)
        return cls(
            str(driver_error) or driver_error.__class__.__name__,
            driver_error=driver_error,
            code=getattr(driver_error, "code", None),
            details=dict(raw_details) if isinstance(raw_details, Mapping) else None,
            **kwargs,
        )


@dataclass
class DocumentStoreTimeoutException(MongoEasyException):
    """
    An operation did not complete within its timeout and was abandoned.

    Attributes:
        text: a textual description of the error.
        timeout_type: the phase of the operation where time ran out:
            "server_selection" (no server available), "network" (waiting on a
            socket), "operation" (the server gave up the command) or "generic".
        timeout_ms: the timeout that was honoured, in milliseconds, if any.
        timeout_label: the name of the parameter/setting the timeout comes from.
    """

    text: str
    timeout_type: str
    timeout_ms: int | None
    timeout_label: str | None

    def __init__(
        self,
        text: str,
        *,
        timeout_type: str,
        timeout_ms: int | None = None,
        timeout_label: str | None = None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.timeout_type = timeout_type
        self.timeout_ms = timeout_ms
        self.timeout_label = timeout_label


@dataclass
class UnexpectedResponseException(MongoEasyException):
    """
    The outcome of an operation lacks the expected information, for instance
    the counts of an unacknowledged write.

    Attributes:
        text: a text message about the exception.
        raw_response: the raw outcome returned by the driver, if available.
    """

    text: str
    raw_response: dict[str, Any] | None

    def __init__(
        self,
        text: str,
        raw_response: dict[str, Any] | None,
    ) -> None:
        super().__init__(text)
        self.text = text
        self.raw_response = raw_response


@dataclass
class CollectionInsertManyException(DocumentStoreResponseException):
    """
    A DocumentStoreResponseException (see) occurred during an insert_many.
    Some of the documents may have been written nonetheless: these are
    reported in a partial result.

    Attributes:
        text: the message of the driver exception.
        driver_error: the exception raised by pymongo.
        code: the server error code, if any.
        details: the server error document, if any.
        partial_result: a CollectionInsertManyResult object, just like the one
            that would be the return value of the operation, had it succeeded
            completely.
    """

    partial_result: CollectionInsertManyResult

    def __init__(
        self,
        text: str,
        partial_result: CollectionInsertManyResult,
        *pargs: Any,
        **kwargs: Any,
    ) -> None:
        super().__init__(text, *pargs, **kwargs)
        self.partial_result = partial_result
