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

from dataclasses import dataclass

from pymongo.errors import (
    ExecutionTimeout,
    NetworkTimeout,
    PyMongoError,
    ServerSelectionTimeoutError,
    WTimeoutError,
)

from mongoeasy.exceptions.document_store_exceptions import (
    CollectionInsertManyException,
    DocumentDecodeException,
    DocumentNotFoundException,
    DocumentStoreConnectionException,
    DocumentStoreResponseException,
    DocumentStoreTimeoutException,
    MongoEasyException,
    UnexpectedResponseException,
)
from mongoeasy.utils.api_options import FullTimeoutOptions


def _min_labeled_timeout(
    *timeouts: tuple[int | None, str | None],
) -> tuple[int, str | None]:
    _non_null: list[tuple[int, str | None]] = [
        to  # type: ignore[misc]
        for to in timeouts
        if to[0] is not None
    ]
    if _non_null:
        min_to, min_lb = min(_non_null, key=lambda p: p[0])
        # min_to is never None, this is for added robustness
        return (min_to or 0, min_lb)
    else:
        return (0, None)


def _select_singlereq_timeout_gm(
    *,
    timeout_options: FullTimeoutOptions,
    general_method_timeout_ms: int | None,
    request_timeout_ms: int | None = None,
    timeout_ms: int | None = None,
) -> tuple[int, str | None]:
    """
    Apply the logic for determining and labeling the timeout for
    (non-admin) single-request methods.

    If no int args are passed, pick (and correctly label) the least of the
    involved parameters.
    If any of the int args are passed, pick (and correctly labeled) the least
    of them, disregarding the options altogether.
    """
    if all(
        iarg is None
        for iarg in (general_method_timeout_ms, request_timeout_ms, timeout_ms)
    ):
        ao_r = timeout_options.request_timeout_ms
        ao_gm = timeout_options.general_method_timeout_ms
        if ao_r < ao_gm:
            return (ao_r, "request_timeout_ms")
        else:
            return (ao_gm, "general_method_timeout_ms")
    else:
        return _min_labeled_timeout(
            (general_method_timeout_ms, "general_method_timeout_ms"),
            (request_timeout_ms, "request_timeout_ms"),
            (timeout_ms, "timeout_ms"),
        )


def _select_singlereq_timeout_ca(
    *,
    timeout_options: FullTimeoutOptions,
    collection_admin_timeout_ms: int | None,
    request_timeout_ms: int | None = None,
    timeout_ms: int | None = None,
) -> tuple[int, str | None]:
    """
    Apply the logic for determining and labeling the timeout for
    (collection-admin) single-request methods.

    If no int args are passed, pick (and correctly label) the least of the
    involved parameters.
    If any of the int args are passed, pick (and correctly labeled) the least
    of them, disregarding the options altogether.
    """
    if all(
        iarg is None
        for iarg in (collection_admin_timeout_ms, request_timeout_ms, timeout_ms)
    ):
        ao_r = timeout_options.request_timeout_ms
        ao_ca = timeout_options.collection_admin_timeout_ms
        if ao_r < ao_ca:
            return (ao_r, "request_timeout_ms")
        else:
            return (ao_ca, "collection_admin_timeout_ms")
    else:
        return _min_labeled_timeout(
            (collection_admin_timeout_ms, "collection_admin_timeout_ms"),
            (request_timeout_ms, "request_timeout_ms"),
            (timeout_ms, "timeout_ms"),
        )


@dataclass
class _TimeoutContext:
    """
    The timeout owned by a single method invocation, with the label of the
    parameter (or setting) it comes from. A zero/None `request_ms` stands
    for "no timeout".
    """

    nominal_ms: int | None
    request_ms: int | None
    label: str | None

    def __init__(
        self,
        *,
        request_ms: int | None,
        nominal_ms: int | None = None,
        label: str | None = None,
    ) -> None:
        self.nominal_ms = nominal_ms
        self.request_ms = request_ms
        self.label = label

    def __bool__(self) -> bool:
        return self.nominal_ms is not None or self.request_ms is not None

    def to_seconds(self) -> float | None:
        """The timeout in the form accepted by `pymongo.timeout`."""

        if self.request_ms is None or self.request_ms == 0:
            return None
        else:
            return self.request_ms / 1000


def to_timeout_exception(
    driver_error: PyMongoError,
    timeout_context: _TimeoutContext,
) -> DocumentStoreTimeoutException:
    text: str
    text_0 = str(driver_error) or "timed out"
    timeout_ms = timeout_context.nominal_ms or timeout_context.request_ms
    timeout_label = timeout_context.label
    if timeout_ms:
        if timeout_label:
            text = f"{text_0} (timeout honoured: {timeout_label} = {timeout_ms} ms)"
        else:
            text = f"{text_0} (timeout honoured: {timeout_ms} ms)"
    else:
        text = text_0
    if isinstance(driver_error, ServerSelectionTimeoutError):
        timeout_type = "server_selection"
    elif isinstance(driver_error, NetworkTimeout):
        timeout_type = "network"
    elif isinstance(driver_error, (ExecutionTimeout, WTimeoutError)):
        timeout_type = "operation"
    else:
        timeout_type = "generic"
    return DocumentStoreTimeoutException(
        text=text,
        timeout_type=timeout_type,
        timeout_ms=timeout_ms or None,
        timeout_label=timeout_label,
    )


def to_mongoeasy_exception(
    driver_error: PyMongoError,
    timeout_context: _TimeoutContext,
) -> MongoEasyException:
    """
    Convert an exception raised by the driver into the corresponding
    mongoeasy exception: timeouts are singled out, everything else is
    reported as-is within a DocumentStoreResponseException.
    """

    if driver_error.timeout:
        return to_timeout_exception(driver_error, timeout_context)
    return DocumentStoreResponseException.from_driver_error(driver_error)


__all__ = [
    "CollectionInsertManyException",
    "DocumentDecodeException",
    "DocumentNotFoundException",
    "DocumentStoreConnectionException",
    "DocumentStoreResponseException",
    "DocumentStoreTimeoutException",
    "MongoEasyException",
    "UnexpectedResponseException",
]

__pdoc__ = {
    "to_mongoeasy_exception": False,
    "to_timeout_exception": False,
}
