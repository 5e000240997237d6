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

from dataclasses import dataclass, replace
from typing import Sequence

from mongoeasy.constants import CallerType
from mongoeasy.settings.defaults import (
    DEFAULT_COLLECTION_ADMIN_TIMEOUT_MS,
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_GENERAL_METHOD_TIMEOUT_MS,
    DEFAULT_REQUEST_TIMEOUT_MS,
)
from mongoeasy.utils.unset import _UNSET, UnsetType


@dataclass
class TimeoutOptions:
    """
    The group of settings for the API Options concerning the configured timeouts
    for various kinds of operations.

    All timeout values are integers expressed in milliseconds. A timeout of zero
    signifies that no timeout is imposed at all on that kind of operation.

    All collection methods allow for a per-invocation override of the relevant
    timeouts involved (see the method docstring and signature for details).

    This class is used to override default settings when creating objects such
    as Collection and AsyncCollection. Values that are left unspecified will keep
    the values inherited from the defaults.

    Attributes:
        request_timeout_ms: the timeout imposed on a single round-trip to the
            server. Defaults to 5 s.
        general_method_timeout_ms: a timeout to use on the overall duration of a
            method invocation, valid for DML methods. For single round-trip methods
            (such as `find_one`) the minimum of this and `request_timeout_ms`
            is used. Defaults to 30 s.
        collection_admin_timeout_ms: a timeout for collection-level admin
            operations, i.e. dropping the collection. Defaults to 60 s.
        connect_timeout_ms: the time allowed for establishing the connection
            and checking that the server responds. Defaults to 5 s.
    """

    request_timeout_ms: int | UnsetType = _UNSET
    general_method_timeout_ms: int | UnsetType = _UNSET
    collection_admin_timeout_ms: int | UnsetType = _UNSET
    connect_timeout_ms: int | UnsetType = _UNSET


@dataclass
class FullTimeoutOptions(TimeoutOptions):
    """
    The "full" version of TimeoutOptions, with the guarantee that all of its
    members have defined values. This is what Collection and AsyncCollection
    have in their `.api_options.timeout_options` attribute.

    See `TimeoutOptions` for the meaning of the attributes.
    """

    request_timeout_ms: int
    general_method_timeout_ms: int
    collection_admin_timeout_ms: int
    connect_timeout_ms: int

    def __init__(
        self,
        *,
        request_timeout_ms: int,
        general_method_timeout_ms: int,
        collection_admin_timeout_ms: int,
        connect_timeout_ms: int,
    ) -> None:
        TimeoutOptions.__init__(
            self,
            request_timeout_ms=request_timeout_ms,
            general_method_timeout_ms=general_method_timeout_ms,
            collection_admin_timeout_ms=collection_admin_timeout_ms,
            connect_timeout_ms=connect_timeout_ms,
        )

    def with_override(self, other: TimeoutOptions) -> FullTimeoutOptions:
        """
        Given an "overriding" set of options, possibly not defined in all its
        attributes, apply the override logic and return a new full options object.

        Args:
            other: a not-necessarily-fully-specified options object. All its defined
                settings take precedence.
        """

        return FullTimeoutOptions(
            request_timeout_ms=(
                other.request_timeout_ms
                if not isinstance(other.request_timeout_ms, UnsetType)
                else self.request_timeout_ms
            ),
            general_method_timeout_ms=(
                other.general_method_timeout_ms
                if not isinstance(other.general_method_timeout_ms, UnsetType)
                else self.general_method_timeout_ms
            ),
            collection_admin_timeout_ms=(
                other.collection_admin_timeout_ms
                if not isinstance(other.collection_admin_timeout_ms, UnsetType)
                else self.collection_admin_timeout_ms
            ),
            connect_timeout_ms=(
                other.connect_timeout_ms
                if not isinstance(other.connect_timeout_ms, UnsetType)
                else self.connect_timeout_ms
            ),
        )


@dataclass
class APIOptions:
    """
    A description of the options about how to interact with the document store.

    Attributes:
        callers: an iterable of caller identities, each a pair of the form
            (caller_name, caller_version). The first one is reported to the server
            as the identity of the application issuing the commands, where it shows
            up in the server logs.
        timeout_options: a TimeoutOptions object, overriding some or all of the
            timeouts in effect.
    """

    callers: Sequence[CallerType] | UnsetType = _UNSET
    timeout_options: TimeoutOptions | UnsetType = _UNSET


@dataclass
class FullAPIOptions(APIOptions):
    """
    The "full" version of APIOptions, with the guarantee that all of its
    members have defined values.
    """

    callers: Sequence[CallerType]
    timeout_options: FullTimeoutOptions

    def __init__(
        self,
        *,
        callers: Sequence[CallerType],
        timeout_options: FullTimeoutOptions,
    ) -> None:
        APIOptions.__init__(
            self,
            callers=callers,
            timeout_options=timeout_options,
        )

    def __repr__(self) -> str:
        # a cleaner repr only mentioning the non-default values
        non_default_pieces: list[str] = []
        if self.callers:
            non_default_pieces.append(f"callers={self.callers}")
        if self.timeout_options != defaultTimeoutOptions:
            non_default_pieces.append(f"timeout_options={self.timeout_options}")
        inner_desc = ", ".join(non_default_pieces)
        return f"{self.__class__.__name__}({inner_desc})"

    def with_override(self, other: APIOptions | None) -> FullAPIOptions:
        """
        Given an "overriding" set of options, possibly not defined in all its
        attributes, apply the override logic and return a new full options object.

        Args:
            other: a not-necessarily-fully-specified options object. All its defined
                settings take precedence. Passing None means no override.
        """

        if other is None:
            return self
        callers: Sequence[CallerType]
        if isinstance(other.callers, UnsetType):
            callers = self.callers
        else:
            callers = list(other.callers)
        timeout_options: FullTimeoutOptions
        if isinstance(other.timeout_options, TimeoutOptions):
            timeout_options = self.timeout_options.with_override(
                other.timeout_options
            )
        else:
            timeout_options = self.timeout_options
        return FullAPIOptions(
            callers=callers,
            timeout_options=timeout_options,
        )


defaultTimeoutOptions = FullTimeoutOptions(
    request_timeout_ms=DEFAULT_REQUEST_TIMEOUT_MS,
    general_method_timeout_ms=DEFAULT_GENERAL_METHOD_TIMEOUT_MS,
    collection_admin_timeout_ms=DEFAULT_COLLECTION_ADMIN_TIMEOUT_MS,
    connect_timeout_ms=DEFAULT_CONNECT_TIMEOUT_MS,
)


def defaultAPIOptions() -> FullAPIOptions:
    """
    Return the default APIOptions object, based on the 'grand defaults'
    hardcoded in mongoeasy.
    """

    return FullAPIOptions(
        callers=[],
        timeout_options=replace(defaultTimeoutOptions),
    )
