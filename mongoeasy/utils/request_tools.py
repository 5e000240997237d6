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
from contextlib import contextmanager
from typing import Any, Iterator

import pymongo
from pymongo.errors import PyMongoError

from mongoeasy.exceptions import _TimeoutContext, to_mongoeasy_exception
from mongoeasy.settings.defaults import FIXED_SECRET_PLACEHOLDER

logger = logging.getLogger(__name__)


def log_command(
    command_name: str,
    full_name: str,
    payload: dict[str, Any] | None,
    timeout_context: _TimeoutContext,
) -> None:
    """
    Log the details of a command for debugging purposes.

    Args:
        command_name: the name of the command (e.g. "updateOne").
        full_name: the "database.collection" the command targets.
        payload: the filter/update/documents sent with the command, if any.
        timeout_context: the timeout owned by the method invocation.
    """
    logger.debug(f"Command: {command_name} on '{full_name}'")
    if payload:
        logger.debug(f"Command payload: '{payload}'")
    if timeout_context:
        logger.debug(
            f"Timeout (ms): {timeout_context.request_ms or '(unset)'} ms"
            f" ({timeout_context.label or 'no label'})"
        )


def redact_uri(uri: str) -> str:
    """
    Return the connection string with the credentials part (if any)
    replaced by a placeholder, suitable for logging.
    """

    scheme_end = uri.find("://")
    if scheme_end < 0:
        return uri
    prefix = uri[: scheme_end + 3]
    rest = uri[scheme_end + 3 :]
    slash_pos = rest.find("/")
    netloc, path = (rest, "") if slash_pos < 0 else (rest[:slash_pos], rest[slash_pos:])
    if "@" in netloc:
        netloc = f"{FIXED_SECRET_PLACEHOLDER}@{netloc.rsplit('@', 1)[1]}"
    return f"{prefix}{netloc}{path}"


@contextmanager
def driver_timeout(timeout_context: _TimeoutContext) -> Iterator[None]:
    """
    Run the enclosed driver calls within the timeout of a single method
    invocation, translating driver errors into mongoeasy exceptions.

    The deadline is kept by the driver in a context variable, hence it is
    private to the current thread (or asyncio task) and to this block.
    """

    try:
        with pymongo.timeout(timeout_context.to_seconds()):
            yield
    except PyMongoError as exc:
        raise to_mongoeasy_exception(exc, timeout_context) from exc
