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

import importlib.metadata


def get_version() -> str:
    try:
        return importlib.metadata.version(__package__ or "mongoeasy")
    # If the package is not installed (e.g. running from a source checkout)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


__version__: str = get_version()


import mongoeasy.api_options  # noqa: E402
import mongoeasy.constants  # noqa: E402
import mongoeasy.results  # noqa: E402
from mongoeasy.client import async_connect, connect  # noqa: E402
from mongoeasy.collection import AsyncCollection, Collection  # noqa: E402
from mongoeasy.constants import SortMode  # noqa: E402
from mongoeasy.utils.api_options import APIOptions, TimeoutOptions  # noqa: E402

__all__ = [
    "APIOptions",
    "AsyncCollection",
    "Collection",
    "SortMode",
    "TimeoutOptions",
    "async_connect",
    "connect",
    "__version__",
]


__pdoc__ = {
    "utils": False,
    "settings": False,
}
