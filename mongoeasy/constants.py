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

from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, TypeVar, Union

from bson import SON

DefaultDocumentType = Dict[str, Any]
FieldPairs = Iterable[Tuple[str, Any]]
FilterType = Union[Mapping[str, Any], FieldPairs]
UpdateType = Union[Mapping[str, Any], FieldPairs]
ProjectionType = Union[Iterable[str], Dict[str, Union[bool, int, Dict[str, Any]]]]
SortType = Union[Mapping[str, int], Iterable[Tuple[str, int]]]
CallerType = Tuple[Optional[str], Optional[str]]


DOC = TypeVar("DOC")
DOC2 = TypeVar("DOC2")


def _pairs_to_son(pairs: FieldPairs) -> SON[str, Any]:
    son: SON[str, Any] = SON()
    for pair in pairs:
        try:
            key, value = pair
        except (TypeError, ValueError):
            raise ValueError(
                f"Expected a (field, value) pair, got {pair!r} instead."
            ) from None
        if not isinstance(key, str):
            raise ValueError(f"Field names must be strings, got {key!r} instead.")
        son[key] = value
    return son


def normalize_optional_filter(
    filter: FilterType | None,
) -> Mapping[str, Any]:
    """
    Turn a filter, given either as a mapping or as an ordered sequence of
    (field, value) pairs, into a mapping the driver accepts.
    A missing filter matches every document.
    """

    if filter is None:
        return {}
    if isinstance(filter, Mapping):
        return filter
    return _pairs_to_son(filter)


def normalize_update(update: UpdateType) -> Mapping[str, Any]:
    """
    Turn an update prescription, given either as a mapping or as an ordered
    sequence of (operator, operand) pairs, into a mapping the driver accepts.
    Operands of update operators (e.g. "$set") can themselves be pair sequences.
    """

    update_map = update if isinstance(update, Mapping) else _pairs_to_son(update)
    if not update_map:
        raise ValueError("The update prescription cannot be empty.")
    normalized: SON[str, Any] = SON()
    for operator, operand in update_map.items():
        if (
            operator.startswith("$")
            and not isinstance(operand, (Mapping, str, bytes))
            and isinstance(operand, Iterable)
        ):
            normalized[operator] = _pairs_to_son(operand)
        else:
            normalized[operator] = operand
    return normalized


def normalize_optional_projection(
    projection: ProjectionType | None,
) -> dict[str, Any] | None:
    if projection:
        if isinstance(projection, dict):
            # already a dictionary
            return projection
        else:
            # an iterable over strings: coerce to allow-list projection
            return {field: True for field in projection}
    else:
        return None


def normalize_optional_sort(
    sort: SortType | None,
) -> list[tuple[str, int]] | None:
    if sort is None:
        return None
    if isinstance(sort, Mapping):
        return list(sort.items())
    return [(key, direction) for key, direction in sort]


class SortMode:
    """
    Admitted values for the `sort` parameter in the find collection methods,
    e.g. `sort={"field": SortMode.ASCENDING}`.
    """

    def __init__(self) -> None:
        raise NotImplementedError

    ASCENDING = 1
    DESCENDING = -1


__all__ = [
    "SortMode",
]

__pdoc__ = {
    "normalize_optional_filter": False,
    "normalize_optional_projection": False,
    "normalize_optional_sort": False,
    "normalize_update": False,
}
