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
Conversion between the documents exchanged with the driver (plain mappings)
and the document types declared by the caller.

The document type can be:
    - `dict` (or `Dict[str, Any]` and the like): documents are plain dicts;
    - a dataclass: fields are matched by name (or by the `field_name` entry
      in the field metadata, e.g. to map an `id` attribute onto `_id`).
      Keys in the document without a corresponding field are ignored;
    - a class with a `_from_dict` or `from_dict` classmethod;
    - any other callable accepting the raw dict.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import Mapping
from typing import Any, Union

from mongoeasy.exceptions import DocumentDecodeException

FIELD_NAME_METADATA_KEY = "field_name"
_UNION_ORIGINS = {Union, getattr(types, "UnionType", Union)}


def _is_plain_mapping_type(document_type: Any) -> bool:
    if document_type is None:
        return True
    origin = typing.get_origin(document_type) or document_type
    return origin in {dict, Mapping, typing.Dict, typing.Mapping}


def _document_key(fld: dataclasses.Field[Any]) -> str:
    return fld.metadata.get(FIELD_NAME_METADATA_KEY, fld.name)  # type: ignore[no-any-return]


def _resolve_hints(document_type: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(document_type)
    except (NameError, TypeError):
        # unresolvable forward references: no type checks on fields
        return {}


def _decode_value(value: Any, expected: Any, path: str) -> Any:
    """
    Check a value against its annotation, recursing into nested dataclasses
    and lists of them. Raises ValueError on mismatch.
    """

    if expected is None or expected is Any:
        return value
    origin = typing.get_origin(expected)
    if origin in _UNION_ORIGINS:
        all_alternatives = typing.get_args(expected)
        alternatives = [alt for alt in all_alternatives if alt is not type(None)]
        if value is None and len(alternatives) < len(all_alternatives):
            return None
        if len(alternatives) == 1:
            # Optional[X]: report the error from X itself
            return _decode_value(value, alternatives[0], path)
        for alternative in alternatives:
            try:
                return _decode_value(value, alternative, path)
            except ValueError:
                continue
        raise ValueError(f"value {value!r} at '{path}' matches none of {expected}")
    if origin in (list, tuple, set):
        if not isinstance(value, list):
            raise ValueError(f"expected a list at '{path}', got {value!r}")
        item_args = typing.get_args(expected)
        if item_args and dataclasses.is_dataclass(item_args[0]):
            items = [
                _decode_value(item, item_args[0], f"{path}.{item_i}")
                for item_i, item in enumerate(value)
            ]
            return origin(items)
        return origin(value)
    if origin is not None:
        if isinstance(origin, type) and not isinstance(value, origin):
            raise ValueError(f"expected {expected} at '{path}', got {value!r}")
        return value
    if expected is type(None):
        if value is not None:
            raise ValueError(f"expected None at '{path}', got {value!r}")
        return value
    if isinstance(expected, type):
        if dataclasses.is_dataclass(expected):
            if not isinstance(value, Mapping):
                raise ValueError(f"expected a subdocument at '{path}', got {value!r}")
            return _decode_dataclass(value, expected, path=path)
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        # bool is an int subclass, but a stored boolean is not a number
        if not isinstance(value, expected) or (
            expected is int and isinstance(value, bool)
        ):
            raise ValueError(
                f"expected {expected.__name__} at '{path}', "
                f"got {type(value).__name__} ({value!r})"
            )
    return value


def _decode_dataclass(
    raw_document: Mapping[str, Any], document_type: type, path: str = ""
) -> Any:
    hints = _resolve_hints(document_type)
    kwargs: dict[str, Any] = {}
    for fld in dataclasses.fields(document_type):
        if not fld.init:
            continue
        key = _document_key(fld)
        field_path = f"{path}.{key}" if path else key
        if key in raw_document:
            kwargs[fld.name] = _decode_value(
                raw_document[key], hints.get(fld.name), field_path
            )
        elif (
            fld.default is dataclasses.MISSING
            and fld.default_factory is dataclasses.MISSING
        ):
            raise ValueError(f"missing required field '{field_path}'")
    return document_type(**kwargs)


def decode_document(raw_document: Mapping[str, Any], document_type: Any) -> Any:
    """
    Convert a document as returned by the driver into the requested type.

    Args:
        raw_document: the document read from the collection.
        document_type: the type to convert to (see the module docstring).

    Returns:
        an instance of `document_type` (a dict for the plain-mapping case).

    Raises:
        DocumentDecodeException: if the document does not fit the type.
    """

    if _is_plain_mapping_type(document_type):
        return dict(raw_document)
    try:
        if dataclasses.is_dataclass(document_type) and isinstance(
            document_type, type
        ):
            return _decode_dataclass(raw_document, document_type)
        from_dict = getattr(document_type, "_from_dict", None) or getattr(
            document_type, "from_dict", None
        )
        if callable(from_dict):
            return from_dict(dict(raw_document))
        if callable(document_type):
            return document_type(dict(raw_document))
    except (KeyError, TypeError, ValueError) as exc:
        type_name = getattr(document_type, "__name__", repr(document_type))
        raise DocumentDecodeException(
            text=f"Cannot decode document into {type_name}: {exc}",
            document_type=document_type,
            raw_document=dict(raw_document),
        ) from exc
    raise TypeError(f"Unsupported document type: {document_type!r}")


def encode_document(document: Any) -> dict[str, Any]:
    """
    Convert a document given by the caller into a plain dict for the driver.
    Dataclass instances are converted field by field (honouring the
    `field_name` metadata); an `_id` left to None is dropped so that the
    server can assign one.
    """

    if isinstance(document, Mapping):
        return dict(document)
    if dataclasses.is_dataclass(document) and not isinstance(document, type):
        encoded: dict[str, Any] = {}
        for fld in dataclasses.fields(document):
            value = getattr(document, fld.name)
            key = _document_key(fld)
            if key == "_id" and value is None:
                continue
            encoded[key] = _encode_value(value)
        return encoded
    for method_name in ("as_dict", "to_dict"):
        method = getattr(document, method_name, None)
        if callable(method):
            return dict(method())
    raise TypeError(
        f"Cannot encode object of type {type(document).__name__} as a document."
    )


def _encode_value(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return encode_document(value)
    if isinstance(value, (list, tuple)):
        return [_encode_value(item) for item in value]
    return value
