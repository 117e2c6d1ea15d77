"""Tagged union of the value types the persistent storage tier accepts.

Every stored value is wrapped in a model whose ``type`` field names
the Python type it came from, so reading a value back yields the type
that was written (``date`` stays ``date``, ``bytes`` stays ``bytes``,
nested lists and maps keep their item types).  Two types are
normalised on the way in: tuples are stored as lists and ``bytearray``
as ``bytes``.  Floats must be finite, JSON has no NaN or infinity.
"""

from __future__ import annotations

import base64
import datetime
import math
from collections.abc import Mapping
from typing import Annotated, Literal

import pydantic


class StringValue(pydantic.BaseModel):
    type: Literal["string"] = "string"
    value: str


class IntValue(pydantic.BaseModel):
    type: Literal["int"] = "int"
    value: int


class FloatValue(pydantic.BaseModel):
    type: Literal["float"] = "float"
    value: float


class BoolValue(pydantic.BaseModel):
    type: Literal["bool"] = "bool"
    value: bool


class DateValue(pydantic.BaseModel):
    type: Literal["date"] = "date"
    value: datetime.date


class TimeValue(pydantic.BaseModel):
    type: Literal["time"] = "time"
    value: datetime.time


class DateTimeValue(pydantic.BaseModel):
    type: Literal["datetime"] = "datetime"
    value: datetime.datetime


class BytesValue(pydantic.BaseModel):
    """Raw bytes, kept base64-encoded so the JSON file stays text."""

    type: Literal["bytes"] = "bytes"
    value: str


class ListValue(pydantic.BaseModel):
    type: Literal["list"] = "list"
    items: list[StoredValue] = pydantic.Field(default_factory=list)


class MapValue(pydantic.BaseModel):
    type: Literal["map"] = "map"
    entries: dict[str, StoredValue] = pydantic.Field(default_factory=dict)


StoredValue = Annotated[
    StringValue
    | IntValue
    | FloatValue
    | BoolValue
    | DateValue
    | TimeValue
    | DateTimeValue
    | BytesValue
    | ListValue
    | MapValue,
    pydantic.Field(discriminator="type"),
]

ListValue.model_rebuild()
MapValue.model_rebuild()

_stored_value_adapter: pydantic.TypeAdapter[StoredValue] = pydantic.TypeAdapter(StoredValue)


class UnsupportedValueError(TypeError):
    """Raised for values that have no stored representation."""


def encode_value(value: object) -> StoredValue:
    """Wrap a Python value in its tagged representation.

    Raises:
        UnsupportedValueError: For ``None``, NaN and infinite floats and
            any type outside the union (including map keys that are not
            strings).
    """
    # bool before int and datetime before date: both are subclasses.
    if isinstance(value, bool):
        return BoolValue(value=value)
    if isinstance(value, int):
        return IntValue(value=value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedValueError(f"Cannot store non-finite float {value!r}")
        return FloatValue(value=value)
    if isinstance(value, str):
        return StringValue(value=value)
    if isinstance(value, datetime.datetime):
        return DateTimeValue(value=value)
    if isinstance(value, datetime.date):
        return DateValue(value=value)
    if isinstance(value, datetime.time):
        return TimeValue(value=value)
    if isinstance(value, (bytes, bytearray)):
        return BytesValue(value=base64.b64encode(bytes(value)).decode("ascii"))
    if isinstance(value, (list, tuple)):
        return ListValue(items=[encode_value(item) for item in value])
    if isinstance(value, Mapping):
        entries: dict[str, StoredValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnsupportedValueError(f"Map keys must be strings, got {type(key).__name__}")
            entries[key] = encode_value(item)
        return MapValue(entries=entries)
    raise UnsupportedValueError(f"Cannot store values of type {type(value).__name__}")


def decode_value(stored: StoredValue) -> object:
    """Return the Python value wrapped by *stored*."""
    if isinstance(stored, ListValue):
        return [decode_value(item) for item in stored.items]
    if isinstance(stored, MapValue):
        return {key: decode_value(item) for key, item in stored.entries.items()}
    if isinstance(stored, BytesValue):
        return base64.b64decode(stored.value)
    return stored.value


def encoded_size(stored: StoredValue) -> int:
    """Number of bytes *stored* occupies in the persistent file."""
    return len(_stored_value_adapter.dump_json(stored))
