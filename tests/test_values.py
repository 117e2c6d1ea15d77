"""Tests for scriptapi.types.values: the stored value union."""

from __future__ import annotations

import datetime

import pytest

from scriptapi.types import values


class TestEncodeValue:
    """Tests for encode_value."""

    @pytest.mark.parametrize(
        ("value", "type_name"),
        [
            ("text", "string"),
            (7, "int"),
            (True, "bool"),
            (1.25, "float"),
            (datetime.date(2011, 6, 1), "date"),
            (datetime.time(8, 30), "time"),
            (datetime.datetime(2011, 6, 1, 8, 30), "datetime"),
            (b"raw", "bytes"),
            (bytearray(b"raw"), "bytes"),
            ([1, 2], "list"),
            ((1, 2), "list"),
            ({"a": 1}, "map"),
        ],
    )
    def test_type_tags(self, value: object, type_name: str) -> None:
        assert values.encode_value(value).type == type_name

    def test_tuple_reads_back_as_list(self) -> None:
        assert values.decode_value(values.encode_value(("a", 1))) == ["a", 1]

    def test_bytearray_reads_back_as_bytes(self) -> None:
        decoded = values.decode_value(values.encode_value(bytearray(b"raw")))
        assert type(decoded) is bytes
        assert decoded == b"raw"

    def test_nested_map(self) -> None:
        value = {"lines": [{"name": "S1", "raw": b"\x01"}], "updated": datetime.date(2011, 6, 1)}
        assert values.decode_value(values.encode_value(value)) == value

    @pytest.mark.parametrize(
        "value",
        [None, object(), {1, 2}, {("a",): 1}, float("nan"), float("inf"), [1.0, float("-inf")]],
    )
    def test_unsupported(self, value: object) -> None:
        with pytest.raises(values.UnsupportedValueError):
            values.encode_value(value)


class TestEncodedSize:
    """Tests for encoded_size."""

    def test_grows_with_value(self) -> None:
        small = values.encoded_size(values.encode_value("x"))
        large = values.encoded_size(values.encode_value("x" * 100))
        assert large - small == 99

    def test_bytes_are_counted_encoded(self) -> None:
        # Three raw bytes become four base64 characters.
        assert values.encoded_size(values.encode_value(b"abc")) - values.encoded_size(values.encode_value(b"")) == 4
