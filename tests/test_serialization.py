"""Tests for scriptapi.utils.serialization: snake_to_camel conversion."""

from __future__ import annotations

import pytest

from scriptapi.types import TagMatch, TagSearchOptions
from scriptapi.utils.serialization import snake_to_camel


class TestSnakeToCamel:
    """Tests for snake_to_camel()."""

    @pytest.mark.parametrize(
        ("input_str", "expected"),
        [
            ("contents_reg_exp", "contentsRegExp"),
            ("no_nesting", "noNesting"),
            ("max_count", "maxCount"),
            ("end_position", "endPosition"),
            ("ambiguous_name_resolution", "ambiguousNameResolution"),
            ("a_b_c", "aBC"),
            ("stop_ID", "stopID"),
        ],
    )
    def test_conversion(self, input_str: str, expected: str) -> None:
        assert snake_to_camel(input_str) == expected

    def test_no_underscores(self) -> None:
        assert snake_to_camel("position") == "position"

    def test_empty_string(self) -> None:
        assert snake_to_camel("") == ""


class TestModelAliases:
    """Tests for the camelCase aliases of the script-facing models."""

    def test_options_accept_camel_case_keys(self) -> None:
        options = TagSearchOptions.model_validate({"contentsRegExp": "(\\d+)", "noNesting": True, "maxCount": 2})
        assert options.contents_reg_exp == "(\\d+)"
        assert options.no_nesting
        assert options.max_count == 2

    def test_options_accept_field_names(self) -> None:
        assert TagSearchOptions(no_content=True).no_content

    def test_match_dumps_camel_case(self) -> None:
        match = TagMatch(contents="Bremen", position=3, end_position=20)
        dumped = match.model_dump(by_alias=True)
        assert dumped["endPosition"] == 20
        assert "end_position" not in dumped
