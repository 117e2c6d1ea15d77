"""Tests for scriptapi.helper.tags: find_named_html_tags."""

from __future__ import annotations

import pytest

from scriptapi.helper import tags

COLUMNS = '<td class="A">Column 1</td><td class="A">Column <td>2</td></td><td class="C">Column 3</td>'


def _options(resolution: str) -> dict[str, object]:
    return {
        "ambiguousNameResolution": resolution,
        "namePosition": {"type": "attribute", "name": "class", "regexp": r"\W+"},
        "attributes": {"class": ""},
    }


class TestAmbiguousNames:
    """Tests for the ambiguousNameResolution option."""

    def test_add_number(self) -> None:
        found = tags.find_named_html_tags(COLUMNS, "td", _options("addNumber"))
        assert found.names == ["A", "A2", "C"]
        assert len(found) == 3
        assert (found["A"].contents, found["A"].position, found["A"].end_position) == ("Column 1", 0, 27)
        assert (found["A2"].contents, found["A2"].position, found["A2"].end_position) == ("Column <td>2</td>", 27, 63)
        assert (found["C"].contents, found["C"].position, found["C"].end_position) == ("Column 3", 63, 90)
        assert found["A2"].name == "A2"

    def test_replace_keeps_later_match(self) -> None:
        found = tags.find_named_html_tags(COLUMNS, "td", _options("replace"))
        assert found.names == ["A", "C"]
        assert len(found) == 2
        assert found["A"].position == 27
        assert found["A"].contents == "Column <td>2</td>"
        assert found["A"].attributes == {"class": "A"}

    def test_replace_is_default(self) -> None:
        options = _options("replace")
        del options["ambiguousNameResolution"]
        found = tags.find_named_html_tags(COLUMNS, "td", options)
        assert found.names == ["A", "C"]

    @pytest.mark.parametrize("resolution", ["addNumber", "replace"])
    def test_unique_names(self, resolution: str) -> None:
        document = COLUMNS.replace('<td class="A">Column <td>', '<td class="B">Column <td>')
        found = tags.find_named_html_tags(document, "td", _options(resolution))
        assert found.names == ["A", "B", "C"]
        assert found["B"].contents == "Column <td>2</td>"

    def test_add_number_counts_up(self) -> None:
        found = tags.find_named_html_tags("<th>A</th><th>A</th><th>A</th>", "th", {"ambiguousNameResolution": "addnumber"})
        assert found.names == ["A", "A2", "A3"]


class TestNamePosition:
    """Tests for deriving names from contents and attributes."""

    def test_names_from_contents_by_default(self) -> None:
        found = tags.find_named_html_tags("<th> Departure </th><th>Line</th>", "th")
        assert found.names == ["Departure", "Line"]
        assert "Line" in found
        assert found.get("Platform") is None

    def test_name_regexp_uses_first_group(self) -> None:
        options = {"namePosition": {"type": "contents", "regexp": r"(\w+) col"}}
        found = tags.find_named_html_tags("<td>first col</td><td>second col</td>", "td", options)
        assert found.names == ["first", "second"]

    def test_name_regexp_without_group(self) -> None:
        options = {"namePosition": {"type": "Attribute", "name": "id", "regexp": r"\d+"}}
        found = tags.find_named_html_tags('<td id="col12">x</td><td id="col7">y</td>', "td", options)
        assert found.names == ["12", "7"]

    def test_empty_names_are_skipped(self) -> None:
        found = tags.find_named_html_tags("<td></td><td>X</td><td>&nbsp;</td>", "td")
        assert found.names == ["X"]

    def test_missing_attribute_gives_empty_name(self) -> None:
        options = {"namePosition": {"type": "attribute", "name": "class"}}
        found = tags.find_named_html_tags('<td>a</td><td class="b">b</td>', "td", options)
        assert found.names == ["b"]

    def test_invalid_options(self) -> None:
        found = tags.find_named_html_tags("<td>a</td>", "td", {"ambiguousNameResolution": "merge"})
        assert found.names == []
        assert len(found) == 0
