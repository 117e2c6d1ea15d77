"""Tests for scriptapi.result.stop_names: city name removal."""

from __future__ import annotations

from scriptapi.result import shorten_stop_names, stop_names
from scriptapi.types import Hint, TimetableInformation

TARGET = TimetableInformation.TARGET
TARGET_SHORTENED = TimetableInformation.TARGET_SHORTENED
ROUTE_STOPS = TimetableInformation.ROUTE_STOPS
ROUTE_STOPS_SHORTENED = TimetableInformation.ROUTE_STOPS_SHORTENED

DRESDEN_STOPS = [f"Dresden Stop {i}" for i in range(stop_names.MIN_CITY_OCCURRENCES)]


class TestFindCityNames:
    """Tests for find_city_names."""

    def test_left_city(self) -> None:
        names = [*DRESDEN_STOPS, "Pirna Bahnhof"]
        assert stop_names.find_city_names(names) == ("left", frozenset({"Dresden"}))

    def test_right_city(self) -> None:
        names = [f"Stop{i}, Dresden" for i in range(10)]
        assert stop_names.find_city_names(names) == ("right", frozenset({"Dresden"}))

    def test_too_few_occurrences(self) -> None:
        assert stop_names.find_city_names(DRESDEN_STOPS[:-1]) is None

    def test_single_word_names_are_ignored(self) -> None:
        assert stop_names.find_city_names(["Hauptbahnhof"] * 20) is None

    def test_hint_restricts_side(self) -> None:
        assert stop_names.find_city_names(DRESDEN_STOPS, Hint.CITY_NAMES_ARE_RIGHT) is None
        assert stop_names.find_city_names(DRESDEN_STOPS, Hint.CITY_NAMES_ARE_LEFT) == ("left", frozenset({"Dresden"}))

    def test_several_cities(self) -> None:
        names = DRESDEN_STOPS + [f"Pirna Stop {i}" for i in range(10)]
        assert stop_names.find_city_names(names) == ("left", frozenset({"Dresden", "Pirna"}))


class TestShortenStopName:
    """Tests for shorten_stop_name."""

    def test_known_city(self) -> None:
        assert stop_names.shorten_stop_name("Dresden, Albertplatz", "left", frozenset({"Dresden"})) == "Albertplatz"

    def test_other_city(self) -> None:
        assert stop_names.shorten_stop_name("Pirna Bahnhof", "left", frozenset({"Dresden"})) == "Pirna Bahnhof"

    def test_right_side(self) -> None:
        assert stop_names.shorten_stop_name("Markt - Pirna", "right", frozenset({"Pirna"})) == "Markt"


class TestShortenStopNames:
    """Tests for shorten_stop_names on result records."""

    def test_targets_and_route_stops(self) -> None:
        records = [{TARGET: name} for name in DRESDEN_STOPS]
        records.append({TARGET: "Pirna Bahnhof", ROUTE_STOPS: ["Dresden Hauptbahnhof", "Pirna Bahnhof"]})

        shortened = shorten_stop_names(records)

        assert shortened[0][TARGET_SHORTENED] == "Stop 0"
        assert shortened[0][TARGET] == "Dresden Stop 0"
        assert shortened[-1][TARGET_SHORTENED] == "Pirna Bahnhof"
        assert shortened[-1][ROUTE_STOPS_SHORTENED] == ["Hauptbahnhof", "Pirna Bahnhof"]

    def test_input_records_are_unchanged(self) -> None:
        records = [{TARGET: name} for name in DRESDEN_STOPS]
        shorten_stop_names(records)
        assert all(TARGET_SHORTENED not in record for record in records)

    def test_script_values_are_kept(self) -> None:
        records = [{TARGET: name} for name in DRESDEN_STOPS]
        records[0][TARGET_SHORTENED] = "Custom"
        assert shorten_stop_names(records)[0][TARGET_SHORTENED] == "Custom"

    def test_no_city_found(self) -> None:
        records = [{TARGET: "Bremen"}, {TARGET: "Hamburg Altona"}]
        assert shorten_stop_names(records) == records
