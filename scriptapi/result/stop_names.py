"""Removal of city names from stop names.

Many providers prefix (or suffix) every stop name with the city it is
in, e.g. ``"Dresden Hauptbahnhof"``.  When the same word starts (or
ends) enough stop names of a result it is treated as a city name and
stripped into the ``*_SHORTENED`` fields.
"""

from __future__ import annotations

import collections
from collections.abc import Iterable, Sequence

from scriptapi.result.result import TimetableData
from scriptapi.types import Hint, TimetableInformation
from scriptapi.utils import logger

log = logger.create_logger("StopNames")

# A word must start or end this many stop names to count as a city.
MIN_CITY_OCCURRENCES = 10

_SEPARATORS = " ,-/"

_LEFT = "left"
_RIGHT = "right"


def _split(name: str, side: str) -> tuple[str, str] | None:
    """Split *name* into ``(city, rest)`` at the word on *side*."""
    name = name.strip()
    if side == _LEFT:
        city, sep, rest = name.partition(" ")
    else:
        rest, sep, city = name.rpartition(" ")
    if not sep:
        return None
    city = city.strip(_SEPARATORS)
    rest = rest.strip(_SEPARATORS)
    if not city or not rest:
        return None
    return city, rest


def _stop_names(records: Iterable[TimetableData]) -> list[str]:
    names: list[str] = []
    for record in records:
        target = record.get(TimetableInformation.TARGET)
        if isinstance(target, str):
            names.append(target)
        stops = record.get(TimetableInformation.ROUTE_STOPS)
        if isinstance(stops, list):
            names.extend(stop for stop in stops if isinstance(stop, str))
    return names


def find_city_names(names: Sequence[str], hints: Hint = Hint.NO_HINT) -> tuple[str, frozenset[str]] | None:
    """Find the side and the words used as city names in *names*.

    Without a city hint both sides are counted and the side with more
    qualifying occurrences wins (left on a tie).

    Returns:
        ``(side, cities)`` or ``None`` if no word is frequent enough.
    """
    if hints & Hint.CITY_NAMES_ARE_LEFT:
        sides = [_LEFT]
    elif hints & Hint.CITY_NAMES_ARE_RIGHT:
        sides = [_RIGHT]
    else:
        sides = [_LEFT, _RIGHT]

    best: tuple[str, frozenset[str]] | None = None
    best_total = 0
    for side in sides:
        counts = collections.Counter(split[0] for name in names if (split := _split(name, side)) is not None)
        cities = frozenset(city for city, count in counts.items() if count >= MIN_CITY_OCCURRENCES)
        total = sum(counts[city] for city in cities)
        if cities and total > best_total:
            best, best_total = (side, cities), total
    return best


def shorten_stop_name(name: str, side: str, cities: frozenset[str]) -> str:
    """Strip a known city from *name*; names of other cities stay unchanged."""
    split = _split(name, side)
    if split is None or split[0] not in cities:
        return name
    return split[1]


def shorten_stop_names(records: Sequence[TimetableData], hints: Hint = Hint.NO_HINT) -> list[TimetableData]:
    """Return copies of *records* with ``TARGET_SHORTENED`` and
    ``ROUTE_STOPS_SHORTENED`` filled in.

    Values a script set itself are kept.  Records are returned
    unchanged when no city name was found.
    """
    copies = [dict(record) for record in records]
    found = find_city_names(_stop_names(copies), hints)
    if found is None:
        log.debug("No city names found in stop names", {"records": len(copies)})
        return copies

    side, cities = found
    log.debug("Removing city names from stop names", {"side": side, "cities": sorted(cities)})
    for record in copies:
        target = record.get(TimetableInformation.TARGET)
        if isinstance(target, str) and TimetableInformation.TARGET_SHORTENED not in record:
            record[TimetableInformation.TARGET_SHORTENED] = shorten_stop_name(target, side, cities)
        stops = record.get(TimetableInformation.ROUTE_STOPS)
        if isinstance(stops, list) and TimetableInformation.ROUTE_STOPS_SHORTENED not in record:
            record[TimetableInformation.ROUTE_STOPS_SHORTENED] = [
                shorten_stop_name(stop, side, cities) if isinstance(stop, str) else stop for stop in stops
            ]
    return copies
