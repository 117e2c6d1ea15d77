"""Timetable record vocabulary shared by scripts and the host.

Information kinds, vehicle types, result feature/hint flags and the
severity of script messages.  Scripts may name every enum member by
its integer value or by its name in any letter case.
"""

from __future__ import annotations

import enum


class TimetableInformation(enum.IntEnum):
    """Kinds of information a timetable record can hold."""

    NOTHING = 0

    # Departures, arrivals and journeys
    DEPARTURE_DATE_TIME = 1
    DEPARTURE_DATE = 2
    DEPARTURE_TIME = 3
    TYPE_OF_VEHICLE = 4
    VEHICLE_TYPE = 4
    TRANSPORT_LINE = 5
    FLIGHT_NUMBER = 5
    TARGET = 6
    TARGET_SHORTENED = 7
    PLATFORM = 8
    DELAY = 9
    DELAY_REASON = 10
    JOURNEY_NEWS = 11
    JOURNEY_NEWS_OTHER = 12
    JOURNEY_NEWS_LINK = 13
    OPERATOR = 14
    STATUS = 15
    IS_NIGHT_LINE = 16

    # Routes
    ROUTE_STOPS = 20
    ROUTE_STOPS_SHORTENED = 21
    ROUTE_TIMES = 22
    ROUTE_TIMES_DEPARTURE = 23
    ROUTE_TIMES_ARRIVAL = 24
    ROUTE_EXACT_STOPS = 25
    ROUTE_TYPES_OF_VEHICLES = 26
    ROUTE_TRANSPORT_LINES = 27
    ROUTE_PLATFORMS_DEPARTURE = 28
    ROUTE_PLATFORMS_ARRIVAL = 29
    ROUTE_TIMES_DEPARTURE_DELAY = 30
    ROUTE_TIMES_ARRIVAL_DELAY = 31

    # Journeys only
    DURATION = 50
    START_STOP_NAME = 51
    START_STOP_ID = 52
    TARGET_STOP_NAME = 53
    TARGET_STOP_ID = 54
    ARRIVAL_DATE_TIME = 55
    ARRIVAL_DATE = 56
    ARRIVAL_TIME = 57
    CHANGES = 58
    TYPES_OF_VEHICLE_IN_JOURNEY = 59
    PRICING = 60

    # Stop suggestions
    STOP_NAME = 200
    STOP_ID = 201
    STOP_WEIGHT = 202
    STOP_CITY = 203
    STOP_COUNTRY_CODE = 204

    @property
    def script_name(self) -> str:
        """The CamelCase name scripts use, e.g. ``"DepartureDateTime"``."""
        return _script_name(self.name)

    @classmethod
    def parse(cls, key: object) -> TimetableInformation:
        """Resolve *key* given as member, integer or (case-insensitive) name.

        Returns :attr:`NOTHING` for unknown keys.
        """
        return _parse(cls, key, cls.NOTHING)


class VehicleType(enum.IntEnum):
    """Types of public transport vehicles."""

    INVALID = -1
    UNKNOWN = 0
    TRAM = 1
    BUS = 2
    SUBWAY = 3
    INTERURBAN_TRAIN = 4
    TRAIN_INTERURBAN = 4
    METRO = 5
    TROLLEY_BUS = 6
    REGIONAL_TRAIN = 10
    TRAIN_REGIONAL = 10
    REGIONAL_EXPRESS_TRAIN = 11
    TRAIN_REGIONAL_EXPRESS = 11
    INTERREGIONAL_TRAIN = 12
    TRAIN_INTERREGIO = 12
    INTERCITY_TRAIN = 13
    TRAIN_INTERCITY_EUROCITY = 13
    HIGH_SPEED_TRAIN = 14
    TRAIN_INTERCITY_EXPRESS = 14
    FEET = 50
    FERRY = 100
    SHIP = 101
    PLANE = 200
    SPACECRAFT = 300

    @property
    def script_name(self) -> str:
        return _script_name(self.name)

    @classmethod
    def parse(cls, value: object) -> VehicleType:
        """Resolve *value* given as member, integer or name; :attr:`INVALID` otherwise."""
        return _parse(cls, value, cls.INVALID)


class Feature(enum.IntFlag):
    """Result features controlling downstream processing."""

    NO_FEATURE = 0
    AUTO_PUBLISH = 1
    AUTO_DECODE_HTML_ENTITIES = 2
    AUTO_REMOVE_CITY_FROM_STOP_NAMES = 4
    DEFAULT_FEATURES = AUTO_PUBLISH | AUTO_DECODE_HTML_ENTITIES
    ALL_FEATURES = AUTO_PUBLISH | AUTO_DECODE_HTML_ENTITIES | AUTO_REMOVE_CITY_FROM_STOP_NAMES


class Hint(enum.IntFlag):
    """Hints a script gives the host about the data it produced."""

    NO_HINT = 0
    DATES_NEED_ADJUSTMENT = 1
    NO_DELAYS_FOR_STOP = 2
    CITY_NAMES_ARE_LEFT = 4
    CITY_NAMES_ARE_RIGHT = 8


class ErrorSeverity(enum.IntEnum):
    """Severity of a message reported by a script through the helper."""

    INFORMATION = 0
    WARNING = 1
    FATAL = 2


# ── Name lookup ─────────────────────────────────────────────────


def _script_name(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_")).replace("Id", "ID")


def _normalize(name: str) -> str:
    return name.replace("_", "").replace(" ", "").lower()


def _parse(cls: type[enum.IntEnum], key: object, missing: enum.IntEnum) -> enum.IntEnum:
    if isinstance(key, cls):
        return key
    if isinstance(key, bool):
        return missing
    if isinstance(key, int):
        try:
            return cls(key)
        except ValueError:
            return missing
    if isinstance(key, str):
        text = key.strip()
        if text.lstrip("-").isdigit():
            return _parse(cls, int(text), missing)
        wanted = _normalize(text)
        for member_name, member in cls.__members__.items():
            if _normalize(member_name) == wanted:
                return member
    return missing
