"""The ``result`` object a provider script fills with timetable records.

One ``ResultObject`` is created per script invocation.  Scripts append
records with :meth:`ResultObject.add_data`; keys that cannot be
understood are reported through ``invalid_data_received`` while the
rest of the record is still stored.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping

from scriptapi import config
from scriptapi.helper import text
from scriptapi.types import Feature, Hint, TimetableInformation, VehicleType
from scriptapi.utils import logger, signals

log = logger.create_logger("Result")

TimetableData = dict[TimetableInformation, object]

# String values that get HTML entities decoded with AUTO_DECODE_HTML_ENTITIES.
_DECODED_STRING_FIELDS = frozenset(
    {
        TimetableInformation.STOP_NAME,
        TimetableInformation.TARGET,
        TimetableInformation.START_STOP_NAME,
        TimetableInformation.TARGET_STOP_NAME,
        TimetableInformation.OPERATOR,
        TimetableInformation.TRANSPORT_LINE,
        TimetableInformation.PLATFORM,
        TimetableInformation.DELAY_REASON,
        TimetableInformation.STATUS,
        TimetableInformation.PRICING,
    }
)

_DECODED_LIST_FIELDS = frozenset(
    {
        TimetableInformation.ROUTE_STOPS,
        TimetableInformation.ROUTE_PLATFORMS_DEPARTURE,
        TimetableInformation.ROUTE_PLATFORMS_ARRIVAL,
    }
)

_VEHICLE_LIST_FIELDS = frozenset(
    {
        TimetableInformation.TYPES_OF_VEHICLE_IN_JOURNEY,
        TimetableInformation.ROUTE_TYPES_OF_VEHICLES,
    }
)

# (info, message) pairs collected while building a record.
_Problem = tuple[TimetableInformation, str]


class ResultObject:
    """Ordered timetable records plus feature and hint flags.

    Signals:
        publish(): emitted when the record count reaches the publish
            threshold while ``AUTO_PUBLISH`` is enabled.
        invalid_data_received(info, message, index, map): emitted for
            every key of an ``add_data`` call that was not stored.
            *index* is the position the record was stored at.
    """

    def __init__(
        self,
        features: Feature = Feature.DEFAULT_FEATURES,
        hints: Hint = Hint.NO_HINT,
    ) -> None:
        self._lock = threading.Lock()
        self._records: list[TimetableData] = []
        self._features = Feature(features)
        self._hints = Hint(hints)

        self.publish = signals.Signal("publish")
        self.invalid_data_received = signals.Signal("invalid_data_received")

    # ── Records ─────────────────────────────────────────────────

    def add_data(self, data: Mapping[object, object]) -> None:
        """Append one record built from *data*.

        Keys may be :class:`TimetableInformation` members, their integer
        values or their names.  ``None`` values are skipped.  Unknown
        keys and invalid vehicle types are reported and left out.
        """
        with self._lock:
            decode = bool(self._features & Feature.AUTO_DECODE_HTML_ENTITIES)

        record: TimetableData = {}
        problems: list[_Problem] = []
        for key, value in data.items():
            info = TimetableInformation.parse(key)
            if info is TimetableInformation.NOTHING:
                problems.append((info, f'Invalid timetable information "{key}" with value "{value}"'))
                continue
            if value is None:
                continue
            converted = _convert(info, value, decode, problems)
            if converted is not None:
                record[info] = converted

        with self._lock:
            index = len(self._records)
            self._records.append(record)
            publish = bool(self._features & Feature.AUTO_PUBLISH) and len(self._records) == config.PUBLISH_THRESHOLD

        plain = dict(data)
        for info, message in problems:
            log.warn(message, {"index": index, "info": info.script_name})
            self.invalid_data_received.emit(info, message, index, plain)
        if publish:
            log.debug("Publishing first records", {"count": index + 1})
            self.publish.emit()

    def data(self) -> list[TimetableData]:
        """Return a copy of all records in insertion order."""
        with self._lock:
            return [dict(record) for record in self._records]

    def data_at(self, index: int, info: object = None) -> object:
        """Return the record at *index*, or only its value for *info*.

        Raises:
            IndexError: *index* is out of range.
        """
        with self._lock:
            record = self._records[index]
            if info is None:
                return dict(record)
            return record.get(TimetableInformation.parse(info))

    def has_data(self) -> bool:
        with self._lock:
            return bool(self._records)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        """Remove all records; features and hints are kept."""
        with self._lock:
            self._records.clear()

    # ── Features and hints ──────────────────────────────────────

    def features(self) -> Feature:
        with self._lock:
            return self._features

    def hints(self) -> Hint:
        with self._lock:
            return self._hints

    def enable_feature(self, feature: Feature, enable: bool = True) -> None:
        with self._lock:
            if enable:
                self._features |= feature
            else:
                self._features &= ~Feature(feature)

    def is_feature_enabled(self, feature: Feature) -> bool:
        with self._lock:
            return (self._features & feature) == feature

    def give_hint(self, hint: Hint, enable: bool = True) -> None:
        """Set or clear *hint*.

        ``CITY_NAMES_ARE_LEFT`` and ``CITY_NAMES_ARE_RIGHT`` exclude each
        other, giving one clears the other.
        """
        hint = Hint(hint)
        with self._lock:
            if not enable:
                self._hints &= ~hint
                return
            if hint & Hint.CITY_NAMES_ARE_LEFT:
                self._hints &= ~Hint.CITY_NAMES_ARE_RIGHT
            elif hint & Hint.CITY_NAMES_ARE_RIGHT:
                self._hints &= ~Hint.CITY_NAMES_ARE_LEFT
            self._hints |= hint

    def is_hint_given(self, hint: Hint) -> bool:
        with self._lock:
            return (self._hints & hint) == hint

    def __repr__(self) -> str:
        return f"ResultObject(count={self.count()}, features={self.features()!r}, hints={self.hints()!r})"


# ── Value conversion ────────────────────────────────────────────


def _convert(
    info: TimetableInformation,
    value: object,
    decode: bool,
    problems: list[_Problem],
) -> object | None:
    """Validate and normalise one value; ``None`` drops the key."""
    if info is TimetableInformation.TYPE_OF_VEHICLE:
        vehicle_type = VehicleType.parse(value)
        if vehicle_type is VehicleType.INVALID:
            problems.append((info, f'Invalid type of vehicle received: "{value}"'))
            return None
        return vehicle_type

    if info in _VEHICLE_LIST_FIELDS:
        items = list(value) if isinstance(value, list | tuple) else [value]
        vehicle_types = [VehicleType.parse(item) for item in items]
        invalid = [item for item, parsed in zip(items, vehicle_types, strict=True) if parsed is VehicleType.INVALID]
        for item in invalid:
            problems.append((info, f'Invalid type of vehicle received in "{info.script_name}": "{item}"'))
        return None if invalid else vehicle_types

    if not decode:
        return value
    if info in _DECODED_STRING_FIELDS and isinstance(value, str):
        return text.decode_html_entities(value).strip()
    if info in _DECODED_LIST_FIELDS and isinstance(value, str | list | tuple):
        items = [value] if isinstance(value, str) else value
        return [text.trim(text.decode_html_entities(str(item))) for item in items]
    return value
