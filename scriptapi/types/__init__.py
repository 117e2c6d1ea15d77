# Types package: re-export the shared models and enums.
# Prefer importing from the specific submodule (e.g. scriptapi.types.tags).

from scriptapi.types.tags import (
    AmbiguousNameResolution as AmbiguousNameResolution,
    NamedTagMatches as NamedTagMatches,
    NamePosition as NamePosition,
    NamePositionType as NamePositionType,
    TagMatch as TagMatch,
    TagSearchOptions as TagSearchOptions,
)
from scriptapi.types.timetable import (
    ErrorSeverity as ErrorSeverity,
    Feature as Feature,
    Hint as Hint,
    TimetableInformation as TimetableInformation,
    VehicleType as VehicleType,
)
from scriptapi.types.values import (
    StoredValue as StoredValue,
    UnsupportedValueError as UnsupportedValueError,
    decode_value as decode_value,
    encode_value as encode_value,
)
