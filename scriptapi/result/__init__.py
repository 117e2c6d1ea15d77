# Result package: re-export the result object and city-name removal.

from scriptapi.result.result import (
    ResultObject as ResultObject,
    TimetableData as TimetableData,
)
from scriptapi.result.stop_names import shorten_stop_names as shorten_stop_names
