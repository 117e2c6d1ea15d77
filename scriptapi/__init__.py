"""Support library for provider scripts of a public transport timetable engine.

A loaded provider script gets a :class:`ScriptContext` holding the
``network``, ``helper`` and ``storage`` objects it shares between
invocations; each invocation fills its own :class:`ResultObject`.
"""

from scriptapi.config import ScriptApiSettings as ScriptApiSettings
from scriptapi.config import get_settings as get_settings
from scriptapi.context import ScriptContext as ScriptContext
from scriptapi.helper.helper import Helper as Helper
from scriptapi.network import Network as Network
from scriptapi.network import NetworkRequest as NetworkRequest
from scriptapi.network import RequestState as RequestState
from scriptapi.result import ResultObject as ResultObject
from scriptapi.result import shorten_stop_names as shorten_stop_names
from scriptapi.storage.storage import Storage as Storage

__version__ = "1.0.0"
