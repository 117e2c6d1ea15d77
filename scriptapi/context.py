"""Per-script execution context.

A :class:`ScriptContext` is created when a provider script is loaded
and closed when it is unloaded.  All invocations of the script share
its ``network``, ``helper`` and ``storage`` objects; every invocation
gets a fresh ``ResultObject`` from :meth:`ScriptContext.new_result`.
"""

from __future__ import annotations

from scriptapi import config
from scriptapi.helper.helper import Helper
from scriptapi.network import Network
from scriptapi.result import ResultObject
from scriptapi.storage.storage import Clock, Storage
from scriptapi.types import Feature, Hint
from scriptapi.utils import logger

log = logger.create_logger("ScriptContext")


class ScriptContext:
    """The services injected into every invocation of one provider script."""

    def __init__(
        self,
        script_id: str,
        settings: config.ScriptApiSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.script_id = script_id
        self.settings = settings or config.get_settings()
        logger.start_log_file(script_id, enabled=self.settings.write_to_file)

        self.network = Network(self.settings, name=f"network-{script_id}")
        self.helper = Helper(script_id, self.settings)
        self.storage = Storage(script_id, self.settings, clock=clock)
        self._closed = False
        log.info("Script context created", {"script": script_id})

    def new_result(
        self,
        features: Feature = Feature.DEFAULT_FEATURES,
        hints: Hint = Hint.NO_HINT,
    ) -> ResultObject:
        """Create the ``result`` object for one invocation.

        Also runs the rate-limited sweep of expired persistent entries.
        """
        self.storage.check_lifetime()
        return ResultObject(features, hints)

    def wait_for_network(self, timeout: float | None = None) -> bool:
        """Block until no request of this script is outstanding."""
        return self.network.wait_for_all_requests(timeout)

    def close(self) -> None:
        """Abort outstanding requests and release the context's resources."""
        if self._closed:
            return
        self._closed = True
        self.network.close()
        self.helper.close()
        log.info("Script context closed", {"script": self.script_id})
        logger.end_log_file()

    def __enter__(self) -> ScriptContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
