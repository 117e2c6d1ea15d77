"""Background event loop that performs the HTTP transfers of one network.

Provider scripts run on ordinary worker threads and never see a
coroutine.  Each :class:`Reactor` owns an ``asyncio`` loop running on a
daemon thread together with the ``aiohttp.ClientSession`` used for
every transfer of its network, so that TCP connections are reused
across the requests of a script.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable

import aiohttp

from scriptapi.utils import logger

log = logger.create_logger("Reactor")

# Deadlines are enforced per request, the session itself never times out.
_SESSION_TIMEOUT = aiohttp.ClientTimeout(total=None)

_CLOSE_TIMEOUT = 5.0


class Reactor:
    """An event loop thread with a lazily created HTTP session."""

    def __init__(self, name: str, user_agent: str) -> None:
        self.name = name
        self._user_agent = user_agent
        self._loop = asyncio.new_event_loop()
        self._session: aiohttp.ClientSession | None = None
        self._closed = False
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()
        self._ready.wait()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._ready.set)
        try:
            self._loop.run_forever()
        finally:
            self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            self._loop.close()
            log.debug("Reactor stopped", {"name": self.name})

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def in_reactor_thread(self) -> bool:
        return threading.get_ident() == self._thread.ident

    def time(self) -> float:
        """Monotonic clock of the loop, in seconds."""
        return self._loop.time()

    async def session(self) -> aiohttp.ClientSession:
        """Return the shared session, creating it on first use.

        Must be awaited on the reactor loop.
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self._user_agent},
                timeout=_SESSION_TIMEOUT,
            )
        return self._session

    def call_soon(self, callback: Callable[..., object], *args: object) -> bool:
        """Schedule *callback* on the loop; ``False`` once the reactor is closed."""
        with self._lock:
            if self._closed:
                return False
            self._loop.call_soon_threadsafe(callback, *args)
            return True

    def close(self) -> None:
        """Cancel pending transfers, close the session and stop the thread.

        Returns without waiting when called from the reactor thread.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop)
        if not self.in_reactor_thread():
            self._thread.join(_CLOSE_TIMEOUT)
            if self._thread.is_alive():
                log.warn("Reactor did not stop in time", {"name": self.name})

    async def _shutdown(self) -> None:
        current = asyncio.current_task()
        pending = [task for task in asyncio.all_tasks() if task is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if self._session is not None:
            await self._session.close()
            self._session = None
        # Let done callbacks of the cancelled tasks run before stopping.
        await asyncio.sleep(0)
        asyncio.get_running_loop().stop()
