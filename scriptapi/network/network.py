"""The ``network`` object handed to provider scripts.

One :class:`Network` is shared by all concurrent invocations of a
script.  Asynchronous requests are created with :meth:`create_request`
and started with :meth:`get`, :meth:`post` or :meth:`head`; their
completion is reported through signals emitted on the reactor thread.
:meth:`get_synchronous` blocks the calling worker thread instead.

Every request gets a deadline: its own timeout (if positive) capped by
a global ceiling that starts when the first request of an otherwise
idle network is started.  A script therefore cannot keep its host
waiting longer than the global timeout, however its requests behave.
"""

from __future__ import annotations

import threading

from scriptapi import config
from scriptapi.helper import text
from scriptapi.network import reactor
from scriptapi.network.request import NetworkRequest, RequestMethod
from scriptapi.utils import logger, signals

log = logger.create_logger("Network")

DEFAULT_SYNCHRONOUS_TIMEOUT_MS = 30000


class Network:
    """Dispatcher for the HTTP requests of one provider script.

    Signals:
        request_started(request)
        request_finished(request)
        request_aborted(request, timed_out)
        request_redirected(request, url)
        all_requests_finished(): the last outstanding request of a set
            that contained asynchronous requests completed.
        synchronous_request_started(url)
        synchronous_request_finished(url, data, cancelled, status_code,
            wait_ms, size)
        synchronous_request_redirected(url)
    """

    def __init__(self, settings: config.ScriptApiSettings | None = None, name: str = "network") -> None:
        self._settings = settings or config.get_settings()
        self._reactor = reactor.Reactor(f"scriptapi-{name}", self._settings.user_agent)
        self._fallback_charset = self._settings.fallback_charset

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._running: list[NetworkRequest] = []
        self._synchronous: list[NetworkRequest] = []
        self._global_deadline: float | None = None
        self._set_has_async = False
        self._last_url = ""
        self._last_user_url = ""
        self._last_download_aborted = False

        self.request_started = signals.Signal("request_started")
        self.request_finished = signals.Signal("request_finished")
        self.request_aborted = signals.Signal("request_aborted")
        self.request_redirected = signals.Signal("request_redirected")
        self.all_requests_finished = signals.Signal("all_requests_finished")
        self.synchronous_request_started = signals.Signal("synchronous_request_started")
        self.synchronous_request_finished = signals.Signal("synchronous_request_finished")
        self.synchronous_request_redirected = signals.Signal("synchronous_request_redirected")

    # ── Properties ──────────────────────────────────────────────

    @property
    def last_url(self) -> str:
        with self._lock:
            return self._last_url

    @property
    def last_user_url(self) -> str:
        with self._lock:
            return self._last_user_url

    @property
    def last_download_aborted(self) -> bool:
        """Whether the last synchronous download was aborted or timed out."""
        with self._lock:
            return self._last_download_aborted

    @property
    def fallback_charset(self) -> str:
        with self._lock:
            return self._fallback_charset

    @fallback_charset.setter
    def fallback_charset(self, charset: str) -> None:
        with self._lock:
            self._fallback_charset = charset

    def clear(self) -> None:
        """Forget the last requested URLs."""
        with self._lock:
            self._last_url = ""
            self._last_user_url = ""
            self._last_download_aborted = False

    # ── Asynchronous requests ───────────────────────────────────

    def create_request(self, url: str, user_url: str | None = None) -> NetworkRequest:
        """Create a request for *url*; nothing is sent until it is started.

        *user_url* is the address shown to users, e.g. a page without
        API parameters.  A malformed *url* gives a request in state
        ``INVALID`` that cannot be started.
        """
        request = NetworkRequest(url, user_url, fallback_charset=self.fallback_charset)
        if not request.is_valid():
            log.warn("Invalid request URL", {"url": url})
        return request

    def get(self, request: NetworkRequest, timeout_ms: int = 0) -> None:
        """Start downloading *request*; *timeout_ms* <= 0 means no own timeout."""
        self._start(request, RequestMethod.GET, timeout_ms)

    def post(self, request: NetworkRequest, timeout_ms: int = 0) -> None:
        """Start posting the data set with ``request.set_post_data``."""
        self._start(request, RequestMethod.POST, timeout_ms)

    def head(self, request: NetworkRequest, timeout_ms: int = 0) -> None:
        """Start a ``HEAD`` request, only headers and status are received."""
        self._start(request, RequestMethod.HEAD, timeout_ms)

    def _start(self, request: NetworkRequest, method: RequestMethod, timeout_ms: int) -> None:
        if not request.is_valid():
            log.warn("Cannot start invalid request", {"url": request.url})
            return
        if not request._begin(method):
            log.debug("Request already started, ignoring", {"url": request.url, "state": request.state.value})
            return

        request.finished.connect(self._on_request_finished)
        request.aborted.connect(self._on_request_aborted)
        request.redirected.connect(self._on_request_redirected)
        deadline = self._register(request, self._running, timeout_ms, asynchronous=True)
        with self._lock:
            self._last_url = request.url
            self._last_user_url = request.user_url

        log.debug("Request started", {"method": method.value, "url": request.url, "timeoutMs": timeout_ms})
        request.started.emit()
        self.request_started.emit(request)
        request._launch(self._reactor, deadline, self._settings.max_redirects)

    def _on_request_finished(self, request: NetworkRequest) -> None:
        idle = self._unregister(request, self._running)
        self.request_finished.emit(request)
        if idle:
            self.all_requests_finished.emit()

    def _on_request_aborted(self, request: NetworkRequest, timed_out: bool) -> None:
        idle = self._unregister(request, self._running)
        self.request_aborted.emit(request, timed_out)
        if idle:
            self.all_requests_finished.emit()

    def _on_request_redirected(self, request: NetworkRequest, target: str) -> None:
        self.request_redirected.emit(request, target)

    # ── Bookkeeping ─────────────────────────────────────────────

    def _register(
        self,
        request: NetworkRequest,
        requests: list[NetworkRequest],
        timeout_ms: int,
        asynchronous: bool,
    ) -> float:
        """Track *request* and return its absolute deadline."""
        now = self._reactor.time()
        with self._lock:
            if self._global_deadline is None or (not self._running and not self._synchronous):
                self._global_deadline = now + self._settings.global_request_timeout
            if asynchronous:
                self._set_has_async = True
            requests.append(request)
            deadline: float = self._global_deadline
        if timeout_ms > 0:
            deadline = min(deadline, now + timeout_ms / 1000)
        return deadline

    def _unregister(self, request: NetworkRequest, requests: list[NetworkRequest]) -> bool:
        """Stop tracking *request*.

        Returns:
            Whether this completed a set of requests that contained
            asynchronous ones, i.e. ``all_requests_finished`` is due.
        """
        with self._lock:
            if request not in requests:
                return False
            requests.remove(request)
            if self._running or self._synchronous:
                return False
            self._global_deadline = None
            self._idle.notify_all()
            due, self._set_has_async = self._set_has_async, False
        if due:
            log.debug("All requests finished")
        return due

    def has_running_requests(self) -> bool:
        with self._lock:
            return bool(self._running or self._synchronous)

    def running_request_count(self) -> int:
        """Outstanding requests, synchronous calls included."""
        with self._lock:
            return len(self._running) + len(self._synchronous)

    def running_requests(self) -> list[NetworkRequest]:
        """Outstanding asynchronous requests."""
        with self._lock:
            return list(self._running)

    def wait_for_all_requests(self, timeout: float | None = None) -> bool:
        """Block until no request is outstanding; *timeout* in seconds."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._running and not self._synchronous, timeout)

    # ── Synchronous requests ────────────────────────────────────

    def get_synchronous(
        self,
        url: str,
        user_url: str | None = None,
        timeout_ms: int = DEFAULT_SYNCHRONOUS_TIMEOUT_MS,
    ) -> bytes:
        """Download *url*, blocking the calling thread.

        Returns:
            The body, or ``b""`` if the download failed, was aborted or
            timed out (see :attr:`last_download_aborted`).

        Raises:
            RuntimeError: Called on the reactor thread, e.g. from a
                request signal handler.
        """
        if self._reactor.in_reactor_thread():
            raise RuntimeError("get_synchronous() cannot be called from a network signal handler")

        request = NetworkRequest(url, user_url, fallback_charset=self.fallback_charset)
        with self._lock:
            self._last_url = request.url
            self._last_user_url = request.user_url
            self._last_download_aborted = False
        if not request._begin(RequestMethod.GET):
            log.warn("Invalid synchronous request URL", {"url": url})
            with self._lock:
                self._last_download_aborted = True
            return b""

        request.redirected.connect(self._on_synchronous_redirected)
        deadline = self._register(request, self._synchronous, timeout_ms, asynchronous=False)
        log.debug("Synchronous request started", {"url": url, "timeoutMs": timeout_ms})
        self.synchronous_request_started.emit(url)

        timer = f"sync:{id(request)}"
        log.start_timer(timer)
        request._launch(self._reactor, deadline, self._settings.max_redirects)
        request.wait()
        wait_ms = int(log.end_timer(timer, f"Synchronous request to {request.url} done"))

        cancelled = request.is_aborted()
        data = b"" if cancelled or request.error else request.data
        with self._lock:
            self._last_download_aborted = cancelled
        idle = self._unregister(request, self._synchronous)

        log.debug(
            "Synchronous request finished",
            {"url": url, "status": request.status_code, "cancelled": cancelled, "waitMs": wait_ms, "bytes": len(data)},
        )
        self.synchronous_request_finished.emit(url, data, cancelled, request.status_code, wait_ms, request.size)
        if idle:
            self.all_requests_finished.emit()
        return data

    def download_synchronous(
        self,
        url: str,
        user_url: str | None = None,
        timeout_ms: int = DEFAULT_SYNCHRONOUS_TIMEOUT_MS,
    ) -> str:
        """Like :meth:`get_synchronous`, decoded with the document's charset."""
        return text.decode_html(self.get_synchronous(url, user_url, timeout_ms), self.fallback_charset)

    def _on_synchronous_redirected(self, request: NetworkRequest, target: str) -> None:
        self.synchronous_request_redirected.emit(target)

    # ── Aborting ────────────────────────────────────────────────

    def abort_all_requests(self) -> None:
        """Abort every running asynchronous request."""
        for request in self.running_requests():
            request.abort()

    def abort_synchronous_requests(self) -> None:
        """Abort every running synchronous download."""
        with self._lock:
            requests = list(self._synchronous)
        for request in requests:
            request.abort()

    def close(self) -> None:
        """Abort everything and stop the reactor thread."""
        self.abort_all_requests()
        self.abort_synchronous_requests()
        self._reactor.close()
        log.debug("Network closed")

    def __enter__(self) -> Network:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
