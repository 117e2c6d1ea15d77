"""A single HTTP transfer issued by a provider script.

A :class:`NetworkRequest` is created by ``Network.create_request`` and
started exactly once with ``Network.get``/``post``/``head``.  Its state
moves from ``CREATED`` to ``STARTED`` and ends in either ``FINISHED``
or ``ABORTED``; a request is never restarted.

The transfer runs as a task on the network's reactor loop.  All
completion bookkeeping happens in the task's done callback, so a
request cancelled before its task ever ran still reaches a terminal
state and emits ``aborted``.
"""

from __future__ import annotations

import asyncio
import enum
import gzip
import threading
import zlib

import aiohttp

from scriptapi.helper import text
from scriptapi.network.reactor import Reactor
from scriptapi.utils import errors, logger, signals
from scriptapi.utils import url as url_utils

log = logger.create_logger("NetworkRequest")

_REDIRECT_STATUSES = frozenset([301, 302, 303, 307, 308])
_GZIP_MAGIC = b"\x1f\x8b"
_CHUNK_SIZE = 64 * 1024


class RequestState(enum.Enum):
    """Lifecycle states of a :class:`NetworkRequest`."""

    CREATED = "created"
    STARTED = "started"
    FINISHED = "finished"
    ABORTED = "aborted"
    INVALID = "invalid"


class RequestMethod(enum.Enum):
    GET = "GET"
    POST = "POST"
    HEAD = "HEAD"


class NetworkRequest:
    """Handle for one asynchronous HTTP transfer.

    Signals:
        started(): the request was started.
        finished(request): the transfer completed, successfully or
            with a transport error (check :attr:`error`).
        aborted(request, timed_out): the transfer was cancelled by the
            caller (``timed_out=False``) or by a deadline.
        redirected(request, url): a redirect to *url* is followed.
        ready_read(chunk): a chunk of the body arrived.

    Exactly one of ``finished`` and ``aborted`` is emitted for a started
    request, always after ``started``.
    """

    def __init__(
        self,
        url: str,
        user_url: str | None = None,
        fallback_charset: str = "utf-8",
    ) -> None:
        self.url = url
        self.user_url = user_url if user_url is not None else url
        self._fallback_charset = fallback_charset

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._state = RequestState.CREATED if url_utils.is_valid_request_url(url) else RequestState.INVALID
        self._method: RequestMethod | None = None
        self._headers: dict[str, str] = {}
        self._post_data: bytes | None = None
        self._user_data: object = None

        self._reactor: Reactor | None = None
        self._task: asyncio.Task[tuple[int, bytes]] | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._abort_requested = False
        self._timed_out = False

        self._data = b""
        self._size = 0
        self._uncompressed_size = 0
        self._status_code = 0
        self._error = False
        self._error_string = ""
        self._redirected_url = ""

        self.started = signals.Signal("started")
        self.finished = signals.Signal("finished")
        self.aborted = signals.Signal("aborted")
        self.redirected = signals.Signal("redirected")
        self.ready_read = signals.Signal("ready_read")

        if self._state is RequestState.INVALID:
            self._done.set()

    # ── Request setup ───────────────────────────────────────────

    def set_header(self, name: str, value: str) -> None:
        """Set a request header; ignored once the request was started."""
        with self._lock:
            if self._state is not RequestState.CREATED:
                log.warn("Cannot set header of a started request", {"url": self.url, "header": name})
                return
            self._headers[name] = value

    def header(self, name: str) -> str:
        """Return the request header *name* (case-insensitive), or ``""``."""
        with self._lock:
            wanted = name.lower()
            return next((value for key, value in self._headers.items() if key.lower() == wanted), "")

    def set_post_data(self, data: str, charset: str | None = None) -> None:
        """Set the body sent by ``Network.post``.

        *data* is encoded with *charset*, or the charset named in the
        ``Content-Type`` header, or UTF-8.
        """
        content_type = self.header("Content-Type")
        if charset is None and "charset=" in content_type.lower():
            charset = content_type.lower().split("charset=", 1)[1].split(";", 1)[0].strip(" \"'")
        try:
            body = data.encode(charset or "utf-8")
        except (LookupError, UnicodeEncodeError) as exc:
            log.warn("Cannot encode post data, using utf-8", {"charset": charset, "error": str(exc)})
            charset = "utf-8"
            body = data.encode(charset)
        with self._lock:
            if self._state is not RequestState.CREATED:
                log.warn("Cannot set post data of a started request", {"url": self.url})
                return
            self._post_data = body
            if not any(key.lower() == "content-type" for key in self._headers):
                self._headers["Content-Type"] = f"application/x-www-form-urlencoded; charset={charset or 'utf-8'}"

    @property
    def post_data(self) -> bytes | None:
        with self._lock:
            return self._post_data

    @property
    def user_data(self) -> object:
        """Arbitrary value a script attaches to the request."""
        with self._lock:
            return self._user_data

    @user_data.setter
    def user_data(self, value: object) -> None:
        with self._lock:
            self._user_data = value

    # ── State and results ───────────────────────────────────────

    @property
    def state(self) -> RequestState:
        with self._lock:
            return self._state

    @property
    def method(self) -> str | None:
        with self._lock:
            return self._method.value if self._method is not None else None

    def is_valid(self) -> bool:
        return self.state is not RequestState.INVALID

    def is_running(self) -> bool:
        return self.state is RequestState.STARTED

    def is_finished(self) -> bool:
        return self.state is RequestState.FINISHED

    def is_aborted(self) -> bool:
        return self.state is RequestState.ABORTED

    def is_redirected(self) -> bool:
        with self._lock:
            return bool(self._redirected_url)

    @property
    def redirected_url(self) -> str:
        with self._lock:
            return self._redirected_url

    @property
    def data(self) -> bytes:
        """Received body, decompressed if it arrived gzip-compressed."""
        with self._lock:
            return self._data

    def text(self, charset: str | None = None) -> str:
        """Decode the body with *charset* or the charset the document declares."""
        data = self.data
        if charset:
            return text.decode(data, charset)
        return text.decode_html(data, self._fallback_charset)

    @property
    def size(self) -> int:
        """Number of body bytes received."""
        with self._lock:
            return self._size

    @property
    def uncompressed_size(self) -> int:
        with self._lock:
            return self._uncompressed_size

    @property
    def status_code(self) -> int:
        """HTTP status, ``-1`` after a transport error or abort, ``0`` before."""
        with self._lock:
            return self._status_code

    @property
    def error(self) -> bool:
        with self._lock:
            return self._error

    @property
    def error_string(self) -> str:
        with self._lock:
            return self._error_string

    @property
    def timed_out(self) -> bool:
        with self._lock:
            return self._state is RequestState.ABORTED and self._timed_out

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the request reached a terminal state.

        Returns immediately for requests that are invalid or were
        aborted before starting.  *timeout* is in seconds.

        Returns:
            Whether the request is done.
        """
        return self._done.wait(timeout)

    # ── Abort ───────────────────────────────────────────────────

    def abort(self) -> None:
        """Cancel the transfer.

        A request that was not started yet is marked aborted and will
        never start (no signals are emitted).  Aborting a finished
        request does nothing.
        """
        self._abort(timed_out=False)

    def _abort(self, timed_out: bool) -> None:
        with self._lock:
            if self._state is RequestState.CREATED:
                self._state = RequestState.ABORTED
                self._status_code = -1
                self._error = True
                self._error_string = "Operation canceled"
                self._done.set()
                log.debug("Request aborted before it was started", {"url": self.url})
                return
            if self._state is not RequestState.STARTED or self._abort_requested:
                return
            self._abort_requested = True
            self._timed_out = timed_out
            reactor = self._reactor
        if reactor is not None:
            reactor.call_soon(self._cancel_task)

    def _cancel_task(self) -> None:
        """Cancel the running task; runs on the reactor loop."""
        if self._task is not None:
            self._task.cancel()

    # ── Transfer (reactor side) ─────────────────────────────────

    def _begin(self, method: RequestMethod) -> bool:
        """Move from ``CREATED`` to ``STARTED``; ``False`` if not possible."""
        with self._lock:
            if self._state is not RequestState.CREATED:
                return False
            self._state = RequestState.STARTED
            self._method = method
            return True

    def _launch(self, reactor: Reactor, deadline: float | None, max_redirects: int) -> None:
        """Schedule the transfer on *reactor*.

        *deadline* is an absolute time on the loop's monotonic clock.
        """
        with self._lock:
            self._reactor = reactor
        if not reactor.call_soon(self._create_task, reactor, deadline, max_redirects):
            self._complete_aborted(timed_out=False)

    def _create_task(self, reactor: Reactor, deadline: float | None, max_redirects: int) -> None:
        loop = reactor.loop
        self._task = loop.create_task(self._transfer(reactor, max_redirects))
        self._task.add_done_callback(self._on_task_done)
        with self._lock:
            abort_requested = self._abort_requested
        if abort_requested:
            self._task.cancel()
        elif deadline is not None:
            self._timeout_handle = loop.call_at(deadline, self._on_deadline)

    def _on_deadline(self) -> None:
        log.warn("Request timed out", {"url": self.url})
        self._abort(timed_out=True)

    async def _transfer(self, reactor: Reactor, max_redirects: int) -> tuple[int, bytes]:
        session = await reactor.session()
        with self._lock:
            method = self._method or RequestMethod.GET
            headers = dict(self._headers)
            body = self._post_data if method is RequestMethod.POST else None

        current_url = self.url
        redirects = 0
        while True:
            async with session.request(
                method.value,
                current_url,
                headers=headers,
                data=body,
                allow_redirects=False,
            ) as response:
                location = response.headers.get("Location")
                if response.status in _REDIRECT_STATUSES and location:
                    if redirects >= max_redirects:
                        raise aiohttp.TooManyRedirects(
                            response.request_info,
                            response.history,
                            status=response.status,
                            message="Too many redirects",
                        )
                    redirects += 1
                    current_url = url_utils.resolve_redirect(current_url, location)
                    if response.status == 303 or (response.status in (301, 302) and method is RequestMethod.POST):
                        method = RequestMethod.GET
                        body = None
                    self._on_redirect(current_url)
                    continue

                if method is RequestMethod.HEAD:
                    return response.status, b""
                chunks: list[bytes] = []
                async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
                    chunks.append(chunk)
                    with self._lock:
                        self._size += len(chunk)
                    self.ready_read.emit(chunk)
                return response.status, b"".join(chunks)

    def _on_redirect(self, target: str) -> None:
        with self._lock:
            self._redirected_url = target
        log.debug("Request redirected", {"url": self.url, "target": target})
        self.redirected.emit(self, target)

    def _on_task_done(self, task: asyncio.Task[tuple[int, bytes]]) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

        if task.cancelled():
            with self._lock:
                timed_out = self._timed_out
            self._complete_aborted(timed_out)
            return

        exc = task.exception()
        if exc is not None:
            message = errors.describe_transport_error(exc)
            with self._lock:
                self._state = RequestState.FINISHED
                self._status_code = -1
                self._error = True
                self._error_string = message
            log.warn("Request failed", {"url": self.url, "error": message})
        else:
            status, body = task.result()
            data = _decompress(body)
            with self._lock:
                self._state = RequestState.FINISHED
                self._status_code = status
                self._data = data
                self._uncompressed_size = len(data)
            log.debug("Request finished", {"url": self.url, "status": status, "bytes": len(body)})

        self.finished.emit(self)
        self._done.set()

    def _complete_aborted(self, timed_out: bool) -> None:
        with self._lock:
            self._state = RequestState.ABORTED
            self._timed_out = timed_out
            self._status_code = -1
            self._error = True
            self._error_string = "Operation timed out" if timed_out else "Operation canceled"
        log.debug("Request aborted", {"url": self.url, "timedOut": timed_out})
        self.aborted.emit(self, timed_out)
        self._done.set()

    def __repr__(self) -> str:
        return f"NetworkRequest({self.url!r}, state={self.state.value})"


def _decompress(body: bytes) -> bytes:
    """Inflate a body that arrived gzip-compressed without a content encoding."""
    if not body.startswith(_GZIP_MAGIC):
        return body
    try:
        return gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as exc:
        log.debug("Body looks gzip-compressed but cannot be inflated", {"error": str(exc)})
        return body
