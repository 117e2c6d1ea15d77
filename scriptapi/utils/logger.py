"""
Console logging for provider script services.

Every service module creates a named :class:`Logger` and reports what
scripts do (requests, storage maintenance, parse failures) as one
coloured line per event, followed by ``key=value`` pairs.

Lines go to stderr, to an in-memory buffer the host can show in its
debug view, and optionally to a per-script file under ``.logs/``.
Timers, the buffer and the file handle live in ``contextvars`` so that
scripts running concurrently on different worker threads keep their
output apart.

A separate, process-wide provider log (``serviceproviders.log``)
collects the documents scripts failed to parse.
"""

from __future__ import annotations

import collections
import contextlib
import contextvars
import enum
import io
import pathlib
import re
import sys
import threading
import time
from datetime import UTC, datetime
from typing import NamedTuple

# Lines kept per context for the debug view.
BUFFER_SIZE = 2000

PROVIDER_LOG_NAME = "serviceproviders.log"

_ANSI_RE = re.compile(r"\033\[[0-9;]*m")

_MAX_VALUE_CHARS = 500

# ── Colours and levels ──────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_MAGENTA = "\033[35m"
_CYAN = "\033[36m"
_GRAY = "\033[90m"


class _Level(NamedTuple):
    colour: str
    symbol: str


_LEVELS = {
    "info": _Level(_CYAN, "ℹ"),
    "success": _Level(_GREEN, "✓"),
    "warn": _Level(_YELLOW, "⚠"),
    "error": _Level(_RED, "✗"),
    "debug": _Level(_GRAY, "•"),
    "timing": _Level(_MAGENTA, "⏱"),
}


def _paint(colour: str, text: str) -> str:
    return f"{colour}{text}{_RESET}"


def _strip_ansi(line: str) -> str:
    return _ANSI_RE.sub("", line)


def _internal(level: str, message: str) -> None:
    """Report a problem of the logger itself, bypassing buffer and file."""
    style = _LEVELS[level]
    print(_paint(style.colour, f"{style.symbol} [Logger] {message}"), file=sys.stderr)


# ── Per-context state ───────────────────────────────────────────

_timers: contextvars.ContextVar[dict[str, tuple[float, str]]] = contextvars.ContextVar("scriptapi_timers")
_buffer: contextvars.ContextVar[collections.deque[str]] = contextvars.ContextVar("scriptapi_log_buffer")
_log_file: contextvars.ContextVar[io.TextIOWrapper | None] = contextvars.ContextVar(
    "scriptapi_log_file", default=None
)


def _context_timers() -> dict[str, tuple[float, str]]:
    timers = _timers.get(None)
    if timers is None:
        timers = {}
        _timers.set(timers)
    return timers


def _context_buffer() -> collections.deque[str]:
    buffer = _buffer.get(None)
    if buffer is None:
        buffer = collections.deque(maxlen=BUFFER_SIZE)
        _buffer.set(buffer)
    return buffer


def get_log_buffer() -> list[str]:
    """Return a copy of the buffered log lines, without colours."""
    return list(_context_buffer())


def clear_log_buffer() -> None:
    """Forget buffered lines and running timers of the current context."""
    _context_buffer().clear()
    _context_timers().clear()


# ── Script log files ────────────────────────────────────────────


def start_log_file(script_id: str, enabled: bool = False) -> pathlib.Path | None:
    """Open ``.logs/<script>_<timestamp>.log`` for the current context.

    Nothing happens unless *enabled* is set (the ``WRITE_TO_FILE``
    setting).  A file already open in this context is closed first.

    Returns:
        The path of the new log file, or ``None``.
    """
    if not enabled:
        return None
    end_log_file()

    started = datetime.now(UTC)
    safe_id = "".join(c if c.isalnum() or c in ".-" else "_" for c in script_id)[:50]
    path = pathlib.Path.cwd() / ".logs" / f"{safe_id}_{started:%Y-%m-%d_%H-%M-%S}.log"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        stream = open(path, "a", encoding="utf-8")  # noqa: SIM115
    except OSError as exc:
        _internal("error", f"Failed to open log file: {exc}")
        return None

    rule = "=" * 80
    stream.write(f"\n{rule}\n  Script Log - {script_id}\n  Started: {started.isoformat()}\n{rule}\n")
    _log_file.set(stream)
    _internal("info", f"Writing logs to: {path}")
    return path


def end_log_file() -> None:
    """Close the log file of the current context, if any."""
    stream = _log_file.get()
    if stream is None:
        return
    _log_file.set(None)
    try:
        stream.close()
    except OSError as exc:
        _internal("warn", f"Failed to close log file: {exc}")


# ── Provider error log ──────────────────────────────────────────

# Shared by every script context of the process.
_provider_log_lock = threading.Lock()


def append_provider_log(
    log_dir: pathlib.Path,
    script_id: str,
    text: str,
    max_bytes: int = 512 * 1024,
) -> pathlib.Path | None:
    """Append a parse-failure report to the provider error log.

    The log collects documents that provider scripts failed to parse
    so that script authors can reproduce the failure later.  When the
    file has grown beyond *max_bytes* it is deleted before writing.

    Args:
        log_dir: Directory that holds ``serviceproviders.log``.
        script_id: Provider script that reported the problem.
        text: The report, usually the error message followed by
            the offending document excerpt.
        max_bytes: Size above which the existing log is discarded.

    Returns:
        The log file path, or ``None`` when writing failed.
    """
    path = log_dir / PROVIDER_LOG_NAME
    entry = f"{datetime.now(UTC).isoformat()} ({script_id}): {text}\n{'-' * 37}\n\n"
    with _provider_log_lock:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            if path.exists() and path.stat().st_size > max_bytes:
                with contextlib.suppress(OSError):
                    path.unlink()
            with open(path, "a", encoding="utf-8") as stream:
                stream.write(entry)
        except OSError as exc:
            _internal("error", f"Failed to write provider log: {exc}")
            return None
    return path


# ── Formatting ──────────────────────────────────────────────────


def _clock() -> str:
    """Current UTC time as ``HH:MM:SS.mmm``."""
    now = datetime.now(UTC)
    return f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"


def _format_duration(ms: float) -> str:
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1000:.2f}s"
    minutes, rest = divmod(ms, 60_000)
    return f"{int(minutes)}m {rest / 1000:.1f}s"


def _format_value(value: object) -> str:
    """Colour *value* by kind; containers and bytes are summarised."""
    if value is None:
        return _paint(_DIM, "None")
    if isinstance(value, bool):
        return _paint(_GREEN if value else _RED, str(value))
    if isinstance(value, enum.Enum):
        return _paint(_CYAN, value.name)
    if isinstance(value, int | float):
        return _paint(_YELLOW, str(value))
    if isinstance(value, str | pathlib.PurePath):
        text = str(value)
        if len(text) > _MAX_VALUE_CHARS:
            text = text[: _MAX_VALUE_CHARS - 3] + "..."
        return _paint(_GREEN, f'"{text}"')
    if isinstance(value, bytes | bytearray):
        return _paint(_CYAN, f"[{len(value)} bytes]")
    if isinstance(value, list | tuple | set | frozenset):
        return _paint(_CYAN, f"[{len(value)} items]")
    if isinstance(value, dict):
        return _paint(_CYAN, f"{{{len(value)} keys}}")
    return str(value)


# ── Logger ──────────────────────────────────────────────────────


class Logger:
    """Named logger writing one structured line per call."""

    def __init__(self, context: str = "ScriptApi") -> None:
        self._context = context

    def _log(self, level: str, message: str, data: dict[str, object] | None = None) -> None:
        style = _LEVELS[level]
        parts = [
            _paint(_GRAY, f"[{_clock()}]"),
            _paint(style.colour, style.symbol),
            _paint(_BOLD, f"[{self._context}]"),
            message,
        ]
        if data:
            parts.extend(f"{_paint(_DIM, f'{key}=')}{_format_value(value)}" for key, value in data.items())
        line = " ".join(parts)

        print(line, file=sys.stderr)
        plain = _strip_ansi(line)
        _context_buffer().append(plain)
        stream = _log_file.get()
        if stream is not None:
            stream.write(plain + "\n")
            stream.flush()

    def info(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("info", message, data)

    def success(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("success", message, data)

    def warn(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("warn", message, data)

    def error(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("error", message, data)

    def debug(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("debug", message, data)

    def start_timer(self, label: str) -> None:
        """Start a named timer in the current context."""
        _context_timers()[f"{self._context}:{label}"] = (time.monotonic(), _clock())
        self._log("timing", f"Starting: {label}")

    def end_timer(self, label: str, message: str | None = None) -> float:
        """Stop a named timer and log how long it ran.

        Returns:
            The elapsed time in milliseconds, ``0.0`` for a timer
            that was never started.
        """
        started = _context_timers().pop(f"{self._context}:{label}", None)
        if started is None:
            self.warn(f'Timer "{label}" was not started')
            return 0.0
        started_at, started_clock = started
        elapsed_ms = (time.monotonic() - started_at) * 1000
        took = _paint(_MAGENTA, _format_duration(elapsed_ms))
        self._log(
            "timing",
            f"{message or f'Completed: {label}'} {_paint(_DIM, 'took')} {took} {_paint(_DIM, f'(started {started_clock})')}",
        )
        return elapsed_ms


def create_logger(context: str) -> Logger:
    """Create a logger whose lines are prefixed with ``[context]``."""
    return Logger(context)
