"""Shared fixtures for the test suite."""

from __future__ import annotations

import asyncio
import gzip
import pathlib
import threading
from collections.abc import Iterator

import pytest
from aiohttp import web

from scriptapi import config
from scriptapi.network import Network

PLAIN_PAGE = "<html><body><p class='stop'>Hauptbahnhof</p></body></html>"
GZIP_PAGE = b"<html><body>compressed departures</body></html>"
LATIN1_PAGE = '<html><head><meta charset="iso-8859-1"></head><body>Grüße</body></html>'.encode("latin-1")

# Seconds the slow endpoint waits before answering; longer than any test timeout.
SLOW_DELAY = 5.0


# ── Local HTTP server ───────────────────────────────────────────


async def _plain(_request: web.Request) -> web.Response:
    return web.Response(text=PLAIN_PAGE, content_type="text/html")


async def _slow(_request: web.Request) -> web.Response:
    await asyncio.sleep(SLOW_DELAY)
    return web.Response(text="too late", content_type="text/html")


async def _missing(_request: web.Request) -> web.Response:
    return web.Response(status=404, text="Not here", content_type="text/html")


async def _redirect(_request: web.Request) -> web.Response:
    raise web.HTTPFound("/plain")


async def _redirect_loop(_request: web.Request) -> web.Response:
    raise web.HTTPFound("/loop")


async def _gzip(_request: web.Request) -> web.Response:
    # Compressed body without a Content-Encoding header.
    return web.Response(body=gzip.compress(GZIP_PAGE), content_type="application/octet-stream")


async def _latin1(_request: web.Request) -> web.Response:
    return web.Response(body=LATIN1_PAGE, content_type="text/html")


async def _echo(request: web.Request) -> web.Response:
    # Method, content type and user agent on one line each, then the body.
    body = await request.read()
    head = "\n".join(
        [request.method, request.headers.get("Content-Type", ""), request.headers.get("User-Agent", "")]
    )
    return web.Response(body=head.encode() + b"\n" + body, content_type="application/octet-stream")


def _make_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/plain", _plain)
    app.router.add_get("/slow", _slow)
    app.router.add_get("/missing", _missing)
    app.router.add_get("/redirect", _redirect)
    app.router.add_get("/loop", _redirect_loop)
    app.router.add_get("/gzip", _gzip)
    app.router.add_get("/latin1", _latin1)
    app.router.add_route("*", "/echo", _echo)
    return app


class LocalServer:
    """An ``aiohttp.web`` server running on its own event loop thread."""

    def __init__(self) -> None:
        self.port = 0
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name="test-http-server", daemon=True)
        self._thread.start()
        self._runner = asyncio.run_coroutine_threadsafe(self._start(), self._loop).result(10)

    async def _start(self) -> web.AppRunner:
        runner = web.AppRunner(_make_app(), handler_cancellation=True, shutdown_timeout=0.5)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()
        self.port = runner.addresses[0][1]
        return runner

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def stop(self) -> None:
        asyncio.run_coroutine_threadsafe(self._runner.cleanup(), self._loop).result(10)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(5)


@pytest.fixture(scope="session")
def http_server() -> Iterator[LocalServer]:
    """A local HTTP server with plain, slow, 404, redirect and gzip endpoints."""
    server = LocalServer()
    yield server
    server.stop()


# ── Settings and services ───────────────────────────────────────


@pytest.fixture()
def cache_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """An empty cache directory for storage and provider logs."""
    return tmp_path / "cache"


@pytest.fixture()
def settings(cache_dir: pathlib.Path) -> config.ScriptApiSettings:
    """Settings writing into a temporary cache directory."""
    return config.ScriptApiSettings(
        cache_dir=cache_dir,
        global_request_timeout=10.0,
        max_redirects=3,
        lifetime_check_interval=15.0,
    )


@pytest.fixture()
def network(settings: config.ScriptApiSettings) -> Iterator[Network]:
    """A network that is closed after the test."""
    net = Network(settings, name="test")
    yield net
    net.close()
