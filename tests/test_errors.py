"""Tests for scriptapi.utils.errors: error message extraction."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import aiohttp

from scriptapi.utils.errors import describe_transport_error, get_error_message


class TestGetErrorMessage:
    """Tests for get_error_message()."""

    def test_exception_with_message(self) -> None:
        assert get_error_message(ValueError("something broke")) == "something broke"

    def test_exception_without_message(self) -> None:
        assert get_error_message(ValueError()) == "ValueError"

    def test_custom_exception(self) -> None:
        class CustomError(Exception):
            pass

        assert get_error_message(CustomError("custom")) == "custom"

    def test_non_exception(self) -> None:
        assert get_error_message("just a string") == "Unknown error"


class TestDescribeTransportError:
    """Tests for describe_transport_error()."""

    def test_timeout(self) -> None:
        assert describe_transport_error(asyncio.TimeoutError()) == "Operation timed out"

    def test_too_many_redirects(self) -> None:
        error = aiohttp.TooManyRedirects(MagicMock(), (), status=302, message="loop")
        assert describe_transport_error(error) == "Too many redirects"

    def test_invalid_url(self) -> None:
        assert describe_transport_error(aiohttp.InvalidURL("http://")).startswith("Invalid URL: ")

    def test_payload_error(self) -> None:
        error = aiohttp.ClientPayloadError("truncated")
        assert describe_transport_error(error) == "Broken response body: truncated"

    def test_other_error(self) -> None:
        assert describe_transport_error(aiohttp.ServerDisconnectedError()) == get_error_message(
            aiohttp.ServerDisconnectedError()
        )
