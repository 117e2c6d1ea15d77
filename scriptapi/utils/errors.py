"""
Error handling utilities for consistent error message extraction.
"""

from __future__ import annotations

import asyncio

import aiohttp


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.
    """
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return "Unknown error"


def describe_transport_error(error: BaseException) -> str:
    """Return a human-readable description of a failed HTTP transfer.

    Connection level failures get a short prefix so that scripts
    and logs can tell DNS/connect problems from broken responses.
    """
    if isinstance(error, asyncio.TimeoutError):
        return "Operation timed out"
    if isinstance(error, aiohttp.TooManyRedirects):
        return "Too many redirects"
    if isinstance(error, aiohttp.ClientConnectorError):
        return f"Connection failed: {get_error_message(error)}"
    if isinstance(error, aiohttp.InvalidURL):
        return f"Invalid URL: {get_error_message(error)}"
    if isinstance(error, aiohttp.ClientPayloadError):
        return f"Broken response body: {get_error_message(error)}"
    return get_error_message(error)
