"""
Integration utilities for HTTP clients.

Transport exceptions from aiohttp and requests do not always carry the
words the classifier keys on ("Cannot connect to host ..."). These helpers
normalise them into UpstreamError messages such as "429 Too Many Requests"
or "network error: ..." before they are reported to a controller.
"""
import asyncio
import logging
from http import HTTPStatus
from typing import Any, Optional

import aiohttp
import requests

from .exceptions import UpstreamError

logger = logging.getLogger(__name__)


def _status_message(status: int, reason: Optional[str]) -> str:
    if not reason:
        try:
            reason = HTTPStatus(status).phrase
        except ValueError:
            reason = "HTTP error"
    return f"{status} {reason}"


def translate_http_error(error: BaseException, url: Optional[str] = None) -> Optional[UpstreamError]:
    """
    Map an HTTP client exception to an UpstreamError.

    Args:
        error: Exception raised by aiohttp, requests or the standard library
        url: Request URL, used when the exception does not carry one

    Returns:
        The normalised error, or None when the exception is not a transport
        failure (it should then be reported unchanged)
    """
    if isinstance(error, UpstreamError):
        return error

    if isinstance(error, aiohttp.ClientResponseError):
        request_url = url
        if error.request_info is not None:
            request_url = str(error.request_info.real_url)
        if isinstance(error, aiohttp.ContentTypeError):
            # The request itself succeeded; only the body could not be decoded
            return UpstreamError(f"invalid JSON response: {error.message}", None, request_url)
        return UpstreamError(_status_message(error.status, error.message), error.status, request_url)

    if isinstance(error, requests.HTTPError):
        response = error.response
        if response is not None:
            return UpstreamError(
                _status_message(response.status_code, response.reason),
                response.status_code,
                response.url or url,
            )
        return UpstreamError(f"network error: {error}", None, url)

    if isinstance(error, (aiohttp.ClientConnectionError, requests.ConnectionError, ConnectionError)):
        return UpstreamError(f"network error: {str(error) or type(error).__name__}", None, url)

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, requests.Timeout)):
        return UpstreamError(f"network error: request timed out ({type(error).__name__})", None, url)

    return None


async def fetch_json(session: aiohttp.ClientSession, url: str, **kwargs: Any) -> Any:
    """GET ``url`` and decode the JSON body, raising UpstreamError on failure."""
    try:
        async with session.get(url, **kwargs) as response:
            response.raise_for_status()
            return await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        translated = translate_http_error(exc, url=url)
        if translated is None:
            raise
        logger.debug(f"Request to {url} failed: {translated}")
        raise translated from exc


def get_json(url: str, session: Optional[requests.Session] = None, timeout: float = 30.0, **kwargs: Any) -> Any:
    """Blocking counterpart of fetch_json built on requests."""
    http = session or requests.Session()
    try:
        response = http.get(url, timeout=timeout, **kwargs)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as exc:
        translated = translate_http_error(exc, url=url)
        if translated is None:
            raise
        logger.debug(f"Request to {url} failed: {translated}")
        raise translated from exc
    finally:
        if session is None:
            http.close()
