# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTTP fetcher for URL attachments.

Provides the three calls the attachment resolver needs: an existence
probe, a header lookup and a raw body download. Every call opens its own
``aiohttp.ClientSession`` bounded by a total timeout.

Example:
    Probing and downloading a file::

        fetcher = UrlFetcher(timeout=20)
        if await fetcher.exists("https://cdn.example.com/logo.png"):
            content_type = await fetcher.headers("https://cdn.example.com/logo.png", "content-type")
            content = await fetcher.get_raw_body("https://cdn.example.com/logo.png")
"""

from __future__ import annotations

import asyncio

import aiohttp

from ..logger import get_logger

logger = get_logger("UrlFetcher")


class UrlFetcher:
    """Fetcher for attachments served over HTTP/HTTPS.

    Attributes:
        _timeout: Total timeout in seconds applied to each request.
    """

    def __init__(self, timeout: float = 30.0):
        self._timeout = timeout

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout))

    async def exists(self, url: str) -> bool:
        """Return True if ``url`` answers a HEAD request with a non-error status.

        Servers that refuse HEAD (405) are probed again with GET. Network
        failures and timeouts count as "does not exist".
        """
        try:
            async with self._session() as session:
                async with session.head(url, allow_redirects=True) as response:
                    status = response.status
                if status == 405:
                    async with session.get(url) as response:
                        status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.debug("Existence probe failed for %s: %s", url, exc)
            return False
        return status < 400

    async def headers(self, url: str, name: str) -> str | None:
        """Return the value of response header ``name`` for a HEAD on ``url``.

        Like ``exists()``, a 405 answer to HEAD is retried with GET.

        Raises:
            aiohttp.ClientError: If the request fails.
        """
        async with self._session() as session:
            async with session.head(url, allow_redirects=True) as response:
                if response.status != 405:
                    response.raise_for_status()
                    return response.headers.get(name)
            async with session.get(url) as response:
                response.raise_for_status()
                return response.headers.get(name)

    async def get_raw_body(self, url: str) -> bytes:
        """Download ``url`` and return the response body.

        Raises:
            aiohttp.ClientError: If the request fails or returns an error status.
        """
        async with self._session() as session:
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.read()
