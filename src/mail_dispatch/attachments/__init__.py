# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Send-time resolution of message attachments.

Attachments are declared on the message in one of three forms and are
only resolved when the message is sent:

- inline: bytes, name and content type supplied by the caller
- path: a local file, checked for existence and read lazily by the
  transport that attaches it
- url: probed for existence, then its content type and body are fetched

Any missing path or unreachable URL raises ``AttachmentNotFoundError``
and aborts the whole send; there is no partial attachment list.

Example:
    Resolving a document's attachments::

        resolver = AttachmentResolver(UrlFetcher(timeout=20))
        resolved = await resolver.resolve(document.attachments)
        for att in resolved:
            content = await att.read()
"""

from __future__ import annotations

import asyncio
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import aiohttp

from ..errors import AttachmentNotFoundError
from ..logger import get_logger
from ..models import InlineAttachment, PathAttachment, UrlAttachment
from .url_fetcher import UrlFetcher

DEFAULT_CONTENT_TYPE = "application/octet-stream"

logger = get_logger("AttachmentResolver")


@dataclass(frozen=True)
class ResolvedAttachment:
    """An attachment ready for a transport.

    Exactly one of ``body`` and ``path`` is set. Path attachments are read
    only when a transport asks for the content.
    """

    name: str
    content_type: str
    body: bytes | None = None
    path: Path | None = None

    async def read(self) -> bytes:
        """Return the attachment content, reading the file off the event loop."""
        if self.body is not None:
            return self.body
        return await asyncio.to_thread(self.path.read_bytes)

    @property
    def maintype(self) -> str:
        return split_mime(self.content_type)[0]

    @property
    def subtype(self) -> str:
        return split_mime(self.content_type)[1]


def split_mime(content_type: str | None) -> tuple[str, str]:
    """Split ``type/subtype`` into its two parts, defaulting to octet-stream."""
    media_type = primary_media_type(content_type)
    if "/" not in media_type:
        return ("application", "octet-stream")
    maintype, subtype = media_type.split("/", 1)
    return maintype, subtype


def primary_media_type(content_type: str | None) -> str:
    """Strip parameters such as ``; charset=utf-8`` from a content type."""
    if not content_type:
        return DEFAULT_CONTENT_TYPE
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type or DEFAULT_CONTENT_TYPE


def guess_content_type(filename: str) -> str:
    mt, _ = mimetypes.guess_type(filename)
    return mt or DEFAULT_CONTENT_TYPE


class AttachmentResolver:
    """Resolve attachment descriptors into ``ResolvedAttachment`` objects.

    A resolver holds no state between calls; every ``resolve()`` starts its
    filename counter from 1 and fetches URLs again.
    """

    def __init__(self, fetcher: UrlFetcher | None = None):
        self._fetcher = fetcher or UrlFetcher()

    async def resolve(
        self, attachments: Iterable[InlineAttachment | PathAttachment | UrlAttachment]
    ) -> list[ResolvedAttachment]:
        """Resolve attachments in list order.

        Raises:
            AttachmentNotFoundError: If a path does not exist or a URL cannot
                be reached or downloaded.
        """
        resolved: list[ResolvedAttachment] = []
        unnamed_urls = 0
        for att in attachments:
            if isinstance(att, InlineAttachment):
                resolved.append(
                    ResolvedAttachment(name=att.name, content_type=att.content_type, body=att.body)
                )
            elif isinstance(att, PathAttachment):
                resolved.append(self._resolve_path(att))
            elif isinstance(att, UrlAttachment):
                name = att.name
                if not name:
                    unnamed_urls += 1
                resolved.append(await self._resolve_url(att, unnamed_urls))
            else:
                raise TypeError(f"Unsupported attachment type: {type(att).__name__}")
        return resolved

    def _resolve_path(self, att: PathAttachment) -> ResolvedAttachment:
        path = Path(att.path)
        if not path.is_file():
            logger.error("Attachment file not found: %s", att.path)
            raise AttachmentNotFoundError(att.path)
        name = att.name or os.path.basename(att.path)
        content_type = att.content_type or guess_content_type(name)
        return ResolvedAttachment(name=name, content_type=content_type, path=path)

    async def _resolve_url(self, att: UrlAttachment, counter: int) -> ResolvedAttachment:
        if not await self._fetcher.exists(att.url):
            logger.error("Attachment URL not reachable: %s", att.url)
            raise AttachmentNotFoundError(att.url)
        try:
            content_type = primary_media_type(await self._fetcher.headers(att.url, "content-type"))
            body = await self._fetcher.get_raw_body(att.url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("Failed to download attachment %s: %s", att.url, exc)
            raise AttachmentNotFoundError(att.url) from exc

        name = att.name or f"file_{counter}.{content_type.rsplit('/', 1)[-1]}"
        return ResolvedAttachment(name=name, content_type=content_type, body=body)
