"""HTTP download adapter built on httpx.

Downloads stream into a temp file with redirects followed, a hard timeout,
and a byte cap. Transport errors are retried a fixed number of times. HTTP
error statuses, redirect loops, bad URLs and oversized files give no result
and are not retried.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
import tempfile
from typing import Awaitable, Callable, Optional

import httpx
from yarl import URL

from core.config import RetryConfig
from core.models import TempResource

LOGGER = logging.getLogger(__name__)

TMP_PREFIX = "chat-hotlinked-"
USER_AGENT = "chat-hotlink-rehost/0.1"


def _extension_for(content_type: Optional[str], url: str) -> str:
    if content_type:
        guessed = mimetypes.guess_extension(content_type.split(";")[0].strip().lower())
        if guessed:
            return ".jpg" if guessed == ".jpe" else guessed
    try:
        return os.path.splitext(URL(url).path)[1].lower()
    except (ValueError, TypeError):
        return ""


class HttpFetcher:
    """Satisfies FetcherPort with bounded, retrying httpx downloads."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        retry: RetryConfig = RetryConfig(),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._retry = retry
        self._sleep = sleep

    async def fetch(self, url: str, max_bytes: int, timeout: float) -> Optional[TempResource]:
        resource = None
        attempts = max(1, self._retry.attempts)
        for attempt in range(1, attempts + 1):
            try:
                resource = await asyncio.wait_for(self._download(url, max_bytes, timeout), timeout)
                break
            except (httpx.TransportError, asyncio.TimeoutError) as exc:
                LOGGER.warning(
                    "[ChatHotlinkImages] Download error for %s (attempt %s/%s): %s",
                    url,
                    attempt,
                    attempts,
                    str(exc) or type(exc).__name__,
                )
                if attempt < attempts:
                    await self._sleep(self._retry.delay_seconds)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                LOGGER.info("[ChatHotlinkImages] Download of %s failed: %s", url, str(exc) or type(exc).__name__)
                return None

        if resource is None:
            return None

        if resource.size > max_bytes:
            LOGGER.info("[ChatHotlinkImages] Image too large: %s", url)
            self.discard(resource)
            return None

        return resource

    def discard(self, resource: TempResource) -> None:
        try:
            os.remove(resource.path)
        except FileNotFoundError:
            pass

    async def _download(self, url: str, max_bytes: int, timeout: float) -> Optional[TempResource]:
        if self._client is not None:
            return await self._stream(self._client, url, max_bytes, timeout)
        async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as client:
            return await self._stream(client, url, max_bytes, timeout)

    async def _stream(
        self,
        client: httpx.AsyncClient,
        url: str,
        max_bytes: int,
        timeout: float,
    ) -> Optional[TempResource]:
        async with client.stream("GET", url, follow_redirects=True, timeout=timeout) as response:
            if not response.is_success:
                LOGGER.info("[ChatHotlinkImages] Download of %s returned HTTP %s", url, response.status_code)
                return None

            content_type = response.headers.get("content-type")
            extension = _extension_for(content_type, str(response.url))
            fd, path = tempfile.mkstemp(prefix=TMP_PREFIX, suffix=extension)
            size = 0
            try:
                with os.fdopen(fd, "wb") as handle:
                    async for chunk in response.aiter_bytes():
                        handle.write(chunk)
                        size += len(chunk)
                        # Keep the partial file; the caller reports it as too large.
                        if size > max_bytes:
                            break
            except BaseException:
                os.remove(path)
                raise

        return TempResource(path=path, size=size, content_type=content_type, extension=extension)
