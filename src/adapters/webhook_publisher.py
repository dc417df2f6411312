"""Webhook publisher adapter.

POSTs refresh events as JSON so a message bus or chat frontend can push the
updated message to channel subscribers.
"""

from __future__ import annotations

from typing import Optional

import httpx

from adapters.payloads import build_refresh_payload
from core.models import Channel, ChatMessage


class WebhookPublisher:
    """Publisher adapter that delivers refresh events over HTTP."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._token = token
        self._client = client
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def publish_refresh(self, channel: Channel, message: ChatMessage) -> None:
        """Send the refresh payload; non-2xx responses raise."""

        payload = build_refresh_payload(channel, message)
        if self._client is not None:
            response = await self._client.post(self._url, json=payload, headers=self._headers(), timeout=self._timeout)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self._url, json=payload, headers=self._headers(), timeout=self._timeout)
        if response.is_error:
            raise RuntimeError(f"Webhook error {response.status_code}: {response.text}")
