"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, network, rendering, locking,
and notification adapters so that the core can be reused with different
backends.
"""

from __future__ import annotations

from typing import AsyncContextManager, Optional, Protocol

from core.models import Asset, Channel, ChatMessage, TempResource


class StoragePort(Protocol):
    """Message and channel operations required by the core pipeline."""

    def get_message(self, message_id: int) -> Optional[ChatMessage]:
        ...

    def get_channel(self, channel_id: int) -> Optional[Channel]:
        ...

    def update_message(self, message_id: int, raw: str, cooked: str) -> ChatMessage:
        ...

    def ensure_upload_reference(self, upload_id: int, message_id: int) -> None:
        ...


class AssetStorePort(Protocol):
    """Persistence of downloaded files as local assets."""

    def create_asset(
        self,
        resource: TempResource,
        filename: str,
        *,
        origin: str,
        user_id: int,
    ) -> Asset:
        ...

    def has_been_uploaded(self, url: str) -> bool:
        ...


class FetcherPort(Protocol):
    """Bounded network download into a temporary file."""

    async def fetch(self, url: str, max_bytes: int, timeout: float) -> Optional[TempResource]:
        ...

    def discard(self, resource: TempResource) -> None:
        ...


class RendererPort(Protocol):
    """Raw message text to rendered markup."""

    def render(self, raw: str) -> str:
        ...


class PublisherPort(Protocol):
    """Notification of message changes to channel subscribers."""

    async def publish_refresh(self, channel: Channel, message: ChatMessage) -> None:
        ...


class RunLockPort(Protocol):
    """Named mutual exclusion with a validity window."""

    def synchronize(self, name: str, ttl_seconds: float) -> AsyncContextManager[None]:
        ...
