"""Core rehosting pipeline for one chat message.

This module is integration-agnostic. It only relies on ports for storage,
downloads, rendering, locking, and notifications.

The run enforces a strict order:
1) Fast-exit when disabled, or when the message, its channel, or the message
   itself is gone
2) Serialize runs per message with a lock (skipped in immediate mode)
3) Scan rendered markup for candidates
4) Classify, dedup, download, and persist each candidate
5) Rewrite the raw text, then persist and notify only if it changed
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Union

from core.assets import AssetCreator
from core.classifier import UrlClassifier
from core.config import RehostConfig
from core.models import Asset, Candidate, ChatMessage, RunOutcome
from core.ports import (
    AssetStorePort,
    FetcherPort,
    PublisherPort,
    RendererPort,
    RunLockPort,
    StoragePort,
)
from core.rewrite import replace_hotlinked_urls
from core.scanner import extract_candidates
from core.urls import absolute_src, normalize_src

LOGGER = logging.getLogger(__name__)

LOCK_PREFIX = "pull_chat_hotlinked_images_"


class InvalidParameters(ValueError):
    """Raised when a run is triggered without the required identifier."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid parameter: {name}")
        self.name = name


class HotlinkProcessor:
    """Orchestrates scanning, downloads, rewriting, persistence, and notifications."""

    def __init__(
        self,
        config: RehostConfig,
        storage: StoragePort,
        asset_store: AssetStorePort,
        fetcher: FetcherPort,
        renderer: RendererPort,
        publisher: PublisherPort,
        run_lock: RunLockPort,
    ) -> None:
        self._config = config
        self._storage = storage
        self._fetcher = fetcher
        self._renderer = renderer
        self._publisher = publisher
        self._run_lock = run_lock
        self._assets = AssetCreator(asset_store)
        self._classifier = UrlClassifier(
            local_bases=config.local_bases,
            has_been_uploaded=asset_store.has_been_uploaded,
            should_download=config.should_download,
        )

    async def handle(self, message_id: Union[int, str, None]) -> RunOutcome:
        """Run the pipeline for one message id."""

        if not self._config.enabled:
            return RunOutcome.DISABLED

        if message_id is None or not str(message_id).strip():
            raise InvalidParameters("chat_message_id")

        try:
            message_id = int(message_id)
        except ValueError:
            # No stored message has a non-numeric id.
            return RunOutcome.NOT_FOUND

        if self._config.run_immediately:
            return await self._pull_hotlinked_images(message_id)

        async with self._run_lock.synchronize(
            f"{LOCK_PREFIX}{message_id}",
            self._config.lock_ttl_seconds,
        ):
            return await self._pull_hotlinked_images(message_id)

    async def _pull_hotlinked_images(self, message_id: int) -> RunOutcome:
        message = self._storage.get_message(message_id)
        if message is None:
            return RunOutcome.NOT_FOUND
        channel = self._storage.get_channel(message.channel_id)
        if channel is None:
            return RunOutcome.CHANNEL_MISSING
        if message.trashed:
            return RunOutcome.TRASHED

        # Dedup table lives for this run only; the first occurrence of a key wins.
        downloaded: Dict[str, Asset] = {}
        for candidate in extract_candidates(message.cooked):
            await self._process_candidate(message, candidate, downloaded)

        if not downloaded:
            return RunOutcome.NOTHING_DOWNLOADED

        raw = replace_hotlinked_urls(message.raw, downloaded)
        if raw == message.raw:
            return RunOutcome.UNCHANGED

        updated = self._storage.update_message(message.id, raw, self._renderer.render(raw))
        await self._publisher.publish_refresh(channel, updated)
        LOGGER.info(
            "[ChatHotlinkImages] Rewrote %s hotlinked image(s) in message %s",
            len(downloaded),
            message.id,
        )
        return RunOutcome.UPDATED

    async def _process_candidate(
        self,
        message: ChatMessage,
        candidate: Candidate,
        downloaded: Dict[str, Asset],
    ) -> None:
        src = candidate.src
        if not src or not src.strip():
            return

        download_src = absolute_src(src, self._config.force_https)
        if not self._classifier.is_eligible(download_src):
            return

        normalized = normalize_src(src)
        if normalized in downloaded:
            return

        try:
            asset = await self._attempt_download(download_src, message.user_id)
            if asset is None:
                return

            downloaded[normalized] = asset

            if asset.id not in message.upload_ids:
                self._storage.ensure_upload_reference(asset.id, message.id)
        except Exception as exc:
            LOGGER.error("[ChatHotlinkImages] Failed to download hotlinked image %s: %s", download_src, exc)

    async def _attempt_download(self, src: str, user_id: int) -> Optional[Asset]:
        resource = await self._fetcher.fetch(
            src,
            self._config.max_bytes,
            self._config.download_timeout,
        )
        if resource is None:
            return None

        try:
            return self._assets.create(resource, src, user_id)
        finally:
            self._fetcher.discard(resource)
