"""Publisher adapter that only writes refresh events to the log."""

from __future__ import annotations

import logging

from adapters.payloads import channel_topic, summarize_refresh
from core.models import Channel, ChatMessage

LOGGER = logging.getLogger(__name__)


class LogPublisher:
    """Publisher used when no subscriber endpoint is configured."""

    def __init__(self) -> None:
        self.published = 0

    async def publish_refresh(self, channel: Channel, message: ChatMessage) -> None:
        self.published += 1
        LOGGER.info("Refresh %s -> %s", channel_topic(channel), summarize_refresh(channel, message))
