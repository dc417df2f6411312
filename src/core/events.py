"""Event subscription that turns message changes into rehosting jobs."""

from __future__ import annotations

import logging
from typing import Callable

from core.config import RehostConfig
from core.jobs import JobQueue, MessageId

LOGGER = logging.getLogger(__name__)

MESSAGE_CREATED = "chat_message_created"
MESSAGE_EDITED = "chat_message_edited"
TRIGGER_EVENTS = frozenset({MESSAGE_CREATED, MESSAGE_EDITED})


class HotlinkTrigger:
    """Enqueue a rehosting run when a chat message is created or edited.

    The config is read through a callable so flag changes apply to the next
    event without rebuilding the trigger.
    """

    def __init__(self, config: Callable[[], RehostConfig], queue: JobQueue) -> None:
        self._config = config
        self._queue = queue

    async def on_event(self, event_name: str, message_id: MessageId) -> bool:
        """Return True when a job was enqueued for the event."""

        if event_name not in TRIGGER_EVENTS:
            return False
        if not self._config().enabled:
            return False

        LOGGER.debug("Enqueue rehost for message %s (%s)", message_id, event_name)
        await self._queue.enqueue(message_id)
        return True
