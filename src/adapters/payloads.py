"""Shared refresh payload helpers.

Keeping payload building here prevents drift between publisher adapters and
keeps refresh events consistent regardless of delivery channel.
"""

from __future__ import annotations

from typing import Any

from core.models import Channel, ChatMessage

REFRESH_TYPE = "refresh"


def channel_topic(channel: Channel) -> str:
    """Return the subscriber topic for a channel."""

    return f"/chat/{channel.id}"


def build_refresh_payload(channel: Channel, message: ChatMessage) -> dict[str, Any]:
    """Return the "message updated" event body for channel subscribers."""

    return {
        "type": REFRESH_TYPE,
        "topic": channel_topic(channel),
        "channel": {"id": channel.id, "name": channel.name},
        "chat_message": {
            "id": message.id,
            "user_id": message.user_id,
            "message": message.raw,
            "cooked": message.cooked,
            "upload_ids": list(message.upload_ids),
        },
    }


def summarize_refresh(channel: Channel, message: ChatMessage) -> str:
    """One-line description used in logs."""

    return f"message {message.id} in {channel.name or channel.id} ({len(message.upload_ids)} upload(s))"
