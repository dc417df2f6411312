"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any storage-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class Channel:
    """Chat channel that owns messages."""

    id: int
    name: str


@dataclass(frozen=True)
class ChatMessage:
    """Chat message as seen by the rehosting pipeline."""

    id: int
    channel_id: int
    user_id: int
    raw: str
    cooked: str
    trashed: bool = False
    upload_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Asset:
    """Locally stored copy of a remote resource.

    ``persisted`` is False when the store rejected the file; ``errors`` then
    holds the validation reasons.
    """

    id: Optional[int]
    url: str
    original_filename: str
    origin: Optional[str]
    sha1: str
    filesize: int
    persisted: bool = True
    errors: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TempResource:
    """Downloaded temporary file awaiting persistence."""

    path: str
    size: int
    content_type: Optional[str]
    extension: str


@dataclass(frozen=True)
class Candidate:
    """Image or lightbox reference found in rendered markup."""

    src: str
    kind: str


class RunOutcome(str, Enum):
    """Terminal state of one pipeline run."""

    DISABLED = "disabled"
    NOT_FOUND = "not_found"
    CHANNEL_MISSING = "channel_missing"
    TRASHED = "trashed"
    NOTHING_DOWNLOADED = "nothing_downloaded"
    UNCHANGED = "unchanged"
    UPDATED = "updated"
