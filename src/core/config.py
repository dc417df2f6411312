"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, FrozenSet


def _allow_all(url: str) -> bool:
    return True


@dataclass(frozen=True)
class RehostConfig:
    """Settings for one rehosting run, resolved once and never reloaded mid-run."""

    download_remote_images_to_local: bool = True
    chat_hotlink_images_enabled: bool = True
    max_bytes: int = 4096 * 1024
    download_timeout: float = 15.0
    local_bases: FrozenSet[str] = frozenset()
    should_download: Callable[[str], bool] = field(default=_allow_all)
    force_https: bool = False
    run_immediately: bool = False
    lock_ttl_seconds: float = 120.0

    @property
    def enabled(self) -> bool:
        return self.download_remote_images_to_local and self.chat_hotlink_images_enabled


@dataclass(frozen=True)
class RetryConfig:
    """Bounded retry settings for downloads."""

    attempts: int = 3
    delay_seconds: float = 1.0
