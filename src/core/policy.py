"""Site-wide download policy predicate."""

from __future__ import annotations

from typing import Callable, Iterable

from yarl import URL


def build_download_policy(blocked_domains: Iterable[str]) -> Callable[[str], bool]:
    """Return a ``should_download(url)`` predicate honoring a domain blocklist.

    Hosts are compared case-insensitively and exactly; URLs whose host cannot
    be determined are allowed, leaving rejection to the classifier.
    """

    blocked = {domain.strip().lower() for domain in blocked_domains if domain and domain.strip()}

    def should_download(url: str) -> bool:
        if not blocked:
            return True
        try:
            host = URL(url).host
        except (ValueError, TypeError):
            return True
        if not host:
            return True
        return host.lower() not in blocked

    return should_download
