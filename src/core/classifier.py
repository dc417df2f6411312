"""Eligibility rules for hotlinked image sources (core domain)."""

from __future__ import annotations

import re
from typing import Callable, Iterable

from yarl import URL

# Same-origin absolute paths ("/uploads/..."), but not scheme-relative "//host".
_ABSOLUTE_PATH_RE = re.compile(r"\A/[^/]", re.IGNORECASE)


class UrlClassifier:
    """Decide whether a candidate source should be downloaded.

    A source is rejected when it is blank, starts with one of the local bases,
    is a same-origin absolute path, was already uploaded to the local store,
    or has no parseable host. Everything else is left to the download policy.
    """

    def __init__(
        self,
        local_bases: Iterable[str],
        has_been_uploaded: Callable[[str], bool],
        should_download: Callable[[str], bool],
    ) -> None:
        # Empty bases would prefix-match every URL.
        self._local_bases = tuple(base for base in local_bases if base)
        self._has_been_uploaded = has_been_uploaded
        self._should_download = should_download

    def is_eligible(self, src: str) -> bool:
        if not src or not src.strip():
            return False

        if any(src.startswith(base) for base in self._local_bases):
            return False

        if _ABSOLUTE_PATH_RE.match(src):
            return False

        if self._has_been_uploaded(src):
            return False

        try:
            url = URL(src)
        except (ValueError, TypeError):
            return False

        if not url.host:
            return False

        return bool(self._should_download(src))
