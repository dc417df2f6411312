"""Rewriting of hotlinked image URLs in raw message text (core domain).

The raw text is scanned for the same image forms the renderer turns into
images:

- HTML tags: ``<img src="http://...">``
- BBCode: ``[img]http://...[/img]``
- Markdown inline images: ``![alt](http://... "title")``, including the
  inner image of ``[![alt](http://...)](http://...)``
- A bare ``http(s)://`` URL alone on its own line

Code blocks and inline code spans are masked before matching, so text inside
them is never rewritten. Replacements are spliced in by offset.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Mapping

from core.models import Asset
from core.urls import normalize_src

_FENCED_CODE_RE = re.compile(
    r"^[ ]{0,3}(?P<fence>`{3,}|~{3,})[^\n]*\n.*?(?:^[ ]{0,3}(?P=fence)[ \t]*$|\Z)",
    re.MULTILINE | re.DOTALL,
)
_INDENTED_CODE_RE = re.compile(r"(?:\A|(?<=\n\n))(?:(?: {4}|\t)[^\n]*(?:\n|\Z))+")
_INLINE_CODE_RE = re.compile(
    r"(?<!`)(?P<ticks>`+)(?!`)(?:(?!\n[ \t]*\n).)+?(?<!`)(?P=ticks)(?!`)", re.DOTALL
)

_HTML_IMG_RE = re.compile(
    r"<img\b[^>]*?(?<=\s)src\s*=\s*(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|(?P<uq>[^\s\"'>]+))[^>]*>",
    re.IGNORECASE,
)
_BBCODE_IMG_RE = re.compile(r"\[img\]\s*(?P<src>[^\[\]\s]+)\s*\[/img\]", re.IGNORECASE)
_MD_INLINE_RE = re.compile(
    r"!\[[^\[\]]*\]\((?P<src>[^\s\)]+)(?:[ ]*['\"][^\)]*['\"][ ]*)?\)"
)
_BARE_URL_LINE_RE = re.compile(r"^(?P<src>https?://\S+)[ \t]?$", re.MULTILINE)


@dataclass(frozen=True)
class Occurrence:
    start: int
    end: int
    src: str
    bare_line: bool = False


def _blank_out(text: str, start: int, end: int) -> str:
    # Keep newlines so line-anchored patterns still see line boundaries.
    return text[:start] + re.sub(r"[^\n]", " ", text[start:end]) + text[end:]


def mask_code(raw: str) -> str:
    """Return ``raw`` with code blocks and spans replaced by spaces, same length."""

    masked = raw
    for pattern in (_FENCED_CODE_RE, _INDENTED_CODE_RE, _INLINE_CODE_RE):
        for match in list(pattern.finditer(masked)):
            masked = _blank_out(masked, match.start(), match.end())
    return masked


def find_hotlinked_occurrences(raw: str) -> List[Occurrence]:
    """Return URL occurrences outside of code, ordered and non-overlapping."""

    masked = mask_code(raw)
    found = sorted(_iter_occurrences(masked), key=lambda occ: (occ.start, occ.end))

    occurrences: List[Occurrence] = []
    last_end = -1
    for occ in found:
        if occ.start < last_end:
            continue
        occurrences.append(occ)
        last_end = occ.end
    return occurrences


def _iter_occurrences(masked: str) -> Iterator[Occurrence]:
    for match in _HTML_IMG_RE.finditer(masked):
        group = next(name for name in ("dq", "sq", "uq") if match.group(name) is not None)
        src = match.group(group)
        if src.strip():
            yield Occurrence(match.start(group), match.end(group), src)

    for pattern in (_BBCODE_IMG_RE, _MD_INLINE_RE):
        for match in pattern.finditer(masked):
            yield Occurrence(match.start("src"), match.end("src"), match.group("src"))

    for match in _BARE_URL_LINE_RE.finditer(masked):
        yield Occurrence(match.start("src"), match.end("src"), match.group("src"), bare_line=True)


def replace_hotlinked_urls(raw: str, resolved: Mapping[str, Asset]) -> str:
    """Point every hotlinked occurrence with a resolved asset at its local URL.

    ``resolved`` maps normalized source keys to assets. Occurrences without an
    entry, and everything that is not a recognised occurrence, stay byte-identical.
    """

    if not resolved:
        return raw

    pieces: List[str] = []
    cursor = 0
    for occ in find_hotlinked_occurrences(raw):
        asset = resolved.get(normalize_src(occ.src))
        if asset is None:
            continue
        replacement = f"![]({asset.url})" if occ.bare_line else asset.url
        pieces.append(raw[cursor:occ.start])
        pieces.append(replacement)
        cursor = occ.end
    pieces.append(raw[cursor:])
    return "".join(pieces)
