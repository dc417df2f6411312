"""Markdown rendering adapter.

Renders raw chat text to HTML with Python-Markdown. A preprocessor expands
``[img]...[/img]`` BBCode and bare image URLs on their own line into Markdown
images, so the rendered markup shows the same images the rewriter looks for.
Indented code blocks and backtick code spans are left as written.
"""

from __future__ import annotations

import re
from typing import List

import markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor

_BBCODE_IMG_RE = re.compile(r"\[img\]\s*(?P<src>[^\[\]\s]+)\s*\[/img\]", re.IGNORECASE)
_IMAGE_LINE_RE = re.compile(
    r"^(?P<src>https?://\S+\.(?:png|jpe?g|gif|webp|avif|bmp|svg)(?:\?\S*)?)[ \t]?$",
    re.IGNORECASE,
)
_CODE_SPAN_RE = re.compile(r"(?<!`)(?P<ticks>`+)(?!`).+?(?<!`)(?P=ticks)(?!`)")


def _expand_bbcode(line: str) -> str:
    pieces = []
    cursor = 0
    for span in _CODE_SPAN_RE.finditer(line):
        pieces.append(_BBCODE_IMG_RE.sub(r"![](\g<src>)", line[cursor:span.start()]))
        pieces.append(span.group(0))
        cursor = span.end()
    pieces.append(_BBCODE_IMG_RE.sub(r"![](\g<src>)", line[cursor:]))
    return "".join(pieces)


class _HotlinkImagePreprocessor(Preprocessor):
    def run(self, lines: List[str]) -> List[str]:
        rendered = []
        in_code_block = False
        previous_blank = True
        for line in lines:
            # An indented block starts after a blank line and runs while lines stay indented.
            indented = line.startswith(("    ", "\t"))
            in_code_block = indented and (in_code_block or previous_blank)
            previous_blank = not line.strip()
            if not in_code_block:
                line = _expand_bbcode(line)
                match = _IMAGE_LINE_RE.match(line)
                if match:
                    line = f"![]({match.group('src')})"
            rendered.append(line)
        return rendered


class HotlinkImageExtension(Extension):
    def extendMarkdown(self, md: markdown.Markdown) -> None:
        # Runs after fenced blocks are stashed (25) and before raw HTML (20).
        md.preprocessors.register(_HotlinkImagePreprocessor(md), "hotlink_images", 22)


class MarkdownRenderer:
    """Satisfies RendererPort."""

    def __init__(self) -> None:
        self._extensions = ["fenced_code", HotlinkImageExtension()]

    def render(self, raw: str) -> str:
        return markdown.markdown(raw, extensions=self._extensions)
