from __future__ import annotations

from adapters.markdown_renderer import MarkdownRenderer
from core.scanner import extract_candidates


def _srcs(raw: str) -> list[str]:
    return [candidate.src for candidate in extract_candidates(MarkdownRenderer().render(raw))]


def test_markdown_image_renders_as_img() -> None:
    assert _srcs("![cat](http://cdn.example.com/cat.png)") == ["http://cdn.example.com/cat.png"]


def test_bbcode_and_bare_image_lines_render_as_img() -> None:
    raw = "[img]http://cdn.example.com/1.png[/img]\n\nhttp://cdn.example.com/2.jpg"
    assert _srcs(raw) == ["http://cdn.example.com/1.png", "http://cdn.example.com/2.jpg"]


def test_bare_non_image_url_is_not_an_image() -> None:
    assert _srcs("http://example.com/page") == []


def test_fenced_code_is_not_rendered_as_image() -> None:
    raw = "```\n![x](http://cdn.example.com/x.png)\nhttp://cdn.example.com/y.png\n```"
    assert _srcs(raw) == []


def test_raw_html_img_passes_through() -> None:
    assert _srcs('<img src="http://cdn.example.com/raw.gif">') == ["http://cdn.example.com/raw.gif"]


def test_indented_code_block_keeps_bbcode_as_text() -> None:
    html = MarkdownRenderer().render("code:\n\n    [img]http://cdn.example.com/x.png[/img]")
    assert "<code>[img]http://cdn.example.com/x.png[/img]" in html
    assert extract_candidates(html) == []


def test_code_span_keeps_bbcode_as_text() -> None:
    raw = "use `[img]http://cdn.example.com/x.png[/img]` or [img]http://cdn.example.com/y.png[/img]"
    html = MarkdownRenderer().render(raw)
    assert "<code>[img]http://cdn.example.com/x.png[/img]</code>" in html
    assert _srcs(raw) == ["http://cdn.example.com/y.png"]
