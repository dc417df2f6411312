from __future__ import annotations

from core.urls import absolute_src, normalize_src


def test_http_and_https_collapse_to_same_key() -> None:
    assert normalize_src("http://cdn.example.com/a.png") == "//cdn.example.com/a.png"
    assert normalize_src("https://cdn.example.com/a.png") == "//cdn.example.com/a.png"


def test_scheme_relative_and_host_case_collapse() -> None:
    assert normalize_src("//CDN.Example.com/a.png") == normalize_src("https://cdn.example.com/a.png")


def test_default_port_is_dropped_but_custom_port_kept() -> None:
    assert normalize_src("http://cdn.example.com:80/a.png") == "//cdn.example.com/a.png"
    assert normalize_src("http://cdn.example.com:8080/a.png") == "//cdn.example.com:8080/a.png"


def test_query_is_kept() -> None:
    assert normalize_src("https://cdn.example.com/a.png?w=10&h=20") == "//cdn.example.com/a.png?w=10&h=20"


def test_unparseable_input_is_returned_unchanged() -> None:
    assert normalize_src("http://[not-an-ip/a.png") == "http://[not-an-ip/a.png"


def test_absolute_src_expands_scheme_relative() -> None:
    assert absolute_src("//cdn.example.com/a.png", force_https=True) == "https://cdn.example.com/a.png"
    assert absolute_src("//cdn.example.com/a.png", force_https=False) == "http://cdn.example.com/a.png"
    assert absolute_src("http://cdn.example.com/a.png", force_https=True) == "http://cdn.example.com/a.png"
