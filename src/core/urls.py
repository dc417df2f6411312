"""URL helpers for dedup keys and scheme-relative sources (core domain)."""

from __future__ import annotations

from yarl import URL

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _heuristic_parse(src: str) -> URL:
    candidate = src.strip()
    if candidate.startswith("//"):
        candidate = f"http:{candidate}"
    elif "://" not in candidate and not candidate.startswith("/"):
        # Bare "host/path" forms are treated as http URLs.
        candidate = f"http://{candidate}"
    return URL(candidate)


def normalize_src(src: str) -> str:
    """Return a scheme-less canonical key so http/https variants collapse.

    Falls back to the literal input when it cannot be parsed, so distinct
    malformed strings simply never dedup.
    """

    try:
        url = _heuristic_parse(src)
        host = url.raw_host
        if not host:
            return src
        host = host.lower()
        port = url.explicit_port
        if port is not None and port != _DEFAULT_PORTS.get(url.scheme):
            host = f"{host}:{port}"
        key = f"//{host}{url.raw_path or '/'}"
        if url.raw_query_string:
            key = f"{key}?{url.raw_query_string}"
        if url.raw_fragment:
            key = f"{key}#{url.raw_fragment}"
        return key
    except (ValueError, TypeError):
        return src


def absolute_src(src: str, force_https: bool) -> str:
    """Expand a scheme-relative ``//host/path`` using the site's preferred scheme."""

    if src.startswith("//"):
        scheme = "https" if force_https else "http"
        return f"{scheme}:{src}"
    return src
