from __future__ import annotations

import logging

from app import _RedactingFormatter, _redacted_secrets


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("adapters.webhook_publisher", logging.INFO, __file__, 1, message, None, None)


def test_formatter_masks_longest_secret_whole() -> None:
    formatter = _RedactingFormatter(["abc", "abcdef", ""])

    assert formatter.format(_record("token=abcdef other=abc")).endswith("token=*** other=***")


def test_redacted_secrets_read_named_environment_values(monkeypatch) -> None:
    monkeypatch.setenv("WEBHOOK_TOKEN", "s3cret")

    assert _redacted_secrets({"redact": {"enabled": True, "patterns": ["WEBHOOK_TOKEN"]}}) == ["s3cret"]
    assert _redacted_secrets({"redact": {"enabled": False, "patterns": ["WEBHOOK_TOKEN"]}}) == []
    assert _redacted_secrets({}) == []
