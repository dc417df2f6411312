from __future__ import annotations

from core.classifier import UrlClassifier
from core.policy import build_download_policy


def _classifier(uploaded: "set[str] | None" = None, blocked: "list[str] | None" = None) -> UrlClassifier:
    uploaded = uploaded or set()
    return UrlClassifier(
        local_bases=["https://chat.example.com", "https://assets.example.com", ""],
        has_been_uploaded=lambda url: url in uploaded,
        should_download=build_download_policy(blocked or []),
    )


def test_remote_image_is_eligible() -> None:
    assert _classifier().is_eligible("http://cdn.example.com/a.png")


def test_blank_is_rejected() -> None:
    assert not _classifier().is_eligible("")
    assert not _classifier().is_eligible("   ")


def test_local_bases_are_rejected() -> None:
    classifier = _classifier()
    assert not classifier.is_eligible("https://chat.example.com/uploads/1/a.png")
    assert not classifier.is_eligible("https://assets.example.com/a.png")


def test_empty_local_base_does_not_reject_everything() -> None:
    assert _classifier().is_eligible("https://other.example.org/b.gif")


def test_absolute_path_is_rejected() -> None:
    assert not _classifier().is_eligible("/uploads/42/a.png")


def test_relative_url_without_host_is_rejected() -> None:
    assert not _classifier().is_eligible("images/a.png")


def test_already_uploaded_is_rejected() -> None:
    url = "https://cdn.local-store.example/uploads/1/a.png"
    assert not _classifier(uploaded={url}).is_eligible(url)


def test_download_policy_has_final_say() -> None:
    classifier = _classifier(blocked=["Blocked.example.com"])
    assert not classifier.is_eligible("https://blocked.example.com/a.png")
    assert classifier.is_eligible("https://allowed.example.com/a.png")
