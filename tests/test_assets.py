from __future__ import annotations

import logging

from core.assets import AssetCreator, filename_for
from core.models import Asset, TempResource


def _resource(extension: str = ".png") -> TempResource:
    return TempResource(path="/tmp/chat-hotlinked-x", size=10, content_type="image/png", extension=extension)


class FakeAssetStore:
    def __init__(self, persisted: bool = True) -> None:
        self._persisted = persisted
        self.calls: list[tuple[str, str, int]] = []

    def create_asset(self, resource: TempResource, filename: str, *, origin: str, user_id: int) -> Asset:
        self.calls.append((filename, origin, user_id))
        if not self._persisted:
            return Asset(
                id=None,
                url="",
                original_filename=filename,
                origin=origin,
                sha1="",
                filesize=resource.size,
                persisted=False,
                errors=("File is empty", "Bad extension"),
            )
        return Asset(id=7, url=f"/uploads/7/{filename}", original_filename=filename, origin=origin, sha1="abc", filesize=10)

    def has_been_uploaded(self, url: str) -> bool:
        return False


def test_filename_comes_from_url_path() -> None:
    assert filename_for("http://cdn.example.com/img/cat.jpg?size=large", _resource()) == "cat.jpg"


def test_filename_without_extension_gets_download_extension() -> None:
    assert filename_for("http://cdn.example.com/render/12345", _resource(".gif")) == "12345.gif"


def test_filename_falls_back_when_path_is_empty() -> None:
    assert filename_for("http://cdn.example.com/", _resource(".png")) == "image.png"


def test_create_attributes_asset_to_owner_and_origin() -> None:
    store = FakeAssetStore()
    asset = AssetCreator(store).create(_resource(), "http://cdn.example.com/a.png", owner_user_id=3)

    assert asset is not None
    assert asset.url == "/uploads/7/a.png"
    assert store.calls == [("a.png", "http://cdn.example.com/a.png", 3)]


def test_create_returns_none_and_logs_validation_errors(caplog) -> None:
    store = FakeAssetStore(persisted=False)
    with caplog.at_level(logging.INFO, logger="core.assets"):
        asset = AssetCreator(store).create(_resource(), "http://cdn.example.com/a.png", owner_user_id=3)

    assert asset is None
    assert "Failed to create upload for http://cdn.example.com/a.png: File is empty, Bad extension" in caplog.text
