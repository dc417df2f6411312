"""Turning downloaded temp files into persisted assets."""

from __future__ import annotations

import logging
from typing import Optional

from yarl import URL

from core.models import Asset, TempResource
from core.ports import AssetStorePort

LOGGER = logging.getLogger(__name__)

DEFAULT_FILENAME = "image"


def filename_for(origin_url: str, resource: TempResource) -> str:
    """Name the asset after the URL path, borrowing the extension from the download."""

    try:
        filename = URL(origin_url).name
    except (ValueError, TypeError):
        filename = ""
    filename = filename or DEFAULT_FILENAME
    if "." not in filename:
        filename = f"{filename}{resource.extension}"
    return filename


class AssetCreator:
    """Persist downloaded resources through the asset store port."""

    def __init__(self, store: AssetStorePort) -> None:
        self._store = store

    def create(self, resource: TempResource, origin_url: str, owner_user_id: int) -> Optional[Asset]:
        filename = filename_for(origin_url, resource)
        asset = self._store.create_asset(
            resource,
            filename,
            origin=origin_url,
            user_id=owner_user_id,
        )

        if not asset.persisted:
            LOGGER.info(
                "[ChatHotlinkImages] Failed to create upload for %s: %s",
                origin_url,
                ", ".join(asset.errors),
            )
            return None

        return asset
