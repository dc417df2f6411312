"""Local-disk asset store adapter.

Files land in ``<uploads_dir>/<upload id>/<filename>`` and are served from
``<url_prefix>/<upload id>/<filename>``. Records live in SQLite.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import sqlite3
from typing import Iterable, List
from urllib.parse import quote

from adapters.sqlite_storage import SQLiteStorage
from core.models import Asset, TempResource

LOGGER = logging.getLogger(__name__)

DEFAULT_AUTHORIZED_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp", "avif", "bmp", "ico", "svg")


def _sha1_file(path: str) -> str:
    digest = hashlib.sha1()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(64 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _safe_filename(filename: str) -> str:
    cleaned = re.sub(r"[^\w.\-]+", "_", os.path.basename(filename)).strip("._")
    return cleaned or "upload"


def _strip_scheme(url: str) -> str:
    return re.sub(r"\A[a-z][a-z0-9+.\-]*:(?=//)", "", url, flags=re.IGNORECASE)


class LocalAssetStore:
    """Validate, dedup by content hash, and copy downloads into the uploads dir."""

    def __init__(
        self,
        storage: SQLiteStorage,
        uploads_dir: str,
        url_prefix: str = "/uploads",
        local_bases: Iterable[str] = (),
        authorized_extensions: Iterable[str] = DEFAULT_AUTHORIZED_EXTENSIONS,
    ) -> None:
        self._storage = storage
        self._uploads_dir = uploads_dir
        self._url_prefix = "/" + url_prefix.strip("/")
        self._local_bases = tuple(_strip_scheme(base.rstrip("/")) for base in local_bases if base)
        self._authorized = {ext.lower().lstrip(".") for ext in authorized_extensions}

    def _validate(self, resource: TempResource, filename: str) -> List[str]:
        errors: List[str] = []
        if resource.size <= 0 or not os.path.exists(resource.path):
            errors.append("File is empty")
        extension = os.path.splitext(filename)[1].lower().lstrip(".")
        if self._authorized and extension not in self._authorized:
            errors.append(f"Sorry, the file extension '{extension or '(none)'}' is not authorized")
        return errors

    def create_asset(
        self,
        resource: TempResource,
        filename: str,
        *,
        origin: str,
        user_id: int,
    ) -> Asset:
        errors = self._validate(resource, filename)
        if errors:
            return Asset(
                id=None,
                url="",
                original_filename=filename,
                origin=origin,
                sha1="",
                filesize=resource.size,
                persisted=False,
                errors=tuple(errors),
            )

        sha1 = _sha1_file(resource.path)
        existing = self._storage.find_upload_by_sha1(sha1)
        if existing is not None:
            return existing

        try:
            upload_id = self._storage.insert_upload(
                user_id=user_id,
                original_filename=filename,
                filesize=resource.size,
                sha1=sha1,
                origin=origin,
            )
        except sqlite3.IntegrityError:
            # Another run stored the same content between our lookup and insert.
            existing = self._storage.find_upload_by_sha1(sha1)
            if existing is None:
                raise
            return existing

        stored_name = _safe_filename(filename)
        target_dir = os.path.join(self._uploads_dir, str(upload_id))
        try:
            os.makedirs(target_dir, exist_ok=True)
            shutil.copyfile(resource.path, os.path.join(target_dir, stored_name))
        except OSError:
            self._storage.delete_upload(upload_id)
            raise

        url = f"{self._url_prefix}/{upload_id}/{quote(stored_name)}"
        self._storage.set_upload_url(upload_id, url)
        LOGGER.debug("Stored upload %s for %s at %s", upload_id, origin, url)

        return Asset(
            id=upload_id,
            url=url,
            original_filename=filename,
            origin=origin,
            sha1=sha1,
            filesize=resource.size,
        )

    def has_been_uploaded(self, url: str) -> bool:
        """Return True for URLs that point into this store, under any local base."""

        if not url:
            return False
        if url.startswith(f"{self._url_prefix}/"):
            return True
        schemeless = _strip_scheme(url)
        return any(schemeless.startswith(f"{base}{self._url_prefix}/") for base in self._local_bases)
