"""Named run locks built on filelock's SoftFileLock.

Each lock name maps to ``<lock_dir>/<name>.lock`` plus an ``.owner.json``
sidecar holding the holder's token and expiry. A contender that times out
on the file checks the sidecar and clears the lock once it has expired, so a
crashed or overlong run cannot block the message forever. Release after an
expiry only logs a warning; the run it overlapped may already be going.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from filelock import SoftFileLock, Timeout

LOGGER = logging.getLogger(__name__)


class FileRunLock:
    """Satisfies RunLockPort across processes sharing one lock directory."""

    def __init__(self, lock_dir: str, poll_interval: float = 0.1) -> None:
        self._lock_dir = Path(lock_dir)
        self._poll_interval = poll_interval

    def init_dir(self) -> None:
        self._lock_dir.mkdir(parents=True, exist_ok=True)

    def _paths(self, name: str) -> tuple[Path, Path]:
        path = self._lock_dir / f"{name}.lock"
        return path, path.parent / f"{path.name}.owner.json"

    @staticmethod
    def _read_owner(metadata_path: Path) -> Optional[dict]:
        try:
            return json.loads(metadata_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None

    def _cleanup_if_expired(self, name: str, ttl_seconds: float) -> bool:
        path, metadata_path = self._paths(name)
        if not path.exists():
            return False
        owner = self._read_owner(metadata_path)
        if owner is not None:
            expires_at = owner.get("expires_at")
        else:
            # Holder died between creating the lock and writing its sidecar.
            try:
                expires_at = path.stat().st_mtime + ttl_seconds
            except OSError:
                return False
        if not isinstance(expires_at, (int, float)) or expires_at > time.time():
            return False

        LOGGER.warning("Lock %s expired, taking it over", name)
        with contextlib.suppress(OSError):
            metadata_path.unlink()
        with contextlib.suppress(OSError):
            path.unlink()
        return True

    def _write_owner(self, name: str, token: str, ttl_seconds: float) -> None:
        _, metadata_path = self._paths(name)
        payload = {"token": token, "pid": os.getpid(), "expires_at": time.time() + ttl_seconds}
        metadata_path.write_text(json.dumps(payload), encoding="utf-8")

    def _still_owned(self, name: str, token: str) -> bool:
        _, metadata_path = self._paths(name)
        owner = self._read_owner(metadata_path)
        return owner is not None and owner.get("token") == token

    async def _acquire(self, lock: SoftFileLock, name: str, ttl_seconds: float) -> None:
        while True:
            try:
                await asyncio.to_thread(lock.acquire, self._poll_interval)
                return
            except Timeout:
                await asyncio.to_thread(self._cleanup_if_expired, name, ttl_seconds)

    def _release(self, lock: SoftFileLock, name: str, token: str) -> None:
        if self._still_owned(name, token):
            _, metadata_path = self._paths(name)
            with contextlib.suppress(OSError):
                metadata_path.unlink()
        else:
            LOGGER.warning("Lock %s expired before release", name)
        lock.release()

    @asynccontextmanager
    async def synchronize(self, name: str, ttl_seconds: float) -> AsyncIterator[None]:
        self.init_dir()
        path, _ = self._paths(name)
        # Acquire and release run on different worker threads.
        lock = SoftFileLock(str(path), thread_local=False)
        token = uuid.uuid4().hex
        await self._acquire(lock, name, ttl_seconds)
        try:
            await asyncio.to_thread(self._write_owner, name, token, ttl_seconds)
            yield
        finally:
            await asyncio.to_thread(self._release, lock, name, token)
