from __future__ import annotations

import asyncio
import json
import logging
import time

from adapters.file_lock import FileRunLock


def test_runs_with_same_name_do_not_overlap(tmp_path) -> None:
    lock = FileRunLock(str(tmp_path / "locks"), poll_interval=0.01)
    events = []

    async def run(tag: str) -> None:
        async with lock.synchronize("pull_chat_hotlinked_images_1", 60):
            events.append(f"{tag}:start")
            await asyncio.sleep(0.05)
            events.append(f"{tag}:end")

    async def _both():
        await asyncio.gather(run("a"), run("b"))

    asyncio.run(_both())

    assert events[0].endswith(":start")
    assert events[1] == events[0].replace("start", "end")
    assert not (tmp_path / "locks" / "pull_chat_hotlinked_images_1.lock").exists()
    assert not (tmp_path / "locks" / "pull_chat_hotlinked_images_1.lock.owner.json").exists()


def test_different_names_do_not_wait_for_each_other(tmp_path) -> None:
    lock = FileRunLock(str(tmp_path / "locks"), poll_interval=0.01)
    entered = []

    async def _nested():
        async with lock.synchronize("pull_chat_hotlinked_images_1", 60):
            async with lock.synchronize("pull_chat_hotlinked_images_2", 60):
                entered.append(True)

    asyncio.run(_nested())

    assert entered == [True]


def test_expired_lock_is_taken_over(tmp_path, caplog) -> None:
    lock_dir = tmp_path / "locks"
    lock_dir.mkdir()
    (lock_dir / "pull_chat_hotlinked_images_1.lock").write_text("")
    (lock_dir / "pull_chat_hotlinked_images_1.lock.owner.json").write_text(
        json.dumps({"token": "dead", "pid": 1, "expires_at": time.time() - 1})
    )
    lock = FileRunLock(str(lock_dir), poll_interval=0.01)
    entered = []

    async def _run():
        async with lock.synchronize("pull_chat_hotlinked_images_1", 60):
            entered.append(True)

    with caplog.at_level(logging.WARNING, logger="adapters.file_lock"):
        asyncio.run(_run())

    assert entered == [True]
    assert "Lock pull_chat_hotlinked_images_1 expired, taking it over" in caplog.text


def test_release_after_expiry_warns(tmp_path, caplog) -> None:
    lock_dir = tmp_path / "locks"
    lock = FileRunLock(str(lock_dir), poll_interval=0.01)

    async def _run():
        async with lock.synchronize("pull_chat_hotlinked_images_1", 60):
            (lock_dir / "pull_chat_hotlinked_images_1.lock.owner.json").write_text(
                json.dumps({"token": "successor", "expires_at": time.time() + 60})
            )

    with caplog.at_level(logging.WARNING, logger="adapters.file_lock"):
        asyncio.run(_run())

    assert "Lock pull_chat_hotlinked_images_1 expired before release" in caplog.text
    owner = json.loads((lock_dir / "pull_chat_hotlinked_images_1.lock.owner.json").read_text())
    assert owner["token"] == "successor"
