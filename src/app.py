"""Application entry point for the chat hotlink rehoster."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.file_lock import FileRunLock
from adapters.http_fetcher import HttpFetcher
from adapters.local_asset_store import LocalAssetStore
from adapters.log_publisher import LogPublisher
from adapters.markdown_renderer import MarkdownRenderer
from adapters.sqlite_storage import SQLiteStorage
from adapters.webhook_publisher import WebhookPublisher
from core.config import RehostConfig, RetryConfig
from core.events import MESSAGE_CREATED, MESSAGE_EDITED, HotlinkTrigger
from core.jobs import JobQueue
from core.policy import build_download_policy
from core.processor import HotlinkProcessor

NAME = "REHOST"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class _RedactingFormatter(logging.Formatter):
    """Masks secrets such as WEBHOOK_TOKEN in every formatted record."""

    def __init__(self, secrets: list[str]) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
        # Longest first, so a secret containing another is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _redacted_secrets(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {})
    if not redact_cfg.get("enabled", False):
        return []
    return [os.getenv(name, "") for name in redact_cfg.get("patterns", [])]


def _rotating_file_handler(file_cfg: dict) -> RotatingFileHandler:
    path = file_cfg.get("path", "logs/rehost.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_rotating_file_handler(file_cfg))
    if not handlers:
        return

    formatter = _RedactingFormatter(_redacted_secrets(config))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)
    # httpx logs every request at INFO; lock acquire/release chatter stays at DEBUG.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.INFO)



def build_rehost_config() -> RehostConfig:
    """Resolve settings into the frozen shape the core consumes."""

    return RehostConfig(
        download_remote_images_to_local=settings.DOWNLOAD_REMOTE_IMAGES_TO_LOCAL,
        chat_hotlink_images_enabled=settings.CHAT_HOTLINK_IMAGES_ENABLED,
        max_bytes=settings.MAX_IMAGE_SIZE_KB * 1024,
        download_timeout=settings.READ_TIMEOUT,
        local_bases=frozenset(
            base for base in (settings.BASE_URL, settings.ASSET_HOST, settings.EXTERNAL_EMOJI_URL) if base
        ),
        should_download=build_download_policy(settings.BLOCKED_DOMAINS),
        force_https=settings.FORCE_HTTPS,
        run_immediately=settings.RUN_IMMEDIATELY,
        lock_ttl_seconds=settings.LOCK_TTL_SECONDS,
    )


def _build_publisher():
    # Select the publisher adapter based on configuration to keep the core
    # processor independent from delivery details.
    if settings.NOTIFICATION_METHOD == "webhook":
        if not settings.WEBHOOK_URL:
            raise RuntimeError("notifications.webhook_url is required for webhook notifications")
        return WebhookPublisher(settings.WEBHOOK_URL, token=os.getenv("WEBHOOK_TOKEN"))
    if settings.NOTIFICATION_METHOD == "log":
        return LogPublisher()
    raise RuntimeError("notifications.method must be 'log' or 'webhook'")


class _Runtime:
    """Wires adapters into the processor, trigger, and job queue."""

    def __init__(self) -> None:
        self.config = build_rehost_config()
        self.storage = SQLiteStorage(settings.DB_PATH)
        self.run_lock = FileRunLock(settings.LOCKS_DIR)
        self.renderer = MarkdownRenderer()
        self.asset_store = LocalAssetStore(
            self.storage,
            settings.UPLOADS_DIR,
            url_prefix=settings.UPLOADS_URL_PREFIX,
            local_bases=self.config.local_bases,
            authorized_extensions=settings.AUTHORIZED_EXTENSIONS,
        )
        self.processor = HotlinkProcessor(
            config=self.config,
            storage=self.storage,
            asset_store=self.asset_store,
            fetcher=HttpFetcher(
                retry=RetryConfig(attempts=settings.DOWNLOAD_RETRIES, delay_seconds=settings.RETRY_DELAY),
            ),
            renderer=self.renderer,
            publisher=_build_publisher(),
            run_lock=self.run_lock,
        )

    def init_db(self) -> None:
        directory = os.path.dirname(settings.DB_PATH)
        if directory:
            os.makedirs(directory, exist_ok=True)
        os.makedirs(settings.UPLOADS_DIR, exist_ok=True)
        self.storage.init_db()
        self.run_lock.init_dir()

    async def dispatch(self, events: list[tuple[str, int]]) -> JobQueue:
        """Feed message events through the trigger and wait for the jobs."""

        queue = JobQueue(
            self.processor.handle,
            workers=settings.JOB_WORKERS,
            run_immediately=self.config.run_immediately,
        )
        trigger = HotlinkTrigger(lambda: self.config, queue)
        queue.start()
        try:
            for event_name, message_id in events:
                await trigger.on_event(event_name, message_id)
            await queue.join()
        finally:
            await queue.stop()
        return queue


def _show(runtime: _Runtime, message_id: int) -> None:
    message = runtime.storage.get_message(message_id)
    if message is None:
        print(f"Chat message {message_id} not found.")
        return
    print(f"#{message.id} channel={message.channel_id} user={message.user_id} trashed={message.trashed}")
    print(f"uploads: {', '.join(str(upload_id) for upload_id in message.upload_ids) or '-'}")
    print(message.raw)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="chat-rehost")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database tables and uploads directory")

    channel_parser = subparsers.add_parser("channel", help="Create a chat channel")
    channel_parser.add_argument("name")

    post_parser = subparsers.add_parser("post", help="Post a message and rehost its images")
    post_parser.add_argument("channel_id", type=int)
    post_parser.add_argument("text")
    post_parser.add_argument("--user", type=int, default=1)

    edit_parser = subparsers.add_parser("edit", help="Edit a message and rehost its images")
    edit_parser.add_argument("message_id", type=int)
    edit_parser.add_argument("text")

    rehost_parser = subparsers.add_parser("rehost", help="Run the pipeline for one message")
    rehost_parser.add_argument("message_id")

    subparsers.add_parser("rehost-all", help="Queue every live message for rehosting")

    show_parser = subparsers.add_parser("show", help="Print a message and its uploads")
    show_parser.add_argument("message_id", type=int)

    args = parser.parse_args(argv)

    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)
    runtime = _Runtime()

    if args.command == "init-db":
        runtime.init_db()
        logger.info("Database ready at %s", settings.DB_PATH)
        return

    if args.command == "channel":
        channel = runtime.storage.create_channel(args.name)
        print(channel.id)
        return

    if args.command == "post":
        if runtime.storage.get_channel(args.channel_id) is None:
            raise SystemExit(f"Channel {args.channel_id} not found")
        message = runtime.storage.create_message(
            args.channel_id,
            args.user,
            args.text,
            runtime.renderer.render(args.text),
        )
        asyncio.run(runtime.dispatch([(MESSAGE_CREATED, message.id)]))
        _show(runtime, message.id)
        return

    if args.command == "edit":
        if runtime.storage.get_message(args.message_id) is None:
            raise SystemExit(f"Chat message {args.message_id} not found")
        runtime.storage.update_message(args.message_id, args.text, runtime.renderer.render(args.text))
        asyncio.run(runtime.dispatch([(MESSAGE_EDITED, args.message_id)]))
        _show(runtime, args.message_id)
        return

    if args.command == "rehost":
        outcome = asyncio.run(runtime.processor.handle(args.message_id))
        logger.info("Rehost of message %s finished: %s", args.message_id, outcome.value)
        return

    if args.command == "rehost-all":
        message_ids = runtime.storage.list_message_ids()
        queue = asyncio.run(runtime.dispatch([(MESSAGE_EDITED, message_id) for message_id in message_ids]))
        logger.info(
            "Rehost scan complete: messages=%s, completed=%s, failed=%s",
            len(message_ids),
            queue.completed,
            queue.failed,
        )
        return

    if args.command == "show":
        _show(runtime, args.message_id)


if __name__ == "__main__":
    main()
