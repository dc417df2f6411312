"""SQLite storage adapter.

Implements the core StoragePort and the record-keeping half of the asset
store using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from core.models import Asset, Channel, ChatMessage

MESSAGE_TARGET = "ChatMessage"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    @property
    def db_path(self) -> str:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - channels: chat channels owning messages
        - chat_messages: raw and rendered message bodies
        - uploads: locally stored assets
        - upload_references: message <-> upload associations
        """

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS channels (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL
                )
                """
            )
            # Fields:
            # - message: raw source text as typed by the user
            # - cooked: rendered markup, always re-derived from message
            # - deleted_at: set when the message is trashed
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chat_messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    channel_id INTEGER NOT NULL,
                    user_id INTEGER NOT NULL,
                    message TEXT NOT NULL,
                    cooked TEXT NOT NULL,
                    deleted_at TIMESTAMP,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            # sha1 is unique so identical downloads resolve to one upload.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS uploads (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    original_filename TEXT NOT NULL,
                    filesize INTEGER NOT NULL,
                    sha1 TEXT NOT NULL UNIQUE,
                    url TEXT NOT NULL DEFAULT '',
                    origin TEXT,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS upload_references (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    upload_id INTEGER NOT NULL,
                    target_type TEXT NOT NULL,
                    target_id INTEGER NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    UNIQUE (upload_id, target_type, target_id)
                )
                """
            )

    def create_channel(self, name: str) -> Channel:
        with self._connect() as conn:
            cur = conn.execute("INSERT INTO channels (name) VALUES (?)", (name,))
            return Channel(id=int(cur.lastrowid), name=name)

    def get_channel(self, channel_id: int) -> Optional[Channel]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, name FROM channels WHERE id = ?",
                (channel_id,),
            ).fetchone()
        return Channel(id=int(row["id"]), name=row["name"]) if row else None

    def delete_channel(self, channel_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM channels WHERE id = ?", (channel_id,))

    def create_message(self, channel_id: int, user_id: int, raw: str, cooked: str) -> ChatMessage:
        now = _now()
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO chat_messages (channel_id, user_id, message, cooked, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (channel_id, user_id, raw, cooked, now, now),
            )
            message_id = int(cur.lastrowid)
        return ChatMessage(id=message_id, channel_id=channel_id, user_id=user_id, raw=raw, cooked=cooked)

    def get_message(self, message_id: int) -> Optional[ChatMessage]:
        """Return the message with its associated upload ids, trashed or not."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id, channel_id, user_id, message, cooked, deleted_at
                FROM chat_messages WHERE id = ?
                """,
                (message_id,),
            ).fetchone()
            if row is None:
                return None
            refs = conn.execute(
                """
                SELECT upload_id FROM upload_references
                WHERE target_type = ? AND target_id = ?
                ORDER BY id
                """,
                (MESSAGE_TARGET, message_id),
            ).fetchall()
        return ChatMessage(
            id=int(row["id"]),
            channel_id=int(row["channel_id"]),
            user_id=int(row["user_id"]),
            raw=row["message"],
            cooked=row["cooked"],
            trashed=row["deleted_at"] is not None,
            upload_ids=tuple(int(ref["upload_id"]) for ref in refs),
        )

    def update_message(self, message_id: int, raw: str, cooked: str) -> ChatMessage:
        """Store new raw text and its rendering, returning the fresh row."""

        with self._connect() as conn:
            conn.execute(
                "UPDATE chat_messages SET message = ?, cooked = ?, updated_at = ? WHERE id = ?",
                (raw, cooked, _now(), message_id),
            )
        message = self.get_message(message_id)
        if message is None:
            raise LookupError(f"Chat message {message_id} disappeared during update")
        return message

    def trash_message(self, message_id: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE chat_messages SET deleted_at = ? WHERE id = ?",
                (_now(), message_id),
            )

    def list_message_ids(self, include_trashed: bool = False) -> List[int]:
        query = "SELECT id FROM chat_messages"
        if not include_trashed:
            query += " WHERE deleted_at IS NULL"
        with self._connect() as conn:
            rows = conn.execute(query + " ORDER BY id").fetchall()
        return [int(row["id"]) for row in rows]

    def ensure_upload_reference(self, upload_id: int, message_id: int) -> None:
        """Associate an upload with a message; repeated calls are no-ops."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO upload_references (upload_id, target_type, target_id, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (upload_id, MESSAGE_TARGET, message_id, _now()),
            )

    def insert_upload(
        self,
        *,
        user_id: int,
        original_filename: str,
        filesize: int,
        sha1: str,
        origin: Optional[str],
    ) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO uploads (user_id, original_filename, filesize, sha1, origin, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, original_filename, filesize, sha1, origin, _now()),
            )
            return int(cur.lastrowid)

    def set_upload_url(self, upload_id: int, url: str) -> None:
        with self._connect() as conn:
            conn.execute("UPDATE uploads SET url = ? WHERE id = ?", (url, upload_id))

    def delete_upload(self, upload_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM uploads WHERE id = ?", (upload_id,))

    def find_upload_by_sha1(self, sha1: str) -> Optional[Asset]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id, url, original_filename, origin, sha1, filesize
                FROM uploads WHERE sha1 = ? AND url != ''
                """,
                (sha1,),
            ).fetchone()
        if row is None:
            return None
        return Asset(
            id=int(row["id"]),
            url=row["url"],
            original_filename=row["original_filename"],
            origin=row["origin"],
            sha1=row["sha1"],
            filesize=int(row["filesize"]),
        )
