"""SQLite message store backend.

Provides persistent conversation storage using a SQLite database.
Uses aiosqlite for async access.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite

from .base import MessageStore
from .models import ChatMessage, Feedback, Role


class SQLiteMessageStore(MessageStore):
    """SQLite-backed message store.

    Messages are kept in insertion order through an autoincrement sequence
    column, so ordering never depends on clock resolution.
    """

    def __init__(self, path: str | Path = "./personachat.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database file (creating parent dirs) and ensure the schema."""
        if self._connection is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._create_schema()

    async def _create_schema(self) -> None:
        """Create the messages table and its conversation index."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS chat_messages (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                conversation_key TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                feedback TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_chat_messages_conversation
            ON chat_messages(conversation_key, seq)
        """)

        await self._connection.commit()

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Message store is not connected")
        return self._connection

    async def disconnect(self) -> None:
        """Close the connection; later calls need connect() again."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def load_history(self, conversation_key: str) -> list[ChatMessage]:
        conn = self._require_connection()

        async with conn.execute(
            """
            SELECT id, role, content, feedback, created_at
            FROM chat_messages
            WHERE conversation_key = ?
            ORDER BY seq ASC
            """,
            (conversation_key,)
        ) as cursor:
            rows = await cursor.fetchall()

        return [
            ChatMessage(
                id=message_id,
                role=Role(role),
                content=content,
                feedback=Feedback(feedback) if feedback else None,
                timestamp=datetime.fromisoformat(created_at),
            )
            for message_id, role, content, feedback, created_at in rows
        ]

    async def append_message(self, conversation_key: str, message: ChatMessage) -> None:
        conn = self._require_connection()
        await conn.execute("""
            INSERT INTO chat_messages (id, conversation_key, role, content, feedback, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            message.id,
            conversation_key,
            message.role.value,
            message.content,
            message.feedback.value if message.feedback else None,
            message.timestamp.isoformat(),
        ))
        await conn.commit()

    async def update_feedback(self, message_id: str, feedback: Feedback | None) -> None:
        conn = self._require_connection()
        await conn.execute(
            "UPDATE chat_messages SET feedback = ? WHERE id = ?",
            (feedback.value if feedback else None, message_id)
        )
        await conn.commit()

    async def clear_history(self, conversation_key: str) -> None:
        conn = self._require_connection()
        await conn.execute(
            "DELETE FROM chat_messages WHERE conversation_key = ?",
            (conversation_key,)
        )
        await conn.commit()

    async def list_conversations(self) -> list[tuple[str, int]]:
        """Return (conversation_key, message_count) pairs, most recent first."""
        conn = self._require_connection()
        async with conn.execute(
            """
            SELECT conversation_key, COUNT(*)
            FROM chat_messages
            GROUP BY conversation_key
            ORDER BY MAX(seq) DESC
            """
        ) as cursor:
            rows = await cursor.fetchall()
        return [(key, count) for key, count in rows]

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
