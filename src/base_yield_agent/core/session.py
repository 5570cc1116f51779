"""Per-session chat history, cached in memory and persisted to SQLite."""

from __future__ import annotations

import json
import logging

from base_yield_agent.llm.base import LLMMessage
from base_yield_agent.storage.database import Database

logger = logging.getLogger("base_yield_agent.session")


class SessionStore:
    """Conversation history keyed by session id.

    Histories are loaded from the database on first access and then served
    from memory; every appended turn is written through.
    """

    def __init__(self, db: Database):
        self.db = db
        self._cache: dict[str, list[LLMMessage]] = {}

    async def load(self, session_id: str) -> list[LLMMessage]:
        if session_id in self._cache:
            return self._cache[session_id]

        rows = await self.db.fetch_all(
            "SELECT role, content, tool_calls_json, tool_call_id "
            "FROM session_messages WHERE session_id = ? ORDER BY id",
            (session_id,),
        )
        history = [
            LLMMessage(
                role=r["role"],
                content=r["content"],
                tool_calls=json.loads(r["tool_calls_json"]) if r["tool_calls_json"] else None,
                tool_call_id=r["tool_call_id"],
            )
            for r in rows
        ]
        self._cache[session_id] = history
        return history

    async def append(self, session_id: str, *messages: LLMMessage) -> None:
        history = await self.load(session_id)
        await self.db.execute(
            "INSERT OR IGNORE INTO sessions (id) VALUES (?)", (session_id,)
        )
        for msg in messages:
            await self.db.execute(
                "INSERT INTO session_messages "
                "(session_id, role, content, tool_calls_json, tool_call_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    session_id,
                    msg.role,
                    msg.content,
                    json.dumps(msg.tool_calls, default=str) if msg.tool_calls else None,
                    msg.tool_call_id,
                ),
            )
            history.append(msg)
        await self.db.execute(
            "UPDATE sessions SET updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (session_id,),
        )

    async def clear(self, session_id: str) -> None:
        self._cache.pop(session_id, None)
        await self.db.execute("DELETE FROM session_messages WHERE session_id = ?", (session_id,))
        await self.db.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        logger.info(f"Session {session_id} cleared")

    async def list_sessions(self) -> list[dict]:
        return await self.db.fetch_all(
            "SELECT s.id, s.created_at, s.updated_at, COUNT(m.id) AS message_count "
            "FROM sessions s LEFT JOIN session_messages m ON m.session_id = s.id "
            "GROUP BY s.id ORDER BY s.updated_at DESC"
        )
