"""Append-only JSON Lines conversation log."""

from __future__ import annotations

import asyncio
import json
import threading
from pathlib import Path

from app.adapters.conversation_log.base import AbstractConversationLogSink, ConversationTurn


class JsonlFileConversationLogSink(AbstractConversationLogSink):
    """Write one JSON object per turn to a local file.

    Writes run in a worker thread so the event loop never blocks on disk I/O;
    a lock keeps concurrent appends from interleaving lines.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _write_line(self, line: str) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")

    async def append(self, session_id: str, turn: ConversationTurn) -> None:
        """Append the turn as a JSON line keyed by ``session_id``.

        Raises:
            OSError: If the file cannot be written.
        """
        line = json.dumps({"session_id": session_id, **turn.to_dict()}, ensure_ascii=False)
        await asyncio.to_thread(self._write_line, line)
