# core/message_log.py
from __future__ import annotations

from datetime import datetime
from typing import Iterator, Optional

from core.models import AnalysisResult, Message, MessageType, ProcessedFile, new_message_id
from core.session_store import CHAT_HISTORY_KEY, SessionStore


class MessageLog:
    """
    Histórico da conversa. Só cresce, exceto por remove(id), usado para
    retirar o placeholder de "processando". Regrava no store a cada mudança.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._messages: list[Message] = []

    def restore(self) -> None:
        self._messages = self._store.load_messages()

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def append(
        self,
        type: MessageType,
        content: str,
        *,
        file_data: Optional[ProcessedFile] = None,
        analysis_result: Optional[AnalysisResult] = None,
    ) -> Message:
        message = Message(
            id=self._next_id(),
            type=type,
            content=content,
            timestamp=datetime.now(),
            file_data=file_data,
            analysis_result=analysis_result,
        )
        self._messages.append(message)
        self._save()
        return message

    def remove(self, message_id: str) -> bool:
        kept = [m for m in self._messages if m.id != message_id]
        if len(kept) == len(self._messages):
            return False
        self._messages = kept
        self._save()
        return True

    def clear(self) -> None:
        self._messages = []
        self._store.clear(CHAT_HISTORY_KEY)

    def _next_id(self) -> str:
        taken = {m.id for m in self._messages}
        message_id = new_message_id()
        while message_id in taken:
            message_id = new_message_id()
        return message_id

    def _save(self) -> None:
        self._store.save_messages(self._messages)
