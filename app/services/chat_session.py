# services/chat_session.py
from __future__ import annotations

import logging
from typing import Optional, Sequence

from core.config import Settings
from core.message_log import MessageLog
from core.mode_controller import Mode, ModeController, SessionState
from core.models import Message
from core.session_store import FileKeyValueStore, SessionStore
from services.backend_client import BackendClient, UploadPayload
from services.query_dispatcher import QUERY_DEADLINE_SECONDS, QueryDispatcher
from services.upload_orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)

COMPARISON_SETUP_MESSAGE = "🔀 Modo comparação: envie dois arquivos Excel (o primeiro será o arquivo A)."


class ChatSession:
    """Junta store, histórico, modo, uploads e perguntas de uma aba do navegador."""

    def __init__(
        self,
        store: SessionStore,
        client: BackendClient,
        query_deadline: float = QUERY_DEADLINE_SECONDS,
    ) -> None:
        self.store = store
        self.log = MessageLog(store)
        self.controller = ModeController(store)
        self.uploads = UploadOrchestrator(client, self.controller, self.log)
        self.queries = QueryDispatcher(client, self.controller, self.log, store, deadline=query_deadline)

    @classmethod
    def from_settings(cls, settings: Settings, session_id: str) -> ChatSession:
        store = SessionStore(FileKeyValueStore(settings.storage_dir, session_id))
        client = BackendClient(
            settings.api_url,
            upload_timeout=settings.upload_timeout,
            query_timeout=settings.query_timeout,
        )
        return cls(store, client, query_deadline=settings.query_timeout)

    @property
    def state(self) -> SessionState:
        return self.controller.state

    @property
    def mode(self) -> Mode:
        return self.controller.mode

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.log.messages

    @property
    def can_ask(self) -> bool:
        state = self.controller.state
        return state.current_file is not None or state.comparison_pair is not None

    def restore(self) -> None:
        self.log.restore()
        self.controller.restore()

    def upload(self, files: Sequence[UploadPayload]):
        return self.uploads.upload(files)

    def ask(self, question: str) -> Optional[Message]:
        return self.queries.query(question)

    def request_comparison(self) -> None:
        self.controller.enter_comparison_setup()
        self.log.append("system", COMPARISON_SETUP_MESSAGE)

    def clear(self) -> None:
        self.log.clear()
        self.controller.clear()
        self.store.clear_session()
        logger.info("Sessão limpa")
