# services/query_dispatcher.py
from __future__ import annotations

import json
import logging
from typing import Optional, Union

from core.message_log import MessageLog
from core.mode_controller import ComparisonState, ModeController, SingleState
from core.models import AnalysisResult, Message
from core.session_store import SessionStore
from services.backend_client import (
    BackendClient,
    BackendConnectionError,
    BackendError,
    BackendFailure,
    BackendTimeoutError,
    QueryResult,
    QuerySuccess,
)

logger = logging.getLogger(__name__)

QUERY_DEADLINE_SECONDS = 300.0  # 5 minutos

NO_FILE_MESSAGE = "❌ Nenhum arquivo encontrado. Envie um arquivo Excel primeiro."
PROCESSING_MESSAGE = "⏳ Processando os dados, isso pode levar alguns minutos..."
ERROR_PREFIX = "❌ Erro ao processar a pergunta: "
CONNECTION_MESSAGE = (
    ERROR_PREFIX + "problema de conexão. Verifique sua internet ou tente novamente mais tarde."
)
RAW_RESULT_HEADER = "📊 Análise dos dados:"


def _format_deadline(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minuto" if minutes == 1 else f"{minutes} minutos"
    return f"{seconds:g} segundos"


def timeout_message(seconds: float) -> str:
    return (
        ERROR_PREFIX
        + f"a consulta levou tempo demais (mais de {_format_deadline(seconds)}). "
        "Tente simplificar a pergunta ou dividir os dados em partes."
    )


def success_content(result: QuerySuccess) -> str:
    if result.interpretation:
        return result.interpretation
    raw = json.dumps(result.result, indent=2, ensure_ascii=False, default=str)
    return f"{RAW_RESULT_HEADER}\n\n{raw}"


class QueryDispatcher:
    def __init__(
        self,
        client: BackendClient,
        controller: ModeController,
        log: MessageLog,
        store: SessionStore,
        deadline: float = QUERY_DEADLINE_SECONDS,
    ) -> None:
        self._client = client
        self._controller = controller
        self._log = log
        self._store = store
        self.deadline = deadline

    def _target_ids(self) -> Optional[tuple[str, ...]]:
        state = self._controller.state
        if isinstance(state, ComparisonState):
            pair = state.comparison_pair
            return pair.file_a.id, pair.file_b.id
        if isinstance(state, SingleState):
            file = state.current_file or self._store.load_current_file()
            if file is not None:
                return (file.id,)
        # comparisonSetup, ou nenhum arquivo carregado
        return None

    def query(self, question: str) -> Optional[Message]:
        """
        Faz a pergunta no modo atual. Devolve a mensagem final do assistente
        (None se a pergunta estava vazia).
        """
        question = (question or "").strip()
        if not question:
            return None

        ids = self._target_ids()
        if ids is None:
            return self._log.append("assistant", NO_FILE_MESSAGE)

        self._log.append("user", question)
        placeholder = self._log.append("assistant", PROCESSING_MESSAGE)

        outcome: Union[QueryResult, BackendError]
        try:
            outcome = self._send(question, ids)
        except BackendError as exc:
            outcome = exc
        finally:
            self._log.remove(placeholder.id)

        return self._record(outcome)

    def _send(self, question: str, ids: tuple[str, ...]) -> QueryResult:
        if len(ids) == 2:
            logger.info("Comparando %s x %s", ids[0], ids[1])
            return self._client.compare(question, ids[0], ids[1], timeout=self.deadline)
        logger.info("Consultando %s", ids[0])
        return self._client.query(question, ids[0], timeout=self.deadline)

    def _record(self, outcome: Union[QueryResult, BackendError]) -> Message:
        if isinstance(outcome, QuerySuccess):
            analysis = AnalysisResult(
                generated_code=outcome.generated_code,
                execution_result=outcome.result,
            )
            return self._log.append("assistant", success_content(outcome), analysis_result=analysis)

        if isinstance(outcome, BackendTimeoutError):
            content = timeout_message(outcome.timeout or self.deadline)
        elif isinstance(outcome, BackendConnectionError):
            content = CONNECTION_MESSAGE
        elif isinstance(outcome, BackendFailure):
            content = ERROR_PREFIX + outcome.message
        else:
            content = ERROR_PREFIX + (str(outcome) or "Erro desconhecido")
        logger.warning("Pergunta falhou: %s", content)
        return self._log.append("assistant", content)
