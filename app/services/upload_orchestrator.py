# services/upload_orchestrator.py
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Sequence

from core.message_log import MessageLog
from core.mode_controller import ComparisonState, Mode, ModeController
from core.models import ProcessedFile
from services.backend_client import BackendClient, BackendError, BackendFailure, UploadPayload

logger = logging.getLogger(__name__)

MAX_FILES = 2

TOO_MANY_FILES_MESSAGE = "❌ Envie no máximo dois arquivos por vez (um para análise, dois para comparação)."


def uploading_message(name: str) -> str:
    return f"Enviando arquivo: {name}..."


def single_success_message(file: ProcessedFile) -> str:
    return (
        f"✅ Arquivo carregado com sucesso!\n\n**{file.original_name}**\n{file.summary}\n\n"
        "Agora você pode fazer perguntas sobre os dados. Por exemplo:\n"
        '- "Quais são as principais tendências nestes dados?"\n'
        '- "Mostre um resumo de todas as colunas"\n'
        '- "Existem valores atípicos?"'
    )


def first_comparison_file_message(file: ProcessedFile) -> str:
    return (
        f"✅ Arquivo 1 de 2 carregado: **{file.original_name}**\n{file.summary}\n\n"
        "Envie o segundo arquivo para iniciar a comparação."
    )


def pair_ready_message(file_a: ProcessedFile, file_b: ProcessedFile) -> str:
    return (
        "✅ Arquivos prontos para comparação!\n\n"
        f"**A:** {file_a.original_name}\n**B:** {file_b.original_name}\n\n"
        "Faça perguntas comparando os dois arquivos."
    )


def backend_error_message(failure: BackendFailure) -> str:
    return f"❌ Erro ao enviar arquivo: {failure.message}"


def transport_error_message(exc: Exception) -> str:
    return f"❌ Falha ao enviar arquivo: {str(exc) or 'Erro desconhecido'}"


# =======================
# Ordered queue
# =======================

@dataclass(frozen=True)
class UploadTask:
    slot: int
    payload: UploadPayload


class UploadQueue:
    """
    Fila FIFO de uploads. Cada tarefa só começa depois que a anterior terminou,
    então o slot 1 (fileA) é sempre o primeiro arquivo da lista.
    Se uma tarefa falha, as restantes são descartadas.
    """

    def __init__(self, payloads: Sequence[UploadPayload], first_slot: int = 1) -> None:
        self._tasks = deque(UploadTask(first_slot + i, p) for i, p in enumerate(payloads))

    def run(self, worker: Callable[[UploadTask], bool]) -> list[UploadTask]:
        done: list[UploadTask] = []
        while self._tasks:
            task = self._tasks.popleft()
            if not worker(task):
                if self._tasks:
                    logger.info("Slot %d falhou; descartando %d upload(s) pendente(s)", task.slot, len(self._tasks))
                self._tasks.clear()
                break
            done.append(task)
        return done


# =======================
# Orchestrator
# =======================

class UploadOrchestrator:
    def __init__(self, client: BackendClient, controller: ModeController, log: MessageLog) -> None:
        self._client = client
        self._controller = controller
        self._log = log

    def upload(self, files: Sequence[UploadPayload]) -> list[ProcessedFile]:
        """Envia 1 ou 2 arquivos. Devolve os que foram aceitos pelo backend."""
        if not files:
            return []

        if len(files) > MAX_FILES:
            self._log.append("assistant", TOO_MANY_FILES_MESSAGE)
            return []

        uploaded: list[ProcessedFile] = []

        def worker(task: UploadTask) -> bool:
            file = self._upload_comparison(task)
            if file is not None:
                uploaded.append(file)
            return file is not None

        if len(files) == MAX_FILES:
            self._controller.enter_comparison_setup()
            UploadQueue(files).run(worker)
        elif self._controller.mode is Mode.COMPARISON_SETUP:
            slot = len(self._controller.state.files_in_progress) + 1
            worker(UploadTask(slot, files[0]))
        else:
            file = self._upload_single(files[0])
            if file is not None:
                uploaded.append(file)
        return uploaded

    def _send(self, payload: UploadPayload):
        self._log.append("system", uploading_message(payload.name))
        try:
            result = self._client.upload(payload)
        except BackendError as exc:
            logger.warning("Upload de %s falhou: %s", payload.name, exc)
            self._log.append("assistant", transport_error_message(exc))
            return None
        if isinstance(result, BackendFailure):
            logger.warning("Backend recusou %s: %s", payload.name, result.message)
            self._log.append("assistant", backend_error_message(result))
            return None
        return result.file

    def _upload_single(self, payload: UploadPayload) -> ProcessedFile | None:
        file = self._send(payload)
        if file is None:
            return None
        self._controller.single_file_uploaded(file)
        self._log.append("assistant", single_success_message(file), file_data=file)
        return file

    def _upload_comparison(self, task: UploadTask) -> ProcessedFile | None:
        file = self._send(task.payload)
        if file is None:
            return None
        state = self._controller.comparison_file_uploaded(file)
        if isinstance(state, ComparisonState):
            pair = state.comparison_pair
            self._log.append("assistant", pair_ready_message(pair.file_a, pair.file_b))
        else:
            self._log.append("assistant", first_comparison_file_message(file), file_data=file)
        logger.info("Arquivo de comparação no slot %d: %s", task.slot, file.original_name)
        return file
