"""
Cliente HTTP do backend de análise.

Endpoints (JSON sobre HTTP):
  POST /upload   multipart, campo "excelFile"   -> {id, originalName, summary, sheets} | {error}
  POST /query    {question, dataId}             -> {question, interpretation?, result, generatedCode?} | {error?, details?}
  POST /compare  {question, dataId1, dataId2}   -> mesmo formato de /query

Respostas viram resultados discriminados (UploadSuccess / QuerySuccess /
BackendFailure). Falhas de transporte viram exceções (BackendError e filhas).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import requests
from pydantic import Field, ValidationError, field_validator

from core.models import CamelModel, ProcessedFile

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
UPLOAD_FIELD = "excelFile"
CONNECT_TIMEOUT_SECONDS = 10.0


class BackendError(Exception):
    """Falha de transporte ao falar com o backend."""


class BackendConnectionError(BackendError):
    """Backend inacessível (rede, DNS, conexão recusada)."""


class BackendTimeoutError(BackendError):
    """A chamada passou do prazo."""

    def __init__(self, message: str, timeout: Optional[float] = None) -> None:
        super().__init__(message)
        self.timeout = timeout


def split_deadline(total: float) -> tuple[float, float]:
    """
    Divide o prazo total em (connect, read) para o requests, com soma igual
    ao total: conexão lenta + primeiro byte lento não passam do prazo.
    """
    connect = min(CONNECT_TIMEOUT_SECONDS, total / 2)
    return connect, total - connect


# =======================
# Payloads / results
# =======================

@dataclass(frozen=True)
class UploadPayload:
    name: str
    content: bytes
    mime_type: str = XLSX_MIME

    @classmethod
    def from_uploaded(cls, uploaded) -> UploadPayload:
        """Aceita o UploadedFile do Streamlit (ou qualquer objeto com name/getvalue)."""
        return cls(
            name=str(uploaded.name),
            content=uploaded.getvalue(),
            mime_type=getattr(uploaded, "type", None) or XLSX_MIME,
        )


class BackendFailure(CamelModel):
    error: Optional[str] = None
    details: Optional[str] = None
    status_code: Optional[int] = None

    @field_validator("error", "details", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        # o backend às vezes manda objetos em "details"
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False, default=str)

    @property
    def message(self) -> str:
        return self.error or self.details or "Erro desconhecido"


class UploadSuccess(CamelModel):
    file: ProcessedFile


class QuerySuccess(CamelModel):
    question: str = Field(min_length=1)
    result: Any = None
    interpretation: Optional[str] = None
    generated_code: Optional[str] = None

    @field_validator("interpretation", "generated_code", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        return None if value == "" else value


UploadResult = Union[UploadSuccess, BackendFailure]
QueryResult = Union[QuerySuccess, BackendFailure]


def _failure(resp, data: dict[str, Any], fallback: Optional[str] = None) -> BackendFailure:
    failure = BackendFailure.model_validate(
        {"error": data.get("error"), "details": data.get("details"), "statusCode": resp.status_code}
    )
    if failure.error is None and failure.details is None:
        error = fallback if resp.ok else f"HTTP {resp.status_code}"
        failure = failure.model_copy(update={"error": error})
    return failure


# =======================
# Client
# =======================

class BackendClient:
    def __init__(
        self,
        base_url: str,
        session=None,
        upload_timeout: float = 300.0,
        query_timeout: float = 300.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.upload_timeout = upload_timeout
        self.query_timeout = query_timeout

    def upload(self, payload: UploadPayload) -> UploadResult:
        logger.info("Enviando %s (%d bytes)", payload.name, len(payload.content))
        resp, data = self._post(
            "/upload",
            timeout=self.upload_timeout,
            files={UPLOAD_FIELD: (payload.name, payload.content, payload.mime_type)},
        )
        if not resp.ok:
            return _failure(resp, data)
        try:
            file = ProcessedFile.model_validate(data)
        except ValidationError as exc:
            logger.warning("Resposta de upload fora do formato: %s", exc.errors(include_url=False))
            return _failure(resp, data, fallback=f"Resposta de upload inválida ({exc.error_count()} erro(s))")
        logger.info("Upload aceito: id=%s", file.id)
        return UploadSuccess(file=file)

    def query(self, question: str, data_id: str, timeout: Optional[float] = None) -> QueryResult:
        return self._ask("/query", {"question": question, "dataId": data_id}, timeout)

    def compare(
        self,
        question: str,
        data_id_1: str,
        data_id_2: str,
        timeout: Optional[float] = None,
    ) -> QueryResult:
        body = {"question": question, "dataId1": data_id_1, "dataId2": data_id_2}
        return self._ask("/compare", body, timeout)

    def _ask(self, path: str, body: dict[str, Any], timeout: Optional[float]) -> QueryResult:
        resp, data = self._post(path, timeout=timeout or self.query_timeout, json=body)
        if not resp.ok:
            return _failure(resp, data)
        try:
            return QuerySuccess.model_validate(data)
        except ValidationError as exc:
            logger.warning("Resposta de %s fora do formato: %s", path, exc.errors(include_url=False))
            return _failure(resp, data, fallback=f"Resposta inválida do servidor ({exc.error_count()} erro(s))")

    def _post(self, path: str, timeout: float, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.post(url, timeout=split_deadline(timeout), **kwargs)
        except requests.exceptions.Timeout as exc:
            logger.warning("POST %s estourou o prazo de %ss", path, timeout)
            raise BackendTimeoutError(f"Prazo de {timeout:g}s excedido", timeout=timeout) from exc
        except requests.exceptions.ConnectionError as exc:
            logger.warning("POST %s sem conexão: %s", path, exc)
            raise BackendConnectionError(str(exc)) from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("POST %s falhou: %s", path, exc)
            raise BackendError(str(exc)) from exc

        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning("POST %s devolveu corpo não-JSON (HTTP %s)", path, resp.status_code)
            data = {"error": f"Resposta inválida do servidor (HTTP {resp.status_code})"}
        return resp, data
