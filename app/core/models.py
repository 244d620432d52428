# core/models.py
from __future__ import annotations

import time
import uuid
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MessageType = Literal["user", "assistant", "system"]


def new_message_id() -> str:
    # relógio em ms + sufixo aleatório: não colide dentro do mesmo ms
    millis = time.time_ns() // 1_000_000
    return f"{millis}{uuid.uuid4().hex[:10]}"


class CamelModel(BaseModel):
    """Imutável; lê/grava em camelCase (formato do backend e do store)."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# =======================
# Spreadsheet data
# =======================

class SheetData(CamelModel):
    sheet_name: str
    headers: tuple[str, ...] = ()
    data: tuple[tuple[Any, ...], ...] = ()
    row_count: int = 0
    column_count: int = 0

    @model_validator(mode="before")
    @classmethod
    def _fill_counts(cls, raw: Any) -> Any:
        # rowCount/columnCount ausentes: deduz do conteúdo
        if not isinstance(raw, dict):
            return raw
        raw = dict(raw)
        data = raw.get("data")
        headers = raw.get("headers")
        if "rowCount" not in raw and "row_count" not in raw:
            raw["rowCount"] = len(data) if isinstance(data, (list, tuple)) else 0
        if "columnCount" not in raw and "column_count" not in raw:
            raw["columnCount"] = len(headers) if isinstance(headers, (list, tuple)) else 0
        return raw

    @field_validator("headers", mode="before")
    @classmethod
    def _blank_headers(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple("" if h is None else str(h) for h in value)
        return value

    @field_validator("data", mode="before")
    @classmethod
    def _empty_data(cls, value: Any) -> Any:
        return () if value is None else value


class ProcessedFile(CamelModel):
    """Uma planilha enviada, como resumida pelo backend."""
    id: str = Field(min_length=1)
    original_name: str
    summary: str = ""
    sheets: tuple[SheetData, ...] = ()
    # a resposta de /upload não traz createdAt: o cliente carimba
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("summary", "sheets", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any, info) -> Any:
        if value is None:
            return "" if info.field_name == "summary" else ()
        return value


class ComparisonPair(CamelModel):
    file_a: ProcessedFile
    file_b: ProcessedFile

    @property
    def names(self) -> tuple[str, str]:
        return self.file_a.original_name, self.file_b.original_name


# =======================
# Conversation
# =======================

class AnalysisResult(CamelModel):
    generated_code: Optional[str] = None
    execution_result: Any = None


class Message(CamelModel):
    id: str = Field(min_length=1)
    type: MessageType
    content: str = ""
    timestamp: datetime
    file_data: Optional[ProcessedFile] = None
    analysis_result: Optional[AnalysisResult] = None
