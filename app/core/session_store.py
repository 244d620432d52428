"""
Persistência do estado da sessão (histórico, arquivo atual, par de comparação).

O meio de armazenamento é um key-value de strings (get/set/remove). Cada valor
é gravado dentro de um envelope versionado:

    {"version": 1, "payload": ...}

Valores sem envelope (formato antigo) contam como versão 0 e são migrados.
Qualquer valor que não possa ser lido é descartado: corrupção nunca derruba a
inicialização.
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from core.models import ComparisonPair, Message, ProcessedFile

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA_VERSION = 1

CHAT_HISTORY_KEY = "excel-chat-history"
CURRENT_FILE_KEY = "excel-chat-current-file"
COMPARISON_PAIR_KEY = "excel-chat-comparison-pair"
COMPARISON_FILES_KEY = "excel-chat-comparison-files"

SESSION_KEYS = (
    CHAT_HISTORY_KEY,
    CURRENT_FILE_KEY,
    COMPARISON_PAIR_KEY,
    COMPARISON_FILES_KEY,
)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Backend em memória (testes / sessão efêmera)."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKeyValueStore:
    """
    Um arquivo por chave dentro de <root>/<namespace>/.
    A escrita vai para um .tmp e é trocada com os.replace (substituição total).
    """

    def __init__(self, root: str | os.PathLike, namespace: str = "default") -> None:
        self.directory = Path(root) / _safe_name(namespace)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_safe_name(key)}.json"

    def get(self, key: str) -> Optional[str]:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def _safe_name(name: str) -> str:
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", str(name)).strip("._")
    return s or "default"


# =======================
# Schema migrations
# =======================

def _from_unversioned(payload: Any) -> Any:
    # o formato sem envelope já tinha o mesmo shape do payload v1
    return payload


_MIGRATIONS: dict[int, Callable[[Any], Any]] = {
    0: _from_unversioned,
}


def _unwrap(envelope: Any) -> Any:
    if isinstance(envelope, dict) and "version" in envelope and "payload" in envelope:
        version = envelope["version"]
        payload = envelope["payload"]
        if not isinstance(version, int) or isinstance(version, bool):
            raise ValueError(f"versão inválida: {version!r}")
    else:
        version, payload = 0, envelope

    if version > SCHEMA_VERSION:
        raise ValueError(f"versão {version} mais nova que a suportada ({SCHEMA_VERSION})")

    while version < SCHEMA_VERSION:
        payload = _MIGRATIONS[version](payload)
        version += 1
    return payload


_MESSAGES = TypeAdapter(list[Message])
_FILES = TypeAdapter(list[ProcessedFile])


def _dump(model: BaseModel) -> Any:
    return model.model_dump(mode="json", by_alias=True)


# =======================
# SessionStore
# =======================

class SessionStore:
    def __init__(self, backend: KeyValueStore) -> None:
        self.backend = backend

    def save(self, key: str, payload: Any) -> None:
        envelope = {"version": SCHEMA_VERSION, "payload": payload}
        self.backend.set(key, json.dumps(envelope, ensure_ascii=False, default=str))

    def load(self, key: str, decode: Optional[Callable[[Any], T]] = None) -> Optional[T]:
        try:
            raw = self.backend.get(key)
            if raw is None:
                return None
            payload = _unwrap(json.loads(raw))
            return decode(payload) if decode else payload
        except (
            ValidationError,
            ValueError,  # inclui JSONDecodeError e UnicodeDecodeError
            TypeError,
            KeyError,
            AttributeError,
            RecursionError,
        ) as exc:
            logger.warning("Descartando valor corrompido em %r: %s", key, exc)
            self.backend.remove(key)
            return None

    def clear(self, key: str) -> None:
        self.backend.remove(key)

    def clear_session(self) -> None:
        for key in SESSION_KEYS:
            self.backend.remove(key)

    # ---- typed helpers ----

    def load_messages(self) -> list[Message]:
        return self.load(CHAT_HISTORY_KEY, _MESSAGES.validate_python) or []

    def save_messages(self, messages: Iterable[Message]) -> None:
        self.save(CHAT_HISTORY_KEY, [_dump(m) for m in messages])

    def load_current_file(self) -> Optional[ProcessedFile]:
        return self.load(CURRENT_FILE_KEY, ProcessedFile.model_validate)

    def save_current_file(self, file: Optional[ProcessedFile]) -> None:
        if file is None:
            self.clear(CURRENT_FILE_KEY)
        else:
            self.save(CURRENT_FILE_KEY, _dump(file))

    def load_comparison_pair(self) -> Optional[ComparisonPair]:
        return self.load(COMPARISON_PAIR_KEY, ComparisonPair.model_validate)

    def save_comparison_pair(self, pair: Optional[ComparisonPair]) -> None:
        if pair is None:
            self.clear(COMPARISON_PAIR_KEY)
        else:
            self.save(COMPARISON_PAIR_KEY, _dump(pair))

    def load_files_in_progress(self) -> list[ProcessedFile]:
        return self.load(COMPARISON_FILES_KEY, _FILES.validate_python) or []

    def save_files_in_progress(self, files: Sequence[ProcessedFile]) -> None:
        if not files:
            self.clear(COMPARISON_FILES_KEY)
        else:
            self.save(COMPARISON_FILES_KEY, [_dump(f) for f in files])
