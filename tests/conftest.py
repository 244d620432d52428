from datetime import datetime

import pytest

from core.models import ProcessedFile, SheetData
from core.session_store import MemoryKeyValueStore, SessionStore
from services.backend_client import UploadSuccess


def make_file(name: str, file_id: str | None = None) -> ProcessedFile:
    return ProcessedFile(
        id=file_id or f"id-{name}",
        original_name=name,
        summary=f"Resumo de {name}",
        sheets=(
            SheetData(
                sheet_name="Plan1",
                headers=("Mes", "Receita"),
                data=(("jan", 100), ("fev", 112)),
                row_count=2,
                column_count=2,
            ),
        ),
        created_at=datetime(2026, 1, 27, 10, 30),
    )


class FakeBackend:
    """
    Substitui o BackendClient. Cada lista guarda as respostas na ordem;
    um item que é Exception é lançado. Uploads sem resposta programada
    são aceitos com id "id-<nome>".
    """

    def __init__(self) -> None:
        self.upload_results: list = []
        self.query_results: list = []
        self.compare_results: list = []
        self.calls: list[tuple] = []

    def upload(self, payload):
        self.calls.append(("upload", payload.name))
        if not self.upload_results:
            return UploadSuccess(file=make_file(payload.name))
        return self._next(self.upload_results)

    def query(self, question, data_id, timeout=None):
        self.calls.append(("query", question, data_id, timeout))
        return self._next(self.query_results)

    def compare(self, question, data_id_1, data_id_2, timeout=None):
        self.calls.append(("compare", question, data_id_1, data_id_2, timeout))
        return self._next(self.compare_results)

    @staticmethod
    def _next(queue: list):
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv) -> SessionStore:
    return SessionStore(kv)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def file_factory():
    return make_file
