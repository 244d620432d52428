import random

from core.message_log import MessageLog
from core.mode_controller import Mode, ModeController, SingleState
from services.backend_client import BackendConnectionError, BackendFailure, UploadPayload
from services.upload_orchestrator import (
    TOO_MANY_FILES_MESSAGE,
    UploadOrchestrator,
    UploadQueue,
    UploadTask,
    uploading_message,
)


def _payload(name: str) -> UploadPayload:
    return UploadPayload(name, b"PK\x03\x04")


def _setup(store, backend):
    ctrl = ModeController(store)
    log = MessageLog(store)
    return UploadOrchestrator(backend, ctrl, log), ctrl, log


def test_single_upload_sets_current_file_and_summarizes(store, backend):
    orch, ctrl, log = _setup(store, backend)

    uploaded = orch.upload([_payload("vendas.xlsx")])

    assert [f.original_name for f in uploaded] == ["vendas.xlsx"]
    assert ctrl.state.current_file.original_name == "vendas.xlsx"
    types = [m.type for m in log]
    assert types == ["system", "assistant"]
    assert log.messages[0].content == uploading_message("vendas.xlsx")
    assert "vendas.xlsx" in log.messages[1].content
    assert log.messages[1].file_data.id == "id-vendas.xlsx"
    assert store.load_current_file().id == "id-vendas.xlsx"


def test_backend_failure_keeps_state_and_quotes_error(store, backend, file_factory):
    orch, ctrl, log = _setup(store, backend)
    ctrl.single_file_uploaded(file_factory("antigo.xlsx"))
    backend.upload_results.append(BackendFailure(error="Arquivo vazio"))

    assert orch.upload([_payload("vazio.xlsx")]) == []
    assert ctrl.state == SingleState(file_factory("antigo.xlsx"))
    assert log.messages[-1].type == "assistant"
    assert "Arquivo vazio" in log.messages[-1].content


def test_transport_failure_reports_underlying_error(store, backend):
    orch, ctrl, log = _setup(store, backend)
    backend.upload_results.append(BackendConnectionError("Connection refused"))

    orch.upload([_payload("a.xlsx")])
    assert ctrl.state == SingleState()
    assert "Connection refused" in log.messages[-1].content


def test_more_than_two_files_is_rejected_without_calls(store, backend):
    orch, ctrl, log = _setup(store, backend)

    orch.upload([_payload("a.xlsx"), _payload("b.xlsx"), _payload("c.xlsx")])

    assert backend.calls == []
    assert ctrl.state == SingleState()
    assert [m.content for m in log] == [TOO_MANY_FILES_MESSAGE]


def test_empty_selection_is_noop(store, backend):
    orch, _, log = _setup(store, backend)
    assert orch.upload([]) == []
    assert len(log) == 0


def test_two_files_form_pair_in_array_order(store, backend):
    orch, ctrl, log = _setup(store, backend)

    orch.upload([_payload("fileA.xlsx"), _payload("fileB.xlsx")])

    assert ctrl.mode is Mode.COMPARISON
    assert ctrl.state.comparison_pair.names == ("fileA.xlsx", "fileB.xlsx")
    assert backend.calls == [("upload", "fileA.xlsx"), ("upload", "fileB.xlsx")]
    last = log.messages[-1].content
    assert "fileA.xlsx" in last and "fileB.xlsx" in last


def test_pair_order_always_follows_selection_order(store, backend):
    rng = random.Random(7)
    orch, ctrl, _ = _setup(store, backend)
    for _ in range(10):
        names = [f"arq{rng.randint(0, 999)}.xlsx" for _ in range(2)]
        orch.upload([_payload(n) for n in names])
        assert ctrl.state.comparison_pair.file_a.original_name == names[0]
        assert ctrl.state.comparison_pair.file_b.original_name == names[1]


def test_files_uploaded_one_by_one_in_setup(store, backend):
    orch, ctrl, log = _setup(store, backend)
    ctrl.enter_comparison_setup()

    orch.upload([_payload("fileA.xlsx")])
    assert ctrl.mode is Mode.COMPARISON_SETUP
    assert [f.original_name for f in ctrl.state.files_in_progress] == ["fileA.xlsx"]

    orch.upload([_payload("fileB.xlsx")])
    assert ctrl.mode is Mode.COMPARISON
    assert ctrl.state.comparison_pair.names == ("fileA.xlsx", "fileB.xlsx")
    assert "fileA.xlsx" in log.messages[-1].content
    assert "fileB.xlsx" in log.messages[-1].content


def test_first_failure_discards_second_upload(store, backend):
    orch, ctrl, _ = _setup(store, backend)
    backend.upload_results.append(BackendFailure(error="corrompido"))

    uploaded = orch.upload([_payload("a.xlsx"), _payload("b.xlsx")])

    assert uploaded == []
    assert backend.calls == [("upload", "a.xlsx")]
    assert ctrl.mode is Mode.COMPARISON_SETUP
    assert ctrl.state.files_in_progress == ()


def test_upload_queue_runs_in_order_and_stops_on_failure():
    seen = []

    def worker(task: UploadTask) -> bool:
        seen.append((task.slot, task.payload.name))
        return task.payload.name != "b.xlsx"

    queue = UploadQueue([_payload("a.xlsx"), _payload("b.xlsx"), _payload("c.xlsx")])
    done = queue.run(worker)

    assert seen == [(1, "a.xlsx"), (2, "b.xlsx")]
    assert [t.slot for t in done] == [1]
