import importlib
import sys
import types


def _load_state(monkeypatch, query_params=None):
    dummy = types.SimpleNamespace(session_state={}, query_params=dict(query_params or {}))
    monkeypatch.setitem(sys.modules, "streamlit", dummy)

    from core import state
    importlib.reload(state)
    return state, dummy


class _Session:
    def __init__(self) -> None:
        self.restored = 0

    def restore(self) -> None:
        self.restored += 1


def test_init_session_state_creates_and_restores_once(monkeypatch):
    state, _ = _load_state(monkeypatch)
    created = []

    def factory():
        created.append(_Session())
        return created[-1]

    state.init_session_state(factory)
    state.init_session_state(factory)

    assert len(created) == 1
    assert state.get_chat_session() is created[0]
    assert created[0].restored == 1


def test_set_chat_session_replaces_session(monkeypatch):
    state, _ = _load_state(monkeypatch)
    token = object()
    state.set_chat_session(token)
    assert state.get_chat_session() is token


def test_reset_uploader_changes_widget_key(monkeypatch):
    state, _ = _load_state(monkeypatch)
    state.init_session_state(_Session)
    before = state.uploader_key()
    state.reset_uploader()
    assert state.uploader_key() != before


def test_session_id_is_kept_in_query_params(monkeypatch):
    state, dummy = _load_state(monkeypatch)
    sid = state.session_id()
    assert dummy.query_params["sid"] == sid
    assert state.session_id() == sid

    state, _ = _load_state(monkeypatch, {"sid": "abc"})
    assert state.session_id() == "abc"
