# core/state.py
import uuid

import streamlit as st

CHAT_SESSION_KEY = "chat_session"
UPLOADER_NONCE_KEY = "uploader_nonce"
SESSION_ID_PARAM = "sid"


def init_session_state(factory) -> None:
    """Cria (e restaura do disco) a sessão de chat na primeira execução da página."""
    if CHAT_SESSION_KEY not in st.session_state:
        session = factory()
        session.restore()
        st.session_state[CHAT_SESSION_KEY] = session
    if UPLOADER_NONCE_KEY not in st.session_state:
        st.session_state[UPLOADER_NONCE_KEY] = 0


def set_chat_session(session) -> None:
    st.session_state[CHAT_SESSION_KEY] = session


def get_chat_session():
    return st.session_state.get(CHAT_SESSION_KEY)


def uploader_key() -> str:
    return f"uploader_{st.session_state.get(UPLOADER_NONCE_KEY, 0)}"


def reset_uploader() -> None:
    # nova key = widget vazio; evita reenviar os mesmos arquivos no rerun
    st.session_state[UPLOADER_NONCE_KEY] = st.session_state.get(UPLOADER_NONCE_KEY, 0) + 1


def session_id() -> str:
    """Id da aba, guardado na URL (?sid=...) para sobreviver ao reload."""
    sid = st.query_params.get(SESSION_ID_PARAM)
    if not sid:
        sid = uuid.uuid4().hex
        st.query_params[SESSION_ID_PARAM] = sid
    return sid
