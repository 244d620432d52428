# chat.py
import json

import streamlit as st

from core.config import Settings, configure_logging
from core.mode_controller import Mode
from core.state import get_chat_session, init_session_state, reset_uploader, session_id, uploader_key
from services.backend_client import UploadPayload
from services.chat_session import ChatSession
from services.sheet_preview import file_overview, result_to_dataframe, sheet_to_dataframe

settings = Settings.from_env()
configure_logging(settings.log_level)

st.set_page_config(page_title="Análise de Planilhas", layout="wide")
init_session_state(lambda: ChatSession.from_settings(settings, session_id()))
session: ChatSession = get_chat_session()

AVATARS = {"user": "🧑", "assistant": "🤖", "system": "ℹ️"}
PREVIEW_ROWS = 20

st.title("📊 Análise de Planilhas")
state = session.state
if state.comparison_pair is not None:
    name_a, name_b = state.comparison_pair.names
    st.caption(f"🔀 Comparando **{name_a}** (A) com **{name_b}** (B)")
elif state.current_file is not None:
    st.caption(f"📊 {state.current_file.original_name}")
elif session.mode is Mode.COMPARISON_SETUP:
    st.caption(f"🔀 Modo comparação: {len(state.files_in_progress)} de 2 arquivos carregados")


# ================ SIDE BAR ===============
with st.sidebar:
    st.header("Sessão")
    if st.button("🔀 Comparar dois arquivos", use_container_width=True):
        session.request_comparison()
        st.rerun()
    if st.button("🗑️ Limpar histórico", use_container_width=True):
        session.clear()
        reset_uploader()
        st.rerun()

    st.divider()
    st.header("Entrada de dados")
    uploaded = st.file_uploader(
        "Arquivos Excel (.xlsx, .xls) — um para análise, dois para comparar",
        type=["xlsx", "xls"],
        accept_multiple_files=True,
        key=uploader_key(),
    )
    if uploaded:
        with st.spinner("Enviando..."):
            session.upload([UploadPayload.from_uploaded(f) for f in uploaded])
        reset_uploader()
        st.rerun()


# ================ MENSAGENS ===============
if not session.messages:
    st.info("Bem-vindo! Envie um arquivo Excel pelo menu lateral para começar a análise com IA.")

for message in session.messages:
    with st.chat_message(message.type, avatar=AVATARS.get(message.type)):
        st.markdown(message.content)

        if message.file_data is not None:
            with st.expander("Abas do arquivo"):
                st.dataframe(file_overview(message.file_data), use_container_width=True)
                for sheet in message.file_data.sheets:
                    st.caption(f"`{sheet.sheet_name}` — linhas: {sheet.row_count} | colunas: {sheet.column_count}")
                    st.dataframe(sheet_to_dataframe(sheet, max_rows=PREVIEW_ROWS), use_container_width=True)

        if message.analysis_result is not None:
            with st.expander("Detalhes da análise"):
                if message.analysis_result.generated_code:
                    st.markdown("**Código gerado:**")
                    st.code(message.analysis_result.generated_code, language=None)
                st.markdown("**Resultado bruto:**")
                table = result_to_dataframe(message.analysis_result.execution_result)
                if table is not None:
                    st.dataframe(table, use_container_width=True)
                else:
                    st.code(
                        json.dumps(message.analysis_result.execution_result, indent=2, ensure_ascii=False, default=str),
                        language="json",
                    )

        st.caption(message.timestamp.strftime("%H:%M:%S"))


placeholder = "Faça uma pergunta sobre os dados..." if session.can_ask else "Primeiro envie um arquivo Excel"
question = st.chat_input(placeholder, disabled=not session.can_ask)
if question:
    with st.spinner("Processando..."):
        session.ask(question)
    st.rerun()
