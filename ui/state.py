from __future__ import annotations

import streamlit as st


def ensure_state() -> None:
    if "last_output" not in st.session_state:
        # result of the last pipeline run
        st.session_state["last_output"] = None

    if "last_run_key" not in st.session_state:
        st.session_state["last_run_key"] = None

    if "run_trigger" not in st.session_state:
        st.session_state["run_trigger"] = False


def reset_run() -> None:
    st.session_state["run_trigger"] = False
    st.session_state["last_output"] = None
    st.session_state["last_run_key"] = None
