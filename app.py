# app.py
import streamlit as st

from core.config import CFG
from core.logging_config import setup_logging
from ui.pages.report_page import render_report_page
from ui.sidebar import render_sidebar
from ui.state import ensure_state

setup_logging(CFG.log_level)

st.set_page_config(
    page_title="COVID-19 decomposition and ARIMA forecasts",
    layout="wide",
)

ensure_state()
cfg = render_sidebar(CFG)
render_report_page(cfg)
