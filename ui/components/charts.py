from __future__ import annotations

from typing import Callable

import plotly.graph_objects as go
import streamlit as st

from core.errors import RenderError


def render_chart(build: Callable[[], go.Figure]) -> None:
    # a chart that cannot be drawn must not take the page down with it
    try:
        fig = build()
    except RenderError as e:
        st.info(f"Chart unavailable: {e}")
        return
    st.plotly_chart(fig, config={"responsive": True})
