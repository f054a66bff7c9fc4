from __future__ import annotations

import html
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Tuple

import pandas as pd
import plotly.graph_objects as go

from core.errors import RenderError

logger = logging.getLogger(__name__)


_CSS = """
body { font-family: -apple-system, "Segoe UI", Roboto, sans-serif; margin: 24px auto; max-width: 1200px; color: #222; }
h1 { font-size: 26px; }
h2 { font-size: 19px; margin-top: 36px; border-bottom: 1px solid #ddd; padding-bottom: 4px; }
table.report { border-collapse: collapse; margin: 8px 0 16px 0; font-size: 13px; }
table.report th, table.report td { border: 1px solid #ccc; padding: 4px 10px; text-align: right; }
table.report th { background: #f3f4f6; }
.meta { color: #555; font-size: 13px; }
.skipped { color: #b45309; }
"""


@dataclass(frozen=True)
class ReportSection:
    title: str
    body: str


class HtmlReport:
    def __init__(self, title: str) -> None:
        self.title = title
        self.sections: List[ReportSection] = []
        self.skipped: List[Tuple[str, str]] = []
        self._plotlyjs_embedded = False

    def _run(self, title: str, render: Callable[[], str]) -> None:
        try:
            body = render()
        except RenderError as e:
            logger.warning("Report section %r skipped: %s", title, e)
            self.skipped.append((title, str(e)))
            return
        except (ValueError, KeyError, TypeError) as e:
            err = RenderError(str(e), section=title)
            logger.warning("Report section %r skipped: %s", title, err)
            self.skipped.append((title, str(err)))
            return
        self.sections.append(ReportSection(title=title, body=body))

    def add_text(self, title: str, text: str) -> None:
        self._run(title, lambda: "".join(f"<p>{html.escape(line)}</p>" for line in text.splitlines() if line.strip()))

    def add_figure(self, title: str, build: Callable[[], go.Figure]) -> None:
        def _render() -> str:
            fig = build()
            # plotly.js is embedded once so the file works offline
            out = fig.to_html(full_html=False, include_plotlyjs=not self._plotlyjs_embedded)
            self._plotlyjs_embedded = True
            return out

        self._run(title, _render)

    def add_table(self, title: str, build: Callable[[], pd.DataFrame], float_format: str = "{:,.2f}") -> None:
        def _render() -> str:
            df = build()
            if df is None or df.empty:
                raise RenderError("empty table", section=title)
            return df.to_html(
                classes="report",
                border=0,
                na_rep="",
                float_format=lambda x: float_format.format(x),
            )

        self._run(title, _render)

    def render(self) -> str:
        parts = [
            "<!DOCTYPE html>",
            "<html><head><meta charset='utf-8'>",
            f"<title>{html.escape(self.title)}</title>",
            f"<style>{_CSS}</style>",
            "</head><body>",
            f"<h1>{html.escape(self.title)}</h1>",
            f"<p class='meta'>Generated {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}</p>",
        ]
        for s in self.sections:
            parts.append(f"<h2>{html.escape(s.title)}</h2>")
            parts.append(s.body)
        if self.skipped:
            parts.append("<h2>Skipped sections</h2><ul class='skipped'>")
            for title, reason in self.skipped:
                parts.append(f"<li><b>{html.escape(title)}</b>: {html.escape(reason)}</li>")
            parts.append("</ul>")
        parts.append("</body></html>")
        return "\n".join(parts)

    def write(self, path: str | os.PathLike) -> Path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(self.render(), encoding="utf-8")
        logger.info("Report written to %s (%d sections, %d skipped)", out, len(self.sections), len(self.skipped))
        return out
