from __future__ import annotations

"""Server-rendered tracker page: day selector, checklist, grading table, history."""

from datetime import datetime
from html import escape
from typing import Any

from .progress import DAY_LABELS, GAMES_PER_DAY, GRADES, NO_AVERAGE


PAGE_CSS = """
body { margin: 0; min-height: 100vh; padding: 1rem; font-family: sans-serif;
       background: linear-gradient(135deg, #3b0764, #000); color: #e5e7eb; }
h1 { text-align: center; }
section { background: rgba(17, 24, 39, 0.6); border-radius: 0.75rem; padding: 1rem; margin-bottom: 2rem; }
.actions, .days { display: flex; flex-wrap: wrap; justify-content: center; gap: 0.5rem; margin-bottom: 1.5rem; }
button { border: 1px solid #4b5563; border-radius: 0.5rem; padding: 0.5rem 1rem; color: inherit; background: #1f2937; cursor: pointer; }
button.selected { background: #9333ea; border-color: #c084fc; }
button.save { background: #16a34a; }
button.reset { background: #dc2626; }
.metric { display: flex; align-items: center; gap: 0.75rem; margin-bottom: 0.5rem; }
.metric span { flex: 1; }
table { width: 100%; border-collapse: collapse; font-size: 0.875rem; }
th, td { padding: 0.5rem; border-bottom: 1px solid #374151; }
tr:nth-child(even) { background: #1f2937; }
.history li { display: flex; justify-content: space-between; background: #1f2937; border-radius: 0.5rem; padding: 0.5rem; margin-bottom: 0.5rem; list-style: none; }
"""


def _format_timestamp(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def render_day_selector(selected_day: int) -> str:
    buttons = []
    for idx, label in enumerate(DAY_LABELS):
        css = ' class="selected"' if idx == selected_day else ""
        buttons.append(
            f'<form method="post" action="/ui/day"><input type="hidden" name="day" value="{idx}">'
            f"<button{css} type=\"submit\">{escape(label)}</button></form>"
        )
    return f'<nav class="days">{"".join(buttons)}</nav>'


def render_checklist(metrics: list[str]) -> str:
    rows = []
    for idx, metric in enumerate(metrics):
        rows.append(
            f'<div class="metric"><span>{escape(metric)}</span>'
            f'<form method="post" action="/ui/metrics/{idx}/delete"><button type="submit" title="Remove">✕</button></form></div>'
        )
    form = (
        '<form method="post" action="/ui/metrics" class="metric">'
        '<input name="text" placeholder="Add new checklist item…" style="flex:1">'
        '<button type="submit">➕ Add</button></form>'
    )
    return f'<section><h2>Your Checklist</h2>{"".join(rows)}{form}</section>'


def _grade_select(game_idx: int, metric_idx: int, current: int) -> str:
    options = [f'<option value="0"{" selected" if current == 0 else ""}>{NO_AVERAGE}</option>']
    for grade in GRADES:
        selected = " selected" if current == grade else ""
        options.append(f'<option value="{grade}"{selected}>{grade}</option>')
    return (
        '<form method="post" action="/ui/grades">'
        f'<input type="hidden" name="game" value="{game_idx}"><input type="hidden" name="metric" value="{metric_idx}">'
        f'<select name="grade" onchange="this.form.submit()">{"".join(options)}</select></form>'
    )


def render_grading_table(metrics: list[str], day_grades: list[list[int]]) -> str:
    head = "".join(f"<th>{escape(metric)}</th>" for metric in metrics)
    body = []
    for game_idx in range(GAMES_PER_DAY):
        cells = "".join(
            f"<td>{_grade_select(game_idx, metric_idx, day_grades[game_idx][metric_idx])}</td>"
            for metric_idx in range(len(metrics))
        )
        body.append(f"<tr><td>{game_idx + 1}</td>{cells}</tr>")
    return f'<section><table><thead><tr><th>Game #</th>{head}</tr></thead><tbody>{"".join(body)}</tbody></table></section>'


def render_history(history: list[dict[str, Any]]) -> str:
    if not history:
        return "<section><h2>History</h2><p>No snapshots saved yet.</p></section>"
    items = "".join(
        f"<li><span>{escape(_format_timestamp(snap.get('timestamp')))}</span>"
        f"<span>Avg: {escape(str(snap.get('avg', NO_AVERAGE)))}</span></li>"
        for snap in history
    )
    return f'<section class="history"><h2>History</h2><ul>{items}</ul></section>'


def render_page(state: dict[str, Any]) -> str:
    """Render the whole page from a `TrackerService.state()` view."""

    metrics = state["metrics"]
    selected_day = state["selected_day"]
    actions = (
        '<div class="actions">'
        '<form method="post" action="/ui/history"><button class="save" type="submit">💾 Save to history</button></form>'
        '<form method="post" action="/ui/reset"><button class="reset" type="submit">♻️ Reset current</button></form>'
        "</div>"
    )
    return (
        "<!doctype html><html><head><meta charset=\"utf-8\"><title>Improvement Sheet Tracker</title>"
        f"<style>{PAGE_CSS}</style></head><body>"
        "<h1>Improvement Sheet Tracker</h1>"
        f"{actions}"
        f"{render_day_selector(selected_day)}"
        f"{render_checklist(metrics)}"
        f"{render_grading_table(metrics, state['progress'][selected_day])}"
        f"{render_history(state['history'])}"
        "</body></html>"
    )
