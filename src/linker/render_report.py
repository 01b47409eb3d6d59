"""HTML summary of a link report.

Reads the JSON written by ``linker.main --report`` or ``combined.json`` from
the batch runner and produces a self-contained HTML page listing every node
group of every diagram together with what happened to it.
"""

from __future__ import annotations

import argparse
import html
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_OUTCOME_LABELS = {
    "transform": "linked",
    "skip_sentinel": "legend",
    "skip_shape_mismatch": "skipped",
}

_STYLE = """
body { font-family: sans-serif; margin: 2em; color: #222; }
h1 { font-size: 1.4em; }
h2 { font-size: 1.1em; margin-top: 2em; }
table { border-collapse: collapse; margin-top: .5em; }
th, td { border: 1px solid #ccc; padding: 4px 8px; text-align: left; }
th { background: #f3f3f3; }
tr.linked td.outcome { color: #176f2c; }
tr.legend td.outcome { color: #8a6d00; }
tr.skipped td { color: #888; }
.errors { color: #a00; }
.counts span { margin-right: 1.5em; }
"""


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Argument list. ``None`` means ``sys.argv[1:]``.

    Returns:
        Namespace with ``input`` and ``output``.
    """
    parser = argparse.ArgumentParser(description="Render a diagram link report as HTML")
    parser.add_argument("--input", "-i", required=True, help="report.json or combined.json")
    parser.add_argument("--output", "-o", default="links-report.html", help="HTML output (default: links-report.html)")
    parser.add_argument("--include-skipped", action="store_true", help="Also list groups that are not node groups")
    return parser.parse_args(argv)


def _diagram_reports(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Normalise single and batch reports to a list of per-diagram reports.

    Args:
        data: Deserialized report.

    Returns:
        List of reports each carrying ``meta``, ``result`` and ``errors``.
    """
    if "diagrams" in data:
        return list(data["diagrams"])
    return [data]


def _link(url: str | None, text: str | None) -> str:
    label = html.escape(text or "")
    if not url:
        return label
    return f'<a href="{html.escape(url, quote=True)}" target="_blank">{label}</a>'


def _render_rows(groups: list[dict[str, Any]], include_skipped: bool) -> str:
    rows = []
    for g in groups:
        outcome = _OUTCOME_LABELS.get(g.get("outcome", ""), g.get("outcome", ""))
        if outcome == "skipped" and not include_skipped:
            continue
        rows.append(
            f'<tr class="{html.escape(outcome)}">'
            f"<td>{g.get('index', '')}</td>"
            f"<td>{html.escape(g.get('group_id') or '')}</td>"
            f'<td class="outcome">{html.escape(outcome)}</td>'
            f"<td>{_link(g.get('project_url'), g.get('project'))}</td>"
            f"<td>{_link(g.get('job_url'), g.get('job'))}</td>"
            "</tr>"
        )
    return "\n".join(rows)


def _render_diagram(report: dict[str, Any], include_skipped: bool) -> str:
    meta = report.get("meta", {})
    result = report.get("result") or {}
    counts = result.get("counts", {})
    title = html.escape(str(meta.get("input", "diagram")))
    parts = [f"<h2>{title}</h2>"]
    if result:
        parts.append(
            '<p class="counts">'
            f"<span>groups: {result.get('groups_total', 0)}</span>"
            f"<span>linked: {counts.get('transform', 0)}</span>"
            f"<span>legend: {counts.get('skip_sentinel', 0)}</span>"
            f"<span>skipped: {counts.get('skip_shape_mismatch', 0)}</span>"
            f"<span>mode: {html.escape(str(result.get('mode', meta.get('mode', ''))))}</span>"
            "</p>"
        )
        parts.append(
            "<table><thead><tr><th>#</th><th>group</th><th>outcome</th>"
            "<th>project</th><th>build job</th></tr></thead><tbody>"
        )
        parts.append(_render_rows(result.get("groups", []), include_skipped))
        parts.append("</tbody></table>")
    errors = report.get("errors") or []
    if errors:
        items = "".join(f"<li>{html.escape(str(e.get('error', e)))}</li>" for e in errors)
        parts.append(f'<ul class="errors">{items}</ul>')
    return "\n".join(parts)


def render_html(data: dict[str, Any], *, include_skipped: bool = False) -> str:
    """Render a report as a complete HTML document.

    Args:
        data: Single-diagram report or batch ``combined.json`` content.
        include_skipped: List groups with the wrong label count as well.

    Returns:
        HTML text.
    """
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    body = "\n".join(_render_diagram(r, include_skipped) for r in _diagram_reports(data))
    return (
        "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\">"
        "<title>Diagram links</title>"
        f"<style>{_STYLE}</style></head><body>\n"
        f"<h1>Diagram links</h1><p>Generated {generated}</p>\n"
        f"{body}\n</body></html>\n"
    )


def write_html_report(input_path: Path, output_path: Path, *, include_skipped: bool = False) -> Path:
    with open(input_path, encoding="utf-8") as fh:
        data = json.load(fh)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_html(data, include_skipped=include_skipped), encoding="utf-8")
    return output_path


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    out = write_html_report(Path(args.input), Path(args.output), include_skipped=args.include_skipped)
    print(f"Wrote: {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
