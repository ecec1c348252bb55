"""Render the walk outline as a browsable inhoud.html."""

from __future__ import annotations

import json
from datetime import datetime
from html import escape
from typing import Any
from urllib.parse import quote

from .manifest import footer_line
from .nodes import (
    CaseDocument,
    CaseProject,
    Component,
    Occurrence,
    OccurrenceListing,
    ProcedureStep,
    Stuk,
    Subject,
    local_path,
    path_str,
)
from .walker import DataForm, DataTable, FileGroup, Outline, OutlineNode

REPORT_NAME = "inhoud.html"
STYLESHEET = "https://cdn.jsdelivr.net/npm/bootstrap@4.6.0/dist/css/bootstrap.min.css"
FORMIO_STYLESHEET = "https://cdn.form.io/formiojs/formio.form.min.css"
FORMIO_SCRIPT = "https://cdn.form.io/formiojs/formio.full.min.js"
FILE_COLUMNS = ("BestandsNaam", "Omschrijving", "Datum", "Grootte")


def _el(tag: str, text: object = "", **attrs: object) -> str:
    attr_text = "".join(f' {key}="{escape(str(value))}"' for key, value in attrs.items())
    return f"<{tag}{attr_text}>{escape(str(text))}</{tag}>"


def _dl(items: list[tuple[str, object]]) -> list[str]:
    out = ["<dl>"]
    for key, value in items:
        out.append(_el("dt", key))
        out.append(_el("dd", "" if value is None else value))
    out.append("</dl>")
    return out


def _file_table(group: FileGroup) -> list[str]:
    extra_columns: list[str] = []
    for descriptor in group.files:
        for label, _ in descriptor.extra:
            if label not in extra_columns:
                extra_columns.append(label)
    out = ["<table>", "<thead><tr>"]
    out.extend(_el("th", col) for col in (*FILE_COLUMNS[:1], *extra_columns, *FILE_COLUMNS[1:]))
    out.append("</tr></thead>")
    out.append("<tbody>")
    for descriptor in group.files:
        href = "../" + quote(path_str(local_path(group.path, descriptor.name)))
        extra = dict(descriptor.extra)
        out.append("<tr>")
        out.append(f"<td>{_el('a', descriptor.name, href=href, id=descriptor.uuid)}</td>")
        out.extend(_el("td", extra.get(col, "")) for col in extra_columns)
        out.append(_el("td", descriptor.description))
        out.append(_el("td", "-".join(descriptor.upload_dates)))
        out.append(_el("td", "" if descriptor.size is None else descriptor.size))
        out.append("</tr>")
    out.append("</tbody>")
    out.append("</table>")
    return out


def _data_table(table: DataTable) -> list[str]:
    out = ["<table>", _el("caption", table.title), "<thead><tr>"]
    out.extend(_el("th", col) for col in table.columns)
    out.append("</tr></thead>")
    out.append("<tbody>")
    for row in table.rows:
        out.append("<tr>" + "".join(_el("td", cell) for cell in row) + "</tr>")
    out.append("</tbody>")
    out.append("</table>")
    return out


def _block_data(content: Any) -> Any:
    """Data blocks usually hold their submission as JSON text."""
    if isinstance(content, str):
        try:
            return json.loads(content)
        except ValueError:
            return content
    return content


def _script_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def _form(form: DataForm) -> list[str]:
    """Read-only Form.io rendering of a data block, with the raw data below it."""
    data = _block_data(form.block.content)
    shown = data if isinstance(data, str) else json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True)
    script = (
        f"Formio.createForm(document.getElementById({_script_json(form.block.uuid)}), "
        f"{_script_json(form.definition)}, {{readOnly: true}})"
        f".then(f => f.submission = {{data: {_script_json(data)}}});"
    )
    return [
        _el("div", id=form.block.uuid, **{"class": "formio"}),
        _el("pre", shown, **{"class": "datablok"}),
        f"<script>{script}</script>",
    ]


def _heading(entry: OutlineNode) -> tuple[str, str, list[str]]:
    """Section class, heading text and extra body lines for a node."""
    node = entry.node
    if isinstance(node, Subject):
        return "voorwerp", node.address or node.segment, _dl(
            [("betreft", node.segment), ("effecten", node.effects)]
        )
    if isinstance(node, Component):
        return "onderdeel", node.segment, [_el("pre", node.content)] if node.content else []
    if isinstance(node, Stuk):
        return "onderdeel", node.title, [_el("pre", node.content)] if node.content else []
    if isinstance(node, CaseDocument):
        return "dossierstuk", node.segment, []
    if isinstance(node, ProcedureStep):
        return "procedureStap", node.segment, []
    if isinstance(node, OccurrenceListing):
        return f"gebeurtenis {node.kind}", node.kind, []
    if isinstance(node, Occurrence):
        return "gebeurtenis", node.segment, _dl(list(node.advice)) if node.advice else []
    raise TypeError(f"cannot render {type(node).__name__}")


def _section(entry: OutlineNode, depth: int) -> list[str]:
    css_class, title, body = _heading(entry)
    level = min(depth, 6)
    uuid = getattr(entry.node, "uuid", None)
    heading = _el(f"h{level}", title, id=uuid) if uuid else _el(f"h{level}", title)
    out = [f'<section class="{escape(css_class)}">', heading, *body]
    for table in entry.tables:
        out.extend(_data_table(table))
    for form in entry.forms:
        out.extend(_form(form))
    for group in entry.groups:
        if not group.files:
            continue
        out.append('<section class="bestanden">')
        out.append(_el(f"h{min(level + 1, 6)}", group.title))
        out.extend(_file_table(group))
        out.append("</section>")
    for child in entry.children:
        out.extend(_section(child, depth + 1))
    out.append("</section>")
    return out


def render_report(project: CaseProject, outline: Outline, generated_at: datetime) -> str:
    """Return the complete HTML document for a walked case."""
    out = [
        "<!doctype html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        _el("title", project.title),
        f'<link rel="stylesheet" href="{FORMIO_STYLESHEET}">',
        f'<link rel="stylesheet" href="{STYLESHEET}">',
        "<style>.btn-md:disabled {display: none;}</style>",
        "</head>",
        "<body>",
        f'<script src="{FORMIO_SCRIPT}" crossorigin="anonymous"></script>',
        "<section>",
        _el("h1", project.title, id=project.uuid),
        *_dl(
            [
                ("status", project.appeal_status),
                ("toestand", project.state),
                ("gegenereerd", generated_at.isoformat(timespec="seconds")),
            ]
        ),
        "</section>",
        '<section class="inhoud">',
        _el("h1", "Inhoud Aanvraag"),
    ]
    for entry in outline.subjects:
        out.extend(_section(entry, 2))
    out.append("</section>")
    out.append('<section class="procedure">')
    out.append(_el("h1", "Procedure"))
    for entry in outline.procedure:
        out.extend(_section(entry, 2))
    out.append("</section>")
    out.append(f"<footer>{_el('p', footer_line(project.case_id, generated_at))}</footer>")
    out.append("</body>")
    out.append("</html>")
    return "\n".join(out) + "\n"
