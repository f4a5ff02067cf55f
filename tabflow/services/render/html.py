"""HTML serializer producing a self-contained ``<table>`` fragment."""

from __future__ import annotations

from html import escape

from tabflow.services.render.layout import LayoutCell, LayoutRow, TableLayout
from tabflow.services.render.options import RenderOptions

_HEADER_ROLES = {"header", "title", "band", "stub-title", "stub", "label", "banner"}


def _cell(cell: LayoutCell) -> str:
    tag = "th" if cell.role in _HEADER_ROLES else "td"
    classes = [f"tf-{cell.role}"]
    if cell.role == "data":
        classes.append(f"tf-align-{cell.align}")
    if cell.indent:
        classes.append(f"tf-indent-{cell.indent}")
    attrs = [f'class="{" ".join(classes)}"']
    if cell.colspan > 1:
        attrs.append(f'colspan="{cell.colspan}"')
    if cell.rowspan > 1:
        attrs.append(f'rowspan="{cell.rowspan}"')
    if cell.role == "stub":
        attrs.append('scope="row"')
    return f"<{tag} {' '.join(attrs)}>{escape(cell.text)}</{tag}>"


def _row(row: LayoutRow) -> str:
    cells = "".join(_cell(cell) for cell in row.cells if not cell.covered)
    return f'<tr class="tf-{row.kind}">{cells}</tr>'


def to_html(layout: TableLayout, options: RenderOptions) -> str:
    """Serialize ``layout``; title and note are passed through as markup."""

    wrapper = ["tf-table", f"tf-{options.orientation or 'portrait'}"]
    attrs = f'class="{" ".join(wrapper)}"'
    if options.label:
        attrs += f' id="{escape(options.label)}"'
    lines = [f"<div {attrs}>", '<table class="tf-grid">']
    if options.title:
        lines.append(f"<caption>{options.title}</caption>")
    lines.append("<thead>")
    lines.extend(_row(row) for row in layout.header)
    lines.append("</thead>")
    lines.append("<tbody>")
    lines.extend(_row(row) for row in layout.body)
    lines.append("</tbody>")
    if options.note:
        lines.append("<tfoot>")
        lines.append(f'<tr class="tf-note"><td colspan="{max(layout.n_columns, 1)}">{options.note}</td></tr>')
        lines.append("</tfoot>")
    lines.append("</table>")
    lines.append("</div>")
    return "\n".join(lines) + "\n"


__all__ = ["to_html"]
