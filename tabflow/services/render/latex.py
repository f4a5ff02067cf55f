"""LaTeX serializer (booktabs, multirow, longtable, tabularx, pdflscape)."""

from __future__ import annotations

from tabflow.services.render.layout import LayoutCell, LayoutRow, TableLayout
from tabflow.services.render.options import RenderOptions

_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}

_LEFT_ROLES = {"banner", "label", "stub", "stub-title", "empty"}


def escape_latex(text: str) -> str:
    return "".join(_SPECIALS.get(char, char) for char in text)


def _cell(cell: LayoutCell) -> str:
    if cell.covered:
        return ""
    text = escape_latex(cell.text)
    if cell.role == "banner" and text:
        text = rf"\textbf{{{text}}}"
    if cell.indent and text:
        text = rf"\hspace{{{cell.indent}em}}{text}"
    if cell.rowspan > 1:
        text = rf"\multirow{{{cell.rowspan}}}{{*}}{{{text}}}"
    if cell.colspan > 1 or cell.role == "banner":
        align = "l" if cell.role in _LEFT_ROLES else "c"
        text = rf"\multicolumn{{{cell.colspan}}}{{{align}}}{{{text}}}"
    return text


def _row(row: LayoutRow) -> list[str]:
    lines = [" & ".join(_cell(cell) for cell in row.cells) + r" \\"]
    if row.rule_under:
        lines.append(" ".join(rf"\cmidrule(lr){{{start}-{end}}}" for start, end in row.rule_under))
    return lines


def _column_spec(layout: TableLayout, options: RenderOptions) -> str:
    if options.mancol:
        return options.mancol
    if options.tabenv == "tabularx":
        data = layout.n_columns - layout.stub_columns
        return "".join(layout.alignments[: layout.stub_columns]) + "X" * data
    return "".join(layout.alignments)


def _grid_lines(layout: TableLayout) -> tuple[list[str], list[str]]:
    head = [r"\toprule"]
    for row in layout.header:
        head.extend(_row(row))
    head.append(r"\midrule")
    body: list[str] = []
    for row in layout.body:
        body.extend(_row(row))
    body.append(r"\bottomrule")
    return head, body


def _longtable(layout: TableLayout, options: RenderOptions, colspec: str) -> list[str]:
    head, body = _grid_lines(layout)
    lines = [rf"\begin{{longtable}}{{{colspec}}}"]
    caption = ""
    if options.title:
        caption += rf"\caption{{{options.title}}}"
    if options.label:
        caption += rf"\label{{{options.label}}}"
    if caption:
        lines.append(caption + r" \\")
    lines.extend(head)
    lines.append(r"\endhead")
    lines.extend(body)
    if options.note:
        lines.append(rf"\multicolumn{{{layout.n_columns}}}{{l}}{{\footnotesize {options.note}}} \\")
    lines.append(r"\end{longtable}")
    return lines


def _float(layout: TableLayout, options: RenderOptions, colspec: str) -> list[str]:
    head, body = _grid_lines(layout)
    lines = [rf"\begin{{table}}[{options.flt}]", r"\centering"]
    if options.title:
        lines.append(rf"\caption{{{options.title}}}")
    if options.label:
        lines.append(rf"\label{{{options.label}}}")
    if options.tabenv == "tabularx":
        lines.append(rf"\begin{{tabularx}}{{\linewidth}}{{{colspec}}}")
    else:
        lines.append(rf"\begin{{tabular}}{{{colspec}}}")
    lines.extend(head)
    lines.extend(body)
    lines.append(rf"\end{{{options.tabenv}}}")
    if options.note:
        lines.append(rf"\par\smallskip{{\footnotesize {options.note}\par}}")
    lines.append(r"\end{table}")
    return lines


def to_latex(layout: TableLayout, options: RenderOptions) -> str:
    """Serialize ``layout``; title, note and label are passed through untouched."""

    colspec = _column_spec(layout, options)
    if options.tabenv == "longtable":
        lines = _longtable(layout, options, colspec)
    else:
        lines = _float(layout, options, colspec)
    if options.orientation == "landscape":
        lines = [r"\begin{landscape}", *lines, r"\end{landscape}"]
    return "\n".join(lines) + "\n"


__all__ = ["escape_latex", "to_latex"]
