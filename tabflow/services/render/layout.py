"""Flavor-neutral table layout shared by the LaTeX and HTML serializers.

A ``TableLayout`` is a list of header rows and body rows made of cells with
explicit colspan/rowspan. Both serializers walk the same layout, so the two
flavors always agree on spans, values and the fill literal.

Row stub handling:
    ``group`` turns the leading N row levels into banner rows spanning the
    full width. ``xabove`` then hoists level N into a label row above its run
    and shows level N+1 indented in the same stub column; it needs at least
    two non-banner levels and is ignored otherwise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal, Optional

from tabflow.core.errors import HeaderMismatchError
from tabflow.services.headers.builder import TableHeaders
from tabflow.services.shaper.models import Grid

from .colspec import check_colspec

RowKind = Literal["header", "banner", "label", "data"]


@dataclass(slots=True)
class LayoutCell:
    text: str
    role: str
    colspan: int = 1
    rowspan: int = 1
    covered: bool = False
    indent: int = 0
    align: str = "l"
    key: Optional[tuple[tuple, tuple]] = None


@dataclass(slots=True)
class LayoutRow:
    kind: RowKind
    cells: list[LayoutCell]
    level: int = 0
    # 1-based inclusive column ranges that get a partial rule below the row
    rule_under: list[tuple[int, int]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return sum(cell.colspan for cell in self.cells)


@dataclass(slots=True)
class TableLayout:
    n_columns: int
    stub_columns: int
    alignments: list[str]
    header: list[LayoutRow]
    body: list[LayoutRow]
    fill: str

    def logical_cells(self) -> set[tuple[tuple, tuple, str]]:
        """(row-key, column-key, text) for every data cell."""

        return {
            (cell.key[0], cell.key[1], cell.text)
            for row in self.body
            for cell in row.cells
            if cell.key is not None
        }


@dataclass(slots=True)
class _StubPlan:
    banner_levels: int
    hoisted: Optional[int]
    stub_levels: list[int]


def format_value(value: object, digits: Optional[int] = None, fill: str = "-") -> str:
    """Cell text for ``value``; missing values show ``fill``."""

    if value is None:
        return fill
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return fill
        if digits is not None:
            return f"{value:.{digits}f}"
        return str(value)
    if isinstance(value, Decimal) and digits is not None:
        return f"{value:.{digits}f}"
    return str(value)


def _plan(grid: Grid) -> _StubPlan:
    depth = len(grid.row_fields)
    banners = grid.spec.group
    if grid.spec.xabove and depth - banners >= 2:
        return _StubPlan(banners, banners, list(range(banners + 1, depth)))
    return _StubPlan(banners, None, list(range(banners, depth)))


def _blank_stub(stub: int) -> list[LayoutCell]:
    if not stub:
        return []
    return [LayoutCell("", "stub-title", colspan=stub)]


def _ranges(nodes, offset: int) -> list[tuple[int, int]]:
    return [(offset + node.start + 1, offset + node.end) for node in nodes if node.label]


def _header_rows(grid: Grid, headers: TableHeaders, plan: _StubPlan) -> list[LayoutRow]:
    stub = len(plan.stub_levels)
    rows: list[LayoutRow] = []

    if headers.vargroup is not None:
        cells = _blank_stub(stub) + [
            LayoutCell(node.label, "band", colspan=node.span, align="c") for node in headers.vargroup
        ]
        rows.append(LayoutRow("header", cells, level=-1, rule_under=_ranges(headers.vargroup, stub)))

    columns = headers.columns
    title_levels = set(headers.column_title_levels())
    last = columns.depth - 1
    for level, nodes in enumerate(columns.levels):
        if level in title_levels:
            band = columns.title_band(level)
            cells = _blank_stub(stub) + [
                LayoutCell(node.label, "title", colspan=node.span, align="c") for node in band
            ]
            rows.append(LayoutRow("header", cells, level=level, rule_under=_ranges(band, stub)))

        if level == last and stub:
            stub_cells = [
                LayoutCell(grid.label_for(grid.row_fields[row_level]), "stub-title")
                for row_level in plan.stub_levels
            ]
        else:
            stub_cells = _blank_stub(stub)
        cells = stub_cells + [
            LayoutCell(node.label, "header", colspan=node.span, align="c") for node in nodes
        ]
        rule_under = [] if level == last else _ranges(nodes, stub)
        rows.append(LayoutRow("header", cells, level=level, rule_under=rule_under))
    return rows


def _body_rows(
    grid: Grid,
    headers: TableHeaders,
    plan: _StubPlan,
    n_columns: int,
    alignments: list[str],
    digits: Optional[int],
) -> list[LayoutRow]:
    stub = len(plan.stub_levels)
    fields = grid.row_fields
    rows: list[LayoutRow] = []
    previous: Optional[tuple] = None
    for leaf, row_key in enumerate(grid.row_keys):
        for level in range(plan.banner_levels):
            if previous is None or previous[: level + 1] != row_key[: level + 1]:
                text = grid.key_label(fields[level], row_key[level])
                cell = LayoutCell(text, "banner", colspan=n_columns, indent=level)
                rows.append(LayoutRow("banner", [cell], level=level))

        hoisted = plan.hoisted
        if hoisted is not None and (previous is None or previous[: hoisted + 1] != row_key[: hoisted + 1]):
            cells = [LayoutCell(grid.key_label(fields[hoisted], row_key[hoisted]), "label")]
            if n_columns > 1:
                cells.append(LayoutCell("", "empty", colspan=n_columns - 1))
            rows.append(LayoutRow("label", cells, level=hoisted))

        cells: list[LayoutCell] = []
        for column, level in enumerate(plan.stub_levels):
            indent = 1 if hoisted is not None and column == 0 else 0
            node = headers.rows.node_at(level, leaf)
            if node.start == leaf:
                cells.append(LayoutCell(node.label, "stub", rowspan=node.span, indent=indent))
            else:
                cells.append(LayoutCell("", "stub", covered=True, indent=indent))
        for offset, col_key in enumerate(grid.col_keys):
            text = format_value(grid.cell(row_key, col_key), digits, grid.fill)
            cells.append(
                LayoutCell(text, "data", align=alignments[stub + offset], key=(row_key, col_key))
            )
        rows.append(LayoutRow("data", cells))
        previous = row_key
    return rows


def build_layout(
    grid: Grid,
    headers: TableHeaders,
    *,
    mancol: Optional[str] = None,
    digits: Optional[int] = None,
) -> TableLayout:
    """Lay out ``grid`` with its ``headers``.

    Raises:
        ColumnSpecMismatchError: ``mancol`` declares a different column count.
        HeaderMismatchError: A row does not cover exactly the table width.
    """

    plan = _plan(grid)
    stub = len(plan.stub_levels)
    n_columns = stub + grid.n_cols
    if mancol:
        alignments = check_colspec(mancol, n_columns)
    else:
        data_align = "l" if grid.listing else "r"
        alignments = ["l"] * stub + [data_align] * grid.n_cols

    header = _header_rows(grid, headers, plan)
    body = _body_rows(grid, headers, plan, n_columns, alignments, digits)
    for row in [*header, *body]:
        if row.width != n_columns:
            raise HeaderMismatchError(
                f"{row.kind} row covers {row.width} columns, table has {n_columns}"
            )
    return TableLayout(
        n_columns=n_columns,
        stub_columns=stub,
        alignments=alignments,
        header=header,
        body=body,
        fill=grid.fill,
    )


__all__ = ["LayoutCell", "LayoutRow", "TableLayout", "build_layout", "format_value"]
