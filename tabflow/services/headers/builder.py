"""Hierarchical header trees for shaped grids."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Sequence

from tabflow.core.errors import HeaderMismatchError
from tabflow.services.shaper.models import VALUE_LEVEL, Grid

Axis = Literal["row", "column"]


@dataclass(slots=True)
class HeaderNode:
    """One header label covering ``span`` consecutive leaves from ``start``."""

    label: str
    span: int
    level: int
    start: int = 0
    children: list["HeaderNode"] = field(default_factory=list)

    @property
    def end(self) -> int:
        return self.start + self.span


@dataclass(slots=True)
class HeaderTree:
    """Header levels for one axis; level 0 is the outermost."""

    axis: Axis
    fields: tuple[str, ...]
    titles: tuple[str, ...]
    levels: list[list[HeaderNode]]
    leaf_count: int
    root: HeaderNode

    @property
    def depth(self) -> int:
        return len(self.levels)

    def node_at(self, level: int, leaf: int) -> HeaderNode:
        for node in self.levels[level]:
            if node.start <= leaf < node.end:
                return node
        raise IndexError(f"no {self.axis} header node covers leaf {leaf} at level {level}")

    def title_band(self, level: int) -> list[HeaderNode]:
        """Nodes showing the level's field title over each parent node."""

        parents = self.levels[level - 1] if level > 0 else [self.root]
        title = self.titles[level]
        return [
            HeaderNode(label=title, span=parent.span, level=level, start=parent.start)
            for parent in parents
            if parent.span
        ]

    def validate(self) -> None:
        """Check that every level covers exactly the leaves and nests in its parent."""

        for level, nodes in enumerate(self.levels):
            total = sum(node.span for node in nodes)
            if total != self.leaf_count:
                raise HeaderMismatchError(
                    f"{self.axis} header level {level} spans {total} leaves, expected {self.leaf_count}"
                )
            cursor = 0
            for node in nodes:
                if node.start != cursor or node.span < 1:
                    raise HeaderMismatchError(
                        f"{self.axis} header level {level} has a gap or overlap at leaf {cursor}"
                    )
                cursor = node.end
        for parent in [self.root, *(node for nodes in self.levels for node in nodes)]:
            if parent.children and sum(child.span for child in parent.children) != parent.span:
                raise HeaderMismatchError(
                    f"{self.axis} header {parent.label!r} spans {parent.span} but its children "
                    f"span {sum(child.span for child in parent.children)}"
                )


@dataclass(slots=True)
class TableHeaders:
    rows: HeaderTree
    columns: HeaderTree
    vargroup: list[HeaderNode] | None = None
    yhead: bool = False

    def column_title_levels(self) -> list[int]:
        """Column levels that get a title band when ``yhead`` is on."""

        if not self.yhead:
            return []
        return [
            level
            for level, name in enumerate(self.columns.fields)
            if name and name != VALUE_LEVEL and self.columns.titles[level]
        ]

    def validate(self) -> None:
        self.rows.validate()
        self.columns.validate()
        if self.vargroup is not None:
            total = sum(node.span for node in self.vargroup)
            if total != self.columns.leaf_count:
                raise HeaderMismatchError(
                    f"vargroup band spans {total} columns, expected {self.columns.leaf_count}"
                )


def _collapse(grid: Grid, keys: Sequence[tuple], fields: Sequence[str]) -> list[list[HeaderNode]]:
    levels: list[list[HeaderNode]] = []
    for level, name in enumerate(fields):
        nodes: list[HeaderNode] = []
        previous: tuple | None = None
        for leaf, key in enumerate(keys):
            prefix = key[: level + 1]
            if nodes and prefix == previous:
                nodes[-1].span += 1
            else:
                nodes.append(
                    HeaderNode(label=grid.key_label(name, key[level]), span=1, level=level, start=leaf)
                )
            previous = prefix
        levels.append(nodes)
    return levels


def _link(root: HeaderNode, levels: list[list[HeaderNode]]) -> None:
    if not levels:
        return
    root.children = list(levels[0])
    for parents, children in zip(levels, levels[1:]):
        cursor = 0
        for child in children:
            while parents[cursor].end <= child.start:
                cursor += 1
            parents[cursor].children.append(child)


def _tree(grid: Grid, axis: Axis, keys: Sequence[tuple], fields: Sequence[str]) -> HeaderTree:
    levels = _collapse(grid, keys, fields)
    titles = tuple(grid.label_for(name) for name in fields)
    root = HeaderNode(label="", span=len(keys), level=-1, start=0)
    _link(root, levels)
    return HeaderTree(
        axis=axis,
        fields=tuple(fields),
        titles=titles,
        levels=levels,
        leaf_count=len(keys),
        root=root,
    )


def build_row_headers(grid: Grid) -> HeaderTree:
    """Row header tree; listings and x-less grids have no levels."""

    return _tree(grid, "row", grid.row_keys, grid.row_fields)


def build_column_headers(grid: Grid) -> HeaderTree:
    """Column header tree; a y-less grid gets one level naming the value field."""

    if grid.col_fields:
        return _tree(grid, "column", grid.col_keys, grid.col_fields)
    label = grid.implicit_column_label()
    nodes = [HeaderNode(label=label, span=1, level=0, start=leaf) for leaf in range(grid.n_cols)]
    root = HeaderNode(label="", span=grid.n_cols, level=-1, start=0, children=list(nodes))
    return HeaderTree(
        axis="column",
        fields=("",),
        titles=("",),
        levels=[nodes],
        leaf_count=grid.n_cols,
        root=root,
    )


def build_vargroup_band(labels: Sequence[str | None], columns: HeaderTree) -> list[HeaderNode]:
    """Top band labelling the natural (level-0) column groups.

    ``labels`` must match the group count or divide it evenly; in the second
    case each label covers ``groups // len(labels)`` consecutive groups.
    """

    groups = columns.levels[0] if columns.levels else []
    if not labels or not groups or len(groups) % len(labels):
        raise HeaderMismatchError(
            f"vargroup has {len(labels)} labels but the table has {len(groups)} column groups"
        )
    per_label = len(groups) // len(labels)
    band: list[HeaderNode] = []
    for idx, label in enumerate(labels):
        members = groups[idx * per_label : (idx + 1) * per_label]
        band.append(
            HeaderNode(
                label=label or "",
                span=sum(member.span for member in members),
                level=-1,
                start=members[0].start,
                children=list(members),
            )
        )
    return band


def build(grid: Grid) -> TableHeaders:
    """Build and validate row and column headers for ``grid``."""

    rows = build_row_headers(grid)
    columns = build_column_headers(grid)
    band = None
    if grid.spec.vargroup is not None:
        band = build_vargroup_band(grid.spec.vargroup, columns)
    headers = TableHeaders(rows=rows, columns=columns, vargroup=band, yhead=grid.spec.yhead)
    headers.validate()
    return headers


__all__ = [
    "HeaderNode",
    "HeaderTree",
    "TableHeaders",
    "build",
    "build_column_headers",
    "build_row_headers",
    "build_vargroup_band",
]
