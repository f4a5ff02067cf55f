"""Data models used by the table shaper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

VALUE_LEVEL = "__value__"
NA_LABEL = "NA"


class ShapeSpec(BaseModel):
    """Declares which fields stratify rows and columns and which one is shown."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: List[str] = Field(default_factory=list)
    y: List[str] = Field(default_factory=list)
    value: Union[str, List[str]]
    group: int = Field(default=0, ge=0)
    xabove: bool = False
    fill: str = "-"
    vargroup: Optional[List[Optional[str]]] = None
    yhead: bool = False
    sort: bool = False
    labels: Dict[str, str] = Field(default_factory=dict)
    mancol: Optional[str] = None
    orientation: Literal["portrait", "landscape"] = "portrait"

    @field_validator("x", "y", mode="before")
    @classmethod
    def _coerce_field_list(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @model_validator(mode="after")
    def _check_roles(self) -> "ShapeSpec":
        if not self.value_fields:
            raise ValueError("value must name at least one field")
        if self.group > len(self.x):
            raise ValueError(f"group={self.group} exceeds the number of x fields ({len(self.x)})")
        overlap = set(self.x) & set(self.y)
        if overlap:
            raise ValueError(f"fields used as both x and y: {', '.join(sorted(overlap))}")
        clash = set(self.value_fields) & (set(self.x) | set(self.y))
        if clash:
            raise ValueError(f"value fields also used as stratifiers: {', '.join(sorted(clash))}")
        return self

    @property
    def value_fields(self) -> tuple[str, ...]:
        if isinstance(self.value, str):
            return (self.value,)
        return tuple(self.value)

    @property
    def multi_value(self) -> bool:
        return not isinstance(self.value, str)

    def required_fields(self) -> list[str]:
        """Every field the records must carry, in declaration order."""

        return list(dict.fromkeys([*self.x, *self.y, *self.value_fields]))


def format_key(value: object) -> str:
    """Display text for a stratifier value."""

    if value is None:
        return NA_LABEL
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(slots=True)
class Grid:
    """Shaped table: ordered row/column keys plus the observed cells.

    ``cells`` only holds observed, non-missing values; every other
    (row-key, column-key) pair resolves to ``fill``.
    """

    spec: ShapeSpec
    row_fields: tuple[str, ...]
    col_fields: tuple[str, ...]
    row_keys: list[tuple]
    col_keys: list[tuple]
    cells: dict[tuple[tuple, tuple], object] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    listing: bool = False

    @property
    def fill(self) -> str:
        return self.spec.fill

    @property
    def n_rows(self) -> int:
        return len(self.row_keys)

    @property
    def n_cols(self) -> int:
        return len(self.col_keys)

    def cell(self, row_key: tuple, col_key: tuple) -> object:
        return self.cells.get((row_key, col_key), self.fill)

    def has_cell(self, row_key: tuple, col_key: tuple) -> bool:
        return (row_key, col_key) in self.cells

    def label_for(self, field_name: str) -> str:
        """Display label for a field; value-level columns carry no title."""

        if field_name == VALUE_LEVEL:
            return ""
        return self.labels.get(field_name, field_name)

    def key_label(self, field_name: str, value: object) -> str:
        if field_name == VALUE_LEVEL:
            return self.label_for(str(value))
        return format_key(value)

    def implicit_column_label(self) -> str:
        """Label of the single implicit column used when ``y`` is empty."""

        return self.label_for(self.spec.value_fields[0])

    def to_frame(self) -> pd.DataFrame:
        """Expose the grid as a wide DataFrame (fill applied)."""

        data = [[self.cell(rk, ck) for ck in self.col_keys] for rk in self.row_keys]
        if self.row_fields:
            index = pd.MultiIndex.from_tuples(self.row_keys, names=list(self.row_fields))
        else:
            index = pd.RangeIndex(len(self.row_keys))
        if self.col_fields:
            columns = pd.MultiIndex.from_tuples(self.col_keys, names=list(self.col_fields))
        else:
            columns = pd.Index([self.implicit_column_label()])
        return pd.DataFrame(data, index=index, columns=columns)


__all__ = ["Grid", "NA_LABEL", "ShapeSpec", "VALUE_LEVEL", "format_key"]
