"""Turn flat record sets into cross-tabulated grids."""

from __future__ import annotations

import logging
import numbers
from typing import Any, Callable, Iterable, Mapping, Sequence

import pandas as pd

from tabflow.core.errors import AmbiguousCellError, SchemaError

from .models import VALUE_LEVEL, Grid, ShapeSpec

LOGGER = logging.getLogger(__name__)

Records = pd.DataFrame | Iterable[Mapping[str, Any]]
SortKey = Callable[[object], tuple]


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _same_value(left: object, right: object) -> bool:
    # True == 1 == 1.0, but a flag and a count are different cell values
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    try:
        return bool(left == right)
    except (TypeError, ValueError):
        return left is right


def _to_frame(records: Records, required: Sequence[str]) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        missing = [name for name in required if name not in records.columns]
        if missing:
            raise SchemaError(f"records missing required fields: {', '.join(missing)}")
        return records.reset_index(drop=True)

    rows = list(records)
    for idx, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise SchemaError(f"record {idx} is not a mapping: {type(row).__name__}")
        missing = [name for name in required if name not in row]
        if missing:
            raise SchemaError(f"record {idx} missing required fields: {', '.join(missing)}")
    if not rows:
        return pd.DataFrame(columns=list(required))
    # object dtype keeps ints next to None from being widened to float;
    # tolist() below hands back the original python scalars
    return pd.DataFrame(rows, dtype=object)


def _normalize_key(field_name: str, value: object) -> object:
    if not pd.api.types.is_scalar(value) and value is not None:
        raise SchemaError(f"field {field_name!r} holds a non-scalar value: {value!r}")
    if _is_missing(value):
        return None
    return value


def _key_columns(frame: pd.DataFrame, fields: Sequence[str]) -> list[tuple]:
    if not fields:
        return [()] * len(frame)
    columns = [[_normalize_key(name, value) for value in frame[name].tolist()] for name in fields]
    return list(zip(*columns))


def _natural_sort_key(value: object) -> tuple:
    if value is None:
        return (3, 0, "")
    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        return (1, float(value), "")
    return (2, 0, str(value))


def _level_sort_key(frame: pd.DataFrame, field_name: str, value_fields: Sequence[str]) -> SortKey:
    if field_name == VALUE_LEVEL:
        order = {name: idx for idx, name in enumerate(value_fields)}
        return lambda value: (0, order.get(value, len(order)), "")
    series = frame[field_name]
    if isinstance(series.dtype, pd.CategoricalDtype):
        order = {cat: idx for idx, cat in enumerate(series.cat.categories)}
        return lambda value: (0, order[value], "") if value in order else _natural_sort_key(value)
    return _natural_sort_key


def _sort_keys(
    keys: list[tuple],
    frame: pd.DataFrame,
    fields: Sequence[str],
    value_fields: Sequence[str],
) -> list[tuple]:
    level_keys = [_level_sort_key(frame, name, value_fields) for name in fields]
    return sorted(keys, key=lambda key: tuple(fn(part) for fn, part in zip(level_keys, key)))


def _resolve_labels(records: Records, spec_labels: Mapping[str, str]) -> dict[str, str]:
    labels: dict[str, str] = {}
    if isinstance(records, pd.DataFrame):
        attached = records.attrs.get("labels") or {}
        labels.update({str(k): str(v) for k, v in attached.items()})
    labels.update(spec_labels)
    return labels


def shape(records: Records, spec: ShapeSpec) -> Grid:
    """Cross-tabulate ``records`` according to ``spec``.

    Row and column keys follow first-seen order unless ``spec.sort`` is set.

    Raises:
        SchemaError: A named field is absent or holds non-scalar keys.
        AmbiguousCellError: Two distinct values land on the same cell.
    """

    frame = _to_frame(records, spec.required_fields())
    value_fields = spec.value_fields
    col_fields = tuple(spec.y) + ((VALUE_LEVEL,) if spec.multi_value else ())

    row_keys_by_pos = _key_columns(frame, spec.x)
    col_keys_by_pos = _key_columns(frame, spec.y)

    observed_rows: dict[tuple, None] = {}
    observed_cols: dict[tuple, None] = {}
    candidates: dict[tuple[tuple, tuple], list[object]] = {}

    value_columns = {name: frame[name].tolist() for name in value_fields}
    for pos in range(len(frame)):
        row_key = row_keys_by_pos[pos]
        observed_rows.setdefault(row_key, None)
        for name in value_fields:
            col_key = col_keys_by_pos[pos] + ((name,) if spec.multi_value else ())
            observed_cols.setdefault(col_key, None)
            value = value_columns[name][pos]
            if _is_missing(value):
                continue
            bucket = candidates.setdefault((row_key, col_key), [])
            if not any(_same_value(value, seen) for seen in bucket):
                bucket.append(value)

    for (row_key, col_key), values in candidates.items():
        if len(values) > 1:
            raise AmbiguousCellError(row_key, col_key, values)

    row_keys = list(observed_rows)
    col_keys = list(observed_cols)
    if frame.empty and not spec.x:
        row_keys = [()]
    if not col_keys and not spec.y:
        col_keys = [(name,) for name in value_fields] if spec.multi_value else [()]

    if spec.sort:
        row_keys = _sort_keys(row_keys, frame, spec.x, value_fields)
        col_keys = _sort_keys(col_keys, frame, col_fields, value_fields)

    grid = Grid(
        spec=spec,
        row_fields=tuple(spec.x),
        col_fields=col_fields,
        row_keys=row_keys,
        col_keys=col_keys,
        cells={key: values[0] for key, values in candidates.items()},
        labels=_resolve_labels(records, spec.labels),
    )
    LOGGER.debug(
        "Shaped %s records into %sx%s grid (%s filled cells)",
        len(frame),
        grid.n_rows,
        grid.n_cols,
        grid.n_rows * grid.n_cols - len(grid.cells),
    )
    return grid


def listing(
    records: Records,
    fields: Sequence[str] | None = None,
    *,
    labels: Mapping[str, str] | None = None,
    fill: str = "-",
) -> Grid:
    """Build a plain listing grid: one row per record, one column per field."""

    if fields is None:
        if isinstance(records, pd.DataFrame):
            fields = [str(col) for col in records.columns]
        else:
            records = list(records)
            fields = list(records[0].keys()) if records else []
    if not fields:
        raise SchemaError("listing needs at least one field")
    fields = list(fields)
    frame = _to_frame(records, fields)
    spec = ShapeSpec(value=fields, fill=fill, labels=dict(labels or {}))

    cells: dict[tuple[tuple, tuple], object] = {}
    for name in fields:
        for pos, value in enumerate(frame[name].tolist()):
            if not _is_missing(value):
                cells[((pos,), (name,))] = value

    return Grid(
        spec=spec,
        row_fields=(),
        col_fields=(VALUE_LEVEL,),
        row_keys=[(pos,) for pos in range(len(frame))],
        col_keys=[(name,) for name in fields],
        cells=cells,
        labels=_resolve_labels(records, spec.labels),
        listing=True,
    )


__all__ = ["listing", "shape"]
