from __future__ import annotations

import math

import pandas as pd
import pytest

from tabflow.core.errors import AmbiguousCellError, SchemaError
from tabflow.services.shaper import NA_LABEL, VALUE_LEVEL, ShapeSpec, format_key, listing, shape


def test_scenario_grid_fills_missing_pair(scenario_records, scenario_spec) -> None:
    grid = shape(scenario_records, scenario_spec)

    assert grid.row_keys == [("A",), ("B",)]
    assert grid.col_keys == [("G1",), ("G2",)]
    assert grid.cell(("A",), ("G1",)) == 1
    assert grid.cell(("A",), ("G2",)) == 2
    assert grid.cell(("B",), ("G1",)) == 3
    assert grid.cell(("B",), ("G2",)) == "-"
    assert not grid.has_cell(("B",), ("G2",))


def test_dataframe_input_matches_mapping_input(scenario_records, scenario_spec) -> None:
    from_frame = shape(pd.DataFrame(scenario_records), scenario_spec)
    from_rows = shape(scenario_records, scenario_spec)

    assert from_frame.row_keys == from_rows.row_keys
    assert from_frame.col_keys == from_rows.col_keys
    assert from_frame.cells == from_rows.cells


def test_keys_follow_first_seen_order() -> None:
    records = [
        {"x": "z", "y": "b", "v": 1},
        {"x": "a", "y": "a", "v": 2},
        {"x": "m", "y": "b", "v": 3},
    ]
    grid = shape(records, ShapeSpec(x="x", y="y", value="v"))

    assert grid.row_keys == [("z",), ("a",), ("m",)]
    assert grid.col_keys == [("b",), ("a",)]


def test_sort_orders_numbers_before_strings_and_missing_last() -> None:
    records = [
        {"x": "b", "y": 1, "v": 1},
        {"x": None, "y": 1, "v": 2},
        {"x": 10, "y": 1, "v": 3},
        {"x": 2, "y": 1, "v": 4},
        {"x": "a", "y": 1, "v": 5},
    ]
    grid = shape(records, ShapeSpec(x="x", y="y", value="v", sort=True))

    assert grid.row_keys == [(2,), (10,), ("a",), ("b",), (None,)]


def test_sort_respects_categorical_order() -> None:
    frame = pd.DataFrame(
        {
            "size": pd.Categorical(["small", "large", "medium"], categories=["small", "medium", "large"]),
            "arm": ["T", "T", "T"],
            "n": [1, 2, 3],
        }
    )
    grid = shape(frame, ShapeSpec(x="size", y="arm", value="n", sort=True))

    assert grid.row_keys == [("small",), ("medium",), ("large",)]


def test_identical_duplicates_are_accepted() -> None:
    records = [
        {"x": "A", "y": "G1", "v": 1},
        {"x": "A", "y": "G1", "v": 1},
    ]
    grid = shape(records, ShapeSpec(x="x", y="y", value="v"))

    assert grid.cell(("A",), ("G1",)) == 1


def test_conflicting_duplicates_raise() -> None:
    records = [
        {"x": "A", "y": "G1", "v": 1},
        {"x": "A", "y": "G1", "v": 5},
    ]
    with pytest.raises(AmbiguousCellError) as excinfo:
        shape(records, ShapeSpec(x="x", y="y", value="v"))

    assert excinfo.value.row_key == ("A",)
    assert excinfo.value.col_key == ("G1",)
    assert excinfo.value.values == [1, 5]


def test_bool_and_int_on_one_cell_conflict() -> None:
    records = [
        {"x": "A", "y": "G1", "v": True},
        {"x": "A", "y": "G1", "v": 1},
    ]
    with pytest.raises(AmbiguousCellError) as excinfo:
        shape(records, ShapeSpec(x="x", y="y", value="v"))

    assert excinfo.value.values == [True, 1]


def test_missing_field_raises_schema_error() -> None:
    records = [{"x": "A", "y": "G1", "v": 1}, {"x": "B", "v": 2}]

    with pytest.raises(SchemaError, match="record 1"):
        shape(records, ShapeSpec(x="x", y="y", value="v"))


def test_missing_column_in_frame_raises_schema_error() -> None:
    frame = pd.DataFrame({"x": ["A"], "v": [1]})

    with pytest.raises(SchemaError, match="y"):
        shape(frame, ShapeSpec(x="x", y="y", value="v"))


def test_non_scalar_key_raises_schema_error() -> None:
    with pytest.raises(SchemaError, match="non-scalar"):
        shape([{"x": ["A"], "y": "G", "v": 1}], ShapeSpec(x="x", y="y", value="v"))


def test_missing_values_render_as_fill() -> None:
    records = [
        {"x": "A", "y": "G1", "v": 1.5},
        {"x": "A", "y": "G2", "v": math.nan},
    ]
    grid = shape(records, ShapeSpec(x="x", y="y", value="v", fill="n/a"))

    assert grid.col_keys == [("G1",), ("G2",)]
    assert grid.cell(("A",), ("G2",)) == "n/a"


def test_missing_key_is_kept_as_none() -> None:
    frame = pd.DataFrame({"x": ["A", None], "y": ["G", "G"], "v": [1, 2]})
    grid = shape(frame, ShapeSpec(x="x", y="y", value="v"))

    assert grid.row_keys == [("A",), (None,)]
    assert grid.key_label("x", None) == NA_LABEL


def test_integers_next_to_missing_values_stay_integers() -> None:
    records = [
        {"x": 1, "y": "G1", "v": 7},
        {"x": None, "y": "G1", "v": None},
    ]
    grid = shape(records, ShapeSpec(x="x", y="y", value="v"))

    assert grid.row_keys == [(1,), (None,)]
    value = grid.cell((1,), ("G1",))
    assert value == 7 and type(value) is int
    assert type(grid.row_keys[0][0]) is int
    assert grid.cell((None,), ("G1",)) == "-"


def test_no_stratifiers_yield_single_implicit_cell() -> None:
    grid = shape([{"v": 42}], ShapeSpec(value="v"))

    assert grid.row_keys == [()]
    assert grid.col_keys == [()]
    assert grid.cell((), ()) == 42
    assert grid.implicit_column_label() == "v"


def test_empty_records_without_stratifiers_keep_one_row() -> None:
    grid = shape([], ShapeSpec(value="v", fill="."))

    assert grid.row_keys == [()]
    assert grid.col_keys == [()]
    assert grid.cell((), ()) == "."


def test_multiple_value_fields_add_value_level() -> None:
    records = [
        {"arm": "T", "visit": 1, "mean": 2.5, "sd": 0.5},
        {"arm": "P", "visit": 1, "mean": 2.0, "sd": 0.4},
    ]
    grid = shape(records, ShapeSpec(x="visit", y="arm", value=["mean", "sd"]))

    assert grid.col_fields == ("arm", VALUE_LEVEL)
    assert grid.col_keys == [("T", "mean"), ("T", "sd"), ("P", "mean"), ("P", "sd")]
    assert grid.cell((1,), ("P", "sd")) == 0.4
    assert grid.key_label(VALUE_LEVEL, "sd") == "sd"


def test_labels_from_frame_attrs_are_overridden_by_spec() -> None:
    frame = pd.DataFrame({"x": ["A"], "y": ["G"], "v": [1]})
    frame.attrs["labels"] = {"x": "Site", "y": "Group"}
    grid = shape(frame, ShapeSpec(x="x", y="y", value="v", labels={"y": "Arm"}))

    assert grid.label_for("x") == "Site"
    assert grid.label_for("y") == "Arm"
    assert grid.label_for("v") == "v"


def test_to_frame_applies_fill(scenario_records, scenario_spec) -> None:
    frame = shape(scenario_records, scenario_spec).to_frame()

    assert frame.shape == (2, 2)
    assert frame.iloc[1, 1] == "-"
    assert frame.iloc[0, 0] == 1
    assert list(frame.index.names) == ["x"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"x": ["a"], "y": ["a"], "value": "v"},
        {"x": ["a"], "value": "a"},
        {"x": ["a"], "value": "v", "group": 2},
        {"x": ["a"], "value": []},
    ],
)
def test_spec_rejects_inconsistent_roles(kwargs) -> None:
    with pytest.raises(ValueError):
        ShapeSpec(**kwargs)


def test_format_key_renders_integral_floats_without_decimals() -> None:
    assert format_key(3.0) == "3"
    assert format_key(2.5) == "2.5"
    assert format_key(None) == "NA"


def test_listing_builds_one_row_per_record() -> None:
    records = [
        {"id": 1, "name": "Ann", "score": None},
        {"id": 2, "name": "Bob", "score": 7},
    ]
    grid = listing(records, ["name", "score"], labels={"score": "Score"})

    assert grid.listing
    assert grid.row_fields == ()
    assert grid.row_keys == [(0,), (1,)]
    assert grid.col_keys == [("name",), ("score",)]
    assert grid.cell((0,), ("score",)) == "-"
    assert grid.cell((1,), ("name",)) == "Bob"
    assert grid.key_label(VALUE_LEVEL, "score") == "Score"


def test_listing_defaults_to_all_columns() -> None:
    frame = pd.DataFrame({"a": [1], "b": ["x"]})
    grid = listing(frame)

    assert grid.col_keys == [("a",), ("b",)]


def test_listing_without_fields_raises() -> None:
    with pytest.raises(SchemaError):
        listing([])
