from __future__ import annotations

import math

import pytest

from tabflow.core.errors import ColumnSpecMismatchError
from tabflow.services.headers import build
from tabflow.services.render import build_layout, check_colspec, format_value, parse_colspec
from tabflow.services.shaper import ShapeSpec, shape

FOOD = [
    {"Region": "EU", "Category": "Fruit", "Sub": "Apple", "arm": "T", "n": 1},
    {"Region": "EU", "Category": "Fruit", "Sub": "Pear", "arm": "T", "n": 2},
    {"Region": "EU", "Category": "Veg", "Sub": "Leek", "arm": "T", "n": 3},
    {"Region": "US", "Category": "Veg", "Sub": "Kale", "arm": "T", "n": 4},
]


def _layout(records, spec, **kwargs):
    grid = shape(records, spec)
    return build_layout(grid, build(grid), **kwargs)


@pytest.mark.parametrize(
    "spec, expected",
    [
        ("lcr", ["l", "c", "r"]),
        ("|l|c|r|", ["l", "c", "r"]),
        ("@{}lp{3cm}*{3}{r}@{}", ["l", "l", "r", "r", "r"]),
        (r">{\bfseries}l S X", ["l", "r", "l"]),
        ("*{2}{l*{2}{c}}", ["l", "c", "c", "l", "c", "c"]),
    ],
)
def test_parse_colspec(spec, expected) -> None:
    assert parse_colspec(spec) == expected


@pytest.mark.parametrize("spec", ["p{3cm", "*{x}{l}", "l1c", "l}"])
def test_parse_colspec_rejects_malformed(spec) -> None:
    with pytest.raises(ColumnSpecMismatchError):
        parse_colspec(spec)


def test_check_colspec_reports_counts() -> None:
    with pytest.raises(ColumnSpecMismatchError) as excinfo:
        check_colspec("lcc", 2)

    assert excinfo.value.declared == 3
    assert excinfo.value.expected == 2


def test_format_value() -> None:
    assert format_value(1.23456, 2) == "1.23"
    assert format_value(1.5) == "1.5"
    assert format_value(7, 2) == "7"
    assert format_value(None, fill="--") == "--"
    assert format_value(math.nan, fill=".") == "."
    assert format_value("text") == "text"


def test_scenario_layout(scenario_records, scenario_spec) -> None:
    layout = _layout(scenario_records, scenario_spec)

    assert layout.n_columns == 3
    assert layout.stub_columns == 1
    assert layout.alignments == ["l", "r", "r"]
    assert [[cell.text for cell in row.cells] for row in layout.header] == [["x", "G1", "G2"]]
    assert [[cell.text for cell in row.cells] for row in layout.body] == [["A", "1", "2"], ["B", "3", "-"]]
    assert layout.logical_cells() == {
        (("A",), ("G1",), "1"),
        (("A",), ("G2",), "2"),
        (("B",), ("G1",), "3"),
        (("B",), ("G2",), "-"),
    }


def test_group_turns_leading_level_into_banner_rows() -> None:
    layout = _layout(FOOD[:3], ShapeSpec(x=["Category", "Sub"], y="arm", value="n", group=1))

    assert layout.stub_columns == 1
    assert [row.kind for row in layout.body] == ["banner", "data", "data", "banner", "data"]
    banners = [row.cells[0] for row in layout.body if row.kind == "banner"]
    assert [cell.text for cell in banners] == ["Fruit", "Veg"]
    assert all(cell.colspan == layout.n_columns for cell in banners)
    assert layout.header[-1].cells[0].text == "Sub"


def test_xabove_hoists_level_into_label_rows() -> None:
    layout = _layout(FOOD[:3], ShapeSpec(x=["Category", "Sub"], y="arm", value="n", xabove=True))

    assert layout.stub_columns == 1
    assert [row.kind for row in layout.body] == ["label", "data", "data", "label", "data"]
    first_data = layout.body[1].cells[0]
    assert (first_data.text, first_data.indent) == ("Apple", 1)
    assert layout.body[0].cells[0].text == "Fruit"


def test_group_applies_before_xabove() -> None:
    spec = ShapeSpec(x=["Region", "Category", "Sub"], y="arm", value="n", group=1, xabove=True)
    layout = _layout(FOOD, spec)

    assert [(row.kind, row.cells[0].text) for row in layout.body] == [
        ("banner", "EU"),
        ("label", "Fruit"),
        ("data", "Apple"),
        ("data", "Pear"),
        ("label", "Veg"),
        ("data", "Leek"),
        ("banner", "US"),
        ("label", "Veg"),
        ("data", "Kale"),
    ]


def test_xabove_needs_two_levels_below_banners() -> None:
    spec = ShapeSpec(x=["Category", "Sub"], y="arm", value="n", group=1, xabove=True)
    layout = _layout(FOOD[:3], spec)

    assert "label" not in {row.kind for row in layout.body}


def test_outer_stub_levels_use_rowspan() -> None:
    layout = _layout(FOOD[:3], ShapeSpec(x=["Category", "Sub"], y="arm", value="n"))

    first, second, third = layout.body
    assert (first.cells[0].text, first.cells[0].rowspan) == ("Fruit", 2)
    assert second.cells[0].covered
    assert (third.cells[0].text, third.cells[0].rowspan) == ("Veg", 1)


def test_vargroup_and_yhead_header_rows() -> None:
    records = [{"row": 1, "arm": arm, "v": idx} for idx, arm in enumerate("ABCD")]
    spec = ShapeSpec(x="row", y="arm", value="v", vargroup=["Active", "Control"], yhead=True)
    layout = _layout(records, spec)

    band, title, leaves = layout.header
    assert [(cell.text, cell.colspan) for cell in band.cells] == [("", 1), ("Active", 2), ("Control", 2)]
    assert band.rule_under == [(2, 3), (4, 5)]
    assert [(cell.text, cell.colspan) for cell in title.cells] == [("", 1), ("arm", 4)]
    assert [cell.text for cell in leaves.cells] == ["row", "A", "B", "C", "D"]


def test_mancol_overrides_alignment(scenario_records, scenario_spec) -> None:
    layout = _layout(scenario_records, scenario_spec, mancol="l|cc")

    assert layout.alignments == ["l", "c", "c"]


def test_mancol_count_mismatch(scenario_records, scenario_spec) -> None:
    with pytest.raises(ColumnSpecMismatchError):
        _layout(scenario_records, scenario_spec, mancol="lc")


def test_every_row_covers_table_width() -> None:
    spec = ShapeSpec(x=["Region", "Category", "Sub"], y="arm", value="n", group=1, xabove=True, yhead=True)
    layout = _layout(FOOD, spec)

    for row in [*layout.header, *layout.body]:
        assert row.width == layout.n_columns
