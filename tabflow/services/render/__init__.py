"""Fragment renderer service package."""

from .colspec import check_colspec, parse_colspec
from .html import to_html
from .latex import escape_latex, to_latex
from .layout import LayoutCell, LayoutRow, TableLayout, build_layout, format_value
from .options import RenderOptions
from .renderer import Fragment, FragmentRenderer, render_listing, render_table

__all__ = [
    "Fragment",
    "FragmentRenderer",
    "LayoutCell",
    "LayoutRow",
    "RenderOptions",
    "TableLayout",
    "build_layout",
    "check_colspec",
    "escape_latex",
    "format_value",
    "parse_colspec",
    "render_listing",
    "render_table",
    "to_html",
    "to_latex",
]
