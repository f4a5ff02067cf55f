"""Header builder service package."""

from .builder import (
    HeaderNode,
    HeaderTree,
    TableHeaders,
    build,
    build_column_headers,
    build_row_headers,
    build_vargroup_band,
)

__all__ = [
    "HeaderNode",
    "HeaderTree",
    "TableHeaders",
    "build",
    "build_column_headers",
    "build_row_headers",
    "build_vargroup_band",
]
