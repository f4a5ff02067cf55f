"""Table shaper service package."""

from .models import NA_LABEL, VALUE_LEVEL, Grid, ShapeSpec, format_key
from .shaper import listing, shape

__all__ = [
    "Grid",
    "NA_LABEL",
    "ShapeSpec",
    "VALUE_LEVEL",
    "format_key",
    "listing",
    "shape",
]
