"""Formatting options accepted by the fragment renderer."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from tabflow.core.paths import Flavor
from tabflow.services.shaper.models import ShapeSpec

TableEnv = Literal["tabular", "tabularx", "longtable"]
Orientation = Literal["portrait", "landscape"]


class RenderOptions(BaseModel):
    """Passthrough metadata for one rendered fragment.

    ``orientation`` and ``mancol`` fall back to the shape spec when unset.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    flavor: Flavor = "latex"
    title: Optional[str] = None
    tablenote: Optional[str] = None
    footnote: Optional[str] = None
    label: Optional[str] = None
    orientation: Optional[Orientation] = None
    flt: str = "htbp"
    tabenv: TableEnv = "tabular"
    mancol: Optional[str] = None
    digits: Optional[int] = Field(default=None, ge=0)
    tag: Optional[str] = None
    source: Optional[str] = None
    show: bool = False

    @property
    def note(self) -> Optional[str]:
        return self.tablenote or self.footnote

    def resolved(self, spec: ShapeSpec) -> "RenderOptions":
        """Copy with spec-level layout hints filled in."""

        return self.model_copy(
            update={
                "orientation": self.orientation or spec.orientation,
                "mancol": self.mancol if self.mancol is not None else spec.mancol,
            }
        )


__all__ = ["Orientation", "RenderOptions", "TableEnv"]
