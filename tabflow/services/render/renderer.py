"""Render shaped grids into named fragments and register them."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Mapping, Optional, Sequence

from tabflow.config import CompileSettings
from tabflow.core.errors import TabflowError
from tabflow.core.paths import Flavor
from tabflow.services.assembler.assembler import DocumentMetadata, assemble
from tabflow.services.compile.base import CompileResult, Compiler, compiler_from_config, run_compiler
from tabflow.services.headers.builder import TableHeaders, build
from tabflow.services.shaper.models import Grid, ShapeSpec
from tabflow.services.shaper.shaper import Records, listing, shape
from tabflow_io.utils.paths import fragment_path, preview_path
from tabflow_io.writer import write_text_atomic

from .html import to_html
from .latex import to_latex
from .layout import TableLayout, build_layout
from .options import RenderOptions

if TYPE_CHECKING:
    from tabflow_persist.registry import FragmentRegistry

LOGGER = logging.getLogger(__name__)

SERIALIZERS: dict[str, Callable[[TableLayout, RenderOptions], str]] = {
    "latex": to_latex,
    "html": to_html,
}


@dataclass(frozen=True, slots=True)
class Fragment:
    name: str
    flavor: Flavor
    body: str
    path: Path
    directory: Path
    tag: Optional[str] = None
    source: Optional[str] = None
    title: Optional[str] = None


class FragmentRenderer:
    """Serialises grids, writes fragment files and records them in a registry."""

    def __init__(
        self,
        registry: "FragmentRegistry",
        *,
        compiler: Compiler | None = None,
        compile_settings: CompileSettings | None = None,
    ) -> None:
        self.registry = registry
        self.compiler = compiler
        self.compile_settings = compile_settings or CompileSettings()

    def layout(self, grid: Grid, headers: TableHeaders, options: RenderOptions) -> TableLayout:
        resolved = options.resolved(grid.spec)
        headers.validate()
        return build_layout(grid, headers, mancol=resolved.mancol, digits=resolved.digits)

    def render_body(self, grid: Grid, headers: TableHeaders, options: RenderOptions) -> str:
        """Markup for ``grid`` without touching the filesystem or the registry."""

        resolved = options.resolved(grid.spec)
        layout = self.layout(grid, headers, resolved)
        return SERIALIZERS[resolved.flavor](layout, resolved)

    def render(
        self,
        grid: Grid,
        headers: TableHeaders,
        options: RenderOptions,
        *,
        name: str,
        directory: str | os.PathLike[str],
    ) -> Fragment:
        """Write ``<directory>/<name>.<ext>`` and register it.

        Every check runs before the file is written; if registration fails the
        previous file content (or its absence) is restored.
        """

        path = fragment_path(directory, name, options.flavor)
        body = self.render_body(grid, headers, options)
        previous = path.read_text(encoding="utf-8") if path.exists() else None
        write_text_atomic(path, body)
        try:
            self.registry.register(
                directory,
                name,
                body,
                options.flavor,
                tag=options.tag,
                source=options.source,
                path=path.resolve(),
            )
        except TabflowError:
            if previous is None:
                path.unlink()
            else:
                write_text_atomic(path, previous)
            raise
        fragment = Fragment(
            name=name,
            flavor=options.flavor,
            body=body,
            path=path.resolve(),
            directory=path.resolve().parent,
            tag=options.tag,
            source=options.source,
            title=options.title,
        )
        LOGGER.info("Rendered %s fragment %s (%s rows x %s columns)", options.flavor, path, grid.n_rows, grid.n_cols)
        if options.show:
            self.preview(fragment)
        return fragment

    def preview(self, fragment: Fragment) -> CompileResult:
        """Wrap ``fragment`` in the default template and hand it to the compiler."""

        document = assemble(
            [fragment.body],
            None,
            DocumentMetadata(title=fragment.title),
            flavor=fragment.flavor,
        )
        target = preview_path(fragment.directory, fragment.name, fragment.flavor)
        write_text_atomic(target, document.body)
        compiler = self.compiler or compiler_from_config(self.compile_settings, fragment.flavor)
        return run_compiler(compiler, target, fragment.flavor)


def render_table(
    records: Records,
    spec: ShapeSpec,
    options: RenderOptions,
    *,
    name: str,
    directory: str | os.PathLike[str],
    renderer: FragmentRenderer,
) -> Fragment:
    """Shape, build headers and render in one call."""

    grid = shape(records, spec)
    return renderer.render(grid, build(grid), options, name=name, directory=directory)


def render_listing(
    records: Records,
    options: RenderOptions,
    *,
    name: str,
    directory: str | os.PathLike[str],
    renderer: FragmentRenderer,
    fields: Sequence[str] | None = None,
    labels: Mapping[str, str] | None = None,
    fill: str = "-",
) -> Fragment:
    grid = listing(records, fields, labels=labels, fill=fill)
    return renderer.render(grid, build(grid), options, name=name, directory=directory)


__all__ = ["Fragment", "FragmentRenderer", "SERIALIZERS", "render_listing", "render_table"]
