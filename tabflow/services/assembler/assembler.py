"""Combine registered fragments into one document through a template."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Mapping, Optional, Sequence

from jinja2 import TemplateError, TemplateNotFound
from markupsafe import Markup
from pydantic import BaseModel, ConfigDict

from tabflow.config import CompileSettings
from tabflow.core.errors import TemplateNotFoundError, TemplateRenderError
from tabflow.core.paths import Flavor
from tabflow.services.compile.base import CompileResult, Compiler, compiler_from_config, run_compiler
from tabflow_io.utils.paths import document_path, ensure_directory
from tabflow_io.writer import write_text_atomic

from .templates import ResolvedTemplate, environment, resolve_template

if TYPE_CHECKING:
    from tabflow_persist.registry import FragmentRegistry, NameGroups

LOGGER = logging.getLogger(__name__)


class DocumentMetadata(BaseModel):
    """Scalar template slots; unknown keys are kept for custom templates."""

    model_config = ConfigDict(extra="allow", frozen=True)

    title: Optional[str] = None
    rtitle: Optional[str] = None
    author: Optional[str] = None
    date: Optional[str] = None
    orientation: Literal["portrait", "landscape"] = "portrait"
    toc: bool = False
    toctheme: Optional[str] = None

    @property
    def extra(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def slots(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in type(self).model_fields}


@dataclass(frozen=True, slots=True)
class Document:
    body: str
    flavor: str
    template: ResolvedTemplate
    fragment_count: int
    path: Optional[Path] = None


def _context(
    bodies: Sequence[str],
    resolved: ResolvedTemplate,
    metadata: DocumentMetadata,
    presentation: bool,
) -> dict[str, Any]:
    fragments = [Markup(body) for body in bodies] if resolved.flavor == "html" else list(bodies)
    context: dict[str, Any] = {
        **metadata.slots(),
        "fragments": fragments,
        "flavor": resolved.flavor,
        "presentation": presentation or resolved.presentation,
    }
    if not resolved.builtin:
        extra = metadata.extra
        context.update({key: value for key, value in extra.items() if key not in context})
        context["extra"] = extra
    return context


def _check_slide_fragments(bodies: Sequence[str]) -> None:
    # longtable breaks pages itself and cannot live inside a beamer frame
    for position, body in enumerate(bodies, start=1):
        if r"\begin{longtable}" in body:
            raise TemplateRenderError(
                f"fragment {position} is a longtable; slides take tabular or tabularx fragments"
            )


def assemble(
    fragment_bodies: Sequence[str],
    template: str | Path | None = None,
    metadata: DocumentMetadata | Mapping[str, Any] | None = None,
    *,
    flavor: Flavor = "latex",
    presentation: bool = False,
) -> Document:
    """Substitute ``fragment_bodies`` (in order) and ``metadata`` into a template.

    Pure: the same inputs always give the same text.

    Raises:
        TemplateNotFoundError: The template name or path does not resolve.
        TemplateRenderError: The template fails to parse or references unknown slots.
            Also raised when a longtable fragment is placed on beamer slides.
    """

    if metadata is None:
        metadata = DocumentMetadata()
    elif not isinstance(metadata, DocumentMetadata):
        metadata = DocumentMetadata.model_validate(dict(metadata))
    resolved = resolve_template(template, flavor, presentation=presentation)
    if resolved.presentation and resolved.flavor == "latex":
        _check_slide_fragments(fragment_bodies)
    env = environment(resolved)
    try:
        compiled = env.get_template(resolved.path.name)
        body = compiled.render(_context(fragment_bodies, resolved, metadata, presentation))
    except TemplateNotFound as exc:
        raise TemplateNotFoundError(f"template {resolved.path} includes missing {exc.name!r}") from exc
    except TemplateError as exc:
        raise TemplateRenderError(f"template {resolved.path} failed to render: {exc}") from exc
    return Document(
        body=body,
        flavor=flavor,
        template=resolved,
        fragment_count=len(fragment_bodies),
    )


class DocumentAssembler:
    """Pulls fragments from a registry and writes combined documents."""

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

    def assemble(
        self,
        fragment_bodies: Sequence[str],
        template: str | Path | None = None,
        metadata: DocumentMetadata | Mapping[str, Any] | None = None,
        *,
        flavor: Flavor = "latex",
        presentation: bool = False,
    ) -> Document:
        return assemble(
            fragment_bodies,
            template,
            metadata,
            flavor=flavor,
            presentation=presentation,
        )

    def combine(
        self,
        directory: str | os.PathLike[str],
        *,
        output: str = "combined",
        flavor: Flavor = "latex",
        names: "Sequence[NameGroups] | str | None" = None,
        pattern: Optional[str] = None,
        tag: Optional[str] = None,
        template: str | Path | None = None,
        metadata: DocumentMetadata | Mapping[str, Any] | None = None,
        presentation: bool = False,
        show: bool = False,
    ) -> Document:
        """Select fragments of ``flavor`` from ``directory`` and write ``<output>`` next to them.

        With no ``names``, ``pattern`` or ``tag`` every registered fragment is
        used in registration order.
        """

        target = document_path(directory, output, flavor)
        if any(entry.name == output for entry in self.registry.list(directory, flavor)):
            raise ValueError(f"output {output!r} would overwrite the registered fragment of the same name")
        entries = self.registry.select(directory, names, pattern=pattern, tag=tag, flavor=flavor)
        if not entries:
            LOGGER.warning("No %s fragments selected in %s", flavor, directory)
        document = self.assemble(
            [entry.body for entry in entries],
            template,
            metadata,
            flavor=flavor,
            presentation=presentation,
        )
        ensure_directory(directory)
        write_text_atomic(target, document.body)
        LOGGER.info(
            "Combined %s fragments into %s using template %s",
            len(entries),
            target,
            document.template.name,
        )
        document = replace(document, path=target)
        if show:
            self.preview(document)
        return document

    def preview(self, document: Document) -> CompileResult:
        if document.path is None:
            raise ValueError("document has not been written yet")
        compiler = self.compiler or compiler_from_config(self.compile_settings, document.flavor)
        return run_compiler(compiler, document.path, document.flavor)


__all__ = ["Document", "DocumentAssembler", "DocumentMetadata", "assemble"]
