"""Template lookup and jinja2 environments for document assembly."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from tabflow.core.errors import TemplateNotFoundError

TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "templates"

BUILTIN_TEMPLATES: dict[str, dict[str, str]] = {
    "latex": {
        "default": "default.tex.j2",
        "presentation": "presentation.tex.j2",
    },
    "html": {
        "default": "default.html.j2",
        "themed": "themed.html.j2",
        "presentation": "presentation.html.j2",
    },
}


@dataclass(frozen=True, slots=True)
class ResolvedTemplate:
    name: str
    flavor: str
    path: Path
    builtin: bool

    @property
    def presentation(self) -> bool:
        return self.builtin and self.name == "presentation"


def resolve_template(
    template: str | Path | None,
    flavor: str,
    *,
    presentation: bool = False,
) -> ResolvedTemplate:
    """Map ``None``, a built-in name or a file path onto a template file.

    In presentation mode the ``default`` built-in is swapped for the
    ``presentation`` variant.
    """

    try:
        builtins = BUILTIN_TEMPLATES[flavor]
    except KeyError as exc:
        raise TemplateNotFoundError(f"no built-in templates for flavor {flavor!r}") from exc

    name = "default" if template is None else str(template)
    if name in builtins:
        if presentation and name == "default":
            name = "presentation"
        path = TEMPLATE_DIR / builtins[name]
        if not path.is_file():
            raise TemplateNotFoundError(f"built-in template {name!r} is missing from {TEMPLATE_DIR}")
        return ResolvedTemplate(name=name, flavor=flavor, path=path, builtin=True)

    path = Path(name).expanduser()
    if not path.is_file():
        known = ", ".join(sorted(builtins))
        raise TemplateNotFoundError(
            f"template {name!r} is neither a built-in {flavor} template ({known}) nor an existing file"
        )
    return ResolvedTemplate(name=path.name, flavor=flavor, path=path.resolve(), builtin=False)


def environment(resolved: ResolvedTemplate) -> Environment:
    """jinja2 environment for ``resolved``.

    Custom templates can include or extend the built-ins, which stay on the
    search path after the template's own directory. LaTeX templates use
    ``<< >>``, ``<% %>`` and ``<# #>`` so braces stay plain TeX.
    """

    search = [str(resolved.path.parent)]
    if resolved.path.parent != TEMPLATE_DIR:
        search.append(str(TEMPLATE_DIR))
    options = dict(
        loader=FileSystemLoader(search),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    if resolved.flavor == "latex":
        return Environment(
            block_start_string="<%",
            block_end_string="%>",
            variable_start_string="<<",
            variable_end_string=">>",
            comment_start_string="<#",
            comment_end_string="#>",
            autoescape=False,
            **options,
        )
    return Environment(autoescape=True, **options)


__all__ = [
    "BUILTIN_TEMPLATES",
    "ResolvedTemplate",
    "TEMPLATE_DIR",
    "environment",
    "resolve_template",
]
