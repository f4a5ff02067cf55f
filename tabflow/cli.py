"""Typer based command line entry points for tabflow."""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import List, Optional

import typer

from tabflow.config import TabflowSettings, load_settings
from tabflow.core.errors import CompileWarning, ConfigError, TabflowError
from tabflow.core.logger import get_logger
from tabflow.services.assembler import DocumentAssembler, DocumentMetadata
from tabflow.services.render import FragmentRenderer, RenderOptions, render_listing, render_table
from tabflow.services.shaper import ShapeSpec
from tabflow_io import read_records
from tabflow_persist import FragmentRegistry

FLAVORS = {"latex", "html"}
ORIENTATIONS = {"portrait", "landscape"}
TABLE_ENVS = {"tabular", "tabularx", "longtable"}

app = typer.Typer(help="Render tables into LaTeX/HTML fragments and combine them into documents.")


def _choice(value: Optional[str], allowed: set[str], option: str) -> Optional[str]:
    if value is None:
        return None
    value = value.lower()
    if value not in allowed:
        raise typer.BadParameter(f"{option} must be one of {', '.join(sorted(allowed))}")
    return value


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
) -> None:
    """Configure global CLI behaviour before executing commands."""

    logger = get_logger()
    level_value = getattr(logging, log_level.upper(), None)
    if not isinstance(level_value, int):
        raise typer.BadParameter(f"Unknown log level: {log_level}")
    logging.getLogger().setLevel(level_value)
    logger.setLevel(level_value)


def _settings(config: Optional[Path]) -> TabflowSettings:
    try:
        settings = load_settings(config)
    except ConfigError as exc:
        get_logger().error("config_error: %s", exc)
        typer.secho(f"Unable to load tabflow configuration: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc
    if settings.log_dir is not None:
        get_logger(settings.log_dir)
    return settings


def _registry(settings: TabflowSettings, directory: Path) -> FragmentRegistry:
    registry = FragmentRegistry(persist=settings.persist_ledger)
    registry.hydrate(directory)
    return registry


def _report_warnings(caught: list[warnings.WarningMessage]) -> None:
    for item in caught:
        if issubclass(item.category, CompileWarning):
            typer.secho(f"Warning: {item.message}", fg=typer.colors.YELLOW, err=True)


def _fail(exc: Exception, action: str) -> typer.Exit:
    get_logger().error("%s failed: %s", action, exc)
    typer.secho(f"{action} failed: {exc}", fg=typer.colors.RED)
    return typer.Exit(code=1)


def _render_options(
    settings: TabflowSettings,
    *,
    flavor: Optional[str],
    title: Optional[str],
    note: Optional[str],
    label: Optional[str],
    orientation: Optional[str],
    flt: Optional[str],
    tabenv: Optional[str],
    mancol: Optional[str],
    digits: Optional[int],
    tag: Optional[str],
    source: Optional[str],
    show: bool,
) -> RenderOptions:
    defaults = settings.render
    return RenderOptions(
        flavor=_choice(flavor, FLAVORS, "--flavor") or defaults.flavor,
        title=title,
        tablenote=note,
        label=label,
        orientation=_choice(orientation, ORIENTATIONS, "--orientation"),
        flt=flt or defaults.flt,
        tabenv=_choice(tabenv, TABLE_ENVS, "--tabenv") or defaults.tabenv,
        mancol=mancol,
        digits=digits if digits is not None else defaults.digits,
        tag=tag,
        source=source,
        show=show,
    )


@app.command("table")
def table_command(
    input_path: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="CSV/TSV/XLSX/JSON record set"),
    name: str = typer.Option(..., "--name", help="Fragment name (file stem)."),
    value: List[str] = typer.Option(..., "--value", help="Field(s) holding the displayed value."),
    x: Optional[List[str]] = typer.Option(None, "--x", help="Row stratifier field; repeat for more levels."),
    y: Optional[List[str]] = typer.Option(None, "--y", help="Column stratifier field; repeat for more levels."),
    directory: Optional[Path] = typer.Option(None, "--dir", help="Output directory (defaults to configured output_dir)."),
    flavor: Optional[str] = typer.Option(None, "--flavor", help="latex or html."),
    fill: Optional[str] = typer.Option(None, "--fill", help="Literal for missing combinations."),
    group: int = typer.Option(0, "--group", min=0, help="Leading x levels rendered as banner rows."),
    xabove: bool = typer.Option(False, "--xabove", help="Hoist the next x level above its rows."),
    vargroup: Optional[List[str]] = typer.Option(None, "--vargroup", help="Top band labels over column groups."),
    yhead: bool = typer.Option(False, "--yhead", help="Show column stratifier titles as header rows."),
    sort: bool = typer.Option(False, "--sort", help="Sort stratifier levels instead of first-seen order."),
    title: Optional[str] = typer.Option(None, "--title"),
    note: Optional[str] = typer.Option(None, "--note", help="Table note printed under the table."),
    label: Optional[str] = typer.Option(None, "--label", help="Cross-reference anchor."),
    orientation: Optional[str] = typer.Option(None, "--orientation", help="portrait or landscape."),
    flt: Optional[str] = typer.Option(None, "--flt", help="LaTeX float placement."),
    tabenv: Optional[str] = typer.Option(None, "--tabenv", help="tabular, tabularx or longtable."),
    mancol: Optional[str] = typer.Option(None, "--mancol", help="Manual LaTeX column spec."),
    digits: Optional[int] = typer.Option(None, "--digits", min=0, help="Decimal places for floats."),
    tag: Optional[str] = typer.Option(None, "--tag", help="Grouping tag used by combine --tag."),
    sheet: Optional[str] = typer.Option(None, "--sheet", help="Worksheet for Excel inputs."),
    show: bool = typer.Option(False, "--show", help="Compile/preview the fragment after rendering."),
    config: Optional[Path] = typer.Option(None, "--config", help="Settings YAML overriding the defaults."),
) -> None:
    """Cross-tabulate a record set and render it as a fragment."""

    settings = _settings(config)
    target = directory or settings.output_dir
    try:
        options = _render_options(
            settings,
            flavor=flavor,
            title=title,
            note=note,
            label=label,
            orientation=orientation,
            flt=flt,
            tabenv=tabenv,
            mancol=mancol,
            digits=digits,
            tag=tag,
            source=str(input_path),
            show=show,
        )
        spec = ShapeSpec(
            x=x or [],
            y=y or [],
            value=value[0] if len(value) == 1 else list(value),
            group=group,
            xabove=xabove,
            fill=fill if fill is not None else settings.render.fill,
            vargroup=[item or None for item in vargroup] if vargroup else None,
            yhead=yhead,
            sort=sort,
        )
        records = read_records(input_path, sheet=sheet)
        renderer = FragmentRenderer(_registry(settings, target), compile_settings=settings.compile)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", CompileWarning)
            fragment = render_table(records, spec, options, name=name, directory=target, renderer=renderer)
    except (TabflowError, ValueError, OSError) as exc:
        raise _fail(exc, "table") from exc
    _report_warnings(caught)
    typer.echo(str(fragment.path))


@app.command("listing")
def listing_command(
    input_path: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="CSV/TSV/XLSX/JSON record set"),
    name: str = typer.Option(..., "--name", help="Fragment name (file stem)."),
    field: Optional[List[str]] = typer.Option(None, "--field", help="Field to list; repeat to pick and order columns."),
    directory: Optional[Path] = typer.Option(None, "--dir", help="Output directory (defaults to configured output_dir)."),
    flavor: Optional[str] = typer.Option(None, "--flavor", help="latex or html."),
    fill: Optional[str] = typer.Option(None, "--fill", help="Literal for missing values."),
    title: Optional[str] = typer.Option(None, "--title"),
    note: Optional[str] = typer.Option(None, "--note"),
    label: Optional[str] = typer.Option(None, "--label"),
    orientation: Optional[str] = typer.Option(None, "--orientation"),
    tabenv: Optional[str] = typer.Option(None, "--tabenv"),
    mancol: Optional[str] = typer.Option(None, "--mancol"),
    digits: Optional[int] = typer.Option(None, "--digits", min=0),
    tag: Optional[str] = typer.Option(None, "--tag"),
    sheet: Optional[str] = typer.Option(None, "--sheet"),
    show: bool = typer.Option(False, "--show"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Render a plain listing table: one row per record."""

    settings = _settings(config)
    target = directory or settings.output_dir
    try:
        options = _render_options(
            settings,
            flavor=flavor,
            title=title,
            note=note,
            label=label,
            orientation=orientation,
            flt=None,
            tabenv=tabenv,
            mancol=mancol,
            digits=digits,
            tag=tag,
            source=str(input_path),
            show=show,
        )
        records = read_records(input_path, sheet=sheet, usecols=field or None)
        renderer = FragmentRenderer(_registry(settings, target), compile_settings=settings.compile)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", CompileWarning)
            fragment = render_listing(
                records,
                options,
                name=name,
                directory=target,
                renderer=renderer,
                fields=field or None,
                fill=fill if fill is not None else settings.render.fill,
            )
    except (TabflowError, ValueError, OSError) as exc:
        raise _fail(exc, "listing") from exc
    _report_warnings(caught)
    typer.echo(str(fragment.path))


def _parse_assignments(items: Optional[List[str]]) -> dict[str, str]:
    extras: dict[str, str] = {}
    for item in items or []:
        key, sep, val = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"--set expects key=value, got {item!r}")
        extras[key.strip()] = val
    return extras


@app.command("combine")
def combine_command(
    directory: Optional[Path] = typer.Option(None, "--dir", help="Directory whose fragments are combined."),
    flavor: Optional[str] = typer.Option(None, "--flavor", help="latex or html."),
    names: Optional[List[str]] = typer.Option(None, "--name", help="Fragment to include, in order; repeatable."),
    pattern: Optional[str] = typer.Option(None, "--pattern", help="Glob over fragment names."),
    tag: Optional[str] = typer.Option(None, "--tag", help="Only fragments carrying this tag."),
    template: Optional[str] = typer.Option(None, "--template", help="Built-in template name or template file."),
    title: Optional[str] = typer.Option(None, "--title"),
    rtitle: Optional[str] = typer.Option(None, "--rtitle", help="Running title."),
    author: Optional[str] = typer.Option(None, "--author"),
    date: Optional[str] = typer.Option(None, "--date"),
    orientation: str = typer.Option("portrait", "--orientation"),
    toc: bool = typer.Option(False, "--toc", help="Add a table of contents."),
    toctheme: Optional[str] = typer.Option(None, "--toctheme"),
    presentation: bool = typer.Option(False, "--presentation", help="One slide per fragment."),
    assignments: Optional[List[str]] = typer.Option(None, "--set", help="Extra key=value slot for custom templates."),
    output: str = typer.Option("combined", "--output", help="Document name (file stem)."),
    show: bool = typer.Option(False, "--show", help="Compile/preview the document."),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Assemble registered fragments into one document."""

    settings = _settings(config)
    target = directory or settings.output_dir
    chosen_flavor = _choice(flavor, FLAVORS, "--flavor") or settings.render.flavor
    slots: dict[str, object] = _parse_assignments(assignments)
    slots.update(
        title=title,
        rtitle=rtitle,
        author=author,
        date=date,
        orientation=_choice(orientation, ORIENTATIONS, "--orientation"),
        toc=toc,
        toctheme=toctheme,
    )
    metadata = DocumentMetadata.model_validate(slots)
    try:
        assembler = DocumentAssembler(_registry(settings, target), compile_settings=settings.compile)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", CompileWarning)
            document = assembler.combine(
                target,
                output=output,
                flavor=chosen_flavor,
                names=names or None,
                pattern=pattern,
                tag=tag,
                template=template,
                metadata=metadata,
                presentation=presentation,
                show=show,
            )
    except (TabflowError, ValueError, OSError) as exc:
        raise _fail(exc, "combine") from exc
    _report_warnings(caught)
    typer.echo(str(document.path))


@app.command("fragments")
def fragments_command(
    directory: Optional[Path] = typer.Option(None, "--dir", help="Directory to inspect."),
    flavor: Optional[str] = typer.Option(None, "--flavor", help="Only this flavor."),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """List registered fragments in registration order."""

    settings = _settings(config)
    target = directory or settings.output_dir
    try:
        entries = _registry(settings, target).list(target, _choice(flavor, FLAVORS, "--flavor"))
    except (TabflowError, OSError) as exc:
        raise _fail(exc, "fragments") from exc
    if not entries:
        typer.echo("No fragments registered.")
        return
    for idx, entry in enumerate(entries, start=1):
        typer.echo(f"{idx:>3}  {entry.name}  {entry.flavor}  {entry.tag or '-'}  {entry.path or ''}")


if __name__ == "__main__":  # pragma: no cover
    app()
