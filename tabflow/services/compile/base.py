from __future__ import annotations

import logging
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from tabflow.config import LATEX_ENGINES, CompileSettings
from tabflow.core.errors import CompileWarning, ConfigError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CompileResult:
    ok: bool
    artifact: Path | None = None
    message: str = ""


class Compiler(ABC):
    """Interface for the external typesetter / previewer."""

    @abstractmethod
    def compile(self, source: Path, flavor: str) -> CompileResult:
        """Compile or preview ``source`` and report the outcome without raising."""


class NoopCompiler(Compiler):
    """Compiler used when ``engine: none`` disables external tooling."""

    def compile(self, source: Path, flavor: str) -> CompileResult:
        return CompileResult(ok=True, artifact=None, message="compilation disabled")


def compiler_from_config(cfg: CompileSettings | Mapping[str, Any] | None, flavor: str) -> Compiler:
    if cfg is None:
        settings = CompileSettings()
    elif isinstance(cfg, CompileSettings):
        settings = cfg
    else:
        try:
            settings = CompileSettings.model_validate(dict(cfg))
        except ValidationError as exc:
            raise ConfigError(f"invalid compile settings: {exc}") from exc
    engine = settings.engine.lower()
    if engine == "none":
        return NoopCompiler()
    if flavor == "html":
        from .html import BrowserPreview

        return BrowserPreview(open_browser=settings.open_viewer)
    if flavor == "latex" and engine in LATEX_ENGINES:
        from .latex import LatexCompiler

        return LatexCompiler(
            engine=engine,
            args=list(settings.args),
            runs=settings.runs,
            open_viewer=settings.open_viewer,
        )
    raise ConfigError(f"unknown compile engine {settings.engine!r} for flavor {flavor!r}")


def run_compiler(compiler: Compiler, source: Path, flavor: str) -> CompileResult:
    """Run ``compiler``; failures become a ``CompileWarning`` instead of an exception."""

    result = compiler.compile(source, flavor)
    if result.ok:
        LOGGER.info("Compiled %s -> %s", source, result.artifact)
    else:
        LOGGER.warning("Compilation of %s failed: %s", source, result.message)
        warnings.warn(f"compilation of {source} failed: {result.message}", CompileWarning, stacklevel=2)
    return result


__all__ = [
    "CompileResult",
    "Compiler",
    "NoopCompiler",
    "compiler_from_config",
    "run_compiler",
]
