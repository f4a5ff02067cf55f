"""External typesetter / previewer collaborators."""

from .base import CompileResult, Compiler, NoopCompiler, compiler_from_config, run_compiler
from .html import BrowserPreview
from .latex import LatexCompiler

__all__ = [
    "BrowserPreview",
    "CompileResult",
    "Compiler",
    "LatexCompiler",
    "NoopCompiler",
    "compiler_from_config",
    "run_compiler",
]
