from __future__ import annotations

import logging
import shutil
import subprocess
import webbrowser
from pathlib import Path
from typing import Sequence

from .base import CompileResult, Compiler

LOGGER = logging.getLogger(__name__)


class LatexCompiler(Compiler):
    """Run a LaTeX engine as a blocking subprocess next to the source file."""

    def __init__(
        self,
        engine: str = "pdflatex",
        args: Sequence[str] = ("-interaction=nonstopmode", "-halt-on-error"),
        runs: int = 1,
        open_viewer: bool = False,
    ) -> None:
        self.engine = engine
        self.args = list(args)
        self.runs = max(1, runs)
        self.open_viewer = open_viewer

    def command(self, source: Path) -> list[str]:
        if self.engine == "latexmk":
            return [self.engine, "-pdf", *self.args, source.name]
        return [self.engine, *self.args, source.name]

    def compile(self, source: Path, flavor: str) -> CompileResult:
        if flavor != "latex":
            return CompileResult(ok=False, message=f"{self.engine} cannot compile {flavor} sources")
        executable = shutil.which(self.engine)
        if executable is None:
            return CompileResult(ok=False, message=f"{self.engine} not found on PATH")

        source = Path(source)
        cmd = self.command(source)
        runs = 1 if self.engine == "latexmk" else self.runs
        for attempt in range(runs):
            LOGGER.debug("Running %s (pass %s/%s)", " ".join(cmd), attempt + 1, runs)
            try:
                proc = subprocess.run(
                    cmd,
                    cwd=source.parent,
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except OSError as exc:
                return CompileResult(ok=False, message=str(exc))
            if proc.returncode != 0:
                tail = "\n".join((proc.stdout or "").splitlines()[-15:])
                return CompileResult(
                    ok=False,
                    message=f"{self.engine} exited with {proc.returncode}\n{tail}",
                )

        artifact = source.with_suffix(".pdf")
        if not artifact.exists():
            return CompileResult(ok=False, message=f"{self.engine} produced no {artifact.name}")
        if self.open_viewer:
            webbrowser.open(artifact.resolve().as_uri())
        return CompileResult(ok=True, artifact=artifact, message="ok")
