from __future__ import annotations

import webbrowser
from pathlib import Path

from .base import CompileResult, Compiler


class BrowserPreview(Compiler):
    """HTML needs no compilation; the source itself is the artifact."""

    def __init__(self, open_browser: bool = False) -> None:
        self.open_browser = open_browser

    def compile(self, source: Path, flavor: str) -> CompileResult:
        source = Path(source)
        if flavor != "html":
            return CompileResult(ok=False, message=f"browser preview cannot show {flavor} sources")
        if not source.exists():
            return CompileResult(ok=False, message=f"{source} does not exist")
        if self.open_browser and not webbrowser.open(source.resolve().as_uri()):
            return CompileResult(ok=False, artifact=source, message="no browser available")
        return CompileResult(ok=True, artifact=source, message="ok")
