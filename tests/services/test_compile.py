from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from tabflow.config import CompileSettings
from tabflow.core.errors import CompileWarning, ConfigError
from tabflow.services.compile import (
    BrowserPreview,
    CompileResult,
    LatexCompiler,
    NoopCompiler,
    compiler_from_config,
    run_compiler,
)
from tabflow.services.compile import latex as latex_module


def test_factory_branches() -> None:
    assert isinstance(compiler_from_config({"engine": "none"}, "latex"), NoopCompiler)
    assert isinstance(compiler_from_config(None, "html"), BrowserPreview)

    compiler = compiler_from_config(CompileSettings(engine="XeLaTeX", runs=2), "latex")
    assert isinstance(compiler, LatexCompiler)
    assert (compiler.engine, compiler.runs) == ("xelatex", 2)


def test_factory_rejects_unknown_engine() -> None:
    with pytest.raises(ConfigError, match="troff"):
        compiler_from_config({"engine": "troff"}, "latex")


def test_latex_command_lines() -> None:
    source = Path("/tmp/doc.tex")

    assert LatexCompiler("pdflatex", args=["-halt-on-error"]).command(source) == [
        "pdflatex",
        "-halt-on-error",
        "doc.tex",
    ]
    assert LatexCompiler("latexmk", args=[]).command(source) == ["latexmk", "-pdf", "doc.tex"]


def test_missing_engine_reports_failure(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(latex_module.shutil, "which", lambda name: None)
    source = tmp_path / "doc.tex"
    source.write_text("x", encoding="utf-8")

    result = LatexCompiler("pdflatex").compile(source, "latex")

    assert not result.ok
    assert "not found" in result.message


def test_latex_runs_each_pass_and_returns_pdf(monkeypatch, tmp_path) -> None:
    calls: list[tuple[list[str], Path]] = []

    def fake_run(cmd, cwd, **kwargs):
        calls.append((cmd, cwd))
        (Path(cwd) / "doc.pdf").write_bytes(b"%PDF-1.5")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(latex_module.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(latex_module.subprocess, "run", fake_run)
    source = tmp_path / "doc.tex"
    source.write_text("x", encoding="utf-8")

    result = LatexCompiler("lualatex", args=[], runs=2).compile(source, "latex")

    assert result.ok
    assert result.artifact == tmp_path / "doc.pdf"
    assert calls == [(["lualatex", "doc.tex"], tmp_path)] * 2


def test_latex_failure_carries_log_tail(monkeypatch, tmp_path) -> None:
    def fake_run(cmd, cwd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout="line\n! Undefined control sequence.", stderr="")

    monkeypatch.setattr(latex_module.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(latex_module.subprocess, "run", fake_run)
    source = tmp_path / "doc.tex"
    source.write_text("x", encoding="utf-8")

    result = LatexCompiler().compile(source, "latex")

    assert not result.ok
    assert "exited with 1" in result.message
    assert "Undefined control sequence" in result.message
    assert not (tmp_path / "doc.pdf").exists()


def test_latex_compiler_refuses_html(tmp_path) -> None:
    assert not LatexCompiler().compile(tmp_path / "doc.html", "html").ok


def test_browser_preview(tmp_path) -> None:
    source = tmp_path / "doc.html"
    preview = BrowserPreview()

    assert not preview.compile(source, "html").ok
    source.write_text("<p>x</p>", encoding="utf-8")
    result = preview.compile(source, "html")
    assert result.ok
    assert result.artifact == source
    assert not preview.compile(source, "latex").ok


def test_run_compiler_turns_failure_into_warning(tmp_path) -> None:
    class Broken(NoopCompiler):
        def compile(self, source, flavor):
            return CompileResult(ok=False, message="boom")

    with pytest.warns(CompileWarning, match="boom"):
        result = run_compiler(Broken(), tmp_path / "doc.tex", "latex")

    assert not result.ok


def test_run_compiler_success_is_silent(tmp_path, recwarn) -> None:
    result = run_compiler(NoopCompiler(), tmp_path / "doc.tex", "latex")

    assert result.ok
    assert not [w for w in recwarn if issubclass(w.category, CompileWarning)]
