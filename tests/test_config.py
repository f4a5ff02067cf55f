from __future__ import annotations

from pathlib import Path

import pytest

from tabflow.config import CompileSettings, TabflowSettings, load_settings
from tabflow.core.errors import ConfigError


def test_defaults(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TABFLOW_HOME", str(tmp_path / "home"))

    settings = load_settings()

    assert isinstance(settings, TabflowSettings)
    assert settings.output_dir == tmp_path / "home" / "out"
    assert settings.persist_ledger is True
    assert settings.render.flavor == "latex"
    assert settings.render.fill == "-"
    assert settings.compile.engine == "pdflatex"
    assert settings.compile.runs == 1


def test_user_file_is_deep_merged(tmp_path) -> None:
    user = tmp_path / "tabflow.yaml"
    user.write_text(
        "output_dir: /srv/tables\n"
        "render:\n"
        "  flavor: html\n"
        "compile:\n"
        "  engine: none\n",
        encoding="utf-8",
    )

    settings = load_settings(user)

    assert settings.output_dir == Path("/srv/tables")
    assert settings.render.flavor == "html"
    assert settings.render.tabenv == "tabular"
    assert settings.compile.engine == "none"
    assert settings.compile.args == ["-interaction=nonstopmode", "-halt-on-error"]


def test_config_env_variable_points_at_user_file(monkeypatch, tmp_path) -> None:
    user = tmp_path / "env.yaml"
    user.write_text("persist_ledger: false\n", encoding="utf-8")
    monkeypatch.setenv("TABFLOW_CONFIG", str(user))

    assert load_settings().persist_ledger is False


def test_environment_overrides_win(monkeypatch, tmp_path) -> None:
    user = tmp_path / "tabflow.yaml"
    user.write_text("compile:\n  engine: pdflatex\n", encoding="utf-8")
    monkeypatch.setenv("TABFLOW_OUTPUT_DIR", str(tmp_path / "env-out"))
    monkeypatch.setenv("TABFLOW_LATEX_ENGINE", "xelatex")

    settings = load_settings(user)

    assert settings.output_dir == tmp_path / "env-out"
    assert settings.compile.engine == "xelatex"


def test_unknown_engine_from_environment_is_rejected(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TABFLOW_LATEX_ENGINE", "tectonic")

    with pytest.raises(ConfigError, match="tectonic"):
        load_settings()


def test_engine_names_are_normalised() -> None:
    assert CompileSettings(engine=" LuaLaTeX ").engine == "lualatex"


@pytest.mark.parametrize(
    "content",
    [
        "render:\n  flavor: markdown\n",
        "unknown_key: 1\n",
        "compile:\n  runs: 0\n",
        "compile:\n  engine: tectonic\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_settings_raise_config_error(tmp_path, content) -> None:
    user = tmp_path / "bad.yaml"
    user.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(user)


def test_missing_user_file(tmp_path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "absent.yaml")
