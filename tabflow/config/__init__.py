"""Configuration helpers for tabflow runtime settings.

Loads the packaged ``defaults.yaml``, deep-merges an optional user file on
top of it and applies environment overrides so a deployment can point the
output directory or the LaTeX engine elsewhere without editing files.
"""

from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tabflow.core.errors import ConfigError
from tabflow.core.paths import home_dir


LATEX_ENGINES: tuple[str, ...] = ("pdflatex", "xelatex", "lualatex", "latexmk")
COMPILE_ENGINES: tuple[str, ...] = ("none",) + LATEX_ENGINES

CONFIG_DIR = Path(__file__).resolve().parent
DEFAULT_SETTINGS_PATH = CONFIG_DIR / "defaults.yaml"

_ENV_OVERRIDES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("TABFLOW_OUTPUT_DIR", ("output_dir",)),
    ("TABFLOW_LATEX_ENGINE", ("compile", "engine")),
)


class RenderDefaults(BaseModel):
    """Fallback rendering options used when a caller leaves them unset."""

    model_config = ConfigDict(extra="forbid")

    flavor: Literal["latex", "html"] = "latex"
    fill: str = "-"
    digits: Optional[int] = None
    flt: str = "htbp"
    tabenv: Literal["tabular", "tabularx", "longtable"] = "tabular"


class CompileSettings(BaseModel):
    """External typesetter / previewer settings."""

    model_config = ConfigDict(extra="forbid")

    engine: str = "pdflatex"
    args: List[str] = Field(default_factory=lambda: ["-interaction=nonstopmode", "-halt-on-error"])
    runs: int = Field(default=1, ge=1)
    open_viewer: bool = False

    @field_validator("engine", mode="before")
    @classmethod
    def _known_engine(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        engine = value.strip().lower()
        if engine not in COMPILE_ENGINES:
            raise ValueError(f"unknown compile engine {value!r}; expected one of {', '.join(COMPILE_ENGINES)}")
        return engine


class TabflowSettings(BaseModel):
    """Complete settings model."""

    model_config = ConfigDict(extra="forbid")

    output_dir: Path
    log_dir: Optional[Path] = None
    persist_ledger: bool = True
    render: RenderDefaults = Field(default_factory=RenderDefaults)
    compile: CompileSettings = Field(default_factory=CompileSettings)


def load_settings(path: str | Path | None = None) -> TabflowSettings:
    """Load settings from defaults, an optional user YAML and the environment.

    The user file is ``path`` or, when omitted, ``$TABFLOW_CONFIG``.
    """

    load_dotenv(override=False)
    data = _load_yaml(DEFAULT_SETTINGS_PATH)
    user_path = path or os.getenv("TABFLOW_CONFIG")
    if user_path:
        data = _deep_merge(data, _load_yaml(Path(user_path)))
    data = _apply_env(data)
    if not data.get("output_dir"):
        data["output_dir"] = str(home_dir() / "out")
    try:
        return TabflowSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid tabflow settings: {exc}") from exc


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"settings file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"settings file must hold a mapping: {path}")
    return data


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if key not in base:
            base[key] = deepcopy(value)
            continue
        base_value = base[key]
        if isinstance(base_value, dict) and isinstance(value, Mapping):
            base[key] = _deep_merge(dict(base_value), value)
        else:
            base[key] = deepcopy(value)
    return base


def _apply_env(data: Dict[str, Any]) -> Dict[str, Any]:
    merged = deepcopy(data)
    for env_name, dotted in _ENV_OVERRIDES:
        value = os.getenv(env_name)
        if not value:
            continue
        target = merged
        for part in dotted[:-1]:
            node = target.get(part)
            if not isinstance(node, dict):
                node = {}
                target[part] = node
            target = node
        target[dotted[-1]] = value
    return merged


__all__ = [
    "CompileSettings",
    "RenderDefaults",
    "TabflowSettings",
    "load_settings",
]
