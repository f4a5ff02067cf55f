from __future__ import annotations

import faulthandler
import sys
from pathlib import Path
from typing import Iterator

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

faulthandler.enable()  # Ensure crashes emit tracebacks.

from tabflow.core import logger as core_logger
from tabflow.services.compile.base import NoopCompiler
from tabflow.services.render import FragmentRenderer
from tabflow.services.shaper import ShapeSpec
from tabflow_persist import FragmentRegistry


@pytest.fixture(autouse=True, scope="session")
def _isolated_home(tmp_path_factory: pytest.TempPathFactory) -> Iterator[Path]:
    """Keep logs and default output out of the real home directory."""

    home = tmp_path_factory.mktemp("tabflow_home")
    patcher = pytest.MonkeyPatch()
    patcher.setenv("TABFLOW_HOME", str(home))
    patcher.delenv("TABFLOW_CONFIG", raising=False)
    patcher.delenv("TABFLOW_OUTPUT_DIR", raising=False)
    patcher.delenv("TABFLOW_LATEX_ENGINE", raising=False)
    # bind the stream handler to the session stderr before any CliRunner swaps it
    core_logger.get_logger()
    yield home
    patcher.undo()


@pytest.fixture
def registry() -> FragmentRegistry:
    return FragmentRegistry()


@pytest.fixture
def renderer(registry: FragmentRegistry) -> FragmentRenderer:
    return FragmentRenderer(registry, compiler=NoopCompiler())


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    target = tmp_path / "out"
    target.mkdir()
    return target


@pytest.fixture
def scenario_records() -> list[dict[str, object]]:
    return [
        {"x": "A", "y": "G1", "v": 1},
        {"x": "A", "y": "G2", "v": 2},
        {"x": "B", "y": "G1", "v": 3},
    ]


@pytest.fixture
def scenario_spec() -> ShapeSpec:
    return ShapeSpec(x=["x"], y=["y"], value="v", fill="-")
