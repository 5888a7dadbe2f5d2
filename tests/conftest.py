"""Pytest configuration and fixtures for CodeGraph TS tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Generator, Optional, Tuple

import pytest

from codegraph_ts.analyzer import analyze
from codegraph_ts.checker import Checker
from codegraph_ts.config import Settings
from codegraph_ts.models import AnalysisResult
from codegraph_ts.parser import SourceFile
from codegraph_ts.program import Program


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch):
    """Point the config file at an empty temp location.

    A developer's own ``~/.codegraph-ts/config.toml`` must never change
    what the tests see.
    """
    home = tmp_path / "cgts-home"
    monkeypatch.setattr("codegraph_ts.config.BASE_DIR", home)
    monkeypatch.setattr("codegraph_ts.config.CONFIG_FILE", home / "config.toml")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to the sample TS/JS project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def analyze_text(temp_dir: Path, settings: Settings) -> Callable[..., AnalysisResult]:
    """Analyze an in-memory snippet as if it lived at ``temp_dir/<name>``."""

    def _analyze(text: str, name: str = "sample.ts", language_id: str = "") -> AnalysisResult:
        return analyze(text, str(temp_dir / name), language_id, settings)

    return _analyze


@pytest.fixture
def checked(temp_dir: Path, settings: Settings) -> Callable[..., Tuple[SourceFile, Checker]]:
    """Parse a snippet and hand back its source file plus a fresh checker."""

    def _checked(text: str, name: str = "sample.ts") -> Tuple[SourceFile, Checker]:
        program = Program(str(temp_dir / name), text, "", settings)
        assert program.root is not None
        return program.root, Checker(program)

    return _checked


@pytest.fixture
def sample_ts_code() -> str:
    """Small TypeScript program used across tests."""
    return '''export function add(a: number, b: number): number {
  return a + b;
}

export class Counter {
  private value = 0;

  inc(step = 1) {
    this.value += step;
    return this.value;
  }
}

const c = new Counter();
c.inc(2);
add(2, 3);
'''


def _find_node(source: SourceFile, node_type: str, text: Optional[str] = None):
    stack = [source.root]
    while stack:
        node = stack.pop()
        if node.type == node_type and (text is None or source.node_text(node) == text):
            return node
        stack.extend(reversed(node.children))
    raise AssertionError(f"no {node_type} node matching {text!r}")


@pytest.fixture
def find_node() -> Callable[..., Any]:
    """First syntax node of a type (optionally with exact text), in preorder."""
    return _find_node
