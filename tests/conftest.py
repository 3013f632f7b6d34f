"""Root pytest configuration for all tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from editbridge.config import reset_config

from tests.utils import EDITOR_PROLOGUE, write_script


@pytest.fixture(autouse=True)
def _fresh_config():
    """Keep the cached global config from leaking between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_editor(tmp_path: Path) -> Callable[[str], str]:
    """Factory for fake editors: shell scripts that parse the editor args.

    The body runs after the prologue and can use $line, $cursor_file and
    $file. Returns the script's absolute path.
    """
    counter = [0]

    def factory(body: str) -> str:
        counter[0] += 1
        path = tmp_path / f"fake-editor-{counter[0]}.sh"
        return write_script(path, EDITOR_PROLOGUE + body + "\n")

    return factory


@pytest.fixture
def cursor_file(tmp_path: Path) -> str:
    return str(tmp_path / "cursor")
