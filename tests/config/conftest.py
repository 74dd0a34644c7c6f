"""Fixtures for catalog set tests: editable copies of the shipped LOSNCP set."""

import shutil
from pathlib import Path

import pytest
import yaml

import procurement_config

SHIPPED_SETS_DIR = Path(procurement_config.__file__).parent / "sets"


@pytest.fixture
def sets_dir(tmp_path: Path) -> Path:
    """A sets directory holding a private copy of losncp_2024."""
    target = tmp_path / "sets"
    shutil.copytree(SHIPPED_SETS_DIR / "losncp_2024", target / "losncp_2024")
    return target


@pytest.fixture
def set_dir(sets_dir: Path) -> Path:
    return sets_dir / "losncp_2024"


@pytest.fixture
def edit_fragment():
    """Rewrite one YAML fragment in place through a callback."""

    def _edit(path: Path, change) -> None:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        change(data)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)

    return _edit
