"""
Shared fixtures for scratchkit tests.

Every test gets its own throwaway project under tmp_path.
"""
import json
from pathlib import Path
from typing import Any

import pytest

from scratchkit.store import RegistryStore


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def write_json(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project with a features/ directory and no version sources."""
    root = tmp_path / "project"
    (root / "features").mkdir(parents=True)
    return root


@pytest.fixture
def store(project: Path) -> RegistryStore:
    return RegistryStore(project)


@pytest.fixture
def feature(store: RegistryStore) -> str:
    """A freshly created feature 'feat1'."""
    store.create_feature("feat1", title="Feature One", version_added="1.0.0")
    return "feat1"
