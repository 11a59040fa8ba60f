from pathlib import Path

import pytest

from mountguard.infrastructure.database import AppDatabase
from mountguard.mounts.path_normalizer import PathNormalizer


@pytest.fixture
def db() -> AppDatabase:
    """Create an in-memory database for testing."""
    app_db = AppDatabase()
    app_db._init_test()
    return app_db


@pytest.fixture
def home(tmp_path, monkeypatch) -> Path:
    """Point ~ at a scratch directory."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir.resolve()


@pytest.fixture
def groups_dir(tmp_path) -> Path:
    """A groups directory holding a main and a non-main workspace."""
    root = tmp_path / "groups"
    (root / "main").mkdir(parents=True)
    (root / "team").mkdir()
    return root


@pytest.fixture
def normalizer() -> PathNormalizer:
    return PathNormalizer(timeout=5.0)
