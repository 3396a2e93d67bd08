from __future__ import annotations

import pytest

from fileversions.config import RepositoryConfig
from fileversions.core.engine import VersionEngine


@pytest.fixture(autouse=True)
def _isolate_home(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Prevent developer machine `~/.versions/config.json` from influencing tests."""

    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("VERSIONS_DEBUG", raising=False)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Working directory holding the files being versioned."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def repo_config(tmp_path):
    return RepositoryConfig(repository_root=tmp_path / "repo")


@pytest.fixture
def engine(repo_config, workdir):
    return VersionEngine(repo_config)
