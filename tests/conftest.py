"""Pytest configuration and fixtures for gitmodel tests."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator, Optional

import pytest

from gitmodel.config import Settings, reset_settings
from gitmodel.git import Repository


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_path = temp_dir / "config.yaml"
    config_path.write_text(
        """
git:
  binary: git
  timeout: 5
  sha_length: 40
  initial_branch: trunk
"""
    )
    return config_path


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Clear GITMODEL_* variables for the duration of a test."""
    original = {k: v for k, v in os.environ.items() if k.startswith("GITMODEL_")}
    for var in original:
        del os.environ[var]

    reset_settings()

    yield

    for var in [k for k in os.environ if k.startswith("GITMODEL_")]:
        del os.environ[var]
    os.environ.update(original)

    reset_settings()


@pytest.fixture
def test_settings(clean_env: None) -> Settings:
    """Settings with a short timeout and a fixed initial branch."""
    return Settings(git={"timeout": 20, "initial_branch": "main"})


@pytest.fixture
def mock_repo(temp_dir: Path, test_settings: Settings) -> Repository:
    """A Repository whose commands are expected to be mocked."""
    return Repository(temp_dir, settings=test_settings)


@pytest.fixture
def git_env(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate git from the user's configuration and pin the identity."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    # Never discover a repository enclosing the temporary directory
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(temp_dir.resolve()))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Committer")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "committer@example.com")


@pytest.fixture
def work_dir(temp_dir: Path) -> Path:
    """An empty directory for a repository."""
    path = temp_dir / "repo"
    path.mkdir()
    return path


@pytest.fixture
def repo(work_dir: Path, test_settings: Settings, git_env: None) -> Repository:
    """An initialized, empty repository on branch 'main'."""
    return Repository(work_dir, settings=test_settings).init()


def _write_file(repo: Repository, name: str, folder: Optional[str] = None, content: Optional[str] = None) -> Path:
    base = repo.path / folder if folder else repo.path
    base.mkdir(parents=True, exist_ok=True)
    path = base / name
    path.write_text(content if content is not None else f"content of {name}\n", encoding="utf-8")
    return path


@pytest.fixture
def add_file():
    """Write a file into a repository's working tree."""
    return _write_file
