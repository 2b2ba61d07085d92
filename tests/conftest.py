"""Shared fixtures for gitwarden tests."""

import os
from pathlib import Path
from typing import Iterator

import pytest

from gitwarden.config import ENV_PREFIX, GitwardenConfig, clear_config_cache
from gitwarden.database.connection import create_tables, reset_engine
from gitwarden.database.repositories import RepositoryCatalog, catalog_scope


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Keep tests away from the user's config, data and database."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)

    monkeypatch.setenv(f"{ENV_PREFIX}CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv(f"{ENV_PREFIX}DATA_DIR", str(tmp_path / "data"))

    reset_engine()
    clear_config_cache()
    yield
    reset_engine()
    clear_config_cache()


@pytest.fixture
def config(tmp_path: Path) -> GitwardenConfig:
    """Configuration rooted in the test's temporary directory."""
    repos = tmp_path / "repos"
    repos.mkdir()
    return GitwardenConfig(
        config_dir=tmp_path / "config",
        data_dir=tmp_path / "data",
        repos_base_path=str(repos),
    )


@pytest.fixture
def db_config(config: GitwardenConfig) -> GitwardenConfig:
    """Configuration with the catalog tables created."""
    create_tables(config)
    return config


@pytest.fixture
def catalog(db_config: GitwardenConfig) -> Iterator[RepositoryCatalog]:
    """A catalog bound to a fresh session."""
    with catalog_scope(db_config) as catalog:
        yield catalog
