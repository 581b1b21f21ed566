"""Shared pytest fixtures for the SaaSQuatch test suite.

Provides reusable fixtures for:
- Validated project configurations (defaults, multi-tenant, SQLite)
- Raw wire-format configuration dicts
- A template renderer bound to the bundled templates
- A fully generated project tree on disk for the ``add`` commands
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest

from saasquatch.project.builder import ConfigBuilder, default_config
from saasquatch.project.models import ProjectConfig
from saasquatch.project.store import save_config
from saasquatch.scaffolder.generator import ProjectGenerator
from saasquatch.scaffolder.model_gen import MigrationClock
from saasquatch.scaffolder.templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Configurations
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> ProjectConfig:
    """The configuration ``init test-app --yes`` produces."""
    return default_config("test-app")


@pytest.fixture
def tenant_config() -> ProjectConfig:
    """Default services with schema-per-tenant multi-tenancy switched on."""
    return (
        ConfigBuilder()
        .set_project({"name": "tenant-app"})
        .set_infrastructure({"database": {"multiTenancy": {"enabled": True}}})
        .build()
    )


@pytest.fixture
def sqlite_config() -> ProjectConfig:
    return (
        ConfigBuilder()
        .set_project({"name": "lite-app", "packageManager": "npm"})
        .set_infrastructure({"database": {"type": "sqlite", "version": None}})
        .build()
    )


@pytest.fixture
def raw_config(config: ProjectConfig) -> dict[str, Any]:
    """Wire-format (camelCase) copy of the default configuration."""
    return copy.deepcopy(config.to_dict())


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def clock() -> MigrationClock:
    """A private migration clock so tests never share stamps."""
    return MigrationClock()


# ---------------------------------------------------------------------------
# Projects on disk
# ---------------------------------------------------------------------------


async def _generate(config: ProjectConfig, root: Path) -> Path:
    await save_config(config, root)
    await ProjectGenerator(config).generate(root)
    return root


@pytest.fixture
async def project_root(tmp_path: Path, config: ProjectConfig) -> Path:
    """A generated default project with its ``saasquatch.config.json``."""
    return await _generate(config, tmp_path / config.project.name)


@pytest.fixture
async def tenant_project_root(tmp_path: Path, tenant_config: ProjectConfig) -> Path:
    return await _generate(tenant_config, tmp_path / tenant_config.project.name)
