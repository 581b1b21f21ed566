"""Persistence of the project configuration file.

Reads and writes ``saasquatch.config.json`` at a project root.  Reads go
through the validator, so callers always receive a well-formed
``ProjectConfig``; writes replace the file atomically so a failure never
leaves a truncated configuration behind.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path

from saasquatch.errors import PersistenceError
from saasquatch.project.models import ProjectConfig
from saasquatch.project.schema import validate_config
from saasquatch.utils import load_json


CONFIG_FILENAME = "saasquatch.config.json"


def config_path(project_root: str | Path, filename: str = CONFIG_FILENAME) -> Path:
    return Path(project_root) / filename


def has_config(project_root: str | Path, filename: str = CONFIG_FILENAME) -> bool:
    return config_path(project_root, filename).is_file()


async def load_config(project_root: str | Path, filename: str = CONFIG_FILENAME) -> ProjectConfig:
    """Load and validate the persisted configuration.

    Raises:
        PersistenceError: If the file is missing, unreadable, or not JSON.
        SchemaValidationError: If the JSON does not satisfy the schema.
    """
    path = config_path(project_root, filename)
    if not path.is_file():
        raise PersistenceError(
            f"No {filename} found in {Path(project_root).resolve()}. "
            "Run this command from the root of a SaaSQuatch project."
        )
    try:
        raw = await asyncio.to_thread(load_json, path)
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"{path} is not valid JSON: {exc}") from exc
    except OSError as exc:
        raise PersistenceError(f"Could not read {path}: {exc}") from exc
    return validate_config(raw)


async def load_config_file(path: str | Path) -> ProjectConfig:
    """Load a configuration from an arbitrary file (``init --config``)."""
    file_path = Path(path)
    return await load_config(file_path.parent, file_path.name)


async def save_config(
    config: ProjectConfig,
    project_root: str | Path,
    filename: str = CONFIG_FILENAME,
) -> Path:
    """Atomically write *config* to ``<project_root>/<filename>``.

    Returns:
        The path written.

    Raises:
        PersistenceError: If the file cannot be written.
    """
    path = config_path(project_root, filename)
    content = json.dumps(config.to_dict(), indent=2, ensure_ascii=False) + "\n"
    try:
        await asyncio.to_thread(_atomic_write, path, content)
    except OSError as exc:
        raise PersistenceError(f"Could not write {path}: {exc}") from exc
    return path


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
