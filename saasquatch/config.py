"""Runtime settings for the SaaSQuatch CLI.

Not to be confused with the *project* configuration in
``saasquatch.project``: these settings control how the CLI itself behaves
(file names, template location, git, debug output).  They are a Pydantic v2
model so they validate at construction time and can be built from the
environment without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

from saasquatch.project.store import CONFIG_FILENAME


_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


class Settings(BaseModel):
    """CLI-wide settings.

    Instances are created once by the CLI entry point and then passed to the
    commands that need them.
    """

    config_filename: str = Field(default=CONFIG_FILENAME, min_length=1)
    template_dir: Path | None = Field(
        default=None, description="Override for the bundled Jinja2 template directory"
    )
    skip_git: bool = Field(default=False, description="Do not run `git init` after init")
    git_timeout: int = Field(default=30, ge=1, description="Seconds allowed per git command")
    debug: bool = Field(default=False, description="Print tracebacks for failures")

    def config_path(self, project_root: Path) -> Path:
        """Path of the persisted project configuration under *project_root*."""
        return project_root / self.config_filename

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            SAASQUATCH_TEMPLATE_DIR, SAASQUATCH_SKIP_GIT, SAASQUATCH_GIT_TIMEOUT,
            SAASQUATCH_DEBUG (``DEBUG`` is honoured too).
        """
        template_dir = os.environ.get("SAASQUATCH_TEMPLATE_DIR")
        kwargs: dict[str, object] = {
            "skip_git": _env_flag("SAASQUATCH_SKIP_GIT"),
            "debug": _env_flag("SAASQUATCH_DEBUG") or _env_flag("DEBUG"),
        }
        if template_dir:
            kwargs["template_dir"] = Path(template_dir)
        if os.environ.get("SAASQUATCH_GIT_TIMEOUT"):
            kwargs["git_timeout"] = int(os.environ["SAASQUATCH_GIT_TIMEOUT"])
        return cls(**kwargs)
