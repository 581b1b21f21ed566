"""Artifact plans and the executor that writes them.

A plan is an ordered list of ``Artifact`` descriptors produced by the pure
planners (``generator``, ``model_gen``, ``route_gen``, ``docker_gen``).  Each
artifact names a project-relative output path and exactly one content source:

* ``template``: a Jinja2 template id rendered with ``context``;
* ``generator``: a function of ``context`` returning the full text
  (JSON and YAML files are built as data and serialised);
* ``patch``: a function ``(existing_text, context) -> new_text`` applied to a
  file that must already exist.

``PlanExecutor`` walks a plan in order and writes every artifact, creating
parent directories as needed.  Every write is a full overwrite.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from saasquatch.errors import GenerationError, TargetNotFoundError
from saasquatch.scaffolder.templates import TemplateRenderer
from saasquatch.utils import make_executable, write_file


@dataclass
class Artifact:
    """One file the generator will write (or patch)."""

    path: str
    template: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
    generator: Callable[[dict[str, Any]], str] | None = None
    patch: Callable[[str, dict[str, Any]], str] | None = None
    executable: bool = False

    def __post_init__(self) -> None:
        sources = [s for s in (self.template, self.generator, self.patch) if s is not None]
        if len(sources) != 1:
            raise ValueError(f"Artifact {self.path} must have exactly one content source")

    @property
    def kind(self) -> str:
        if self.patch is not None:
            return "patch"
        if self.generator is not None:
            return "generated"
        return "template"

    @property
    def source(self) -> str:
        """Human-readable content source, used by ``--dry-run``."""
        if self.template is not None:
            return self.template
        func = self.patch or self.generator
        return getattr(func, "__name__", self.kind)


def plan_paths(plan: Sequence[Artifact]) -> list[str]:
    return [artifact.path for artifact in plan]


def ensure_disjoint(plan: Sequence[Artifact]) -> None:
    """Raise ``GenerationError`` if two artifacts target the same path."""
    seen: set[str] = set()
    for artifact in plan:
        if artifact.path in seen:
            raise GenerationError(f"Plan writes {artifact.path} more than once")
        seen.add(artifact.path)


# ---------------------------------------------------------------------------
# PlanExecutor
# ---------------------------------------------------------------------------


class PlanExecutor:
    """Renders and writes a plan under a project root."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    def render(self, artifact: Artifact, existing: str | None = None) -> str:
        """Produce the final text of *artifact*.

        Args:
            artifact: The artifact to render.
            existing: Current file content, required for patch artifacts.
        """
        if artifact.template is not None:
            return self.renderer.render(artifact.template, artifact.context)
        if artifact.generator is not None:
            return artifact.generator(artifact.context)
        assert artifact.patch is not None
        if existing is None:
            raise TargetNotFoundError(f"Cannot patch {artifact.path}: file does not exist")
        return artifact.patch(existing, artifact.context)

    async def execute(
        self,
        plan: Sequence[Artifact],
        root: str | Path,
        on_written: Callable[[Path], None] | None = None,
    ) -> list[Path]:
        """Write every artifact of *plan* under *root*, in order.

        Returns:
            The list of written paths.

        Raises:
            TemplateNotFoundError: If an artifact references an unknown template.
            TargetNotFoundError: If a patch target does not exist.
            GenerationError: If a file cannot be written.
        """
        ensure_disjoint(plan)
        root_path = Path(root)
        written: list[Path] = []

        for artifact in plan:
            out = root_path / artifact.path
            existing: str | None = None
            if artifact.patch is not None and out.is_file():
                existing = await asyncio.to_thread(out.read_text, "utf-8")

            content = self.render(artifact, existing)
            try:
                await asyncio.to_thread(write_file, out, content)
                if artifact.executable:
                    await asyncio.to_thread(make_executable, out)
            except OSError as exc:
                raise GenerationError(f"Could not write {out}: {exc}") from exc

            written.append(out)
            if on_written is not None:
                on_written(out)

        return written
