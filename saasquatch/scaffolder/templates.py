"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``saasquatch/scaffolder/templates/`` directory and renders them with the
context dictionaries assembled by the planners.  Compiled templates are kept
in a cache owned by the renderer instance; there is no process-wide state, and
``clear_cache()`` drops everything compiled so far.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    Template,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)

from saasquatch.errors import GenerationError, TemplateNotFoundError
from saasquatch.utils import camel_case, pascal_case, slugify, snake_case, write_file


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    Template ids are paths relative to the template directory without the
    ``.j2`` suffix, e.g. ``"service/src/app.ts"``.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            cache_size=0,
        )
        self._cache: dict[str, Template] = {}
        # Register custom filters
        self.env.filters["slugify"] = slugify
        self.env.filters["pascal_case"] = pascal_case
        self.env.filters["snake_case"] = snake_case
        self.env.filters["camel_case"] = camel_case

    # -- Single template rendering -----------------------------------------

    def render(self, template_id: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_id: Template path relative to the template directory,
                with or without the ``.j2`` suffix.
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.

        Raises:
            TemplateNotFoundError: If no template exists for *template_id*.
            GenerationError: If the template fails to compile or render.
        """
        template = self._get_template(template_id)
        try:
            return template.render(**context)
        except TemplateError as exc:
            raise GenerationError(f"Failed to render template {template_id}: {exc}") from exc

    async def render_to_file(
        self,
        template_id: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.  Returns the output path.
        """
        content = self.render(template_id, context)
        out = Path(output_path)
        await asyncio.to_thread(write_file, out, content)
        return out

    # -- Cache -------------------------------------------------------------

    @property
    def cached_templates(self) -> list[str]:
        return sorted(self._cache)

    def clear_cache(self) -> None:
        """Forget every compiled template; the next render recompiles from disk."""
        self._cache.clear()

    # -- Utility -----------------------------------------------------------

    def has_template(self, template_id: str) -> bool:
        return (self.template_dir / _template_name(template_id)).is_file()

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of template ids under *prefix*."""
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            str(p.relative_to(self.template_dir).as_posix())[: -len(".j2")]
            for p in search_dir.rglob("*.j2")
        )

    def _get_template(self, template_id: str) -> Template:
        name = _template_name(template_id)
        template = self._cache.get(name)
        if template is None:
            try:
                template = self.env.get_template(name)
            except TemplateNotFound as exc:
                raise TemplateNotFoundError(template_id) from exc
            except TemplateError as exc:
                raise GenerationError(f"Failed to compile template {template_id}: {exc}") from exc
            self._cache[name] = template
        return template


def _template_name(template_id: str) -> str:
    return template_id if template_id.endswith(".j2") else f"{template_id}.j2"
