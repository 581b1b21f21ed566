"""Route planning for ``add route``.

A route is a Fastify plugin file with up to five handlers, an integration
test, and a patch of the service's ``src/app.ts`` that imports and registers
the new plugin.  The patch is textual and anchored on the bootstrap layout the
service templates produce:

* the import goes after the last ``import xRoutes from './routes/x.js';``
  line, or after the last import of the file when no route import exists;
* the registration goes right before the last ``  return app;``.

Patching the same route twice raises ``DuplicateArtifactError`` instead of
registering it again.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from saasquatch.errors import DuplicateArtifactError, GenerationError, TargetNotFoundError
from saasquatch.project.models import ProjectConfig, RouteSpec
from saasquatch.scaffolder.generator import service_context, service_root
from saasquatch.scaffolder.plan import Artifact
from saasquatch.utils import camel_case, pascal_case


_ROUTE_IMPORT_RE = re.compile(r"^import \w+Routes from '\./routes/[\w.-]+\.js';[ \t]*$", re.MULTILINE)
_ANY_IMPORT_RE = re.compile(r"^import [^\n]*;[ \t]*$", re.MULTILINE)
_RETURN_ANCHOR = "  return app;"


def route_file(spec: RouteSpec) -> str:
    return f"{service_root(spec.service)}/src/routes/{spec.name}.ts"


def route_context(config: ProjectConfig, spec: RouteSpec) -> dict[str, Any]:
    service = config.get_service(spec.service)
    assert service is not None
    ctx = service_context(config, service)
    path = spec.path.rstrip("/") or "/"
    item_path = f"{path}/:id" if path != "/" else "/:id"
    endpoints = {
        "get-list": ("GET", path),
        "get-one": ("GET", item_path),
        "post": ("POST", path),
        "put": ("PUT", item_path),
        "delete": ("DELETE", item_path),
    }
    probe_method, probe_url = endpoints[spec.methods[0]]
    ctx.update({
        "route_name": spec.name,
        "route_var": f"{camel_case(spec.name)}Routes",
        "resource": pascal_case(spec.name),
        "path": path,
        "item_path": item_path,
        "methods": list(spec.methods),
        "authentication": spec.authentication,
        "validation": spec.validation,
        "probe_method": probe_method,
        "probe_url": probe_url,
    })
    return ctx


# ---------------------------------------------------------------------------
# Bootstrap patch
# ---------------------------------------------------------------------------


def register_route(app_source: str, ctx: dict[str, Any]) -> str:
    """Return *app_source* with the route from *ctx* imported and registered.

    Raises:
        DuplicateArtifactError: If the route is already imported.
        GenerationError: If the bootstrap has no ``return app;`` to anchor on.
    """
    name = ctx["route_name"]
    var = ctx["route_var"]
    if f"from './routes/{name}.js'" in app_source:
        raise DuplicateArtifactError(
            f"Route '{name}' is already registered in {ctx['service_name']}/src/app.ts"
        )

    return_index = app_source.rfind(_RETURN_ANCHOR)
    if return_index == -1:
        raise GenerationError(
            f"Cannot register route '{name}': {ctx['service_name']}/src/app.ts has no "
            f"'{_RETURN_ANCHOR.strip()}' statement"
        )

    registration = f"  await app.register({var});\n\n"
    source = app_source[:return_index] + registration + app_source[return_index:]

    import_line = f"import {var} from './routes/{name}.js';"
    matches = list(_ROUTE_IMPORT_RE.finditer(source)) or list(_ANY_IMPORT_RE.finditer(source))
    if matches:
        end = matches[-1].end()
        return source[:end] + "\n" + import_line + source[end:]
    return import_line + "\n\n" + source


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------


def plan_route(
    config: ProjectConfig,
    spec: RouteSpec,
    project_root: str | Path | None = None,
) -> list[Artifact]:
    """Plan the handler, its integration test and the bootstrap patch.

    Args:
        config: The validated project configuration.
        spec: The validated route request.
        project_root: When given, the planner refuses to overwrite a handler
            file that already exists there.

    Raises:
        TargetNotFoundError: If ``spec.service`` is not in the configuration.
        DuplicateArtifactError: If the handler file already exists.
    """
    service = config.get_service(spec.service)
    if service is None:
        raise TargetNotFoundError(f"Service '{spec.service}' does not exist in the configuration")

    handler = route_file(spec)
    if project_root is not None and (Path(project_root) / handler).exists():
        raise DuplicateArtifactError(
            f"Route '{spec.name}' already exists in service '{spec.service}'"
        )

    ctx = route_context(config, spec)
    root = service_root(service.name)
    return [
        Artifact(f"{root}/src/app.ts", patch=register_route, context=ctx),
        Artifact(handler, template="route/route.ts", context=ctx),
        Artifact(
            f"{root}/test/integration/{spec.name}.test.ts",
            template="route/route.test.ts",
            context=ctx,
        ),
    ]
