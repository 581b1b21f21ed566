"""Incremental mutators behind ``saasquatch add``.

Each mutator applies one additive change to an existing project: it loads and
validates the persisted configuration, checks the preconditions of the
request, computes and validates the updated configuration, persists it, and
only then plans and writes the new artifacts.

Every invocation walks the same state machine::

    IDLE -> VALIDATING -> COMPUTING -> PERSISTING -> PLANNING -> EXECUTING -> DONE

with ``FAILED`` reachable from any state.  A failure before ``PERSISTING``
completes leaves the configuration file untouched.  A failure while planning
or executing after the configuration was rewritten is raised as
``PartialGenerationError`` because the file and the tree no longer agree.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from pathlib import Path
from typing import Any

from saasquatch.errors import (
    DuplicateArtifactError,
    FeatureUnavailableError,
    PartialGenerationError,
    SaaSQuatchError,
    TargetNotFoundError,
)
from saasquatch.project.models import ROUTE_METHODS, ModelSpec, ProjectConfig, RouteSpec, Service
from saasquatch.project.schema import (
    validate_config,
    validate_model_spec,
    validate_route_spec,
    validate_service,
)
from saasquatch.project.store import CONFIG_FILENAME, load_config, save_config
from saasquatch.scaffolder.generator import plan_service, service_root
from saasquatch.scaffolder.model_gen import (
    MigrationClock,
    default_clock,
    existing_migration_stamps,
    plan_model,
)
from saasquatch.scaffolder.plan import Artifact, PlanExecutor
from saasquatch.scaffolder.route_gen import plan_route, route_file
from saasquatch.scaffolder.templates import TemplateRenderer


BASE_PORT = 3000

DEFAULT_SERVICE_NAME = "new-service"
DEFAULT_ROUTE_NAME = "items"
DEFAULT_MODEL_NAME = "Item"

# Features switched on by ``add service --yes``
DEFAULT_SERVICE_FEATURES: dict[str, bool] = {
    "database": True,
    "cache": True,
    "messageQueue": True,
    "healthChecks": True,
    "cors": True,
    "compression": True,
}

DEFAULT_MODEL_FIELDS: list[dict[str, str]] = [
    {"name": "id", "type": "uuid"},
    {"name": "name", "type": "string"},
    {"name": "created_at", "type": "timestamp"},
    {"name": "updated_at", "type": "timestamp"},
]


class MutationState(str, Enum):
    """Lifecycle of a single mutator invocation."""

    IDLE = "idle"
    VALIDATING = "validating"
    COMPUTING = "computing"
    PERSISTING = "persisting"
    PLANNING = "planning"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Request defaults
# ---------------------------------------------------------------------------


def next_port(config: ProjectConfig) -> int:
    """Next auto-assigned port: ``max(existing ports, 3000) + 1``."""
    return max([BASE_PORT, *(s.port for s in config.services)]) + 1


def parse_fields(text: str) -> list[dict[str, str]]:
    """Parse ``name:type`` pairs separated by commas or newlines.

    A pair without a type defaults to ``string``::

        parse_fields("id:uuid, total:decimal, note")
        # [{'name': 'id', 'type': 'uuid'}, {'name': 'total', 'type': 'decimal'},
        #  {'name': 'note', 'type': 'string'}]
    """
    fields: list[dict[str, str]] = []
    for chunk in text.replace("\n", ",").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        name, _, kind = chunk.partition(":")
        fields.append({"name": name.strip(), "type": kind.strip() or "string"})
    return fields


def default_service_request(config: ProjectConfig, name: str | None = None) -> dict[str, Any]:
    return {
        "name": name or DEFAULT_SERVICE_NAME,
        "port": next_port(config),
        "features": dict(DEFAULT_SERVICE_FEATURES),
    }


def default_route_request(config: ProjectConfig, name: str | None = None) -> dict[str, Any]:
    route_name = name or DEFAULT_ROUTE_NAME
    return {
        "service": config.services[0].name,
        "name": route_name,
        "path": f"/{route_name}",
        "methods": list(ROUTE_METHODS),
        "authentication": True,
        "validation": True,
    }


def default_model_request(config: ProjectConfig, name: str | None = None) -> dict[str, Any]:
    model_name = name or DEFAULT_MODEL_NAME
    return {
        "service": config.services[0].name,
        "name": model_name,
        "tableName": model_name.lower() + "s",
        "fields": [dict(f) for f in DEFAULT_MODEL_FIELDS],
        "timestamps": True,
        "softDelete": False,
    }


# ---------------------------------------------------------------------------
# Base mutator
# ---------------------------------------------------------------------------


class Mutation:
    """Read-modify-write cycle shared by every ``add`` command.

    Subclasses implement the three hooks:

    * ``check(config, request)``: preconditions against the current state,
      returning the validated spec of the addition;
    * ``compute(config, spec)``: the updated configuration (may be *config*
      itself when the addition does not change it);
    * ``plan(config, spec)``: the artifacts of the addition only.

    Attributes:
        state: Current ``MutationState``.
        history: Every state entered, in order.
        error: The exception that moved the mutation to ``FAILED``.
        persisted: Whether the configuration file was rewritten.
        written: Paths written by the executor.
        warnings: Non-fatal notes for the operator.
    """

    target = "artifact"

    def __init__(
        self,
        project_root: str | Path,
        renderer: TemplateRenderer | None = None,
        config_filename: str = CONFIG_FILENAME,
    ) -> None:
        self.project_root = Path(project_root)
        self.config_filename = config_filename
        self.executor = PlanExecutor(renderer or TemplateRenderer())

        self.state = MutationState.IDLE
        self.history: list[MutationState] = [MutationState.IDLE]
        self.error: Exception | None = None
        self.persisted = False
        self.config: ProjectConfig | None = None
        self.updated: ProjectConfig | None = None
        self.artifacts: list[Artifact] = []
        self.written: list[Path] = []
        self.warnings: list[str] = []

    # -- Hooks ------------------------------------------------------------

    def check(self, config: ProjectConfig, request: dict[str, Any]) -> Any:
        raise NotImplementedError

    def compute(self, config: ProjectConfig, spec: Any) -> ProjectConfig:
        return config

    def plan(self, config: ProjectConfig, spec: Any) -> list[Artifact]:
        raise NotImplementedError

    # -- Driver -----------------------------------------------------------

    def _enter(self, state: MutationState) -> None:
        self.state = state
        self.history.append(state)

    def _fail(self, exc: Exception) -> None:
        self.error = exc
        self._enter(MutationState.FAILED)

    async def load(self) -> ProjectConfig:
        """Load and validate the persisted configuration."""
        return await load_config(self.project_root, self.config_filename)

    async def run(self, request: dict[str, Any]) -> list[Path]:
        """Apply *request* to the project.

        Args:
            request: Wire-format (camelCase) description of the addition.

        Returns:
            The paths written, in plan order.

        Raises:
            SaaSQuatchError: Any validation or precondition failure, raised
                before the configuration file is touched.
            PartialGenerationError: If planning or writing fails after the
                configuration was persisted.
        """
        try:
            self._enter(MutationState.VALIDATING)
            config = await self.load()
            self.config = config
            spec = self.check(config, request)

            self._enter(MutationState.COMPUTING)
            updated = self.compute(config, spec)
            updated = validate_config(updated.to_dict())
            self.updated = updated

            self._enter(MutationState.PERSISTING)
            if updated != config:
                await save_config(updated, self.project_root, self.config_filename)
                self.persisted = True
        except Exception as exc:
            self._fail(exc)
            raise

        try:
            self._enter(MutationState.PLANNING)
            self.artifacts = self.plan(updated, spec)

            self._enter(MutationState.EXECUTING)
            self.written = await self.executor.execute(self.artifacts, self.project_root)
        except Exception as exc:
            self._fail(exc)
            if self.persisted and isinstance(exc, (SaaSQuatchError, OSError)):
                raise PartialGenerationError(exc) from exc
            raise

        self._enter(MutationState.DONE)
        return self.written

    # -- Shared precondition helpers ---------------------------------------

    def require_service(self, config: ProjectConfig, name: str) -> Service:
        """Return the service named *name*, which must also exist on disk."""
        service = config.get_service(name)
        if service is None:
            raise TargetNotFoundError(f"Service '{name}' does not exist in the configuration")
        return service

    def require_service_dir(self, name: str) -> None:
        directory = self.project_root / service_root(name)
        if not directory.is_dir():
            raise TargetNotFoundError(
                f"Service directory {service_root(name)}/ not found in {self.project_root}"
            )


# ---------------------------------------------------------------------------
# add service
# ---------------------------------------------------------------------------


class AddServiceMutation(Mutation):
    """Append a service to the configuration and generate its directory."""

    target = "service"

    def check(self, config: ProjectConfig, request: dict[str, Any]) -> dict[str, Any]:
        name = request.get("name")
        port = request.get("port")
        if name and config.get_service(name) is not None:
            raise DuplicateArtifactError(f"Service '{name}' already exists")
        if port is not None and any(s.port == port for s in config.services):
            raise DuplicateArtifactError(f"Port {port} is already in use")
        if name and (self.project_root / service_root(name)).exists():
            raise DuplicateArtifactError(
                f"Directory {service_root(name)}/ already exists in {self.project_root}"
            )
        return dict(request)

    def compute(self, config: ProjectConfig, spec: dict[str, Any]) -> ProjectConfig:
        entry = dict(spec)
        if entry.get("port") is None:
            entry["port"] = next_port(config)
        service = validate_service(entry)
        return dataclasses.replace(config, services=[*config.services, service])

    def plan(self, config: ProjectConfig, spec: dict[str, Any]) -> list[Artifact]:
        service = config.services[-1]
        return plan_service(config, service)

    @property
    def service(self) -> Service | None:
        """The service added by this run, once computed."""
        if self.updated is None:
            return None
        return self.updated.services[-1]


# ---------------------------------------------------------------------------
# add route
# ---------------------------------------------------------------------------


class AddRouteMutation(Mutation):
    """Generate a route handler and register it in the service bootstrap."""

    target = "route"

    def check(self, config: ProjectConfig, request: dict[str, Any]) -> RouteSpec:
        spec = validate_route_spec(request)
        service = self.require_service(config, spec.service)
        self.require_service_dir(spec.service)
        if (self.project_root / route_file(spec)).exists():
            raise DuplicateArtifactError(
                f"Route '{spec.name}' already exists in service '{spec.service}'"
            )
        if spec.authentication and not service.features.needs_auth_plugin:
            self.warnings.append(
                f"Service '{service.name}' has no authentication plugin; "
                "the generated auth guard needs one to be registered."
            )
        return spec

    def plan(self, config: ProjectConfig, spec: RouteSpec) -> list[Artifact]:
        return plan_route(config, spec, self.project_root)


# ---------------------------------------------------------------------------
# add model
# ---------------------------------------------------------------------------


class AddModelMutation(Mutation):
    """Generate a model, its repository, a migration and a unit test."""

    target = "model"

    def __init__(
        self,
        project_root: str | Path,
        renderer: TemplateRenderer | None = None,
        config_filename: str = CONFIG_FILENAME,
        clock: MigrationClock | None = None,
    ) -> None:
        super().__init__(project_root, renderer, config_filename)
        self.clock = clock or default_clock

    def check(self, config: ProjectConfig, request: dict[str, Any]) -> ModelSpec:
        spec = validate_model_spec(request)
        service = self.require_service(config, spec.service)
        if not service.features.database:
            raise FeatureUnavailableError(
                f"Service '{spec.service}' does not have the database feature enabled"
            )
        self.require_service_dir(spec.service)
        return spec

    def plan(self, config: ProjectConfig, spec: ModelSpec) -> list[Artifact]:
        for stamp in existing_migration_stamps(self.project_root, spec.service):
            self.clock.observe(stamp)
        return plan_model(config, spec, self.clock)


MUTATIONS: dict[str, type[Mutation]] = {
    "service": AddServiceMutation,
    "route": AddRouteMutation,
    "model": AddModelMutation,
}
