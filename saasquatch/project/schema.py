"""Configuration schema and validator.

The schema is expressed as Pydantic v2 models that mirror the persisted
``saasquatch.config.json`` wire format (camelCase keys).  Validation collects
every field-level violation reported by Pydantic plus the cross-field checks
Pydantic cannot express per field (unique service names and ports), then
raises a single ``SchemaValidationError`` carrying all of them.

On success the validated models are converted into the plain domain
dataclasses from ``saasquatch.project.models``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from saasquatch.errors import SchemaValidationError
from saasquatch.project import models


PROJECT_NAME_PATTERN = r"^[a-z0-9-]+$"
SERVICE_NAME_PATTERN = r"^[a-z][a-z0-9-]*$"
MODEL_NAME_PATTERN = r"^[A-Z][a-zA-Z0-9]*$"
TABLE_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"
FIELD_NAME_PATTERN = r"^[a-zA-Z_][a-zA-Z0-9_]*$"

MIN_PORT = 1024
MAX_PORT = 65535


class _WireModel(BaseModel):
    """Base for every schema model: camelCase on the wire, snake_case in Python.

    Unknown keys are rejected rather than dropped.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


class ProjectSchema(_WireModel):
    name: str = Field(..., min_length=1, pattern=PROJECT_NAME_PATTERN)
    description: str | None = None
    author: str | None = None
    package_manager: Literal["npm", "yarn", "pnpm"] = "pnpm"

    def to_domain(self) -> models.ProjectInfo:
        return models.ProjectInfo(
            name=self.name,
            description=self.description,
            author=self.author,
            package_manager=self.package_manager,
        )


class FrameworkSchema(_WireModel):
    name: Literal["fastify"] = "fastify"
    version: str = "^4.24.0"

    def to_domain(self) -> models.Framework:
        return models.Framework(name=self.name, version=self.version)


class CacheSchema(_WireModel):
    type: Literal["redis"]
    version: str = "7-alpine"


class MultiTenancySchema(_WireModel):
    enabled: bool = False
    model: Literal["schema-per-tenant", "database-per-tenant", "row-level"] = "schema-per-tenant"


class DatabaseSchema(_WireModel):
    type: Literal["postgresql", "sqlite"]
    version: str | None = None
    strategy: Literal["shared", "separate"] = "separate"
    multi_tenancy: MultiTenancySchema | None = None


class MessageQueueSchema(_WireModel):
    type: Literal["nats"]
    version: str = "2.10-alpine"


class InfrastructureSchema(_WireModel):
    cache: CacheSchema
    database: DatabaseSchema
    message_queue: MessageQueueSchema

    def to_domain(self) -> models.Infrastructure:
        tenancy = self.database.multi_tenancy
        return models.Infrastructure(
            cache=models.CacheConfig(type=self.cache.type, version=self.cache.version),
            database=models.DatabaseConfig(
                type=self.database.type,
                version=self.database.version,
                strategy=self.database.strategy,
                multi_tenancy=(
                    models.MultiTenancy(enabled=tenancy.enabled, model=tenancy.model)
                    if tenancy is not None
                    else None
                ),
            ),
            message_queue=models.MessageQueueConfig(
                type=self.message_queue.type, version=self.message_queue.version
            ),
        )


class ServiceFeaturesSchema(_WireModel):
    database: bool = False
    cache: bool = False
    message_queue: bool = False
    authentication: bool = False
    multi_tenant: bool = False
    rate_limit: bool = False
    cors: bool = False
    compression: bool = False
    health_checks: bool = True
    jwt: bool = False


class ServiceSchema(_WireModel):
    name: str = Field(..., min_length=1, pattern=SERVICE_NAME_PATTERN)
    port: int = Field(..., ge=MIN_PORT, le=MAX_PORT)
    type: Literal["standard", "gateway", "auth"] | None = None
    features: ServiceFeaturesSchema = Field(default_factory=ServiceFeaturesSchema)
    description: str | None = None

    def to_domain(self) -> models.Service:
        return models.Service(
            name=self.name,
            port=self.port,
            type=self.type,
            description=self.description,
            features=models.ServiceFeatures(**self.features.model_dump()),
        )


class LoggingSchema(_WireModel):
    provider: Literal["pino"] = "pino"
    level: Literal["trace", "debug", "info", "warn", "error", "fatal"] = "info"


class TracingSchema(_WireModel):
    provider: Literal["opentelemetry", "none"] = "opentelemetry"
    enabled: bool = True


class MetricsSchema(_WireModel):
    enabled: bool = False
    provider: Literal["prometheus", "none"] = "none"


class ObservabilitySchema(_WireModel):
    logging: LoggingSchema = Field(default_factory=LoggingSchema)
    health_checks: bool = True
    tracing: TracingSchema = Field(default_factory=TracingSchema)
    metrics: MetricsSchema | None = None

    def to_domain(self) -> models.Observability:
        return models.Observability(
            logging=models.LoggingConfig(**self.logging.model_dump()),
            health_checks=self.health_checks,
            tracing=models.TracingConfig(**self.tracing.model_dump()),
            metrics=models.MetricsConfig(**self.metrics.model_dump()) if self.metrics else None,
        )


class DeploymentSchema(_WireModel):
    target: Literal["docker-compose", "kubernetes", "native"] = "docker-compose"
    registry: str | None = None
    namespace: str | None = None

    def to_domain(self) -> models.Deployment:
        return models.Deployment(**self.model_dump())


class ProjectTestingSchema(_WireModel):
    unit: bool = True
    integration: bool = True
    e2e: bool = False
    coverage: int = Field(default=80, ge=0, le=100)


class FeaturesSchema(_WireModel):
    multi_tenancy: bool = False
    authentication: bool = True
    rate_limit: bool = True
    cors: bool = True
    compression: bool = True
    swagger: bool = True
    testing: ProjectTestingSchema | None = None

    def to_domain(self) -> models.ProjectFeatures:
        data = self.model_dump(exclude={"testing"})
        testing = models.ProjectTesting(**self.testing.model_dump()) if self.testing else None
        return models.ProjectFeatures(testing=testing, **data)


UseCase = Literal["saas", "ecommerce", "api-first", "realtime"]


class ProjectConfigSchema(_WireModel):
    version: str = "1.0.0"
    project: ProjectSchema
    framework: FrameworkSchema
    infrastructure: InfrastructureSchema
    services: list[ServiceSchema] = Field(..., min_length=1)
    observability: ObservabilitySchema
    deployment: DeploymentSchema
    use_cases: list[UseCase] = Field(default_factory=list)
    features: FeaturesSchema | None = None

    def to_domain(self) -> models.ProjectConfig:
        return models.ProjectConfig(
            version=self.version,
            project=self.project.to_domain(),
            framework=self.framework.to_domain(),
            infrastructure=self.infrastructure.to_domain(),
            services=[service.to_domain() for service in self.services],
            observability=self.observability.to_domain(),
            deployment=self.deployment.to_domain(),
            use_cases=list(self.use_cases),
            features=self.features.to_domain() if self.features else None,
        )


class PartialProjectConfigSchema(_WireModel):
    """Every top-level section optional; nested sections keep their rules."""

    version: str | None = None
    project: ProjectSchema | None = None
    framework: FrameworkSchema | None = None
    infrastructure: InfrastructureSchema | None = None
    services: list[ServiceSchema] | None = Field(default=None, min_length=1)
    observability: ObservabilitySchema | None = None
    deployment: DeploymentSchema | None = None
    use_cases: list[UseCase] | None = None
    features: FeaturesSchema | None = None


# ---------------------------------------------------------------------------
# Add-command inputs
# ---------------------------------------------------------------------------


class FieldSchema(_WireModel):
    name: str = Field(..., pattern=FIELD_NAME_PATTERN)
    type: str = Field(default="string", min_length=1)

    @field_validator("type")
    @classmethod
    def _normalise_type(cls, value: str) -> str:
        return value.strip().lower()


class ModelSpecSchema(_WireModel):
    service: str = Field(..., min_length=1)
    name: str = Field(..., pattern=MODEL_NAME_PATTERN)
    table_name: str = Field(..., pattern=TABLE_NAME_PATTERN)
    fields: list[FieldSchema] = Field(..., min_length=1)
    timestamps: bool = True
    soft_delete: bool = False


RouteMethod = Literal["get-list", "get-one", "post", "put", "delete"]


class RouteSpecSchema(_WireModel):
    service: str = Field(..., min_length=1)
    name: str = Field(..., pattern=SERVICE_NAME_PATTERN)
    path: str = Field(..., pattern=r"^/")
    methods: list[RouteMethod] = Field(
        default_factory=lambda: list(models.ROUTE_METHODS), min_length=1
    )
    authentication: bool = True
    validation: bool = True

    @field_validator("methods")
    @classmethod
    def _dedupe_methods(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_config(raw: Any) -> models.ProjectConfig:
    """Validate a raw (wire-format) configuration and return the domain object.

    Args:
        raw: Parsed JSON, typically a ``dict`` loaded from
            ``saasquatch.config.json`` or produced by ``ProjectConfig.to_dict()``.

    Returns:
        A fully-populated ``ProjectConfig`` with every default applied.

    Raises:
        SchemaValidationError: With every violation found, field-level and
            cross-field alike.
    """
    schema, errors = _run(ProjectConfigSchema, raw)
    errors.extend(_duplicate_service_errors(raw))
    if errors:
        raise SchemaValidationError(errors)
    assert schema is not None
    return schema.to_domain()


def validate_partial(raw: Any) -> dict[str, Any]:
    """Validate a configuration fragment in which every section is optional.

    Returns:
        The normalised wire-format dict containing only the top-level sections
        present in *raw*, with nested defaults filled in.
    """
    schema, errors = _run(PartialProjectConfigSchema, raw)
    errors.extend(_duplicate_service_errors(raw))
    if errors:
        raise SchemaValidationError(errors)
    assert schema is not None
    return schema.model_dump(by_alias=True, exclude_none=True, include=schema.model_fields_set)


def validate_model_spec(raw: Any) -> models.ModelSpec:
    """Validate the input of ``add model`` and return a ``ModelSpec``."""
    schema, errors = _run(ModelSpecSchema, raw)
    if errors:
        raise SchemaValidationError(errors)
    assert schema is not None
    return models.ModelSpec(
        service=schema.service,
        name=schema.name,
        table_name=schema.table_name,
        fields=[models.FieldSpec(name=f.name, type=f.type) for f in schema.fields],
        timestamps=schema.timestamps,
        soft_delete=schema.soft_delete,
    )


def validate_route_spec(raw: Any) -> models.RouteSpec:
    """Validate the input of ``add route`` and return a ``RouteSpec``."""
    schema, errors = _run(RouteSpecSchema, raw)
    if errors:
        raise SchemaValidationError(errors)
    assert schema is not None
    return models.RouteSpec(**schema.model_dump())


def validate_service(raw: Any) -> models.Service:
    """Validate a single service entry (used by ``add service``)."""
    schema, errors = _run(ServiceSchema, raw)
    if errors:
        raise SchemaValidationError(errors)
    assert schema is not None
    return schema.to_domain()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _run(schema_cls: type[BaseModel], raw: Any) -> tuple[Any, list[tuple[str, str]]]:
    """Validate *raw* against *schema_cls*, returning ``(instance, errors)``."""
    try:
        return schema_cls.model_validate(raw), []
    except ValidationError as exc:
        return None, [_format_error(err) for err in exc.errors()]


def _format_error(error: dict[str, Any]) -> tuple[str, str]:
    path = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
    return path, error.get("msg", "invalid value")


def _duplicate_service_errors(raw: Any) -> list[tuple[str, str]]:
    """Report every service whose name or port repeats an earlier entry.

    Entries are compared after coercion, so ``"3000"`` and ``3000`` collide.
    Entries that fail their own validation are skipped; their field errors
    are already reported.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("services"), list):
        return []

    errors: list[tuple[str, str]] = []
    seen_names: set[str] = set()
    seen_ports: set[int] = set()
    for index, entry in enumerate(raw["services"]):
        try:
            service = ServiceSchema.model_validate(entry)
        except ValidationError:
            continue
        if service.name in seen_names:
            errors.append((f"services.{index}.name", f"Duplicate service name: {service.name}"))
        if service.port in seen_ports:
            errors.append((f"services.{index}.port", f"Duplicate service port: {service.port}"))
        seen_names.add(service.name)
        seen_ports.add(service.port)
    return errors
