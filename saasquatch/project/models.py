"""Domain types for a SaaSQuatch project configuration.

These are plain dataclasses produced by the validator in
``saasquatch.project.schema``; nothing in this module validates input.
``to_dict()`` emits the persisted wire format (camelCase keys, optional
sections omitted when unset), so ``validate_config(cfg.to_dict()) == cfg``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

PACKAGE_MANAGERS = ("npm", "yarn", "pnpm")
DATABASE_TYPES = ("postgresql", "sqlite")
DATABASE_STRATEGIES = ("shared", "separate")
TENANCY_MODELS = ("schema-per-tenant", "database-per-tenant", "row-level")
SERVICE_TYPES = ("standard", "gateway", "auth")
LOG_LEVELS = ("trace", "debug", "info", "warn", "error", "fatal")
TRACING_PROVIDERS = ("opentelemetry", "none")
METRICS_PROVIDERS = ("prometheus", "none")
DEPLOYMENT_TARGETS = ("docker-compose", "kubernetes", "native")
USE_CASES = ("saas", "ecommerce", "api-first", "realtime")
ROUTE_METHODS = ("get-list", "get-one", "post", "put", "delete")

FIELD_TYPES = (
    "string", "text", "varchar", "uuid",
    "integer", "int", "bigint", "float", "decimal",
    "boolean", "bool",
    "timestamp", "datetime", "date",
    "json", "jsonb",
)

SERVICE_FEATURE_KEYS: dict[str, str] = {
    "database": "database",
    "cache": "cache",
    "message_queue": "messageQueue",
    "authentication": "authentication",
    "multi_tenant": "multiTenant",
    "rate_limit": "rateLimit",
    "cors": "cors",
    "compression": "compression",
    "health_checks": "healthChecks",
    "jwt": "jwt",
}


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


# ---------------------------------------------------------------------------
# Project section
# ---------------------------------------------------------------------------


@dataclass
class ProjectInfo:
    name: str
    description: str | None = None
    author: str | None = None
    package_manager: str = "pnpm"

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "name": self.name,
            "description": self.description,
            "author": self.author,
            "packageManager": self.package_manager,
        })


@dataclass
class Framework:
    name: str = "fastify"
    version: str = "^4.24.0"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version}


# ---------------------------------------------------------------------------
# Infrastructure section
# ---------------------------------------------------------------------------


@dataclass
class CacheConfig:
    type: str = "redis"
    version: str = "7-alpine"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "version": self.version}


@dataclass
class MultiTenancy:
    enabled: bool = False
    model: str = "schema-per-tenant"

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "model": self.model}


@dataclass
class DatabaseConfig:
    type: str = "postgresql"
    version: str | None = None
    strategy: str = "separate"
    multi_tenancy: MultiTenancy | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "type": self.type,
            "version": self.version,
            "strategy": self.strategy,
            "multiTenancy": self.multi_tenancy.to_dict() if self.multi_tenancy else None,
        })


@dataclass
class MessageQueueConfig:
    type: str = "nats"
    version: str = "2.10-alpine"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "version": self.version}


@dataclass
class Infrastructure:
    cache: CacheConfig = field(default_factory=CacheConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    message_queue: MessageQueueConfig = field(default_factory=MessageQueueConfig)

    @property
    def multi_tenancy_enabled(self) -> bool:
        """Resolved multi-tenancy flag used by every rendering context."""
        tenancy = self.database.multi_tenancy
        return bool(tenancy is not None and tenancy.enabled)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cache": self.cache.to_dict(),
            "database": self.database.to_dict(),
            "messageQueue": self.message_queue.to_dict(),
        }


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@dataclass
class ServiceFeatures:
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

    @property
    def needs_auth_plugin(self) -> bool:
        return self.authentication or self.jwt

    def enabled(self) -> list[str]:
        """Wire names of every feature switched on, in declaration order."""
        return [wire for attr, wire in SERVICE_FEATURE_KEYS.items() if getattr(self, attr)]

    def to_dict(self) -> dict[str, Any]:
        return {wire: getattr(self, attr) for attr, wire in SERVICE_FEATURE_KEYS.items()}


@dataclass
class Service:
    name: str
    port: int
    features: ServiceFeatures = field(default_factory=ServiceFeatures)
    type: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "name": self.name,
            "port": self.port,
            "type": self.type,
            "features": self.features.to_dict(),
            "description": self.description,
        })


# ---------------------------------------------------------------------------
# Observability, deployment, features
# ---------------------------------------------------------------------------


@dataclass
class LoggingConfig:
    provider: str = "pino"
    level: str = "info"

    def to_dict(self) -> dict[str, Any]:
        return {"provider": self.provider, "level": self.level}


@dataclass
class TracingConfig:
    provider: str = "opentelemetry"
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"provider": self.provider, "enabled": self.enabled}


@dataclass
class MetricsConfig:
    enabled: bool = False
    provider: str = "none"

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "provider": self.provider}


@dataclass
class Observability:
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    health_checks: bool = True
    tracing: TracingConfig = field(default_factory=TracingConfig)
    metrics: MetricsConfig | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "logging": self.logging.to_dict(),
            "healthChecks": self.health_checks,
            "tracing": self.tracing.to_dict(),
            "metrics": self.metrics.to_dict() if self.metrics else None,
        })


@dataclass
class Deployment:
    target: str = "docker-compose"
    registry: str | None = None
    namespace: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "target": self.target,
            "registry": self.registry,
            "namespace": self.namespace,
        })


@dataclass
class ProjectTesting:
    unit: bool = True
    integration: bool = True
    e2e: bool = False
    coverage: int = 80

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit": self.unit,
            "integration": self.integration,
            "e2e": self.e2e,
            "coverage": self.coverage,
        }


@dataclass
class ProjectFeatures:
    """Project-wide feature switches layered over the per-service flags."""

    multi_tenancy: bool = False
    authentication: bool = True
    rate_limit: bool = True
    cors: bool = True
    compression: bool = True
    swagger: bool = True
    testing: ProjectTesting | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "multiTenancy": self.multi_tenancy,
            "authentication": self.authentication,
            "rateLimit": self.rate_limit,
            "cors": self.cors,
            "compression": self.compression,
            "swagger": self.swagger,
            "testing": self.testing.to_dict() if self.testing else None,
        })


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass
class ProjectConfig:
    project: ProjectInfo
    services: list[Service]
    framework: Framework = field(default_factory=Framework)
    infrastructure: Infrastructure = field(default_factory=Infrastructure)
    observability: Observability = field(default_factory=Observability)
    deployment: Deployment = field(default_factory=Deployment)
    version: str = "1.0.0"
    use_cases: list[str] = field(default_factory=list)
    features: ProjectFeatures | None = None

    @property
    def swagger_enabled(self) -> bool:
        return self.features.swagger if self.features else True

    @property
    def coverage_threshold(self) -> int:
        if self.features and self.features.testing:
            return self.features.testing.coverage
        return ProjectTesting().coverage

    def get_service(self, name: str) -> Service | None:
        for service in self.services:
            if service.name == name:
                return service
        return None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "version": self.version,
            "project": self.project.to_dict(),
            "framework": self.framework.to_dict(),
            "infrastructure": self.infrastructure.to_dict(),
            "services": [service.to_dict() for service in self.services],
            "observability": self.observability.to_dict(),
            "deployment": self.deployment.to_dict(),
            "useCases": list(self.use_cases),
            "features": self.features.to_dict() if self.features else None,
        })


# ---------------------------------------------------------------------------
# Add-command inputs
# ---------------------------------------------------------------------------


@dataclass
class FieldSpec:
    name: str
    type: str = "string"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}


@dataclass
class ModelSpec:
    service: str
    name: str
    table_name: str
    fields: list[FieldSpec]
    timestamps: bool = True
    soft_delete: bool = False


@dataclass
class RouteSpec:
    service: str
    name: str
    path: str
    methods: list[str] = field(default_factory=lambda: list(ROUTE_METHODS))
    authentication: bool = True
    validation: bool = True
