"""Fluent builder that turns partial input into a validated ``ProjectConfig``.

The builder stages wire-format fragments in a draft dict without validating
them; ``build()`` fills every section that is still wholly unset with the
project defaults and then runs the full validator.  ``build()`` does not
mutate the draft, so calling it twice yields equal configurations.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from saasquatch.project.models import ProjectConfig
from saasquatch.project.schema import validate_config, validate_partial


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_PROJECT_NAME = "my-saas-platform"
DEFAULT_PROJECT_DESCRIPTION = "A modern SaaS platform built with Fastify microservices"

DEFAULT_FRAMEWORK: dict[str, Any] = {"name": "fastify", "version": "^4.24.0"}

DEFAULT_INFRASTRUCTURE: dict[str, Any] = {
    "cache": {"type": "redis", "version": "7-alpine"},
    "database": {
        "type": "postgresql",
        "version": "16-alpine",
        "strategy": "separate",
        "multiTenancy": {"enabled": False, "model": "schema-per-tenant"},
    },
    "messageQueue": {"type": "nats", "version": "2.10-alpine"},
}

DEFAULT_OBSERVABILITY: dict[str, Any] = {
    "logging": {"provider": "pino", "level": "info"},
    "healthChecks": True,
    "tracing": {"provider": "opentelemetry", "enabled": True},
}

DEFAULT_DEPLOYMENT: dict[str, Any] = {"target": "docker-compose"}


def _features(**enabled: bool) -> dict[str, bool]:
    flags = {
        "database": False,
        "cache": False,
        "messageQueue": False,
        "authentication": False,
        "multiTenant": False,
        "rateLimit": False,
        "cors": False,
        "compression": False,
        "healthChecks": True,
        "jwt": False,
    }
    flags.update(enabled)
    return flags


API_GATEWAY: dict[str, Any] = {
    "name": "api-gateway",
    "port": 3000,
    "type": "gateway",
    "features": _features(cache=True, rateLimit=True, cors=True, compression=True),
    "description": "API Gateway - Entry point for all services",
}

AUTH_SERVICE: dict[str, Any] = {
    "name": "auth-service",
    "port": 3001,
    "type": "auth",
    "features": _features(database=True, cache=True, authentication=True, jwt=True),
    "description": "Authentication Service - JWT-based authentication",
}

USER_SERVICE: dict[str, Any] = {
    "name": "user-service",
    "port": 3002,
    "type": "standard",
    "features": _features(
        database=True, cache=True, messageQueue=True, authentication=True, multiTenant=True
    ),
    "description": "User Management Service - User CRUD operations",
}

DEFAULT_SERVICES: list[dict[str, Any]] = [API_GATEWAY, AUTH_SERVICE, USER_SERVICE]


# ---------------------------------------------------------------------------
# ConfigBuilder
# ---------------------------------------------------------------------------


class ConfigBuilder:
    """Accumulates configuration fragments and produces a validated config.

    Example::

        config = (
            ConfigBuilder()
            .set_project({"name": "acme"})
            .set_infrastructure({"database": {"type": "sqlite"}})
            .build()
        )
    """

    def __init__(self) -> None:
        self._draft: dict[str, Any] = {"services": []}

    # -- Staging -----------------------------------------------------------

    def set_project(self, project: dict[str, Any]) -> ConfigBuilder:
        self._draft["project"] = {**self._draft.get("project", {}), **project}
        return self

    def set_infrastructure(self, infrastructure: dict[str, Any]) -> ConfigBuilder:
        """Layer *infrastructure* over the defaults and anything staged before.

        Sections are merged one level deep, so passing only
        ``{"database": {"type": "sqlite"}}`` keeps the default strategy.
        """
        merged = copy.deepcopy(DEFAULT_INFRASTRUCTURE)
        for source in (self._draft.get("infrastructure", {}), infrastructure):
            for section, values in source.items():
                if isinstance(values, dict) and isinstance(merged.get(section), dict):
                    merged[section] = {**merged[section], **values}
                else:
                    merged[section] = values
        self._draft["infrastructure"] = merged
        return self

    def add_service(self, service: dict[str, Any]) -> ConfigBuilder:
        self._draft["services"].append(copy.deepcopy(service))
        return self

    def set_use_cases(self, use_cases: list[str]) -> ConfigBuilder:
        self._draft["useCases"] = list(use_cases)
        return self

    def set_observability(self, observability: dict[str, Any]) -> ConfigBuilder:
        merged = copy.deepcopy(self._draft.get("observability", DEFAULT_OBSERVABILITY))
        for key, value in observability.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        self._draft["observability"] = merged
        return self

    def set_deployment(self, deployment: dict[str, Any]) -> ConfigBuilder:
        self._draft["deployment"] = {**self._draft.get("deployment", DEFAULT_DEPLOYMENT), **deployment}
        return self

    def set_features(self, features: dict[str, Any]) -> ConfigBuilder:
        self._draft["features"] = {**self._draft.get("features", {}), **features}
        return self

    # -- Validation --------------------------------------------------------

    def validate_draft(self) -> dict[str, Any]:
        """Validate what has been staged so far without filling defaults.

        An empty service list is not yet an error at this point; ``build()``
        replaces it with the default services.
        """
        draft = copy.deepcopy(self._draft)
        if not draft.get("services"):
            draft.pop("services", None)
        return validate_partial(draft)

    def build(self) -> ProjectConfig:
        """Fill unset sections with defaults and validate the result.

        Raises:
            SchemaValidationError: If the completed configuration is invalid.
        """
        config = copy.deepcopy(self._draft)
        config.setdefault("version", "1.0.0")
        config.setdefault("project", {"name": DEFAULT_PROJECT_NAME})
        config.setdefault("framework", copy.deepcopy(DEFAULT_FRAMEWORK))
        config.setdefault("infrastructure", copy.deepcopy(DEFAULT_INFRASTRUCTURE))
        if not config.get("services"):
            config["services"] = copy.deepcopy(DEFAULT_SERVICES)
        config.setdefault("observability", copy.deepcopy(DEFAULT_OBSERVABILITY))
        config.setdefault("deployment", copy.deepcopy(DEFAULT_DEPLOYMENT))
        config.setdefault("useCases", [])
        return validate_config(config)


# ---------------------------------------------------------------------------
# Interactive answers
# ---------------------------------------------------------------------------


@dataclass
class ProjectAnswers:
    """Raw answers gathered by the interactive ``init`` flow."""

    project_name: str
    description: str = ""
    author: str = ""
    database_type: str = "postgresql"
    enable_multi_tenancy: bool = False
    include_api_gateway: bool = True
    include_auth_service: bool = True
    include_user_service: bool = True
    use_cases: list[str] = field(default_factory=list)
    package_manager: str = "pnpm"
    # Advanced settings, ``None`` when the operator skipped them
    database_strategy: str | None = None
    log_level: str | None = None
    enable_tracing: bool | None = None
    enable_metrics: bool | None = None
    deployment_target: str | None = None
    test_coverage: int | None = None


def build_config_from_answers(answers: ProjectAnswers) -> ProjectConfig:
    """Map interactive answers onto a ``ConfigBuilder`` and build the config."""
    builder = ConfigBuilder()
    builder.set_project({
        "name": answers.project_name,
        "description": answers.description or None,
        "author": answers.author or None,
        "packageManager": answers.package_manager,
    })

    database: dict[str, Any] = {
        "type": answers.database_type,
        "strategy": answers.database_strategy or "separate",
        "multiTenancy": {
            "enabled": answers.enable_multi_tenancy,
            "model": "schema-per-tenant",
        },
    }
    if answers.database_type != "postgresql":
        database["version"] = None
    builder.set_infrastructure({"database": database})

    if answers.include_api_gateway:
        builder.add_service(API_GATEWAY)
    if answers.include_auth_service:
        builder.add_service(AUTH_SERVICE)
    if answers.include_user_service:
        user = copy.deepcopy(USER_SERVICE)
        user["features"]["multiTenant"] = answers.enable_multi_tenancy
        builder.add_service(user)

    if answers.use_cases:
        builder.set_use_cases(answers.use_cases)

    observability: dict[str, Any] = {}
    if answers.log_level:
        observability["logging"] = {"level": answers.log_level}
    if answers.enable_tracing is not None:
        observability["tracing"] = {"enabled": answers.enable_tracing}
    if answers.enable_metrics:
        observability["metrics"] = {"enabled": True, "provider": "prometheus"}
    if observability:
        builder.set_observability(observability)

    if answers.deployment_target:
        builder.set_deployment({"target": answers.deployment_target})
    if answers.test_coverage is not None:
        builder.set_features({
            "testing": {
                "unit": True,
                "integration": True,
                "e2e": False,
                "coverage": answers.test_coverage,
            },
        })

    return builder.build()


def default_config(project_name: str = DEFAULT_PROJECT_NAME) -> ProjectConfig:
    """Configuration produced by ``init --yes``."""
    user = copy.deepcopy(USER_SERVICE)
    user["features"]["multiTenant"] = False
    return (
        ConfigBuilder()
        .set_project({
            "name": project_name,
            "description": DEFAULT_PROJECT_DESCRIPTION,
            "packageManager": "pnpm",
        })
        .set_infrastructure({})
        .add_service(API_GATEWAY)
        .add_service(AUTH_SERVICE)
        .add_service(user)
        .set_use_cases(["api-first"])
        .build()
    )
