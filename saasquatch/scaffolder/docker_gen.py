"""Docker Compose and infrastructure file planning.

Builds ``docker-compose.yml`` as data and serialises it with PyYAML, so the
service blocks are exactly the ones the configuration asks for: a
``postgres`` block only when the database is PostgreSQL, plus ``redis`` and
``nats``.  Also plans the PostgreSQL init script (one database per
database-enabled service) and the executable development setup script.
"""

from __future__ import annotations

from typing import Any

import yaml

from saasquatch.project.models import ProjectConfig
from saasquatch.scaffolder.plan import Artifact
from saasquatch.utils import snake_case


def plan_infrastructure(config: ProjectConfig, context: dict[str, Any]) -> list[Artifact]:
    """Artifacts for ``docker-compose.yml`` and ``infrastructure/``.

    Args:
        config: The validated project configuration.
        context: The project rendering context.
    """
    plan = [Artifact("docker-compose.yml", generator=render_compose, context=context)]
    if config.infrastructure.database.type == "postgresql":
        plan.append(Artifact("infrastructure/init.sql", template="infrastructure/init.sql", context=context))
    plan.append(
        Artifact(
            "infrastructure/setup.sh",
            template="infrastructure/setup.sh",
            context=context,
            executable=True,
        )
    )
    return plan


def compose_document(config: ProjectConfig) -> dict[str, Any]:
    """The Docker Compose document for *config*, as plain data."""
    infrastructure = config.infrastructure
    services: dict[str, Any] = {}
    volumes: dict[str, Any] = {}

    if infrastructure.database.type == "postgresql":
        services["postgres"] = {
            "image": f"postgres:{infrastructure.database.version or '16-alpine'}",
            "environment": {
                "POSTGRES_USER": "postgres",
                "POSTGRES_PASSWORD": "postgres",
                "POSTGRES_DB": snake_case(config.project.name),
            },
            "ports": ["5432:5432"],
            "volumes": [
                "postgres-data:/var/lib/postgresql/data",
                "./infrastructure/init.sql:/docker-entrypoint-initdb.d/init.sql:ro",
            ],
            "healthcheck": {
                "test": ["CMD-SHELL", "pg_isready -U postgres"],
                "interval": "10s",
                "timeout": "5s",
                "retries": 5,
            },
        }
        volumes["postgres-data"] = {}

    services["redis"] = {
        "image": f"redis:{infrastructure.cache.version}",
        "ports": ["6379:6379"],
        "volumes": ["redis-data:/data"],
        "healthcheck": {
            "test": ["CMD", "redis-cli", "ping"],
            "interval": "10s",
            "timeout": "5s",
            "retries": 5,
        },
    }
    volumes["redis-data"] = {}

    services["nats"] = {
        "image": f"nats:{infrastructure.message_queue.version}",
        "ports": ["4222:4222", "8222:8222"],
        "command": "--http_port 8222",
        "healthcheck": {
            "test": ["CMD", "wget", "-qO-", "http://localhost:8222/healthz"],
            "interval": "10s",
            "timeout": "5s",
            "retries": 5,
        },
    }

    return {
        "services": services,
        "networks": {"default": {"name": f"{config.project.name}-network"}},
        "volumes": volumes,
    }


def render_compose(ctx: dict[str, Any]) -> str:
    config: ProjectConfig = ctx["config"]
    header = (
        f"# Docker Compose configuration for {config.project.name}\n"
        "# Generated by SaaSQuatch\n\n"
    )
    return header + yaml.safe_dump(compose_document(config), sort_keys=False)
