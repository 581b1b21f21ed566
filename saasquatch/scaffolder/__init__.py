"""SaaSQuatch scaffolder: plans and writes Fastify monorepo artifacts.

Planners turn a validated ``ProjectConfig`` (plus a ``ModelSpec`` or
``RouteSpec`` for the incremental commands) into an ordered list of
``Artifact`` descriptors; ``PlanExecutor`` renders and writes them.

Quick usage::

    from saasquatch.project import ConfigBuilder
    from saasquatch.scaffolder import ProjectGenerator

    config = ConfigBuilder().set_project({"name": "acme"}).build()
    written = await ProjectGenerator(config).generate("/tmp/acme")
"""

from saasquatch.scaffolder.docker_gen import compose_document, plan_infrastructure
from saasquatch.scaffolder.generator import (
    ProjectGenerator,
    plan_docs,
    plan_project,
    plan_service,
    plan_shared,
)
from saasquatch.scaffolder.model_gen import MigrationClock, plan_model
from saasquatch.scaffolder.plan import Artifact, PlanExecutor
from saasquatch.scaffolder.route_gen import plan_route, register_route
from saasquatch.scaffolder.templates import TemplateRenderer

__all__ = [
    "Artifact",
    "MigrationClock",
    "PlanExecutor",
    "ProjectGenerator",
    "TemplateRenderer",
    "compose_document",
    "plan_docs",
    "plan_infrastructure",
    "plan_model",
    "plan_project",
    "plan_route",
    "plan_service",
    "plan_shared",
    "register_route",
]
