"""Project configuration: domain types, schema, builder and persistence.

Quick usage::

    from saasquatch.project import ConfigBuilder, validate_config

    config = ConfigBuilder().set_project({"name": "acme"}).build()
    assert validate_config(config.to_dict()) == config
"""

from saasquatch.project.builder import ConfigBuilder, ProjectAnswers, build_config_from_answers
from saasquatch.project.models import ModelSpec, ProjectConfig, RouteSpec, Service
from saasquatch.project.schema import (
    validate_config,
    validate_model_spec,
    validate_partial,
    validate_route_spec,
)

__all__ = [
    "ConfigBuilder",
    "ModelSpec",
    "ProjectAnswers",
    "ProjectConfig",
    "RouteSpec",
    "Service",
    "build_config_from_answers",
    "validate_config",
    "validate_model_spec",
    "validate_partial",
    "validate_route_spec",
]
