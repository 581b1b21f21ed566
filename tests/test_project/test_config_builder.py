"""Tests for ConfigBuilder, default_config and build_config_from_answers."""

from __future__ import annotations

import pytest

from saasquatch.errors import SchemaValidationError
from saasquatch.project.builder import (
    DEFAULT_PROJECT_NAME,
    ConfigBuilder,
    ProjectAnswers,
    build_config_from_answers,
    default_config,
)


pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# default_config
# ---------------------------------------------------------------------------


class TestDefaultConfig:
    def test_three_default_services(self, config):
        assert [s.name for s in config.services] == ["api-gateway", "auth-service", "user-service"]
        assert [s.port for s in config.services] == [3000, 3001, 3002]

    def test_service_features(self, config):
        gateway, auth, users = config.services
        assert gateway.features.enabled() == ["cache", "rateLimit", "cors", "compression", "healthChecks"]
        assert auth.features.jwt is True
        assert auth.features.database is True
        assert users.features.message_queue is True
        assert users.features.multi_tenant is False

    def test_infrastructure(self, config):
        infra = config.infrastructure
        assert infra.database.type == "postgresql"
        assert infra.database.version == "16-alpine"
        assert infra.multi_tenancy_enabled is False
        assert infra.cache.type == "redis"
        assert infra.message_queue.type == "nats"

    def test_project_section(self, config):
        assert config.project.name == "test-app"
        assert config.project.package_manager == "pnpm"
        assert config.use_cases == ["api-first"]

    def test_default_name(self):
        assert default_config().project.name == DEFAULT_PROJECT_NAME


# ---------------------------------------------------------------------------
# ConfigBuilder
# ---------------------------------------------------------------------------


class TestConfigBuilder:
    def test_build_fills_defaults(self):
        config = ConfigBuilder().build()
        assert config.project.name == DEFAULT_PROJECT_NAME
        assert len(config.services) == 3
        assert config.deployment.target == "docker-compose"

    def test_build_is_repeatable(self):
        builder = ConfigBuilder().set_project({"name": "acme"})
        assert builder.build() == builder.build()

    def test_explicit_services_replace_defaults(self):
        config = (
            ConfigBuilder()
            .set_project({"name": "acme"})
            .add_service({"name": "api", "port": 4000})
            .build()
        )
        assert [s.name for s in config.services] == ["api"]

    def test_infrastructure_merges_one_level(self):
        config = (
            ConfigBuilder()
            .set_infrastructure({"database": {"strategy": "shared"}})
            .set_infrastructure({"database": {"multiTenancy": {"enabled": True}}})
            .build()
        )
        database = config.infrastructure.database
        assert database.strategy == "shared"
        assert database.type == "postgresql"
        assert config.infrastructure.multi_tenancy_enabled is True

    def test_set_project_merges(self):
        config = (
            ConfigBuilder()
            .set_project({"name": "acme"})
            .set_project({"author": "Ada"})
            .build()
        )
        assert config.project.name == "acme"
        assert config.project.author == "Ada"

    def test_observability_merges(self):
        config = ConfigBuilder().set_observability({"logging": {"level": "debug"}}).build()
        assert config.observability.logging.level == "debug"
        assert config.observability.logging.provider == "pino"

    def test_set_features(self):
        config = ConfigBuilder().set_features({"swagger": False}).build()
        assert config.swagger_enabled is False

    def test_build_rejects_invalid_input(self):
        with pytest.raises(SchemaValidationError):
            ConfigBuilder().set_project({"name": "Bad Name"}).build()

    def test_validate_draft_allows_empty_services(self):
        result = ConfigBuilder().set_project({"name": "acme"}).validate_draft()
        assert "services" not in result
        assert result["project"]["name"] == "acme"

    def test_validate_draft_reports_errors(self):
        builder = ConfigBuilder().add_service({"name": "api", "port": 80})
        with pytest.raises(SchemaValidationError):
            builder.validate_draft()


# ---------------------------------------------------------------------------
# Interactive answers
# ---------------------------------------------------------------------------


class TestBuildFromAnswers:
    def test_defaults_match_default_services(self):
        config = build_config_from_answers(ProjectAnswers(project_name="acme"))
        assert [s.name for s in config.services] == ["api-gateway", "auth-service", "user-service"]

    def test_sqlite_drops_version(self):
        config = build_config_from_answers(
            ProjectAnswers(project_name="acme", database_type="sqlite")
        )
        assert config.infrastructure.database.type == "sqlite"
        assert config.infrastructure.database.version is None

    def test_multi_tenancy_propagates_to_user_service(self):
        config = build_config_from_answers(
            ProjectAnswers(project_name="acme", enable_multi_tenancy=True)
        )
        assert config.infrastructure.multi_tenancy_enabled is True
        assert config.get_service("user-service").features.multi_tenant is True

    def test_service_selection(self):
        config = build_config_from_answers(
            ProjectAnswers(
                project_name="acme",
                include_api_gateway=False,
                include_user_service=False,
            )
        )
        assert [s.name for s in config.services] == ["auth-service"]

    def test_advanced_settings(self):
        config = build_config_from_answers(
            ProjectAnswers(
                project_name="acme",
                database_strategy="shared",
                log_level="warn",
                enable_tracing=False,
                enable_metrics=True,
                deployment_target="kubernetes",
                test_coverage=95,
            )
        )
        assert config.infrastructure.database.strategy == "shared"
        assert config.observability.logging.level == "warn"
        assert config.observability.tracing.enabled is False
        assert config.observability.metrics.provider == "prometheus"
        assert config.deployment.target == "kubernetes"
        assert config.coverage_threshold == 95

    def test_blank_description_is_omitted(self):
        config = build_config_from_answers(ProjectAnswers(project_name="acme"))
        assert config.project.description is None
        assert "description" not in config.to_dict()["project"]
