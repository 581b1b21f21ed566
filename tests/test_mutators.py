"""Tests for the add-command mutators (saasquatch.mutators).

Covers:
- add service: port assignment, persistence, generated directory
- add route: registration patch and duplicate detection
- add model: database precondition, tenant scoping, migration ordering
- The mutation state machine and failure semantics
"""

from __future__ import annotations

import shutil
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from saasquatch.errors import (
    DuplicateArtifactError,
    FeatureUnavailableError,
    GenerationError,
    PartialGenerationError,
    PersistenceError,
    SchemaValidationError,
    TargetNotFoundError,
)
from saasquatch.mutators import (
    MUTATIONS,
    AddModelMutation,
    AddRouteMutation,
    AddServiceMutation,
    MutationState,
    default_model_request,
    default_route_request,
    default_service_request,
    next_port,
    parse_fields,
)
from saasquatch.project.store import config_path, load_config
from saasquatch.scaffolder.model_gen import MigrationClock
from saasquatch.scaffolder.templates import TemplateRenderer


pytestmark = pytest.mark.unit


def _config_bytes(root: Path) -> bytes:
    return config_path(root).read_bytes()


def _route_request(**overrides):
    request = {
        "service": "user-service",
        "name": "profiles",
        "path": "/profiles",
        "methods": ["get-list", "get-one", "post", "put", "delete"],
        "authentication": True,
        "validation": True,
    }
    request.update(overrides)
    return request


def _model_request(**overrides):
    request = {
        "service": "user-service",
        "name": "Order",
        "tableName": "orders",
        "fields": [{"name": "id", "type": "uuid"}, {"name": "total", "type": "decimal"}],
        "timestamps": True,
        "softDelete": False,
    }
    request.update(overrides)
    return request


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


class TestRequestHelpers:
    def test_next_port(self, config):
        assert next_port(config) == 3003

    def test_parse_fields(self):
        assert parse_fields("id:uuid, total:decimal\nnote") == [
            {"name": "id", "type": "uuid"},
            {"name": "total", "type": "decimal"},
            {"name": "note", "type": "string"},
        ]
        assert parse_fields(" , ") == []

    def test_default_requests(self, config):
        service = default_service_request(config, "payments")
        assert service["port"] == 3003
        assert service["features"]["database"] is True

        route = default_route_request(config)
        assert route["service"] == "api-gateway"
        assert route["path"] == "/items"

        model = default_model_request(config, "Invoice")
        assert model["service"] == "api-gateway"
        assert model["tableName"] == "invoices"

    def test_registry(self):
        assert MUTATIONS == {
            "service": AddServiceMutation,
            "route": AddRouteMutation,
            "model": AddModelMutation,
        }


# ---------------------------------------------------------------------------
# add service
# ---------------------------------------------------------------------------


class TestAddService:
    async def test_adds_service_with_next_port(self, project_root: Path, config):
        mutation = AddServiceMutation(project_root)
        written = await mutation.run(default_service_request(config, "payments"))

        updated = await load_config(project_root)
        assert [s.name for s in updated.services][-1] == "payments"
        assert updated.get_service("payments").port == 3003
        assert (project_root / "services/payments/src/app.ts").is_file()
        assert (project_root / "services/payments/src/plugins/database.ts").is_file()
        assert all("services/payments" in p.as_posix() for p in written)
        assert mutation.service.name == "payments"
        assert mutation.persisted is True

    async def test_ports_increase(self, project_root: Path):
        await AddServiceMutation(project_root).run({"name": "billing"})
        await AddServiceMutation(project_root).run({"name": "search"})
        updated = await load_config(project_root)
        assert [s.port for s in updated.services] == [3000, 3001, 3002, 3003, 3004]

    async def test_state_history(self, project_root: Path):
        mutation = AddServiceMutation(project_root)
        await mutation.run({"name": "billing"})
        assert mutation.history == [
            MutationState.IDLE,
            MutationState.VALIDATING,
            MutationState.COMPUTING,
            MutationState.PERSISTING,
            MutationState.PLANNING,
            MutationState.EXECUTING,
            MutationState.DONE,
        ]
        assert mutation.state is MutationState.DONE

    async def test_duplicate_name(self, project_root: Path):
        before = _config_bytes(project_root)
        mutation = AddServiceMutation(project_root)
        with pytest.raises(DuplicateArtifactError):
            await mutation.run({"name": "auth-service"})
        assert mutation.state is MutationState.FAILED
        assert mutation.history[-2] is MutationState.VALIDATING
        assert _config_bytes(project_root) == before

    async def test_duplicate_port(self, project_root: Path):
        with pytest.raises(DuplicateArtifactError, match="3001"):
            await AddServiceMutation(project_root).run({"name": "billing", "port": 3001})

    async def test_existing_directory(self, project_root: Path):
        (project_root / "services/billing").mkdir()
        with pytest.raises(DuplicateArtifactError):
            await AddServiceMutation(project_root).run({"name": "billing"})

    async def test_invalid_name_leaves_config_untouched(self, project_root: Path):
        before = _config_bytes(project_root)
        mutation = AddServiceMutation(project_root)
        with pytest.raises(SchemaValidationError):
            await mutation.run({"name": "Billing"})
        assert mutation.error is not None
        assert mutation.history[-2] is MutationState.COMPUTING
        assert _config_bytes(project_root) == before
        assert not (project_root / "services/Billing").exists()

    async def test_missing_config(self, tmp_path: Path):
        mutation = AddServiceMutation(tmp_path)
        with pytest.raises(PersistenceError):
            await mutation.run({"name": "billing"})
        assert mutation.history == [
            MutationState.IDLE,
            MutationState.VALIDATING,
            MutationState.FAILED,
        ]

    async def test_failure_after_persist_is_partial(self, project_root: Path):
        mutation = AddServiceMutation(project_root)
        mutation.executor.execute = AsyncMock(side_effect=GenerationError("disk full"))
        with pytest.raises(PartialGenerationError) as exc:
            await mutation.run({"name": "billing"})
        assert isinstance(exc.value.cause, GenerationError)
        assert "out of sync" in str(exc.value)
        assert mutation.persisted is True
        assert (await load_config(project_root)).get_service("billing") is not None

    async def test_template_failure_after_persist_is_partial(self, project_root: Path, tmp_path: Path):
        templates = tmp_path / "broken-templates"
        shutil.copytree(TemplateRenderer().template_dir, templates)
        for template in templates.rglob("*.j2"):
            template.write_text("{{ missing.attribute }}", encoding="utf-8")

        mutation = AddServiceMutation(project_root, renderer=TemplateRenderer(templates))
        with pytest.raises(PartialGenerationError) as exc:
            await mutation.run({"name": "billing"})
        assert isinstance(exc.value.cause, GenerationError)
        assert mutation.persisted is True

    async def test_unexpected_error_after_persist_propagates(self, project_root: Path):
        mutation = AddServiceMutation(project_root)
        mutation.executor.execute = AsyncMock(side_effect=RuntimeError("bug"))
        with pytest.raises(RuntimeError):
            await mutation.run({"name": "billing"})
        assert mutation.state is MutationState.FAILED


# ---------------------------------------------------------------------------
# add route
# ---------------------------------------------------------------------------


class TestAddRoute:
    async def test_generates_and_registers(self, project_root: Path):
        before = _config_bytes(project_root)
        mutation = AddRouteMutation(project_root)
        written = await mutation.run(_route_request())

        root = project_root / "services/user-service"
        assert written[0] == root / "src/app.ts"
        assert (root / "src/routes/profiles.ts").is_file()
        assert (root / "test/integration/profiles.test.ts").is_file()

        app = (root / "src/app.ts").read_text(encoding="utf-8")
        assert "import profilesRoutes from './routes/profiles.js';" in app
        assert "  await app.register(profilesRoutes);\n\n  return app;" in app

        assert mutation.persisted is False
        assert _config_bytes(project_root) == before
        assert mutation.warnings == []

    async def test_second_identical_route_fails(self, project_root: Path):
        await AddRouteMutation(project_root).run(_route_request())
        app_before = (project_root / "services/user-service/src/app.ts").read_text(encoding="utf-8")

        with pytest.raises(DuplicateArtifactError):
            await AddRouteMutation(project_root).run(_route_request())

        app_after = (project_root / "services/user-service/src/app.ts").read_text(encoding="utf-8")
        assert app_after == app_before
        assert app_after.count("profilesRoutes from") == 1

    async def test_already_registered_in_app(self, project_root: Path):
        await AddRouteMutation(project_root).run(_route_request())
        (project_root / "services/user-service/src/routes/profiles.ts").unlink()
        with pytest.raises(DuplicateArtifactError):
            await AddRouteMutation(project_root).run(_route_request())

    async def test_unknown_service(self, project_root: Path):
        with pytest.raises(TargetNotFoundError):
            await AddRouteMutation(project_root).run(_route_request(service="billing"))

    async def test_missing_service_directory(self, project_root: Path):
        shutil.rmtree(project_root / "services/user-service")
        with pytest.raises(TargetNotFoundError, match="services/user-service"):
            await AddRouteMutation(project_root).run(_route_request())

    async def test_invalid_path(self, project_root: Path):
        with pytest.raises(SchemaValidationError):
            await AddRouteMutation(project_root).run(_route_request(path="profiles"))

    async def test_warns_without_auth_plugin(self, project_root: Path):
        mutation = AddRouteMutation(project_root)
        await mutation.run(_route_request(service="api-gateway"))
        assert len(mutation.warnings) == 1
        assert "api-gateway" in mutation.warnings[0]

    async def test_generation_error_is_not_partial(self, project_root: Path):
        mutation = AddRouteMutation(project_root)
        with patch.object(mutation.executor, "execute", AsyncMock(side_effect=GenerationError("x"))):
            with pytest.raises(GenerationError):
                await mutation.run(_route_request())


# ---------------------------------------------------------------------------
# add model
# ---------------------------------------------------------------------------


class TestAddModel:
    async def test_generates_four_files(self, project_root: Path, clock: MigrationClock):
        before = _config_bytes(project_root)
        written = await AddModelMutation(project_root, clock=clock).run(_model_request())
        rel = [p.relative_to(project_root).as_posix() for p in written]
        assert rel[0] == "services/user-service/src/models/order.model.ts"
        assert rel[1] == "services/user-service/src/repositories/order.repository.ts"
        assert rel[2].startswith("services/user-service/migrations/")
        assert rel[2].endswith("_create_orders.ts")
        assert rel[3] == "services/user-service/test/unit/order.repository.test.ts"
        assert _config_bytes(project_root) == before

    async def test_service_without_database(self, project_root: Path, config):
        before = _config_bytes(project_root)
        with pytest.raises(FeatureUnavailableError):
            await AddModelMutation(project_root).run(default_model_request(config))
        assert _config_bytes(project_root) == before
        assert not (project_root / "services/api-gateway/src/models").exists()

    async def test_invalid_model_name(self, project_root: Path):
        with pytest.raises(SchemaValidationError):
            await AddModelMutation(project_root).run(_model_request(name="order"))

    async def test_no_tenant_scoping_by_default(self, project_root: Path, clock: MigrationClock):
        written = await AddModelMutation(project_root, clock=clock).run(_model_request())
        for path in written:
            assert "tenant" not in path.read_text(encoding="utf-8").lower()

    async def test_tenant_scoping(self, tenant_project_root: Path, clock: MigrationClock):
        written = await AddModelMutation(tenant_project_root, clock=clock).run(_model_request())
        model, repository, migration, _ = (p.read_text(encoding="utf-8") for p in written)
        assert "tenant_id" in model
        assert "tenantId" in repository
        assert "tenant_id" in migration

    async def test_migration_sorts_after_existing(self, project_root: Path, clock: MigrationClock):
        migrations = project_root / "services/user-service/migrations"
        migrations.mkdir()
        (migrations / "20990101000000_create_users.ts").write_text("", encoding="utf-8")
        written = await AddModelMutation(project_root, clock=clock).run(_model_request())
        assert written[2].name == "20990101000001_create_orders.ts"

    async def test_consecutive_models(self, project_root: Path, clock: MigrationClock):
        first = await AddModelMutation(project_root, clock=clock).run(_model_request())
        second = await AddModelMutation(project_root, clock=clock).run(
            _model_request(name="Invoice", tableName="invoices")
        )
        assert first[2].name < second[2].name
