"""Data-model planning for ``add model``.

A model is four artifacts inside its service directory: the TypeScript data
shape with create/update DTOs, a Knex repository, a timestamped migration and
a unit-test skeleton for the repository.  Tenant scoping follows the
project-level ``multiTenancy.enabled`` flag: when it is off, none of the four
files mentions a tenant.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from saasquatch.errors import FeatureUnavailableError, TargetNotFoundError
from saasquatch.project.models import FieldSpec, ModelSpec, ProjectConfig
from saasquatch.scaffolder.generator import service_context, service_root
from saasquatch.scaffolder.plan import Artifact
from saasquatch.utils import camel_case


# ---------------------------------------------------------------------------
# Type mapping
# ---------------------------------------------------------------------------

_TS_TYPE_MAP: dict[str, str] = {
    "string": "string",
    "text": "string",
    "varchar": "string",
    "uuid": "string",
    "integer": "number",
    "int": "number",
    "bigint": "number",
    "float": "number",
    "decimal": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "timestamp": "Date",
    "datetime": "Date",
    "date": "Date",
    "json": "any",
    "jsonb": "any",
}

_KNEX_METHOD_MAP: dict[str, str] = {
    "uuid": "uuid",
    "string": "string",
    "varchar": "string",
    "text": "text",
    "integer": "integer",
    "int": "integer",
    "bigint": "bigInteger",
    "float": "decimal",
    "decimal": "decimal",
    "boolean": "boolean",
    "bool": "boolean",
    "timestamp": "timestamp",
    "datetime": "timestamp",
    "date": "date",
    "json": "json",
    "jsonb": "jsonb",
}

# (create value, update value) as TypeScript literals
_MOCK_VALUES: dict[str, tuple[str, str]] = {
    "string": ("'Test'", "'Updated Test'"),
    "varchar": ("'Test'", "'Updated Test'"),
    "text": ("'Test'", "'Updated Test'"),
    "uuid": ("'11111111-1111-1111-1111-111111111111'", "'22222222-2222-2222-2222-222222222222'"),
    "integer": ("100", "200"),
    "int": ("100", "200"),
    "bigint": ("100", "200"),
    "float": ("100.5", "200.5"),
    "decimal": ("100.5", "200.5"),
    "boolean": ("true", "false"),
    "bool": ("true", "false"),
}
_DEFAULT_MOCK = ("'value'", "'alternate'")

# Columns the generator owns; never part of a create/update payload
SERVER_MANAGED = ("id", "created_at", "updated_at", "deleted_at", "tenant_id")


def ts_type(field_type: str) -> str:
    return _TS_TYPE_MAP.get(field_type.lower(), "string")


def knex_column(field: FieldSpec) -> str:
    """Knex schema-builder expression for one declared field."""
    kind = field.type.lower()
    method = _KNEX_METHOD_MAP.get(kind, "string")
    expr = f"table.{method}('{field.name}')"
    if field.name == "id":
        if method == "uuid":
            return f"{expr}.primary().defaultTo(knex.raw('gen_random_uuid()'))"
        return f"{expr}.primary()"
    return f"{expr}.notNullable()"


def mock_values(field_type: str) -> tuple[str, str]:
    """Deterministic ``(create, update)`` TypeScript literals for a field type."""
    return _MOCK_VALUES.get(field_type.lower(), _DEFAULT_MOCK)


# ---------------------------------------------------------------------------
# Migration timestamps
# ---------------------------------------------------------------------------


class MigrationClock:
    """Issues ``YYYYMMDDHHMMSS`` stamps that strictly increase.

    Two models planned within the same second get stamps one second apart,
    and ``observe()`` lets callers seed the clock with stamps already on
    disk so a new migration always sorts after existing ones.
    """

    FORMAT = "%Y%m%d%H%M%S"

    def __init__(self) -> None:
        self._last: datetime | None = None

    def observe(self, stamp: str) -> None:
        try:
            seen = datetime.strptime(stamp, self.FORMAT)
        except ValueError:
            return
        if self._last is None or seen > self._last:
            self._last = seen

    def next(self, now: datetime | None = None) -> str:
        current = (now or datetime.now()).replace(microsecond=0)
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(seconds=1)
        self._last = current
        return current.strftime(self.FORMAT)


default_clock = MigrationClock()


def existing_migration_stamps(project_root: str | Path, service: str) -> list[str]:
    """Timestamp prefixes of the migrations already present for *service*."""
    migrations = Path(project_root) / service_root(service) / "migrations"
    if not migrations.is_dir():
        return []
    return sorted(p.name.split("_", 1)[0] for p in migrations.glob("*_*.ts"))


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------


def model_context(config: ProjectConfig, spec: ModelSpec, migration_stamp: str) -> dict[str, Any]:
    service = config.get_service(spec.service)
    assert service is not None
    ctx = service_context(config, service)

    reserved = {"tenant_id"}
    if spec.timestamps:
        reserved.update({"created_at", "updated_at"})
    if spec.soft_delete:
        reserved.add("deleted_at")

    columns: list[dict[str, Any]] = []
    for field in spec.fields:
        if field.name in reserved:
            continue
        create_value, update_value = mock_values(field.type)
        columns.append({
            "name": field.name,
            "type": field.type,
            "ts_type": ts_type(field.type),
            "column": knex_column(field),
            "mock": create_value,
            "mock_update": update_value,
        })

    writable = [c for c in columns if c["name"] not in SERVER_MANAGED]
    ctx.update({
        "model_name": spec.name,
        "model_var": camel_case(spec.name),
        "file_stem": spec.name.lower(),
        "table_name": spec.table_name,
        "columns": columns,
        "writable_fields": writable,
        "sample_field": writable[0] if writable else None,
        "timestamps": spec.timestamps,
        "soft_delete": spec.soft_delete,
        "migration_stamp": migration_stamp,
    })
    return ctx


def plan_model(
    config: ProjectConfig,
    spec: ModelSpec,
    clock: MigrationClock | None = None,
) -> list[Artifact]:
    """Plan the four artifacts of a data model.

    Raises:
        TargetNotFoundError: If ``spec.service`` is not in the configuration.
        FeatureUnavailableError: If the service has ``database`` disabled.
    """
    service = config.get_service(spec.service)
    if service is None:
        raise TargetNotFoundError(f"Service '{spec.service}' does not exist in the configuration")
    if not service.features.database:
        raise FeatureUnavailableError(
            f"Service '{spec.service}' does not have the database feature enabled"
        )

    stamp = (clock or default_clock).next()
    ctx = model_context(config, spec, stamp)
    root = service_root(service.name)
    stem = ctx["file_stem"]
    return [
        Artifact(f"{root}/src/models/{stem}.model.ts", template="model/model.ts", context=ctx),
        Artifact(
            f"{root}/src/repositories/{stem}.repository.ts",
            template="model/repository.ts",
            context=ctx,
        ),
        Artifact(
            f"{root}/migrations/{stamp}_create_{spec.table_name}.ts",
            template="model/migration.ts",
            context=ctx,
        ),
        Artifact(
            f"{root}/test/unit/{stem}.repository.test.ts",
            template="model/repository.test.ts",
            context=ctx,
        ),
    ]
