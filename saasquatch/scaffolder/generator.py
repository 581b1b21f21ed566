"""Project and service generation planners.

Maps a validated ``ProjectConfig`` to the ordered list of artifacts that make
up a Fastify microservice monorepo: root workspace files, one directory per
service under ``services/``, the ``shared/`` package, infrastructure files and
documentation.  Planning is pure: nothing here touches the disk.  The plans are
written by ``PlanExecutor``; ``ProjectGenerator`` wires the two together for
the ``init`` command.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from saasquatch.project.models import ProjectConfig, Service
from saasquatch.scaffolder.docker_gen import plan_infrastructure
from saasquatch.scaffolder.plan import Artifact, PlanExecutor, ensure_disjoint
from saasquatch.scaffolder.templates import TemplateRenderer
from saasquatch.utils import dump_json, snake_case


SERVICES_DIR = "services"

# ---------------------------------------------------------------------------
# Package-manager specifics
# ---------------------------------------------------------------------------

_PACKAGE_MANAGER_VERSIONS: dict[str, str] = {
    "pnpm": ">=8.0.0",
    "yarn": ">=1.22.0",
    "npm": ">=10.0.0",
}

_INSTALL_COMMANDS: dict[str, str] = {
    "pnpm": "pnpm install",
    "yarn": "yarn install",
    "npm": "npm install",
}

_RUN_PREFIX: dict[str, str] = {
    "pnpm": "pnpm",
    "yarn": "yarn",
    "npm": "npm run",
}


def install_command(package_manager: str) -> str:
    return _INSTALL_COMMANDS.get(package_manager, "npm install")


def run_command_for(package_manager: str, script: str) -> str:
    """Shell command that runs a root ``package.json`` script."""
    if package_manager == "npm" and script == "test":
        return "npm test"
    return f"{_RUN_PREFIX.get(package_manager, 'npm run')} {script}"


def service_root(service_name: str) -> str:
    """Project-relative directory of a service."""
    return f"{SERVICES_DIR}/{service_name}"


# ---------------------------------------------------------------------------
# Rendering contexts
# ---------------------------------------------------------------------------


def project_context(config: ProjectConfig) -> dict[str, Any]:
    """Context shared by every artifact of a project.

    ``multi_tenancy`` is the resolved flag from
    ``infrastructure.database.multiTenancy.enabled`` and is present in every
    context built from this one.
    """
    infrastructure = config.infrastructure
    tenancy = infrastructure.database.multi_tenancy
    package_manager = config.project.package_manager
    return {
        "config": config,
        "project": config.project,
        "project_name": config.project.name,
        "project_description": (
            config.project.description
            or "A modern SaaS platform built with Fastify microservices"
        ),
        "project_db_name": snake_case(config.project.name),
        "framework": config.framework,
        "infrastructure": infrastructure,
        "database_type": infrastructure.database.type,
        "is_postgres": infrastructure.database.type == "postgresql",
        "multi_tenancy": infrastructure.multi_tenancy_enabled,
        "tenancy_model": tenancy.model if tenancy else "schema-per-tenant",
        "observability": config.observability,
        "deployment": config.deployment,
        "services": config.services,
        "database_services": [s for s in config.services if s.features.database],
        "use_cases": config.use_cases,
        "swagger": config.swagger_enabled,
        "coverage_threshold": config.coverage_threshold,
        "package_manager": package_manager,
        "install_command": install_command(package_manager),
        "dev_command": run_command_for(package_manager, "dev"),
        "test_command": run_command_for(package_manager, "test"),
    }


def service_context(config: ProjectConfig, service: Service) -> dict[str, Any]:
    """Project context extended with everything a service template needs."""
    ctx = project_context(config)
    features = service.features
    ctx.update({
        "service": service,
        "service_name": service.name,
        "service_port": service.port,
        "service_description": service.description or f"{service.name} service",
        "features": features,
        "needs_auth": features.needs_auth_plugin,
        "needs_tenant_plugin": ctx["multi_tenancy"] and features.database,
        "db_name": snake_case(service.name),
        "db_client": "pg" if ctx["is_postgres"] else "better-sqlite3",
    })
    return ctx


# ---------------------------------------------------------------------------
# Public planners
# ---------------------------------------------------------------------------


def plan_project(config: ProjectConfig) -> list[Artifact]:
    """Ordered artifact plan for a complete project tree.

    Root files come first, then every service in configuration order, the
    shared package, infrastructure, and documentation.
    """
    ctx = project_context(config)
    plan: list[Artifact] = [
        Artifact("package.json", generator=_root_package_json, context=ctx),
    ]
    if config.project.package_manager == "pnpm":
        plan.append(Artifact("pnpm-workspace.yaml", generator=_pnpm_workspace, context=ctx))
    plan.extend([
        Artifact("tsconfig.json", generator=_root_tsconfig, context=ctx),
        Artifact(".gitignore", template="root/gitignore", context=ctx),
        Artifact(".env.example", template="root/env.example", context=ctx),
        Artifact("README.md", template="root/README.md", context=ctx),
        Artifact(".vscode/settings.json", generator=_vscode_settings, context=ctx),
    ])

    for service in config.services:
        plan.extend(plan_service(config, service))

    plan.extend(plan_shared(config))
    plan.extend(plan_infrastructure(config, ctx))
    plan.extend(plan_docs(config))

    ensure_disjoint(plan)
    return plan


def plan_service(config: ProjectConfig, service: Service) -> list[Artifact]:
    """Ordered artifact plan for one service directory.

    Optional artifacts follow the service's feature flags: a plugin per
    enabled integration, health routes when ``healthChecks`` is on, and the
    database scaffolding (knexfile, base repository, model types) when
    ``database`` is on.
    """
    ctx = service_context(config, service)
    features = service.features
    root = service_root(service.name)

    def template(rel: str, name: str | None = None) -> Artifact:
        return Artifact(f"{root}/{rel}", template=f"service/{name or rel}", context=ctx)

    plan: list[Artifact] = [
        Artifact(f"{root}/package.json", generator=_service_package_json, context=ctx),
        Artifact(f"{root}/tsconfig.json", generator=_service_tsconfig, context=ctx),
        template("Dockerfile"),
        template(".env.example", "env.example"),
        template("src/app.ts"),
        template("src/index.ts"),
    ]
    if ctx["swagger"]:
        plan.append(template("src/config/swagger.config.ts"))

    if features.database:
        plan.append(template("src/plugins/database.ts"))
    if features.cache:
        plan.append(template("src/plugins/redis.ts"))
    if features.message_queue:
        plan.append(template("src/plugins/nats.ts"))
    if features.needs_auth_plugin:
        plan.append(template("src/plugins/auth.ts"))
    if ctx["needs_tenant_plugin"]:
        plan.append(template("src/plugins/tenant.ts"))

    if features.health_checks:
        plan.append(template("src/routes/health.ts"))

    if features.database:
        plan.extend([
            template("src/types/models.ts"),
            template("src/repositories/base.repository.ts"),
            template("knexfile.ts"),
        ])

    plan.extend([
        template("jest.config.ts"),
        template("test/setup.ts"),
        template("test/unit/service.test.ts"),
    ])
    return plan


def plan_shared(config: ProjectConfig) -> list[Artifact]:
    """The ``shared/`` workspace package used by every service."""
    ctx = project_context(config)
    return [
        Artifact("shared/package.json", generator=_shared_package_json, context=ctx),
        Artifact("shared/tsconfig.json", generator=_shared_tsconfig, context=ctx),
        Artifact("shared/types/index.ts", template="shared/types.ts", context=ctx),
        Artifact("shared/utils/index.ts", template="shared/utils.ts", context=ctx),
        Artifact("shared/config/index.ts", template="shared/config.ts", context=ctx),
        Artifact("shared/index.ts", template="shared/index.ts", context=ctx),
    ]


def plan_docs(config: ProjectConfig) -> list[Artifact]:
    ctx = project_context(config)
    return [
        Artifact(f"docs/{name}.md", template=f"docs/{name}.md", context=ctx)
        for name in ("architecture", "development", "api", "deployment")
    ]


# ---------------------------------------------------------------------------
# ProjectGenerator
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Plans and writes a complete project tree for the ``init`` command.

    Usage::

        generator = ProjectGenerator(config)
        written = await generator.generate("/tmp/acme")
    """

    def __init__(self, config: ProjectConfig, renderer: TemplateRenderer | None = None) -> None:
        self.config = config
        self.renderer = renderer or TemplateRenderer()
        self.executor = PlanExecutor(self.renderer)

    def plan(self) -> list[Artifact]:
        return plan_project(self.config)

    async def generate(
        self,
        output_dir: str | Path,
        on_written: Callable[[Path], None] | None = None,
    ) -> list[Path]:
        """Render every artifact of the project plan under *output_dir*.

        Returns:
            The written paths, in plan order.
        """
        return await self.executor.execute(self.plan(), Path(output_dir), on_written)


# ---------------------------------------------------------------------------
# Data-built files
# ---------------------------------------------------------------------------


def _root_package_json(ctx: dict[str, Any]) -> str:
    config: ProjectConfig = ctx["config"]
    pm = ctx["package_manager"]
    if pm == "pnpm":
        scripts = {
            "dev": "pnpm -r --parallel dev",
            "build": "pnpm -r build",
            "test": "pnpm -r test",
            "lint": "eslint . --ext .ts",
            "format": "prettier --write .",
            "clean": "pnpm -r exec rimraf dist",
            "infra:up": "docker-compose up -d",
            "infra:down": "docker-compose down",
        }
    else:
        runner = "npm run" if pm == "npm" else "yarn"
        scripts = {
            "dev": "concurrently " + " ".join(
                f'"{runner} --workspace {service_root(s.name)} dev"'
                if pm == "npm" else f'"yarn workspace @{config.project.name}/{s.name} dev"'
                for s in config.services
            ),
            "build": "npm run build --workspaces" if pm == "npm" else "yarn workspaces run build",
            "test": "npm test --workspaces" if pm == "npm" else "yarn workspaces run test",
            "lint": "eslint . --ext .ts",
            "format": "prettier --write .",
            "infra:up": "docker-compose up -d",
            "infra:down": "docker-compose down",
        }

    package: dict[str, Any] = {
        "name": config.project.name,
        "version": "0.1.0",
        "private": True,
        "description": ctx["project_description"],
        "author": config.project.author or "",
        "license": "MIT",
        "engines": {
            "node": ">=20.0.0",
            pm: _PACKAGE_MANAGER_VERSIONS.get(pm, ">=10.0.0"),
        },
        "scripts": scripts,
        "devDependencies": {
            "@types/node": "^20.10.0",
            "typescript": "^5.3.3",
            "tsx": "^4.7.0",
            "rimraf": "^5.0.5",
            "concurrently": "^8.2.2",
            "dotenv": "^16.3.1",
            "prettier": "^3.1.1",
            "eslint": "^9.39.0",
            "@typescript-eslint/eslint-plugin": "^8.27.0",
            "@typescript-eslint/parser": "^8.27.0",
        },
    }
    if pm != "pnpm":
        package["workspaces"] = [f"{SERVICES_DIR}/*", "shared"]
    return dump_json(package)


def _pnpm_workspace(ctx: dict[str, Any]) -> str:
    return yaml.safe_dump({"packages": [f"{SERVICES_DIR}/*", "shared"]}, sort_keys=False)


def _root_tsconfig(ctx: dict[str, Any]) -> str:
    return dump_json({
        "compilerOptions": {
            "target": "ES2022",
            "module": "NodeNext",
            "lib": ["ES2022"],
            "moduleResolution": "NodeNext",
            "esModuleInterop": True,
            "allowSyntheticDefaultImports": True,
            "strict": True,
            "skipLibCheck": True,
            "forceConsistentCasingInFileNames": True,
            "declaration": True,
            "declarationMap": True,
            "sourceMap": True,
            "outDir": "./dist",
            "rootDir": ".",
            "resolveJsonModule": True,
            "isolatedModules": True,
        },
        "include": [f"{SERVICES_DIR}/**/*", "shared/**/*"],
        "exclude": ["node_modules", "dist", "**/*.test.ts", "**/*.spec.ts"],
    })


def _vscode_settings(ctx: dict[str, Any]) -> str:
    return dump_json({
        "editor.formatOnSave": True,
        "editor.codeActionsOnSave": {"source.fixAll.eslint": "explicit"},
        "typescript.tsdk": "node_modules/typescript/lib",
        "typescript.enablePromptUseWorkspaceTsdk": True,
    })


def _service_package_json(ctx: dict[str, Any]) -> str:
    service: Service = ctx["service"]
    features = service.features
    dependencies: dict[str, str] = {
        "fastify": ctx["framework"].version,
        "fastify-plugin": "^4.5.1",
        "@fastify/type-provider-typebox": "^4.0.0",
        "@sinclair/typebox": "^0.32.0",
        "dotenv": "^16.3.1",
        f"@{ctx['project_name']}/shared": "workspace:*" if ctx["package_manager"] == "pnpm" else "*",
    }
    if features.cors:
        dependencies["@fastify/cors"] = "^8.5.0"
    if features.rate_limit:
        dependencies["@fastify/rate-limit"] = "^9.1.0"
    if features.compression:
        dependencies["@fastify/compress"] = "^7.0.0"
    if ctx["swagger"]:
        dependencies["@fastify/swagger"] = "^8.12.0"
        dependencies["@fastify/swagger-ui"] = "^2.0.1"
    if features.database:
        dependencies["knex"] = "^3.1.0"
        if ctx["is_postgres"]:
            dependencies["pg"] = "^8.11.3"
        else:
            dependencies["better-sqlite3"] = "^9.2.2"
    if features.cache:
        dependencies["ioredis"] = "^5.3.2"
    if features.message_queue:
        dependencies["nats"] = "^2.18.0"
    if features.needs_auth_plugin:
        dependencies["@fastify/jwt"] = "^7.2.4"

    scripts: dict[str, str] = {
        "dev": "tsx watch src/index.ts",
        "build": "tsc",
        "start": "node dist/index.js",
        "test": "jest",
        "test:coverage": "jest --coverage",
    }
    if features.database:
        scripts.update({
            "migrate": "knex migrate:latest --knexfile knexfile.ts",
            "migrate:rollback": "knex migrate:rollback --knexfile knexfile.ts",
            "migrate:make": "knex migrate:make --knexfile knexfile.ts -x ts",
        })

    return dump_json({
        "name": f"@{ctx['project_name']}/{service.name}",
        "version": "0.1.0",
        "private": True,
        "description": ctx["service_description"],
        "type": "module",
        "main": "dist/index.js",
        "scripts": scripts,
        "dependencies": dependencies,
        "devDependencies": {
            "@types/jest": "^29.5.11",
            "@types/node": "^20.10.0",
            "jest": "^29.7.0",
            "pino-pretty": "^10.3.1",
            "ts-jest": "^29.1.1",
            "tsx": "^4.7.0",
            "typescript": "^5.3.3",
        },
    })


def _service_tsconfig(ctx: dict[str, Any]) -> str:
    return dump_json({
        "extends": "../../tsconfig.json",
        "compilerOptions": {
            "rootDir": "./src",
            "outDir": "./dist",
        },
        "include": ["src/**/*"],
        "exclude": ["node_modules", "dist", "test"],
    })


def _shared_package_json(ctx: dict[str, Any]) -> str:
    return dump_json({
        "name": f"@{ctx['project_name']}/shared",
        "version": "0.1.0",
        "private": True,
        "type": "module",
        "main": "./dist/index.js",
        "types": "./dist/index.d.ts",
        "scripts": {"build": "tsc", "dev": "tsc --watch"},
        "devDependencies": {"@types/node": "^20.10.0", "typescript": "^5.3.3"},
    })


def _shared_tsconfig(ctx: dict[str, Any]) -> str:
    return dump_json({
        "extends": "../tsconfig.json",
        "compilerOptions": {
            "rootDir": ".",
            "outDir": "./dist",
            "composite": True,
            "declaration": True,
            "declarationMap": True,
        },
        "include": ["**/*.ts"],
        "exclude": ["node_modules", "dist"],
    })
