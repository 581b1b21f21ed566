"""SaaSQuatch command-line interface.

Usage::

    saasquatch init my-app --yes
    saasquatch init --config saasquatch.config.json --dry-run
    saasquatch add service payments --yes
    saasquatch add route users --service user-service --methods get-list,post
    saasquatch add model Order --fields id:uuid,total:decimal --soft-delete

Every command exits with status 0 on success and 1 on any validation,
precondition, persistence or generation failure.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import shutil
import sys
from pathlib import Path
from typing import Any

from rich.prompt import Confirm
from rich.table import Table

from saasquatch import __version__
from saasquatch.config import Settings
from saasquatch.errors import PartialGenerationError, SaaSQuatchError, SchemaValidationError
from saasquatch.mutators import (
    MUTATIONS,
    default_model_request,
    default_route_request,
    default_service_request,
    parse_fields,
)
from saasquatch.project.builder import (
    DEFAULT_PROJECT_NAME,
    build_config_from_answers,
    default_config,
)
from saasquatch.project.models import ProjectConfig
from saasquatch.project.schema import validate_config
from saasquatch.project.store import load_config, load_config_file, save_config
from saasquatch.prompts import PROMPTS, prompt_project
from saasquatch.scaffolder.generator import ProjectGenerator, install_command, run_command_for
from saasquatch.scaffolder.plan import Artifact
from saasquatch.scaffolder.templates import TemplateRenderer
from saasquatch.utils import (
    console,
    create_progress,
    print_error,
    print_header,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)


ADD_TARGETS = ("service", "route", "model")

_DEFAULT_REQUESTS = {
    "service": default_service_request,
    "route": default_route_request,
    "model": default_model_request,
}


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


async def _resolve_init_config(args: argparse.Namespace) -> ProjectConfig | None:
    """Configuration for ``init`` from ``--config``, ``--yes`` or the prompts.

    Returns ``None`` when the operator rejects the configuration summary.
    """
    if args.config:
        config = await load_config_file(args.config)
        if args.name and args.name != config.project.name:
            renamed = dataclasses.replace(
                config, project=dataclasses.replace(config.project, name=args.name)
            )
            config = validate_config(renamed.to_dict())
        print_success(f"Configuration loaded from {args.config}")
        return config

    if args.yes:
        return default_config(args.name or DEFAULT_PROJECT_NAME)

    answers = prompt_project(args.name)
    config = build_config_from_answers(answers)
    show_configuration(config)
    if not Confirm.ask("Generate the project with this configuration?", default=True, console=console):
        return None
    return config


def show_configuration(config: ProjectConfig) -> None:
    """Print the services and infrastructure a configuration describes."""
    table = Table(title="Services", show_header=True, header_style="bold cyan")
    table.add_column("Service", no_wrap=True)
    table.add_column("Port", justify="right")
    table.add_column("Features", style="dim")
    for service in config.services:
        table.add_row(service.name, str(service.port), ", ".join(service.features.enabled()))
    console.print(table)

    infrastructure = config.infrastructure
    print_summary_table(
        {
            "Database": infrastructure.database.type,
            "Multi-tenancy": "enabled" if infrastructure.multi_tenancy_enabled else "disabled",
            "Cache": infrastructure.cache.type,
            "Message queue": infrastructure.message_queue.type,
            "Logging": f"{config.observability.logging.provider} ({config.observability.logging.level})",
            "Deployment": config.deployment.target,
        },
        title="Infrastructure",
    )


def show_plan(plan: list[Artifact], root: Path) -> None:
    """Print a dry-run table of the artifacts a plan would write."""
    table = Table(title=f"Dry run: {root}", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Path")
    table.add_column("Kind", style="dim")
    table.add_column("Source", style="dim")
    for index, artifact in enumerate(plan, start=1):
        table.add_row(str(index), artifact.path, artifact.kind, artifact.source)
    console.print(table)


async def _init_git(project_dir: Path, settings: Settings) -> None:
    """Initialise a git repository; failures are reported as warnings."""
    try:
        code, _, stderr = await run_command(
            ["git", "init"], cwd=project_dir, timeout=settings.git_timeout
        )
    except FileNotFoundError:
        print_warning("git is not installed; skipping repository initialisation")
        return
    if code != 0:
        print_warning(f"git init failed: {stderr or 'unknown error'}")
    else:
        print_success("Initialised git repository")


async def init_command(args: argparse.Namespace, settings: Settings) -> int:
    print_header("SaaSQuatch Project Generator")

    config = await _resolve_init_config(args)
    if config is None:
        print_warning("Project generation cancelled.")
        return 1

    output_root = Path(args.output) if args.output else Path.cwd()
    project_dir = output_root / config.project.name
    generator = ProjectGenerator(config, TemplateRenderer(settings.template_dir))

    if args.dry_run:
        print_info(f"Would save configuration to {settings.config_path(project_dir)}")
        show_plan(generator.plan(), project_dir)
        print_success("Dry run complete. No files were written.")
        return 0

    if project_dir.exists():
        if not args.yes:
            print_warning(f"Directory {project_dir} already exists.")
            if not Confirm.ask("Overwrite existing directory?", default=False, console=console):
                print_warning("Project generation cancelled.")
                return 1
        await asyncio.to_thread(shutil.rmtree, project_dir)
        print_info(f"Removed existing directory {project_dir}")

    await save_config(config, project_dir, settings.config_filename)
    print_success(f"Configuration saved to {settings.config_filename}")

    with create_progress() as progress:
        task = progress.add_task("Generating project structure...", total=len(generator.plan()))
        written = await generator.generate(
            project_dir, on_written=lambda _path: progress.advance(task)
        )
    print_success(f"Generated {len(written)} files in {project_dir}")

    if not (args.skip_git or settings.skip_git):
        await _init_git(project_dir, settings)

    pm = config.project.package_manager
    print_header("Next steps")
    console.print(f"  cd {config.project.name}")
    console.print(f"  {install_command(pm)}")
    console.print("  docker-compose up -d")
    console.print(f"  {run_command_for(pm, 'dev')}")
    console.print()
    print_summary_table(
        {s.name: f"http://localhost:{s.port}" for s in config.services},
        title="Service URLs",
    )
    return 0


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def apply_flags(target: str, request: dict[str, Any], args: argparse.Namespace) -> dict[str, Any]:
    """Overlay the non-interactive detail flags on an ``add`` request."""
    request = dict(request)
    if target == "service":
        if args.port is not None:
            request["port"] = args.port
        if args.features is not None:
            request["features"] = {key: True for key in _split(args.features)}
        return request

    if args.service:
        request["service"] = args.service
    if target == "route":
        if args.route_path:
            request["path"] = args.route_path
        if args.methods:
            request["methods"] = _split(args.methods)
        if args.no_auth:
            request["authentication"] = False
        if args.no_validation:
            request["validation"] = False
    elif target == "model":
        if args.table:
            request["tableName"] = args.table
        if args.fields:
            request["fields"] = parse_fields(args.fields)
        if args.soft_delete:
            request["softDelete"] = True
        if args.no_timestamps:
            request["timestamps"] = False
    return request


async def add_command(args: argparse.Namespace, settings: Settings) -> int:
    target = args.target.lower()
    if target not in ADD_TARGETS:
        print_error(f"Unknown type: {args.target}")
        print_info(f"Valid types: {', '.join(ADD_TARGETS)}")
        return 1

    root = Path(args.path) if args.path else Path.cwd()
    config = await load_config(root, settings.config_filename)
    print_header(f"Adding {target}")

    if args.yes:
        request = _DEFAULT_REQUESTS[target](config, args.name)
    else:
        request = PROMPTS[target](config, args.name)
    request = apply_flags(target, request, args)

    renderer = TemplateRenderer(settings.template_dir)
    mutation = MUTATIONS[target](root, renderer, settings.config_filename)

    written = await mutation.run(request)

    for warning in mutation.warnings:
        print_warning(warning)
    print_success(f"{target.capitalize()} added successfully!")
    details = {key: _display(value) for key, value in request.items() if key != "features"}
    if target == "service" and mutation.updated is not None:
        service = mutation.updated.services[-1]
        details["port"] = str(service.port)
        details["features"] = ", ".join(service.features.enabled())
    print_summary_table(details, title=f"{target.capitalize()} details")
    for path in written:
        print_info(f"  {path.relative_to(root)}")
    return 0


def _display(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(
            f"{item['name']}:{item['type']}" if isinstance(item, dict) else str(item)
            for item in value
        )
    return str(value)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="saasquatch",
        description="SaaSQuatch -- generate production-ready Fastify microservice monorepos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  saasquatch init my-project\n"
            "  saasquatch init my-project --yes\n"
            "  saasquatch init --config config.json\n"
            "  saasquatch add service payments --yes\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", action="store_true", help="Print tracebacks on failure")
    commands = parser.add_subparsers(dest="command", required=True)

    init = commands.add_parser("init", help="Create a new project")
    init.add_argument("name", nargs="?", default=None, help="Project name")
    init.add_argument("--yes", "-y", action="store_true", help="Skip prompts and use defaults")
    init.add_argument("--config", "-c", default=None, help="Path to a configuration file")
    init.add_argument(
        "--dry-run", action="store_true", help="Preview the generated files without writing"
    )
    init.add_argument(
        "--output", "-o", default=None, help="Parent directory of the project (default: cwd)"
    )
    init.add_argument("--skip-git", action="store_true", help="Do not run `git init`")

    add = commands.add_parser("add", help="Add a service, route or model to a project")
    add.add_argument("target", help="What to add: service, route or model")
    add.add_argument("name", nargs="?", default=None, help="Name of the service/route/model")
    add.add_argument("--path", "-p", default=None, help="Project root (default: cwd)")
    add.add_argument("--yes", "-y", action="store_true", help="Skip prompts and use defaults")

    service = add.add_argument_group("service options")
    service.add_argument("--port", type=int, default=None, help="Service port")
    service.add_argument(
        "--features", default=None, help="Comma-separated features, e.g. database,cache"
    )

    target = add.add_argument_group("route and model options")
    target.add_argument("--service", "-s", default=None, help="Target service")
    target.add_argument("--route-path", default=None, help="Route path, e.g. /users")
    target.add_argument(
        "--methods", default=None, help="Comma-separated methods: get-list,get-one,post,put,delete"
    )
    target.add_argument("--no-auth", action="store_true", help="Do not require authentication")
    target.add_argument(
        "--no-validation", action="store_true", help="Skip JSON Schema validation blocks"
    )
    target.add_argument("--table", default=None, help="Model table name")
    target.add_argument("--fields", default=None, help="Model fields as name:type,...")
    target.add_argument("--soft-delete", action="store_true", help="Enable soft deletes")
    target.add_argument(
        "--no-timestamps", action="store_true", help="Omit created_at/updated_at columns"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``saasquatch``; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.debug:
        settings.debug = True

    handler = init_command if args.command == "init" else add_command
    try:
        return asyncio.run(handler(args, settings))
    except SchemaValidationError as exc:
        print_error("Configuration validation failed:")
        for path, message in exc.errors:
            console.print(f"  [red]- {path}: {message}[/red]")
        if settings.debug:
            console.print_exception()
        return 1
    except PartialGenerationError as exc:
        print_error(f"Error: {exc}")
        print_warning(
            "Re-run the command after fixing the cause, or reconcile the project files "
            "with the configuration by hand."
        )
        if settings.debug:
            console.print_exception()
        return 1
    except SaaSQuatchError as exc:
        print_error(f"Error: {exc}")
        if settings.debug:
            console.print_exception()
        return 1
    except KeyboardInterrupt:
        print_warning("Aborted.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
