"""Interactive question flows for ``init`` and ``add``.

Each flow only *collects* answers: ``prompt_project`` returns a
``ProjectAnswers`` for the builder, and the ``prompt_*`` add flows return the
wire-format request dict a mutator expects.  Validation here is limited to
re-asking on obviously malformed input; the schema remains the authority.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import Any

from rich.prompt import Confirm, IntPrompt, Prompt

from saasquatch.mutators import (
    DEFAULT_MODEL_FIELDS,
    DEFAULT_MODEL_NAME,
    DEFAULT_ROUTE_NAME,
    DEFAULT_SERVICE_FEATURES,
    DEFAULT_SERVICE_NAME,
    next_port,
    parse_fields,
)
from saasquatch.project.builder import (
    DEFAULT_PROJECT_DESCRIPTION,
    DEFAULT_PROJECT_NAME,
    ProjectAnswers,
)
from saasquatch.project.models import (
    DEPLOYMENT_TARGETS,
    LOG_LEVELS,
    PACKAGE_MANAGERS,
    ROUTE_METHODS,
    SERVICE_FEATURE_KEYS,
    USE_CASES,
    ProjectConfig,
)
from saasquatch.project.schema import (
    MAX_PORT,
    MIN_PORT,
    MODEL_NAME_PATTERN,
    PROJECT_NAME_PATTERN,
    SERVICE_NAME_PATTERN,
    TABLE_NAME_PATTERN,
)
from saasquatch.utils import console, print_error, print_header


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def _ask_text(
    question: str,
    default: str,
    check: Callable[[str], str | None] | None = None,
) -> str:
    """Ask until *check* returns ``None`` (no complaint) for the answer."""
    while True:
        answer = Prompt.ask(question, default=default, console=console).strip()
        problem = check(answer) if check else None
        if problem is None:
            return answer
        print_error(problem)


def _pattern_check(pattern: str, message: str) -> Callable[[str], str | None]:
    def check(value: str) -> str | None:
        if not value:
            return "A value is required"
        if not re.match(pattern, value):
            return message
        return None

    return check


def _ask_many(question: str, choices: Sequence[str], default: Sequence[str]) -> list[str]:
    """Comma-separated multi-select constrained to *choices*."""
    while True:
        answer = Prompt.ask(
            f"{question} [dim]({', '.join(choices)})[/dim]",
            default=",".join(default),
            console=console,
        )
        picked = [item.strip() for item in answer.split(",") if item.strip()]
        unknown = [item for item in picked if item not in choices]
        if not unknown:
            return list(dict.fromkeys(picked))
        print_error(f"Unknown choice(s): {', '.join(unknown)}")


def _ask_port(question: str, default: int, taken: set[int]) -> int:
    while True:
        port = IntPrompt.ask(question, default=default, console=console)
        if not MIN_PORT <= port <= MAX_PORT:
            print_error(f"Port must be between {MIN_PORT} and {MAX_PORT}")
        elif port in taken:
            print_error(f"Port {port} is already in use")
        else:
            return port


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


def prompt_project(default_name: str | None = None) -> ProjectAnswers:
    """Collect the answers of the interactive ``init`` flow."""
    print_header("SaaSQuatch Project Configuration")

    name = _ask_text(
        "Project name",
        default_name or DEFAULT_PROJECT_NAME,
        _pattern_check(
            PROJECT_NAME_PATTERN, "Project name must be lowercase alphanumeric with hyphens"
        ),
    )
    answers = ProjectAnswers(project_name=name)
    answers.description = Prompt.ask(
        "Project description", default=DEFAULT_PROJECT_DESCRIPTION, console=console
    )
    answers.author = Prompt.ask("Author name", default="", console=console)
    answers.database_type = Prompt.ask(
        "Database", choices=["postgresql", "sqlite"], default="postgresql", console=console
    )
    if answers.database_type == "postgresql":
        answers.enable_multi_tenancy = Confirm.ask(
            "Enable multi-tenancy support?", default=False, console=console
        )
    answers.include_api_gateway = Confirm.ask(
        "Include API Gateway service?", default=True, console=console
    )
    answers.include_auth_service = Confirm.ask(
        "Include JWT Authentication service?", default=True, console=console
    )
    answers.include_user_service = answers.include_auth_service and Confirm.ask(
        "Include User Management service?", default=True, console=console
    )
    answers.use_cases = _ask_many("Use cases to optimize for", USE_CASES, ["api-first"])
    answers.package_manager = Prompt.ask(
        "Package manager", choices=list(PACKAGE_MANAGERS), default="pnpm", console=console
    )

    if Confirm.ask("Configure advanced settings?", default=False, console=console):
        answers.database_strategy = Prompt.ask(
            "Database strategy", choices=["separate", "shared"], default="separate", console=console
        )
        answers.log_level = Prompt.ask(
            "Default log level", choices=list(LOG_LEVELS), default="info", console=console
        )
        answers.enable_tracing = Confirm.ask(
            "Enable OpenTelemetry tracing?", default=True, console=console
        )
        answers.enable_metrics = Confirm.ask(
            "Enable Prometheus metrics?", default=False, console=console
        )
        answers.deployment_target = Prompt.ask(
            "Primary deployment target",
            choices=list(DEPLOYMENT_TARGETS),
            default="docker-compose",
            console=console,
        )
        while True:
            coverage = IntPrompt.ask("Target test coverage percentage", default=80, console=console)
            if 0 <= coverage <= 100:
                answers.test_coverage = coverage
                break
            print_error("Coverage must be between 0 and 100")

    return answers


# ---------------------------------------------------------------------------
# add service | route | model
# ---------------------------------------------------------------------------


def prompt_service(config: ProjectConfig, name: str | None = None) -> dict[str, Any]:
    """Collect an ``add service`` request."""
    existing = {s.name for s in config.services}

    def check(value: str) -> str | None:
        problem = _pattern_check(
            SERVICE_NAME_PATTERN,
            "Service name must be lowercase with hyphens (e.g., user-service)",
        )(value)
        if problem is None and value in existing:
            return f"Service '{value}' already exists"
        return problem

    service_name = name or _ask_text("Service name", DEFAULT_SERVICE_NAME, check)
    port = _ask_port("Service port", next_port(config), {s.port for s in config.services})

    default_features = [key for key, on in DEFAULT_SERVICE_FEATURES.items() if on]
    picked = _ask_many("Features", list(SERVICE_FEATURE_KEYS.values()), default_features)
    return {
        "name": service_name,
        "port": port,
        "features": {key: True for key in picked},
    }


def prompt_route(config: ProjectConfig, name: str | None = None) -> dict[str, Any]:
    """Collect an ``add route`` request."""
    services = [s.name for s in config.services]
    service = Prompt.ask("Service", choices=services, default=services[0], console=console)
    route_name = _ask_text(
        "Route name (e.g., users, posts)",
        name or DEFAULT_ROUTE_NAME,
        _pattern_check(SERVICE_NAME_PATTERN, "Route name must be lowercase with hyphens"),
    )
    path = _ask_text(
        "Route path",
        f"/{route_name}",
        lambda value: None if value.startswith("/") else "Route path must start with /",
    )
    methods = _ask_many("HTTP methods", ROUTE_METHODS, ROUTE_METHODS)
    return {
        "service": service,
        "name": route_name,
        "path": path,
        "methods": methods or list(ROUTE_METHODS),
        "authentication": Confirm.ask("Require authentication?", default=True, console=console),
        "validation": Confirm.ask("Add JSON Schema validation?", default=True, console=console),
    }


def prompt_model(config: ProjectConfig, name: str | None = None) -> dict[str, Any]:
    """Collect an ``add model`` request."""
    services = [s.name for s in config.services]
    database_services = [s.name for s in config.services if s.features.database] or services
    service = Prompt.ask(
        "Service", choices=services, default=database_services[0], console=console
    )
    model_name = _ask_text(
        "Model name (e.g., User, Post)",
        name or DEFAULT_MODEL_NAME,
        _pattern_check(MODEL_NAME_PATTERN, "Model name must be PascalCase (e.g., User, BlogPost)"),
    )
    table_name = _ask_text(
        "Table name",
        model_name.lower() + "s",
        _pattern_check(TABLE_NAME_PATTERN, "Table name must be snake_case"),
    )
    default_fields = ",".join(f"{f['name']}:{f['type']}" for f in DEFAULT_MODEL_FIELDS)
    fields = Prompt.ask("Fields (name:type, comma separated)", default=default_fields, console=console)
    return {
        "service": service,
        "name": model_name,
        "tableName": table_name,
        "fields": parse_fields(fields),
        "timestamps": Confirm.ask(
            "Add timestamps (created_at, updated_at)?", default=True, console=console
        ),
        "softDelete": Confirm.ask("Enable soft deletes?", default=False, console=console),
    }


PROMPTS: dict[str, Callable[[ProjectConfig, str | None], dict[str, Any]]] = {
    "service": prompt_service,
    "route": prompt_route,
    "model": prompt_model,
}
