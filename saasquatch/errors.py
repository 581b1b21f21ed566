"""Exception hierarchy for the SaaSQuatch CLI.

Every failure the core can signal derives from ``SaaSQuatchError`` so the CLI
boundary can catch one type, print the message, and exit with status 1.
"""

from __future__ import annotations


class SaaSQuatchError(Exception):
    """Base class for all errors raised by the scaffolding core."""


class SchemaValidationError(SaaSQuatchError):
    """Raised when a configuration (or add-command input) violates the schema.

    Carries every violation found as ``(field_path, message)`` pairs where
    ``field_path`` is the dotted wire path, e.g. ``services.1.port``.
    """

    def __init__(self, errors: list[tuple[str, str]]) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{path}: {message}" for path, message in self.errors)
        super().__init__(f"Configuration validation failed: {summary}")


class TargetNotFoundError(SaaSQuatchError):
    """Raised when a referenced service is absent from the config or the disk."""


class FeatureUnavailableError(SaaSQuatchError):
    """Raised when an operation needs a feature the target service lacks."""


class DuplicateArtifactError(SaaSQuatchError):
    """Raised when an artifact (route handler, service directory) already exists."""


class PersistenceError(SaaSQuatchError):
    """Raised when the project configuration file cannot be read or written."""


class GenerationError(SaaSQuatchError):
    """Raised when an artifact cannot be rendered or written."""


class TemplateNotFoundError(GenerationError):
    """Raised when the renderer is asked for a template id it does not know."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Template not found: {template_id}")


class PartialGenerationError(SaaSQuatchError):
    """Raised when generation fails after the configuration was already persisted.

    The configuration file and the project tree are out of sync at this point;
    the message says so explicitly so the operator can repair the tree.
    """

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(
            "Configuration was updated but artifact generation failed: "
            f"{cause}. The project files are out of sync with saasquatch.config.json."
        )
