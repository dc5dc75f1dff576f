"""
Error types for contour schema synthesis and export.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


class ContourError(Exception):
    """Base exception for all contour errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class UnresolvableReferenceError(ContourError):
    """
    Raised when a type reference does not resolve within its registry.

    Examples:
    - A payload field references a type that was never registered
    - A component refers to a name from another API's registry
    """

    def __init__(
        self,
        type_name: str,
        scope: str | None = None,
        context: ErrorContext | None = None,
    ):
        self.type_name = type_name
        self.scope = scope
        where = f" in scope '{scope}'" if scope else ""
        super().__init__(f"Unresolvable type reference '{type_name}'{where}", context)


class ConfigurationError(ContourError):
    """
    Raised when the data model declaration is inconsistent.

    Detected before any synthesis runs. ``remedy`` holds the exact
    declaration that would fix the problem.

    Examples:
    - Writable association without nested mutation support
    - Association with an explicit target that does not exist
    - Inheritance variant pointing at an unknown entity
    """

    def __init__(
        self,
        message: str,
        code: str = "invalid_configuration",
        path: list[str] | None = None,
        remedy: str | None = None,
        context: ErrorContext | None = None,
    ):
        self.code = code
        self.path = path or []
        self.remedy = remedy
        if remedy:
            message = f"{message}. Add: {remedy}"
        super().__init__(message, context)


class DuplicateTypeError(ContourError):
    """Raised when a type name is registered twice with different definitions."""

    def __init__(self, type_name: str, context: ErrorContext | None = None):
        self.type_name = type_name
        super().__init__(
            f"Type '{type_name}' is already registered with a different definition",
            context,
        )


class BackendError(ContourError):
    """
    Raised when a backend fails to generate output.

    Examples:
    - Unsupported output format for the backend
    - Output directory issues
    """

    pass


class GeneratorNotRegisteredError(BackendError):
    """Raised when an export is requested for an unknown backend name."""

    def __init__(self, name: str, available: Iterable[str]):
        self.name = name
        self.available = sorted(available)
        super().__init__(f"Backend '{name}' not found. Available backends: {self.available}")


@dataclass
class ErrorContext:
    """
    Where in the data model or API tree an error occurred.

    Attributes:
        entity: Qualified entity or resource name
        path: Field path below the entity
    """

    entity: str | None = None
    path: tuple[str, ...] = ()

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "blog.Post: comments_attributes.id"
        """
        location = self.entity or "<root>"
        if self.path:
            location += ": " + ".".join(self.path)
        return location


def make_configuration_error(
    message: str,
    code: str,
    entity: str,
    path: list[str] | None = None,
    remedy: str | None = None,
) -> ConfigurationError:
    """
    Helper to create a ConfigurationError with entity context.

    Args:
        message: Error description
        code: Stable machine-readable error code
        entity: Qualified name of the offending entity
        path: Field path below the entity
        remedy: Declaration that would fix the problem

    Returns:
        ConfigurationError with context attached
    """
    path = path or []
    context = ErrorContext(entity=entity, path=tuple(path))
    return ConfigurationError(message, code=code, path=path, remedy=remedy, context=context)
