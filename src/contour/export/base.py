"""
Exporter plugin system for contour.

Exporters render the deduplicated component set of one API into a textual
artifact (OpenAPI document, zod module, TypeScript module).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..core.errors import BackendError, GeneratorNotRegisteredError
from ..core.naming import KeyFormat, format_key
from .components import ComponentSet


class ExportOptions(BaseModel):
    """
    Options shared by every backend of one run.

    Attributes:
        key_format: Casing applied to every generated field name
        builders: Emit builder functions (zod and typescript)
        format: Output format; the backend's default when unset
    """

    key_format: KeyFormat = KeyFormat.KEEP
    builders: bool = False
    format: str | None = None

    model_config = ConfigDict(frozen=True)

    def key(self, name: str) -> str:
        return format_key(name, self.key_format)


@dataclass
class ExporterCapabilities:
    """
    Describes what an exporter can generate.

    Used for introspection and CLI help text.
    """

    name: str
    description: str
    output_formats: list[str]  # first entry is the default
    supports_builders: bool = False
    file_name: str = "schema"

    @property
    def default_format(self) -> str:
        return self.output_formats[0]


class Exporter(ABC):
    """
    Abstract base class for all exporters.

    ``render`` produces the backend's document; ``serialize`` turns it into
    text. Exporter instances hold no state between runs.
    """

    @abstractmethod
    def render(self, components: ComponentSet, options: ExportOptions) -> Any:
        """
        Render a component set.

        Args:
            components: Deduplicated components and action records
            options: Run options

        Returns:
            Backend document (a dict or source text)

        Raises:
            UnresolvableReferenceError: If a reference has no component
        """

    def serialize(self, document: Any, options: ExportOptions) -> str:
        """Turn a rendered document into text."""
        return str(document)

    def get_capabilities(self) -> ExporterCapabilities:
        """
        Get exporter capabilities for introspection.

        Override to provide exporter metadata.
        """
        return ExporterCapabilities(
            name=self.__class__.__name__,
            description="No description provided",
            output_formats=["unknown"],
        )

    def validate_options(self, options: ExportOptions) -> None:
        """
        Check run options before rendering.

        Raises:
            BackendError: If the requested format is not supported
        """
        capabilities = self.get_capabilities()
        if options.format and options.format not in capabilities.output_formats:
            raise BackendError(
                f"Backend '{capabilities.name}' cannot write '{options.format}'. "
                f"Supported formats: {capabilities.output_formats}"
            )

    def output_format(self, options: ExportOptions) -> str:
        return options.format or self.get_capabilities().default_format

    def output_filename(self, options: ExportOptions) -> str:
        capabilities = self.get_capabilities()
        return f"{capabilities.file_name}.{self.output_format(options)}"

    def export(self, components: ComponentSet, options: ExportOptions) -> str:
        """Validate, render and serialize in one call."""
        self.validate_options(options)
        return self.serialize(self.render(components, options), options)


class ExporterRegistry:
    """
    Registry of exporter classes, looked up by name.

    A registry is an explicit value: build one with ``default_registry()``
    and pass it to the pipeline.
    """

    def __init__(self) -> None:
        self._exporters: dict[str, type[Exporter]] = {}

    def register(self, name: str, exporter_class: type[Exporter]) -> None:
        """
        Register an exporter class.

        Raises:
            BackendError: If name already registered or class invalid
        """
        if name in self._exporters:
            raise BackendError(
                f"Backend '{name}' is already registered. Cannot register {exporter_class.__name__}."
            )
        if not issubclass(exporter_class, Exporter):
            raise BackendError(f"Backend class {exporter_class.__name__} must extend Exporter")
        self._exporters[name] = exporter_class

    def get(self, name: str) -> Exporter:
        """
        Get an exporter instance by name.

        Raises:
            GeneratorNotRegisteredError: If no exporter has that name
        """
        if name not in self._exporters:
            raise GeneratorNotRegisteredError(name, self._exporters)
        return self._exporters[name]()

    def list_backends(self) -> list[str]:
        return sorted(self._exporters)

    def capabilities(self) -> list[ExporterCapabilities]:
        return [self._exporters[name]().get_capabilities() for name in self.list_backends()]

    def __contains__(self, name: object) -> bool:
        return name in self._exporters


def default_registry() -> ExporterRegistry:
    """Registry with the built-in openapi, zod and typescript exporters."""
    from .openapi import OpenAPIExporter
    from .typescript import TypeScriptExporter
    from .zod import ZodExporter

    registry = ExporterRegistry()
    registry.register("openapi", OpenAPIExporter)
    registry.register("zod", ZodExporter)
    registry.register("typescript", TypeScriptExporter)
    return registry
