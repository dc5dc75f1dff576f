"""
Schema export for contour.

Deduplicates the types reachable from an API's actions into named
components and renders them through pluggable backends.
"""

from .base import Exporter, ExporterCapabilities, ExporterRegistry, ExportOptions, default_registry
from .components import ActionComponents, ComponentExtractor, ComponentSet, extract_components
from .fingerprint import Component, ShapeFingerprintRegistry, fingerprint, normalize
from .openapi import OpenAPIExporter, generate_openapi
from .pipeline import generate, write_artifact
from .typescript import TypeScriptExporter, generate_typescript
from .zod import ZodExporter, generate_zod

__all__ = [
    "ActionComponents",
    "Component",
    "ComponentExtractor",
    "ComponentSet",
    "ExportOptions",
    "Exporter",
    "ExporterCapabilities",
    "ExporterRegistry",
    "OpenAPIExporter",
    "ShapeFingerprintRegistry",
    "TypeScriptExporter",
    "ZodExporter",
    "default_registry",
    "extract_components",
    "fingerprint",
    "generate",
    "generate_openapi",
    "generate_typescript",
    "generate_zod",
    "normalize",
    "write_artifact",
]
