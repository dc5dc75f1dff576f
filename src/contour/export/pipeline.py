"""
Export pipeline.

One call per backend: look up the exporter, check the registry, extract
components and render. Every failure propagates before any text is
produced, so a caller never receives a partial artifact.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..core.ir.introspection import ApiSpec
from ..core.naming import write_file
from ..core.type_registry import TypeRegistry
from .base import ExporterRegistry, ExportOptions, default_registry
from .components import ComponentExtractor

logger = logging.getLogger(__name__)


def generate(
    api: ApiSpec,
    backend: str,
    options: ExportOptions | None = None,
    registry: TypeRegistry | None = None,
    exporters: ExporterRegistry | None = None,
) -> str:
    """
    Render one backend's artifact for an API.

    Args:
        api: Introspection tree
        backend: Registered backend name
        options: Run options; defaults apply when omitted
        registry: Type registry of this API; built from ``api.types`` when omitted
        exporters: Backend registry; the built-in backends when omitted

    Returns:
        Artifact text

    Raises:
        GeneratorNotRegisteredError: If ``backend`` is unknown
        BackendError: If the backend cannot write the requested format
        UnresolvableReferenceError: If a reference has no registered type
    """
    options = options or ExportOptions()
    exporters = exporters or default_registry()
    exporter = exporters.get(backend)
    exporter.validate_options(options)

    if registry is None:
        registry = TypeRegistry.from_api(api)
    registry.check_references()

    components = ComponentExtractor(registry).extract(api)
    logger.info(
        "Rendering %s for %s: %d components, %d actions",
        backend,
        api.path,
        len(components.components),
        len(components.actions),
    )
    return exporter.export(components, options)


def write_artifact(
    api: ApiSpec,
    backend: str,
    output_dir: Path,
    options: ExportOptions | None = None,
    registry: TypeRegistry | None = None,
    exporters: ExporterRegistry | None = None,
) -> Path:
    """
    Render a backend and write it under ``output_dir``.

    The file name comes from the backend's capabilities and the output
    format, e.g. ``openapi.yaml`` or ``schemas.ts``.

    Returns:
        Path of the written file
    """
    options = options or ExportOptions()
    exporters = exporters or default_registry()
    content = generate(api, backend, options, registry=registry, exporters=exporters)
    path = output_dir / exporters.get(backend).output_filename(options)
    write_file(path, content)
    logger.info("Wrote %s", path)
    return path
