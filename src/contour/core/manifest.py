import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError
from .naming import KeyFormat

OPENAPI_FORMATS = ("json", "yaml")


@dataclass
class ExportConfig:
    """Export defaults, overridable from the command line."""

    key_format: KeyFormat = KeyFormat.KEEP
    builders: bool = False
    output_dir: str = "generated"
    backends: list[str] = field(default_factory=lambda: ["openapi", "zod", "typescript"])
    openapi_format: str = "json"  # "json" | "yaml"


@dataclass
class ApiConfig:
    """Document metadata for the exported API."""

    path: str | None = None
    title: str | None = None
    description: str | None = None
    version: str | None = None


@dataclass
class ProjectManifest:
    """
    Project manifest loaded from contour.toml.

    Contains project metadata plus export and API document settings.
    """

    name: str
    version: str
    project_root: str
    export: ExportConfig = field(default_factory=ExportConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


def load_manifest(path: Path, available_backends: Iterable[str] | None = None) -> ProjectManifest:
    """
    Load and check a contour.toml manifest.

    Args:
        path: Path to the manifest
        available_backends: Registered backend names; when given, every
            backend listed under [export] must be one of them

    Raises:
        ConfigurationError: On an unknown key format, OpenAPI format or backend
    """
    data = tomllib.loads(path.read_text(encoding="utf-8"))

    project = data.get("project", {})
    export_data = data.get("export", {})
    api_data = data.get("api", {})

    key_format = export_data.get("key_format", KeyFormat.KEEP.value)
    if key_format not in {item.value for item in KeyFormat}:
        raise ConfigurationError(
            f"Unknown key_format '{key_format}' in {path}",
            code="unknown_key_format",
            path=["export", "key_format"],
        )

    openapi_format = export_data.get("openapi_format", "json")
    if openapi_format not in OPENAPI_FORMATS:
        raise ConfigurationError(
            f"Unknown openapi_format '{openapi_format}' in {path}",
            code="unknown_format",
            path=["export", "openapi_format"],
        )

    export_config = ExportConfig(
        key_format=KeyFormat(key_format),
        builders=export_data.get("builders", False),
        output_dir=export_data.get("output_dir", "generated"),
        backends=export_data.get("backends", ["openapi", "zod", "typescript"]),
        openapi_format=openapi_format,
    )

    if available_backends is not None:
        available = sorted(available_backends)
        for backend in export_config.backends:
            if backend not in available:
                raise ConfigurationError(
                    f"Unknown backend '{backend}' in {path}; available backends: {available}",
                    code="unknown_backend",
                    path=["export", "backends"],
                )

    api_config = ApiConfig(
        path=api_data.get("path"),
        title=api_data.get("title"),
        description=api_data.get("description"),
        version=api_data.get("version"),
    )

    return ProjectManifest(
        name=project.get("name", path.parent.name),
        version=project.get("version", "0.1.0"),
        project_root=str(path.parent),
        export=export_config,
        api=api_config,
    )
