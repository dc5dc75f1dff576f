"""
contour CLI.

Commands:

- export: render one backend for a project or introspection file
- build: render every backend listed in contour.toml into its output directory
- backends: list registered backends
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from contour import __version__
from contour.core.errors import ContourError
from contour.core.ir.introspection import ApiSpec
from contour.core.manifest import ProjectManifest, load_manifest
from contour.core.naming import KeyFormat, write_file
from contour.export.base import ExportOptions, default_registry
from contour.export.pipeline import generate, write_artifact
from contour.synthesis.contracts import load_api

console = Console()

app = typer.Typer(
    help="""contour - payload synthesis and schema export

Reads a project declaration (entities + resources) or an introspection
tree and writes OpenAPI, zod or TypeScript artifacts.
""",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"contour version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _fail(error: Exception) -> typer.Exit:
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(code=1)


def _apply_api_config(api: ApiSpec, manifest: ProjectManifest | None) -> ApiSpec:
    """Overlay [api] values from the manifest onto a loaded tree."""
    if manifest is None:
        return api
    overrides = {
        key: value
        for key, value in {
            "path": manifest.api.path,
            "title": manifest.api.title,
            "description": manifest.api.description,
            "version": manifest.api.version,
        }.items()
        if value is not None
    }
    return api.model_copy(update=overrides) if overrides else api


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """contour CLI main callback for global options."""


# =============================================================================
# Export Commands
# =============================================================================


@app.command("export")
def export_command(
    backend: Annotated[str, typer.Argument(help="Backend name (see `contour backends`)")],
    input_path: Annotated[
        Path,
        typer.Option("--input", "-i", exists=True, dir_okay=False, help="Project or tree file"),
    ],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write here instead of stdout")
    ] = None,
    key_format: Annotated[
        KeyFormat | None, typer.Option("--key-format", help="Casing of generated field names")
    ] = None,
    builders: Annotated[
        bool | None, typer.Option("--builders/--no-builders", help="Emit builder functions")
    ] = None,
    output_format: Annotated[
        str | None, typer.Option("--format", "-f", help="Output format, e.g. json or yaml")
    ] = None,
    manifest_path: Annotated[
        Path | None, typer.Option("--manifest", "-m", help="contour.toml with export defaults")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Debug logging")] = False,
) -> None:
    """
    Render one backend.

    Command-line flags override values from the manifest.
    """
    configure_logging(verbose)
    exporters = default_registry()

    try:
        manifest = (
            load_manifest(manifest_path, exporters.list_backends()) if manifest_path else None
        )
        defaults = manifest.export if manifest else None
        if output_format is None and defaults and backend == "openapi":
            output_format = defaults.openapi_format
        options = ExportOptions(
            key_format=key_format or (defaults.key_format if defaults else KeyFormat.KEEP),
            builders=builders if builders is not None else bool(defaults and defaults.builders),
            format=output_format,
        )
        api = _apply_api_config(load_api(input_path), manifest)
        content = generate(api, backend, options, exporters=exporters)
    except (ContourError, ValidationError, yaml.YAMLError) as e:
        raise _fail(e) from e

    if output is None:
        typer.echo(content, nl=False)
        return
    write_file(output, content)
    typer.echo(f"Wrote {output}", err=True)


@app.command("build")
def build_command(
    input_path: Annotated[
        Path,
        typer.Option("--input", "-i", exists=True, dir_okay=False, help="Project or tree file"),
    ],
    manifest_path: Annotated[
        Path, typer.Option("--manifest", "-m", help="contour.toml")
    ] = Path("contour.toml"),
    verbose: Annotated[bool, typer.Option("--verbose", help="Debug logging")] = False,
) -> None:
    """Render every backend listed under [export] into the output directory."""
    configure_logging(verbose)
    exporters = default_registry()

    if not manifest_path.exists():
        typer.echo(f"Error: manifest not found: {manifest_path}", err=True)
        raise typer.Exit(code=1)

    try:
        manifest = load_manifest(manifest_path, exporters.list_backends())
        api = _apply_api_config(load_api(input_path), manifest)
        output_dir = Path(manifest.project_root) / manifest.export.output_dir
        for backend in manifest.export.backends:
            options = ExportOptions(
                key_format=manifest.export.key_format,
                builders=manifest.export.builders,
                format=manifest.export.openapi_format if backend == "openapi" else None,
            )
            path = write_artifact(api, backend, output_dir, options, exporters=exporters)
            typer.echo(f"Wrote {path}")
    except (ContourError, ValidationError, yaml.YAMLError) as e:
        raise _fail(e) from e


@app.command("backends")
def backends_command() -> None:
    """List registered backends and what they can write."""
    table = Table(title="Backends")
    table.add_column("Name")
    table.add_column("Formats")
    table.add_column("Builders")
    table.add_column("Description", style="dim")

    for capabilities in default_registry().capabilities():
        table.add_row(
            capabilities.name,
            ", ".join(capabilities.output_formats),
            "[green]yes[/green]" if capabilities.supports_builders else "",
            capabilities.description,
        )
    console.print(table)


def main() -> None:
    app()


__all__ = ["app", "main"]
