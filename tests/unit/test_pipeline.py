"""Tests for the export pipeline and the exporter registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from contour.core.errors import (
    BackendError,
    GeneratorNotRegisteredError,
    UnresolvableReferenceError,
)
from contour.core.ir import ActionSpec, ApiSpec, ObjectType, ResourceSpec, field, reference
from contour.core.type_registry import TypeRegistry
from contour.export.base import (
    Exporter,
    ExporterCapabilities,
    ExporterRegistry,
    ExportOptions,
    default_registry,
)
from contour.export.components import ComponentSet
from contour.export.pipeline import generate, write_artifact


class NamesExporter(Exporter):
    """Test exporter listing component names."""

    def render(self, components: ComponentSet, options: ExportOptions) -> list[str]:
        return [component.canonical_name for component in components.components]

    def serialize(self, document: list[str], options: ExportOptions) -> str:
        return "\n".join(document)

    def get_capabilities(self) -> ExporterCapabilities:
        return ExporterCapabilities(name="names", description="Names", output_formats=["txt"])


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestExporterRegistry:
    def test_default_backends(self) -> None:
        assert default_registry().list_backends() == ["openapi", "typescript", "zod"]

    def test_register_and_get(self) -> None:
        registry = ExporterRegistry()
        registry.register("names", NamesExporter)
        assert "names" in registry
        assert isinstance(registry.get("names"), NamesExporter)

    def test_duplicate_registration_rejected(self) -> None:
        registry = ExporterRegistry()
        registry.register("names", NamesExporter)
        with pytest.raises(BackendError, match="already registered"):
            registry.register("names", NamesExporter)

    def test_non_exporter_rejected(self) -> None:
        with pytest.raises(BackendError, match="must extend Exporter"):
            ExporterRegistry().register("bad", dict)  # type: ignore[arg-type]

    def test_unknown_backend_lists_available(self) -> None:
        with pytest.raises(GeneratorNotRegisteredError) as exc_info:
            default_registry().get("graphql")
        assert exc_info.value.available == ["openapi", "typescript", "zod"]
        assert "Backend 'graphql' not found" in str(exc_info.value)

    def test_capabilities_listed(self) -> None:
        names = [capabilities.name for capabilities in default_registry().capabilities()]
        assert names == ["openapi", "typescript", "zod"]


# ---------------------------------------------------------------------------
# generate()
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_openapi_json(self, api) -> None:
        document = json.loads(generate(api, "openapi"))
        assert "PostCreatePayload" in document["components"]["schemas"]

    def test_registry_rebuilt_from_tree(self, api, registry: TypeRegistry) -> None:
        assert generate(api, "zod") == generate(api, "zod", registry=registry)

    def test_tree_survives_dump_and_load(self, api) -> None:
        reloaded = ApiSpec.model_validate(api.model_dump())
        assert generate(reloaded, "typescript") == generate(api, "typescript")

    def test_unknown_backend_fails_before_work(self, api) -> None:
        with pytest.raises(GeneratorNotRegisteredError):
            generate(api, "graphql")

    def test_unsupported_format(self, api) -> None:
        with pytest.raises(BackendError, match="cannot write 'yaml'"):
            generate(api, "zod", ExportOptions(format="yaml"))

    def test_dangling_reference_in_registry(self) -> None:
        api = ApiSpec(types={"orphan": ObjectType(shape={"x": field(reference("missing"))})})
        with pytest.raises(UnresolvableReferenceError) as exc_info:
            generate(api, "openapi")
        assert exc_info.value.type_name == "missing"

    def test_reference_from_action_to_unknown_type(self) -> None:
        resource = ResourceSpec(
            identifier="things",
            path="things",
            singular="thing",
            plural="things",
            actions={"show": ActionSpec(output={"thing": field(reference("thing"))})},
        )
        with pytest.raises(UnresolvableReferenceError, match="'thing'"):
            generate(ApiSpec(resources={"things": resource}), "typescript")

    def test_custom_exporters(self, api) -> None:
        exporters = ExporterRegistry()
        exporters.register("names", NamesExporter)
        names = generate(api, "names", exporters=exporters).splitlines()
        assert "CommentNestedPayload" in names

    def test_fresh_fingerprints_each_run(self, api) -> None:
        first = generate(api, "openapi")
        second = generate(api, "openapi")
        assert first == second


class TestWriteArtifact:
    def test_writes_named_file(self, api, tmp_path: Path) -> None:
        path = write_artifact(api, "openapi", tmp_path / "out", ExportOptions(format="yaml"))
        assert path == tmp_path / "out" / "openapi.yaml"
        assert path.read_text().startswith("openapi: 3.1.0")

    def test_zod_file(self, api, tmp_path: Path) -> None:
        path = write_artifact(api, "zod", tmp_path)
        assert path.name == "schemas.ts"
        assert "import { z } from 'zod';" in path.read_text()
