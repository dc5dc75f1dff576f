"""
OpenAPI document generation.

Generates an OpenAPI 3.1 document from a component set: every component
becomes an entry of ``components.schemas`` and every action an operation
whose responses are wrapped in the success/error envelope.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import yaml

from ..core.errors import BackendError
from ..core.ir.introspection import HttpMethod
from ..core.ir.types import (
    ArrayType,
    EnumType,
    FieldDescriptor,
    LiteralType,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    ReferenceType,
    UnionType,
)
from .base import Exporter, ExporterCapabilities, ExportOptions
from .components import ActionComponents, ComponentSet

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.1.0"

# Envelope schema names
ERROR_SCHEMA = "ErrorResponse"
ISSUE_SCHEMA = "Issue"
PAGINATION_SCHEMA = "PaginationMeta"

TYPE_MAPPING: dict[PrimitiveKind, dict[str, Any]] = {
    PrimitiveKind.STRING: {"type": "string"},
    PrimitiveKind.TEXT: {"type": "string"},
    PrimitiveKind.INTEGER: {"type": "integer"},
    PrimitiveKind.NUMBER: {"type": "number"},
    PrimitiveKind.DECIMAL: {"type": "number"},
    PrimitiveKind.BOOLEAN: {"type": "boolean"},
    PrimitiveKind.DATE: {"type": "string", "format": "date"},
    PrimitiveKind.DATETIME: {"type": "string", "format": "date-time"},
    PrimitiveKind.TIME: {"type": "string", "format": "time"},
    PrimitiveKind.UUID: {"type": "string", "format": "uuid"},
    PrimitiveKind.BINARY: {"type": "string", "format": "binary"},
    PrimitiveKind.JSON: {},
    PrimitiveKind.UNKNOWN: {},
}


def _ref(name: str) -> dict[str, Any]:
    return {"$ref": f"#/components/schemas/{name}"}


def _json_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    return "string"


class _OpenAPIRenderer:
    """Per-run state: the component set and the key format."""

    def __init__(self, components: ComponentSet, options: ExportOptions):
        self.components = components
        self.options = options

    def key(self, name: str) -> str:
        return self.options.key(name)

    # =========================================================================
    # Document
    # =========================================================================

    def document(self) -> dict[str, Any]:
        api = self.components.api
        info: dict[str, Any] = {"title": api.title, "version": api.version}
        if api.description:
            info["description"] = api.description

        openapi: dict[str, Any] = {
            "openapi": OPENAPI_VERSION,
            "info": info,
            "servers": [{"url": api.path}],
            "paths": {},
            "components": {"schemas": {}},
            "tags": [],
        }

        schemas = openapi["components"]["schemas"]
        for component in self.components.components:
            schemas[component.canonical_name] = self.definition_schema(component.definition)
        schemas.update(self.envelope_schemas())

        for record in self.components.actions:
            path_item = openapi["paths"].setdefault(record.path, {})
            method = record.action.method.value.lower()
            if method in path_item:
                taken = path_item[method]["operationId"]
                raise BackendError(
                    f"{record.operation_id} collides with {taken} "
                    f"on {method.upper()} {record.path}"
                )
            path_item[method] = self.operation(record)

        for identifier in api.resources:
            openapi["tags"].append({"name": identifier})

        logger.debug(
            "OpenAPI document: %d schemas, %d paths", len(schemas), len(openapi["paths"])
        )
        return openapi

    def envelope_schemas(self) -> dict[str, Any]:
        return {
            ISSUE_SCHEMA: {
                "type": "object",
                "properties": {
                    self.key("code"): {"type": "string"},
                    self.key("message"): {"type": "string"},
                    self.key("path"): {
                        "type": "array",
                        "items": {"oneOf": [{"type": "string"}, {"type": "integer"}]},
                    },
                },
                "required": [self.key("code"), self.key("message"), self.key("path")],
            },
            ERROR_SCHEMA: {
                "type": "object",
                "properties": {
                    self.key("ok"): {"type": "boolean", "const": False},
                    self.key("issues"): {"type": "array", "items": _ref(ISSUE_SCHEMA)},
                },
                "required": [self.key("ok"), self.key("issues")],
            },
            PAGINATION_SCHEMA: {
                "type": "object",
                "properties": {
                    self.key("page"): {"type": "integer"},
                    self.key("per_page"): {"type": "integer"},
                    self.key("total"): {"type": "integer"},
                },
                "required": [self.key("page"), self.key("per_page"), self.key("total")],
            },
        }

    # =========================================================================
    # Operations
    # =========================================================================

    def operation(self, record: ActionComponents) -> dict[str, Any]:
        action = record.action
        operation: dict[str, Any] = {
            "operationId": record.operation_id,
            "tags": [record.parents[0].identifier if record.parents else record.resource.identifier],
        }
        if action.summary:
            operation["summary"] = action.summary
        if action.description:
            operation["description"] = action.description
        if action.deprecated:
            operation["deprecated"] = True

        parameters = self.path_parameters(record)
        if record.input_name:
            if action.method == HttpMethod.GET:
                parameters.extend(self.query_parameters(record))
            else:
                operation["requestBody"] = {
                    "required": True,
                    "content": {"application/json": {"schema": _ref(record.input_name)}},
                }
        if parameters:
            operation["parameters"] = parameters

        operation["responses"] = self.responses(record)
        return operation

    def path_parameters(self, record: ActionComponents) -> list[dict[str, Any]]:
        parameters = []
        for segment in record.path.split("/"):
            if segment.startswith("{") and segment.endswith("}"):
                parameters.append(
                    {
                        "name": segment[1:-1],
                        "in": "path",
                        "required": True,
                        "schema": {"type": "string"},
                    }
                )
        return parameters

    def query_parameters(self, record: ActionComponents) -> list[dict[str, Any]]:
        return [
            {
                "name": self.key(name),
                "in": "query",
                "required": spec.required,
                "schema": self.field_schema(spec),
            }
            for name, spec in record.action.input.items()
        ]

    def responses(self, record: ActionComponents) -> dict[str, Any]:
        action = record.action
        error = {
            "description": "Request rejected",
            "content": {"application/json": {"schema": _ref(ERROR_SCHEMA)}},
        }
        if action.no_content or record.output_name is None:
            return {"204": {"description": "No content"}, "422": error}

        meta = _ref(PAGINATION_SCHEMA) if action.collection else {"type": "object"}
        envelope = {
            "allOf": [
                _ref(record.output_name),
                {
                    "type": "object",
                    "properties": {
                        self.key("ok"): {"type": "boolean", "const": True},
                        self.key("meta"): meta,
                    },
                    "required": [self.key("ok")],
                },
            ]
        }
        status = "201" if action.method == HttpMethod.POST and record.name == "create" else "200"
        return {
            status: {
                "description": "Success",
                "content": {"application/json": {"schema": envelope}},
            },
            "422": error,
        }

    # =========================================================================
    # Schemas
    # =========================================================================

    def definition_schema(self, definition: Any) -> dict[str, Any]:
        """Schema of a component's own definition, never a self reference."""
        if isinstance(definition, ObjectType):
            return self.object_schema(definition)
        if isinstance(definition, UnionType):
            return self.union_schema(definition)
        if isinstance(definition, EnumType):
            return self.enum_schema(definition)
        if isinstance(definition, ArrayType):
            return {"type": "array", "items": self.schema(definition.element)}
        return self.schema(definition)

    def schema(self, descriptor: Any) -> dict[str, Any]:
        """Schema of a nested descriptor; components render as references."""
        name = self.components.component_name(descriptor)
        if name is not None:
            return _ref(name)

        if isinstance(descriptor, PrimitiveType):
            if descriptor.enum_ref:
                return _ref(self.components.canonical(descriptor.enum_ref))
            schema = dict(TYPE_MAPPING[descriptor.kind])
            if descriptor.format:
                schema["format"] = descriptor.format
            return schema
        if isinstance(descriptor, LiteralType):
            return {"type": _json_type(descriptor.value), "const": descriptor.value}
        if isinstance(descriptor, ObjectType):
            return self.object_schema(descriptor)
        if isinstance(descriptor, ArrayType):
            return {"type": "array", "items": self.schema(descriptor.element)}
        if isinstance(descriptor, EnumType):
            return self.enum_schema(descriptor)
        if isinstance(descriptor, UnionType):
            return self.union_schema(descriptor)
        if isinstance(descriptor, ReferenceType):
            return _ref(self.components.canonical(descriptor.name))
        raise TypeError(f"Not a type descriptor: {type(descriptor).__name__}")

    def object_schema(self, descriptor: ObjectType) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "object"}
        if descriptor.description:
            schema["description"] = descriptor.description
        if descriptor.is_open:
            return schema
        schema["properties"] = {
            self.key(name): self.field_schema(spec) for name, spec in descriptor.shape.items()
        }
        required = [self.key(name) for name in descriptor.required]
        if required:
            schema["required"] = required
        return schema

    def enum_schema(self, descriptor: EnumType) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "string", "enum": list(descriptor.values)}
        if descriptor.description:
            schema["description"] = descriptor.description
        if descriptor.example:
            schema["example"] = descriptor.example
        if descriptor.deprecated:
            schema["deprecated"] = True
        return schema

    def union_schema(self, descriptor: UnionType) -> dict[str, Any]:
        if descriptor.discriminator is None:
            return {"oneOf": [self.schema(variant.descriptor) for variant in descriptor.variants]}

        discriminator = self.key(descriptor.discriminator)
        variants = []
        mapping = {}
        for variant in descriptor.variants:
            variant_schema = self.schema(variant.descriptor)
            if "$ref" in variant_schema:
                mapping[variant.tag] = variant_schema["$ref"]
                if not self._has_field(variant.descriptor, descriptor.discriminator):
                    # Injected tags are optional on the wire.
                    variant_schema = {
                        "allOf": [
                            variant_schema,
                            {
                                "type": "object",
                                "properties": {
                                    discriminator: {"type": "string", "const": variant.tag}
                                },
                            },
                        ]
                    }
            variants.append(variant_schema)

        schema: dict[str, Any] = {
            "oneOf": variants,
            "discriminator": {"propertyName": discriminator},
        }
        if mapping:
            schema["discriminator"]["mapping"] = mapping
        if descriptor.description:
            schema["description"] = descriptor.description
        return schema

    def _has_field(self, descriptor: Any, name: str) -> bool:
        name_of = self.components.component_name(descriptor)
        definition = self.components.definition(name_of) if name_of else descriptor
        return isinstance(definition, ObjectType) and name in definition.shape

    def field_schema(self, spec: FieldDescriptor) -> dict[str, Any]:
        schema = self.schema(spec.descriptor)
        is_ref = "$ref" in schema

        if not is_ref:
            if spec.format and "format" not in schema:
                schema["format"] = spec.format
            self._add_bounds(schema, spec)

        if spec.nullable:
            if not is_ref and isinstance(schema.get("type"), str):
                schema["type"] = [schema["type"], "null"]
            else:
                schema = {"oneOf": [schema, {"type": "null"}]}

        if spec.description:
            schema["description"] = spec.description
        if spec.example is not None:
            schema["example"] = spec.example
        if spec.default is not None:
            schema["default"] = spec.default
        if spec.deprecated:
            schema["deprecated"] = True
        return schema

    def _add_bounds(self, schema: dict[str, Any], spec: FieldDescriptor) -> None:
        kind = schema.get("type")
        if kind in ("integer", "number"):
            names = ("minimum", "maximum")
        elif kind == "string":
            names = ("minLength", "maxLength")
        elif kind == "array":
            names = ("minItems", "maxItems")
        else:
            return
        if spec.min is not None:
            schema[names[0]] = spec.min
        if spec.max is not None:
            schema[names[1]] = spec.max


def generate_openapi(components: ComponentSet, options: ExportOptions | None = None) -> dict[str, Any]:
    """
    Generate an OpenAPI 3.1 document.

    Args:
        components: Extracted component set
        options: Run options (key format)

    Returns:
        OpenAPI 3.1 document as a dictionary
    """
    return _OpenAPIRenderer(components, options or ExportOptions()).document()


def openapi_to_yaml(openapi: dict[str, Any]) -> str:
    """Convert OpenAPI dict to YAML string."""
    return yaml.dump(openapi, default_flow_style=False, sort_keys=False, allow_unicode=True)


def openapi_to_json(openapi: dict[str, Any]) -> str:
    """Convert OpenAPI dict to JSON string."""
    return json.dumps(openapi, indent=2)


class OpenAPIExporter(Exporter):
    """OpenAPI 3.1 document in JSON or YAML."""

    def render(self, components: ComponentSet, options: ExportOptions) -> dict[str, Any]:
        return generate_openapi(components, options)

    def serialize(self, document: dict[str, Any], options: ExportOptions) -> str:
        if self.output_format(options) == "yaml":
            return openapi_to_yaml(document)
        return openapi_to_json(document)

    def get_capabilities(self) -> ExporterCapabilities:
        return ExporterCapabilities(
            name="openapi",
            description="OpenAPI 3.1 document with components.schemas",
            output_formats=["json", "yaml"],
            file_name="openapi",
        )
