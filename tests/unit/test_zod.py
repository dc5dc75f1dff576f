"""Tests for the zod backend."""

from __future__ import annotations

from contour.core.ir import (
    ActionSpec,
    ApiSpec,
    ArrayType,
    ObjectType,
    PrimitiveKind,
    ResourceSpec,
    UnionType,
    UnionVariant,
    field,
    reference,
)
from contour.core.naming import KeyFormat
from contour.export.base import ExportOptions
from contour.export.components import extract_components
from contour.export.zod import ZodExporter, generate_zod


def _line(source: str, prefix: str) -> str:
    return next(line for line in source.splitlines() if line.startswith(prefix))


class TestZodSchemas:
    def test_imports_zod(self, components) -> None:
        assert generate_zod(components).startswith("import { z } from 'zod';")

    def test_one_schema_per_component(self, components) -> None:
        source = generate_zod(components)
        for component in components.components:
            assert f"export const {component.canonical_name}Schema" in source

    def test_nested_union_injects_optional_tag(self, components) -> None:
        line = _line(generate_zod(components), "export const CommentNestedPayloadSchema")
        assert "z.union([" in line
        assert "discriminatedUnion" not in line
        assert (
            "CommentNestedDeletePayloadSchema.extend({ _op: z.literal('delete').optional() })"
        ) in line

    def test_sti_union_uses_variant_schemas(self, components) -> None:
        line = _line(generate_zod(components), "export const VehicleCreatePayloadSchema")
        assert line == (
            "export const VehicleCreatePayloadSchema = z.discriminatedUnion("
            "'kind', [CarCreatePayloadSchema, TruckCreatePayloadSchema]);"
        )

    def test_field_modifiers(self, components) -> None:
        source = generate_zod(components)
        assert "  title: z.string().min(1).max(200)," in source
        assert "  body: z.string().nullable().optional()," in source
        assert "  status: PostStatusSchema.optional()," in source
        assert "  email: z.email()," in source

    def test_enum_schema(self, components) -> None:
        source = generate_zod(components)
        assert "export const PostStatusSchema = z.enum(['draft', 'published', 'archived']);" in source

    def test_untyped_association_is_open_record(self, components) -> None:
        assert "  attachable: z.record(z.string(), z.unknown())" in generate_zod(components)

    def test_dependencies_declared_first(self, components) -> None:
        source = generate_zod(components)
        assert source.index("export const CommentNestedPayloadSchema") < source.index(
            "export const PostCreatePayloadSchema"
        )
        assert source.index("export const AuthorSchema") < source.index("export const PostSchema")


class TestZodCycles:
    def test_cycle_members_are_lazy(self, components) -> None:
        source = generate_zod(components)
        assert "export const PostSchema: z.ZodType<Post> = z.lazy(() => z.object({" in source
        assert "export const CommentSchema: z.ZodType<Comment> = z.lazy(() => z.object({" in source
        assert "export const AuthorSchema = z.object({" in source

    def test_lazy_schemas_have_interfaces(self, components) -> None:
        source = generate_zod(components)
        assert "export interface Post {" in source
        assert "export interface Comment {" in source

    def test_self_referencing_type(self) -> None:
        node = ObjectType(
            shape={
                "name": field(PrimitiveKind.STRING),
                "children": field(ArrayType(element=reference("node")), required=False),
            }
        )
        resource = ResourceSpec(
            identifier="nodes",
            path="nodes",
            singular="node",
            plural="nodes",
            actions={"show": ActionSpec(path="{id}", output={"node": field(reference("node"))})},
        )
        api = ApiSpec(path="/api", resources={"nodes": resource}, types={"node": node})
        source = generate_zod(extract_components(api))
        assert "export const NodeSchema: z.ZodType<Node> = z.lazy(() => z.object({" in source
        assert "  children: z.array(NodeSchema).optional()" in source

    def test_union_over_lazy_variant_not_discriminated(self) -> None:
        node = ObjectType(
            shape={"parent": field(reference("tree"), required=False, nullable=True)}
        )
        tree = UnionType(
            discriminator="kind",
            variants=[UnionVariant(tag="node", descriptor=reference("node"))],
        )
        resource = ResourceSpec(
            identifier="trees",
            path="trees",
            singular="tree",
            plural="trees",
            actions={"show": ActionSpec(output={"tree": field(reference("tree"))})},
        )
        api = ApiSpec(resources={"trees": resource}, types={"node": node, "tree": tree})
        line = _line(generate_zod(extract_components(api)), "export const TreeSchema")
        assert (
            "z.union([z.intersection(NodeSchema, "
            "z.object({ kind: z.literal('node').optional() }))])"
        ) in line


class TestZodEnvelopes:
    def test_envelope_schemas(self, components) -> None:
        source = generate_zod(components)
        assert "export const ErrorResponseSchema = z.object({\n  ok: z.literal(false)," in source
        assert "export const PaginationMetaSchema = z.object({" in source

    def test_index_response(self, components) -> None:
        source = generate_zod(components)
        assert "export const PostIndexRequestQuerySchema = IndexPostInputSchema;" in source
        assert (
            "export const PostIndexResponseSchema = z.union([IndexPostOutputSchema.extend("
            "{ ok: z.literal(true), meta: PaginationMetaSchema.optional() }), ErrorResponseSchema]);"
        ) in source

    def test_create_body_and_no_content(self, components) -> None:
        source = generate_zod(components)
        assert "export const PostCreateRequestBodySchema = CreatePostInputSchema;" in source
        assert "export const PostDestroyResponseSchema = z.never();" in source
        assert (
            "export type PostIndexResponse = z.infer<typeof PostIndexResponseSchema>;" in source
        )

    def test_camel_keys(self, components) -> None:
        source = generate_zod(components, ExportOptions(key_format=KeyFormat.CAMEL))
        assert "  commentsAttributes: z.array(CommentNestedPayloadSchema).optional()" in source
        assert "_op: z.literal('delete').optional()" in source


class TestZodBuilders:
    def test_no_builders_by_default(self, components) -> None:
        assert "function buildPost" not in generate_zod(components)

    def test_builders_parse_through_schema(self, components) -> None:
        source = generate_zod(components, ExportOptions(builders=True))
        assert "type Pretty<T> = { [K in keyof T]: T[K] } & {};" in source
        assert "export function buildPost(data: BuildPostData): Post {" in source
        assert "  return PostSchema.parse({" in source
        assert "    id: sequence()," in source
        assert "    status: 'draft'," in source
        assert "    body: null," in source
        assert "function datetime(): string {" in source

    def test_exporter_capabilities(self) -> None:
        capabilities = ZodExporter().get_capabilities()
        assert capabilities.supports_builders is True
        assert ZodExporter().output_filename(ExportOptions()) == "schemas.ts"
