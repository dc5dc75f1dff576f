"""Tests for payload synthesis."""

from __future__ import annotations

import pytest

from contour.core.ir import (
    ArrayType,
    Association,
    AssociationKind,
    Attribute,
    DataModel,
    Entity,
    LiteralType,
    MutationAction,
    NestedMutation,
    ObjectType,
    PrimitiveKind,
    PrimitiveType,
    ReferenceType,
    UnionType,
)
from contour.synthesis.payloads import SynthesisContext


def _synthesizer(context: SynthesisContext, name: str):
    entity = context.model.get_entity(name)
    assert entity is not None
    return context.synthesizer_for(entity)


# ---------------------------------------------------------------------------
# Standard create / update payloads
# ---------------------------------------------------------------------------


class TestStandardPayloads:
    def test_create_payload_registered_in_entity_scope(self, context: SynthesisContext) -> None:
        name = _synthesizer(context, "blog.Post").build_create_payload()
        assert name == "post_create_payload"
        assert isinstance(context.registry.get(name), ObjectType)

    def test_only_writable_attributes_included(self, context: SynthesisContext) -> None:
        name = _synthesizer(context, "blog.Post").build_create_payload()
        shape = context.registry.get(name).shape
        assert "title" in shape
        assert "views" not in shape

    def test_create_required_follows_optional_flag(self, context: SynthesisContext) -> None:
        payload = context.registry.get(_synthesizer(context, "blog.Post").build_create_payload())
        assert payload.shape["title"].required is True
        assert payload.shape["body"].required is False
        assert "title" in payload.required
        assert "body" not in payload.required

    def test_update_payload_is_partial(self, context: SynthesisContext) -> None:
        name = _synthesizer(context, "blog.Post").build_update_payload()
        payload = context.registry.get(name)
        assert name == "post_update_payload"
        assert payload.required == []

    def test_writable_for_create_only(self, context: SynthesisContext) -> None:
        synthesizer = _synthesizer(context, "blog.Comment")
        create = context.registry.get(synthesizer.build_create_payload())
        update = context.registry.get(synthesizer.build_update_payload())
        assert "author_name" in create.shape
        assert "author_name" not in update.shape

    def test_enum_attribute_registers_named_enum(self, context: SynthesisContext) -> None:
        payload = context.registry.get(_synthesizer(context, "blog.Post").build_create_payload())
        status = payload.shape["status"]
        assert isinstance(status.descriptor, PrimitiveType)
        assert status.descriptor.enum_ref == "post_status"
        assert context.registry.get("post_status").values == ["draft", "published", "archived"]

    def test_attribute_bounds_and_format_carried(self, context: SynthesisContext) -> None:
        post = context.registry.get(_synthesizer(context, "blog.Post").build_create_payload())
        author = context.registry.get(_synthesizer(context, "blog.Author").build_create_payload())
        assert post.shape["title"].min == 1
        assert post.shape["title"].max == 200
        assert author.shape["email"].format == "email"

    def test_building_twice_is_idempotent(self, context: SynthesisContext) -> None:
        synthesizer = _synthesizer(context, "blog.Post")
        first = synthesizer.build_create_payload()
        size = len(context.registry)
        assert synthesizer.build_create_payload() == first
        assert len(context.registry) == size


# ---------------------------------------------------------------------------
# Nested mutation
# ---------------------------------------------------------------------------


class TestNestedMutation:
    def test_writable_association_references_nested_union(
        self, context: SynthesisContext
    ) -> None:
        payload = context.registry.get(_synthesizer(context, "blog.Post").build_create_payload())
        spec = payload.shape["comments_attributes"]
        assert spec.required is False
        assert isinstance(spec.descriptor, ArrayType)
        assert spec.descriptor.element == ReferenceType(name="comment_nested_payload")

    def test_nested_union_has_three_variants(self, context: SynthesisContext) -> None:
        _synthesizer(context, "blog.Post").build_create_payload()
        union = context.registry.get("comment_nested_payload")
        assert isinstance(union, UnionType)
        assert union.discriminator == "_op"
        assert union.tags == ["create", "update", "delete"]

    def test_delete_variant_is_exactly_id(self, context: SynthesisContext) -> None:
        _synthesizer(context, "blog.Post").build_create_payload()
        union = context.registry.get("comment_nested_payload")
        delete = context.registry.resolve(union.variants[2].descriptor.name)
        assert list(delete.shape) == ["id"]
        assert delete.shape["id"].required is True
        assert delete.shape["id"].descriptor == PrimitiveType(kind=PrimitiveKind.INTEGER)

    def test_create_and_update_variants_carry_optional_id(
        self, context: SynthesisContext
    ) -> None:
        _synthesizer(context, "blog.Post").build_create_payload()
        create = context.registry.get("comment_nested_create_payload")
        update = context.registry.get("comment_nested_update_payload")
        assert create.shape["id"].required is False
        assert "body" in create.shape
        assert update.shape["id"].required is False
        assert update.shape["body"].required is False

    def test_custom_op_field(self, data_model: DataModel) -> None:
        context = SynthesisContext.create(data_model, op_field="operation")
        _synthesizer(context, "blog.Post").build_create_payload()
        assert context.registry.get("comment_nested_payload").discriminator == "operation"

    def test_mutually_writable_entities_terminate(self) -> None:
        team = Entity(
            name="Team",
            attributes=[Attribute(name="name", writable=True)],
            associations=[
                Association(name="members", kind=AssociationKind.HAS_MANY, writable=True)
            ],
            nested_mutation=[NestedMutation(association="members")],
        )
        member = Entity(
            name="Member",
            attributes=[Attribute(name="email", writable=True)],
            associations=[Association(name="team", writable=True)],
            nested_mutation=[NestedMutation(association="team")],
        )
        context = SynthesisContext.create(DataModel(entities=[team, member]))

        name = _synthesizer(context, "Team").build_create_payload()

        assert name == "team_create_payload"
        assert "team_nested_payload" in context.registry
        assert "member_nested_payload" in context.registry
        member_create = context.registry.get("member_nested_create_payload")
        assert member_create.shape["team_attributes"].descriptor == ReferenceType(
            name="team_nested_payload"
        )
        context.registry.check_references()
        assert context.in_flight == {}


# ---------------------------------------------------------------------------
# Inheritance families
# ---------------------------------------------------------------------------


class TestInheritance:
    def test_root_payload_is_union_of_variants(self, context: SynthesisContext) -> None:
        name = _synthesizer(context, "fleet.Vehicle").build_payload(MutationAction.CREATE)
        union = context.registry.get(name)
        assert name == "vehicle_create_payload"
        assert isinstance(union, UnionType)
        assert union.discriminator == "kind"
        assert len(union.variants) == 2
        assert [variant.descriptor.name for variant in union.variants] == [
            "car_create_payload",
            "truck_create_payload",
        ]

    def test_create_variants_require_discriminator_literal(
        self, context: SynthesisContext
    ) -> None:
        union = context.registry.get(_synthesizer(context, "fleet.Vehicle").build_sti_union("create"))
        for variant in union.variants:
            payload = context.registry.resolve(variant.descriptor.name)
            literal = payload.shape["kind"]
            assert literal.descriptor == LiteralType(value=variant.tag)
            assert literal.required is True

    def test_update_variants_mark_discriminator_optional(
        self, context: SynthesisContext
    ) -> None:
        union = context.registry.get(_synthesizer(context, "fleet.Vehicle").build_sti_union("update"))
        assert len(union.variants) == 2
        for variant in union.variants:
            payload = context.registry.resolve(variant.descriptor.name)
            assert payload.shape["kind"].descriptor == LiteralType(value=variant.tag)
            assert payload.shape["kind"].required is False

    def test_subtype_inherits_parent_attributes(self, context: SynthesisContext) -> None:
        _synthesizer(context, "fleet.Vehicle").build_create_payload()
        car = context.registry.get("car_create_payload")
        assert list(car.shape) == ["kind", "name", "seats"]

    def test_stored_column_and_value_recorded(self, context: SynthesisContext) -> None:
        _synthesizer(context, "fleet.Vehicle").build_create_payload()
        car_kind = context.registry.get("car_create_payload").shape["kind"]
        truck_kind = context.registry.get("truck_create_payload").shape["kind"]
        assert car_kind.store_as == "type"
        assert car_kind.store_value == "Fleet::Car"
        assert truck_kind.store_value is None

    def test_non_root_rejected(self, context: SynthesisContext) -> None:
        with pytest.raises(ValueError, match="not the root"):
            _synthesizer(context, "fleet.Car").build_sti_union("create")


# ---------------------------------------------------------------------------
# Polymorphic associations
# ---------------------------------------------------------------------------


class TestPolymorphic:
    def test_polymorphic_association_is_untyped(self, context: SynthesisContext) -> None:
        payload = context.registry.get(
            _synthesizer(context, "blog.Attachment").build_create_payload()
        )
        spec = payload.shape["attachable_attributes"]
        assert spec.descriptor == ObjectType()
        assert spec.required is False

    def test_no_nested_union_for_polymorphic_target(self, context: SynthesisContext) -> None:
        _synthesizer(context, "blog.Attachment").build_create_payload()
        assert not [name for name in context.registry if name.endswith("nested_payload")]

    def test_unresolved_collection_is_array_of_untyped(self) -> None:
        owner = Entity(
            name="Owner",
            associations=[Association(name="widgets", kind=AssociationKind.HAS_MANY, writable=True)],
            nested_mutation=[NestedMutation(association="widgets")],
        )
        context = SynthesisContext.create(DataModel(entities=[owner]))
        payload = context.registry.get(_synthesizer(context, "Owner").build_create_payload())
        assert payload.shape["widgets_attributes"].descriptor == ArrayType(element=ObjectType())
