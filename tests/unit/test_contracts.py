"""Tests for contract building: read types, standard actions and loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from contour.core.errors import ConfigurationError
from contour.core.ir import (
    ActionSpec,
    ApiSpec,
    ArrayType,
    Attribute,
    DataModel,
    Entity,
    HttpMethod,
    Inheritance,
    InheritanceVariant,
    LiteralType,
    ObjectType,
    ReferenceType,
    UnionType,
)
from contour.core.type_registry import TypeRegistry
from contour.synthesis.contracts import (
    ContractBuilder,
    ResourceDeclaration,
    StandardAction,
    build_api,
    load_api,
    load_project,
)

PROJECT = """
api:
  path: /api/v1
  title: Shop
entities:
  - name: Product
    namespace: shop
    attributes:
      - name: title
        writable: true
      - name: price
        kind: decimal
        writable: true
        min: 0
resources:
  - entity: shop.Product
    actions: [index, show, create]
    members:
      publish:
        method: POST
        path: "{id}/publish"
"""


# =============================================================================
# Read types
# =============================================================================


class TestReadTypes:
    def test_read_shape(self, api, registry: TypeRegistry) -> None:
        post = registry.resolve("post")
        assert isinstance(post, ObjectType)
        assert list(post.shape) == [
            "id",
            "title",
            "body",
            "status",
            "views",
            "author",
            "comments",
            "attachments",
            "created_at",
            "updated_at",
        ]
        assert post.shape["views"].required is True
        assert post.shape["comments"].descriptor == ArrayType(element=ReferenceType(name="comment"))
        assert post.shape["author"].required is False

    def test_polymorphic_type_enum(self, api, registry: TypeRegistry) -> None:
        attachment = registry.resolve("attachment")
        assert list(attachment.shape) == ["id", "url", "attachable_type", "attachable"]
        assert attachment.shape["attachable"].descriptor == ObjectType()
        assert registry.resolve("attachment_attachable_type").values == ["post", "comment"]

    def test_inheritance_root_reads_as_union(self, api, registry: TypeRegistry) -> None:
        vehicle = registry.resolve("vehicle")
        assert isinstance(vehicle, UnionType)
        assert vehicle.discriminator == "kind"
        assert [v.descriptor for v in vehicle.variants] == [
            ReferenceType(name="car"),
            ReferenceType(name="truck"),
        ]
        car = registry.resolve("car")
        assert car.shape["kind"].descriptor == LiteralType(value="car")
        assert list(car.shape)[:4] == ["id", "kind", "name", "seats"]

    def test_types_travel_with_tree(self, api, registry: TypeRegistry) -> None:
        assert set(api.types) == set(registry)


# =============================================================================
# Standard actions
# =============================================================================


class TestStandardActions:
    def test_resource_tree(self, api) -> None:
        assert list(api.resources) == ["posts", "authors", "vehicles"]
        posts = api.resources["posts"]
        assert posts.singular == "post"
        assert posts.plural == "posts"
        assert list(posts.resources) == ["comments"]
        assert list(posts.resources["comments"].actions) == ["index", "create"]

    def test_index(self, api) -> None:
        index = api.resources["posts"].actions["index"]
        assert index.method == HttpMethod.GET
        assert index.collection is True
        assert list(index.input) == ["page", "per_page"]
        assert index.input["per_page"].max == 100
        assert index.input["page"].required is False
        assert index.output["posts"].descriptor == ArrayType(element=ReferenceType(name="post"))

    def test_create_and_update(self, api) -> None:
        actions = api.resources["posts"].actions
        assert actions["create"].method == HttpMethod.POST
        assert actions["create"].input["post"].descriptor == ReferenceType(
            name="post_create_payload"
        )
        assert actions["update"].method == HttpMethod.PATCH
        assert actions["update"].path == "{id}"
        assert actions["update"].input["post"].descriptor == ReferenceType(
            name="post_update_payload"
        )

    def test_destroy_has_no_content(self, api) -> None:
        destroy = api.resources["posts"].actions["destroy"]
        assert destroy.method == HttpMethod.DELETE
        assert destroy.no_content is True
        assert destroy.output == {}

    def test_sti_create_uses_union(self, api) -> None:
        create = api.resources["vehicles"].actions["create"]
        assert create.input["vehicle"].descriptor == ReferenceType(name="vehicle_create_payload")

    def test_custom_actions_carried_through(self, data_model) -> None:
        publish = ActionSpec(method=HttpMethod.POST, path="{id}/publish")
        declaration = ResourceDeclaration(
            entity="blog.Post", actions=[StandardAction.SHOW], members={"publish": publish}
        )
        api = ContractBuilder(data_model).build([declaration])
        assert api.resources["posts"].members == {"publish": publish}

    def test_payloads_only_for_exposed_actions(self, data_model) -> None:
        builder = ContractBuilder(data_model)
        builder.build([ResourceDeclaration(entity="blog.Author", actions=[StandardAction.SHOW])])
        assert "author" in builder.registry
        assert "author_create_payload" not in builder.registry


class TestUnknownEntities:
    def test_resource_over_unknown_entity(self, data_model) -> None:
        builder = ContractBuilder(data_model)
        with pytest.raises(ConfigurationError) as exc_info:
            builder._build_resource(ResourceDeclaration(entity="blog.Ghost"))
        assert exc_info.value.code == "unknown_resource_entity"
        assert "unknown entity 'blog.Ghost'" in str(exc_info.value)

    def test_read_union_over_unknown_variant(self) -> None:
        vehicle = Entity(
            name="Vehicle",
            namespace="fleet",
            attributes=[Attribute(name="name")],
            inheritance=Inheritance(
                discriminator="kind",
                variants=[InheritanceVariant(tag="boat", entity="fleet.Boat")],
            ),
        )
        builder = ContractBuilder(DataModel(entities=[vehicle]))
        with pytest.raises(ConfigurationError) as exc_info:
            builder.build_read_type(vehicle)
        assert exc_info.value.code == "unknown_variant_entity"
        assert "unknown entity 'fleet.Boat'" in str(exc_info.value)


# =============================================================================
# Loading
# =============================================================================


class TestLoading:
    def test_load_project(self, tmp_path: Path) -> None:
        path = tmp_path / "shop.yaml"
        path.write_text(PROJECT)
        project = load_project(path)
        assert project.api.title == "Shop"
        assert project.model.has_entity("shop.Product")

    def test_build_api(self, tmp_path: Path) -> None:
        path = tmp_path / "shop.yaml"
        path.write_text(PROJECT)
        api = build_api(load_project(path))
        products = api.resources["products"]
        assert list(products.actions) == ["index", "show", "create"]
        assert products.members["publish"].path == "{id}/publish"
        assert "product_create_payload" in api.types

    def test_load_api_builds_project(self, tmp_path: Path) -> None:
        path = tmp_path / "shop.yaml"
        path.write_text(PROJECT)
        assert load_api(path).title == "Shop"

    def test_load_api_reads_tree(self, api, tmp_path: Path) -> None:
        path = tmp_path / "tree.yaml"
        path.write_text(yaml.safe_dump(api.model_dump(mode="json")))
        assert load_api(path) == api

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_api(path) == ApiSpec()
