"""Shared fixtures: a small blog domain plus an inheritance family."""

from __future__ import annotations

import pytest

from contour.core.ir import (
    Association,
    AssociationKind,
    Attribute,
    DataModel,
    Entity,
    Inheritance,
    InheritanceVariant,
    NestedMutation,
    PrimitiveKind,
)
from contour.core.type_registry import TypeRegistry
from contour.export.components import ComponentExtractor
from contour.synthesis.contracts import (
    ApiInfo,
    ContractBuilder,
    ResourceDeclaration,
    StandardAction,
)
from contour.synthesis.payloads import SynthesisContext


def make_blog_entities() -> list[Entity]:
    author = Entity(
        name="Author",
        namespace="blog",
        attributes=[
            Attribute(name="name", writable=True),
            Attribute(name="email", format="email", optional=True, writable=True),
        ],
    )
    post = Entity(
        name="Post",
        namespace="blog",
        description="A blog post",
        attributes=[
            Attribute(name="title", writable=True, min=1, max=200),
            Attribute(
                name="body", kind=PrimitiveKind.TEXT, optional=True, nullable=True, writable=True
            ),
            Attribute(
                name="status",
                enum=["draft", "published", "archived"],
                optional=True,
                default="draft",
                writable=True,
            ),
            Attribute(name="views", kind=PrimitiveKind.INTEGER),
        ],
        associations=[
            Association(name="author", kind=AssociationKind.BELONGS_TO),
            Association(name="comments", kind=AssociationKind.HAS_MANY, writable=True),
            Association(
                name="attachments", kind=AssociationKind.HAS_MANY, target="blog.Attachment"
            ),
        ],
        nested_mutation=[NestedMutation(association="comments")],
    )
    comment = Entity(
        name="Comment",
        namespace="blog",
        attributes=[
            Attribute(name="body", kind=PrimitiveKind.TEXT, writable=True),
            Attribute(name="author_name", optional=True, writable="create"),
        ],
        associations=[Association(name="post", kind=AssociationKind.BELONGS_TO)],
    )
    attachment = Entity(
        name="Attachment",
        namespace="blog",
        timestamps=False,
        attributes=[Attribute(name="url", format="uri", writable=True)],
        associations=[
            Association(
                name="attachable",
                kind=AssociationKind.BELONGS_TO,
                polymorphic=["post", "comment"],
                writable={"on": ["create"]},
            )
        ],
        nested_mutation=[NestedMutation(association="attachable")],
    )
    return [author, post, comment, attachment]


def make_fleet_entities() -> list[Entity]:
    vehicle = Entity(
        name="Vehicle",
        namespace="fleet",
        attributes=[Attribute(name="name", writable=True)],
        inheritance=Inheritance(
            discriminator="kind",
            column="type",
            variants=[
                InheritanceVariant(tag="car", entity="fleet.Car", store_value="Fleet::Car"),
                InheritanceVariant(tag="truck", entity="fleet.Truck"),
            ],
        ),
    )
    car = Entity(
        name="Car",
        namespace="fleet",
        parent="fleet.Vehicle",
        attributes=[Attribute(name="seats", kind=PrimitiveKind.INTEGER, writable=True)],
    )
    truck = Entity(
        name="Truck",
        namespace="fleet",
        parent="fleet.Vehicle",
        attributes=[
            Attribute(name="payload_tons", kind=PrimitiveKind.NUMBER, writable=True, min=0)
        ],
    )
    return [vehicle, car, truck]


@pytest.fixture
def data_model() -> DataModel:
    """Blog and fleet entities in one model."""
    return DataModel(entities=make_blog_entities() + make_fleet_entities())


@pytest.fixture
def context(data_model: DataModel) -> SynthesisContext:
    """Fresh synthesis context with an empty registry."""
    return SynthesisContext.create(data_model)


@pytest.fixture
def resources() -> list[ResourceDeclaration]:
    """Posts with nested comments, authors (read only) and vehicles."""
    return [
        ResourceDeclaration(
            entity="blog.Post",
            resources=[
                ResourceDeclaration(
                    entity="blog.Comment",
                    actions=[StandardAction.INDEX, StandardAction.CREATE],
                )
            ],
        ),
        ResourceDeclaration(
            entity="blog.Author", actions=[StandardAction.INDEX, StandardAction.SHOW]
        ),
        ResourceDeclaration(entity="fleet.Vehicle"),
    ]


@pytest.fixture
def builder(data_model: DataModel) -> ContractBuilder:
    return ContractBuilder(data_model)


@pytest.fixture
def api(builder: ContractBuilder, resources: list[ResourceDeclaration]):
    """Introspection tree of the blog API."""
    return builder.build(resources, ApiInfo(title="Blog API", version="2.0.0"))


@pytest.fixture
def registry(builder: ContractBuilder, api) -> TypeRegistry:
    """The registry the API was built into."""
    return builder.registry


@pytest.fixture
def components(registry: TypeRegistry, api):
    """Component set extracted from the blog API."""
    return ComponentExtractor(registry).extract(api)
