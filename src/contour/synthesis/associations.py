"""
Association target resolution.

Decides whether the entity on the far side of an association is known, so
that nested-mutation payloads can be typed precisely.
"""

from __future__ import annotations

import logging

from ..core.ir.entities import Association, DataModel, Entity
from ..core.naming import pascal_case, singularize

logger = logging.getLogger(__name__)


class AssociationResolver:
    """
    Resolves association targets against a data model.

    Resolution order:
    1. An explicit ``target`` declaration
    2. Polymorphic associations are never resolved
    3. Convention: ``<namespace>.<ModelName>`` where the model name is
       ``model_target`` or the singular PascalCase association name

    Results are memoized per (entity, association) pair.
    """

    def __init__(self, model: DataModel):
        self.model = model
        self._cache: dict[tuple[str, str], Entity | None] = {}

    def resolve(self, entity: Entity, association: Association) -> Entity | None:
        """
        Resolve the target entity of an association.

        Args:
            entity: Owning entity
            association: Association declared on (or inherited by) the entity

        Returns:
            The target entity, or None when it cannot be resolved
        """
        key = (entity.qualified_name, association.name)
        if key not in self._cache:
            self._cache[key] = self._lookup(entity, association)
        return self._cache[key]

    def _lookup(self, entity: Entity, association: Association) -> Entity | None:
        if association.target:
            return self.model.get_entity(association.target)

        if association.is_polymorphic:
            logger.debug(
                "%s.%s is polymorphic; leaving it unresolved",
                entity.qualified_name,
                association.name,
            )
            return None

        type_name = association.model_target or pascal_case(singularize(association.name))
        qualified = f"{entity.namespace}.{type_name}" if entity.namespace else type_name
        target = self.model.get_entity(qualified)
        if target is None:
            logger.debug(
                "%s.%s: no entity named %s; leaving it unresolved",
                entity.qualified_name,
                association.name,
                qualified,
            )
        return target
