"""
Entity registry backed by the ``entity_connections`` table.

Each call opens a short-lived session from the injected factory; the
registry holds no session of its own and is safe to share across threads.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_kernel.db.engine import session_scope
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.exceptions import EntityNotFoundError
from portfolio_kernel.logging_config import get_logger
from portfolio_kernel.models.entity_connection import EntityConnection
from portfolio_kernel.selectors.entity_selector import EntityConnectionSelector
from portfolio_services.ports import EntityRegistry

logger = get_logger("services.registry")


class SqlEntityRegistry:
    """EntityRegistry over SQLAlchemy."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def list_entities(self) -> list[EntityDescriptor]:
        with self._session_factory() as session:
            return EntityConnectionSelector(session).all()

    def connected_entities(self) -> list[EntityDescriptor]:
        with self._session_factory() as session:
            return EntityConnectionSelector(session).connected()

    def resolve(self, entity_ref: str) -> EntityDescriptor:
        with self._session_factory() as session:
            return EntityConnectionSelector(session).resolve(entity_ref)


def resolve_entity(
    registry: EntityRegistry,
    entity_ref: str,
) -> EntityDescriptor:
    """
    Resolve an entity id or name against any registry.

    Uses the registry's own ``resolve`` when it has one; otherwise scans
    ``list_entities()`` for an exact id, then a case-insensitive name.

    Raises:
        EntityNotFoundError: if nothing matches.
    """
    resolver = getattr(registry, "resolve", None)
    if callable(resolver):
        return resolver(entity_ref)

    entities: Sequence[EntityDescriptor] = registry.list_entities()
    for entity in entities:
        if entity.entity_id == entity_ref:
            return entity
    lowered = entity_ref.lower()
    for entity in entities:
        if entity.entity_name.lower() == lowered:
            return entity

    logger.warning("entity_not_found", extra={"entity_ref": entity_ref})
    raise EntityNotFoundError(entity_ref, tuple(e.entity_name for e in entities))


def register_entities(entities: Sequence[EntityDescriptor]) -> int:
    """
    Insert or update registry rows from descriptors, keyed by entity id.

    Display order follows the order given.  Runs in one transaction on the
    store set up by ``init_engine_from_url``.  Returns the number of rows
    written.
    """
    with session_scope() as session:
        existing = {
            row.entity_id: row
            for row in session.scalars(select(EntityConnection)).all()
        }
        for position, entity in enumerate(entities):
            row = existing.get(entity.entity_id)
            if row is None:
                row = EntityConnection(entity_id=entity.entity_id)
                session.add(row)
            row.entity_name = entity.entity_name
            row.connected = entity.connected
            row.display_order = position

    logger.info("entities_registered", extra={"entity_count": len(entities)})
    return len(entities)
