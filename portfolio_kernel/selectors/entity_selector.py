"""
Module: portfolio_kernel.selectors.entity_selector
Responsibility: Read-only queries over the entity registry table, returning
    ``EntityDescriptor`` DTOs in display order.
Architecture position: Kernel > Selectors.

Failure modes:
    - ``EntityNotFoundError`` from ``resolve`` when neither the id nor the
      (case-insensitive) name matches a registered entity.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.exceptions import EntityNotFoundError
from portfolio_kernel.logging_config import get_logger
from portfolio_kernel.models.entity_connection import EntityConnection
from portfolio_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.entity")


def _to_descriptor(row: EntityConnection) -> EntityDescriptor:
    return EntityDescriptor(
        entity_id=row.entity_id,
        entity_name=row.entity_name,
        connected=row.connected,
    )


class EntityConnectionSelector(BaseSelector[EntityConnection]):
    """Selector for registered entities."""

    def __init__(self, session: Session):
        super().__init__(session)

    def all(self) -> list[EntityDescriptor]:
        """All registered entities, connected or not, in display order."""
        stmt = select(EntityConnection).order_by(
            EntityConnection.display_order,
            EntityConnection.entity_name,
        )
        rows = self.session.scalars(stmt).all()
        return [_to_descriptor(row) for row in rows]

    def connected(self) -> list[EntityDescriptor]:
        """Only entities whose connection is live."""
        stmt = (
            select(EntityConnection)
            .where(EntityConnection.connected.is_(True))
            .order_by(
                EntityConnection.display_order,
                EntityConnection.entity_name,
            )
        )
        rows = self.session.scalars(stmt).all()
        logger.debug(
            "connected_entities_loaded",
            extra={"entity_count": len(rows)},
        )
        return [_to_descriptor(row) for row in rows]

    def resolve(self, entity_ref: str) -> EntityDescriptor:
        """
        Find an entity by exact id, falling back to case-insensitive name.

        Raises:
            EntityNotFoundError: if nothing matches.
        """
        row = self.session.scalars(
            select(EntityConnection).where(EntityConnection.entity_id == entity_ref)
        ).first()
        if row is None:
            row = self.session.scalars(
                select(EntityConnection).where(
                    func.lower(EntityConnection.entity_name) == entity_ref.lower()
                )
            ).first()
        if row is None:
            available = tuple(d.entity_name for d in self.all())
            raise EntityNotFoundError(entity_ref, available)
        return _to_descriptor(row)
