"""Entity descriptors handed out by the entity registry."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EntityDescriptor:
    """A legal entity eligible for consolidation."""

    entity_id: str
    entity_name: str
    connected: bool = True
