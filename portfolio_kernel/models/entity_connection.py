"""
Module: portfolio_kernel.models.entity_connection
Responsibility: ORM persistence for the registry of legal entities eligible
    for consolidation, with their connectivity status.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - entity_id (the upstream tenant identifier) is unique.
    - Only rows with connected=True are fetch candidates for consolidation.

Non-goals:
    - OAuth tokens are NOT stored here; token persistence belongs to the
      excluded authorization layer.
"""

from datetime import datetime

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_kernel.db.base import TrackedBase


class EntityConnection(TrackedBase):
    """
    One legal entity known to the portfolio.

    Guarantees:
        - entity_id is unique and non-null.
        - display_order gives a stable, caller-visible ordering for
          consolidation output.
    """

    __tablename__ = "entity_connections"

    __table_args__ = (
        UniqueConstraint("entity_id", name="uq_entity_connection_entity_id"),
        Index("idx_entity_connection_connected", "connected"),
    )

    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False, default="xero")
    connected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(nullable=False, default=0)
    last_connected_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return (
            f"<EntityConnection {self.entity_id} {self.entity_name!r} "
            f"connected={self.connected}>"
        )
