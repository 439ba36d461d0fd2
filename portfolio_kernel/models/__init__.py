"""ORM models for the portfolio kernel."""

from portfolio_kernel.models.entity_connection import EntityConnection

__all__ = ["EntityConnection"]
