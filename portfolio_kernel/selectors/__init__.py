"""Read-only selectors over the kernel store."""

from portfolio_kernel.selectors.base import BaseSelector
from portfolio_kernel.selectors.entity_selector import EntityConnectionSelector

__all__ = ["BaseSelector", "EntityConnectionSelector"]
