"""
Module: portfolio_kernel.selectors.base
Responsibility: Base class for read-only registry queries.
Architecture position: Kernel > Selectors.  May import from db/ and models/.

Invariants enforced:
    - Selectors never add, delete, flush or commit; the caller owns the
      session and its transaction.
    - Selectors return frozen domain descriptors, never ORM rows, so nothing
      outside the kernel holds a session-bound object.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from portfolio_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):

    def __init__(self, session: Session):
        self.session = session
