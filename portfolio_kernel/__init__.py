"""
Portfolio Kernel

Shared foundation of the trial balance pipeline:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Immutable domain value types (report trees, journals, amounts)
- Entity registry store (SQLAlchemy)
"""

__version__ = "0.1.0"
