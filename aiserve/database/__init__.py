# ==============================================================================
# DATABASE PACKAGE INITIALIZATION
# ==============================================================================

"""
Database Layer
==============

- engine: Pooled async engine construction
- factory: Process-wide manager lifecycle
- unit_of_work: Request-scoped transactions
- repositories: Data access bound to a unit of work
"""

from aiserve.database.engine import build_engine, create_tables
from aiserve.database.factory import DatabaseFactory
from aiserve.database.unit_of_work import (
    Outcome,
    UnitOfWork,
    UnitOfWorkManager,
    UnitOfWorkState,
)

__all__ = [
    "build_engine",
    "create_tables",
    "DatabaseFactory",
    "Outcome",
    "UnitOfWork",
    "UnitOfWorkManager",
    "UnitOfWorkState",
]
