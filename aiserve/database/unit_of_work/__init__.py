# ==============================================================================
# UNIT OF WORK PACKAGE INITIALIZATION
# ==============================================================================

"""
Unit of Work Pattern Implementation
===================================

Request-scoped transactions with guaranteed release:
- UnitOfWork: Handle for one session/transaction scope
- UnitOfWorkManager: acquire(), release(), scope(), run()
"""

from aiserve.database.unit_of_work.uow import Outcome, UnitOfWork, UnitOfWorkState
from aiserve.database.unit_of_work.manager import UnitOfWorkManager, UnitOfWorkStats

__all__ = [
    "Outcome",
    "UnitOfWork",
    "UnitOfWorkState",
    "UnitOfWorkManager",
    "UnitOfWorkStats",
]
