"""
Database module initialization.
Exports database components for use throughout the application.
"""

from jasb.database.base import Base
from jasb.database.dependencies import get_db
from jasb.database.session import (
    create_engine,
    create_session_factory,
    dispose_engine,
    get_db_session,
    get_engine,
    get_session_factory,
    in_transaction,
    init_models,
)

__all__ = [
    # Base classes
    "Base",
    # Engine and sessions
    "create_engine",
    "create_session_factory",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "get_db_session",
    "init_models",
    # Transactions
    "in_transaction",
    # Dependencies
    "get_db",
]
