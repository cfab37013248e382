"""Persistence for accounts, documents and ledger lines."""

from ledger_posting.store.db import (
    Base,
    create_db_engine,
    create_session_factory,
    create_tables,
    session_scope,
)
from ledger_posting.store.repository import ChartOfAccounts, DocumentRepository

__all__ = [
    "Base",
    "ChartOfAccounts",
    "DocumentRepository",
    "create_db_engine",
    "create_session_factory",
    "create_tables",
    "session_scope",
]
