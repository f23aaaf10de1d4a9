"""Database package: engines, sessions and ORM models."""

from app.db.session import AsyncSessionLocal, Base, get_db, get_sync_db, init_db
from app.db.models import (
    Contract,
    ContractAnalysis,
    ContractDocument,
    ContractObligation,
    ContractPrefill,
    Document,
)

__all__ = [
    "AsyncSessionLocal",
    "Base",
    "Contract",
    "ContractAnalysis",
    "ContractDocument",
    "ContractObligation",
    "ContractPrefill",
    "Document",
    "get_db",
    "get_sync_db",
    "init_db",
]
