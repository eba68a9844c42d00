"""
engine — generic transactional collection store on SQLite.

Public API
──────────
StorageEngine   — named, versioned store; one-shot get/put/add/delete/clear/scan
Transaction     — all-or-nothing group of operations (StorageEngine.transact)
CollectionSpec  — collection declaration (key path, auto-increment, indexes)
IndexSpec       — secondary index over one or more fields
KeyRange        — bounds for primary-key and index scans
Direction       — scan order (NEXT ascending, PREV descending)
"""

from src.engine.models import CollectionSpec, Direction, IndexSpec, KeyRange
from src.engine.db import READONLY, READWRITE, StorageEngine, Transaction

__all__ = [
    "CollectionSpec",
    "Direction",
    "IndexSpec",
    "KeyRange",
    "StorageEngine",
    "Transaction",
    "READONLY",
    "READWRITE",
]
