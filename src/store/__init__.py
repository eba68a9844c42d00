"""
store — local persistence for a code editor: settings, code documents,
revision history and snippets in one versioned SQLite store.

Public API
──────────
CodeStore       — synchronous facade (save_code, get_history, export, …)
AsyncCodeStore  — the same operations as coroutines
StoreContext    — explicit handle taken by the module-level operations
StoreConfig     — db path / store name / version settings
CodeRecord, HistoryEntry, Snippet, Setting — record dataclasses
"""

from src.store.config import StoreConfig
from src.store.context import StoreContext, open_context
from src.store.models import CodeRecord, HistoryEntry, Setting, Snippet
from src.store.db import CodeStore
from src.store.aio import AsyncCodeStore

__all__ = [
    "AsyncCodeStore",
    "CodeRecord",
    "CodeStore",
    "HistoryEntry",
    "Setting",
    "Snippet",
    "StoreConfig",
    "StoreContext",
    "open_context",
]
