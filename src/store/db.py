"""
CodeStore — SQLite-backed persistence for settings, code documents,
revision history and snippets.

Usage::

    store = CodeStore(db_path="~/.codeide/CodeIDE.db")

    # Save and reload a document
    rec = store.save_code("python", "print(1)", filename="hello")
    store.load_code("python", "hello")          # "print(1)"

    # Newest revisions first
    for entry in store.get_history("python", "hello", limit=10):
        print(entry.version, entry.message)

    # Roll back to an older revision (becomes the next version)
    store.restore_from_history(entry.id)

    # Move everything to another machine
    data = store.export_database()
    other.import_database(data)

The store is opened and its schema bootstrapped on construction; the one
connection is reused until ``close()``.  Every method delegates to the
module-level function of the same name with this store's StoreContext.
"""

import dataclasses
import logging
from typing import Any, Callable, Iterable, Optional

from src.engine.db import READWRITE

from . import documents, history, settings, snippets, stats, transfer
from .config import StoreConfig
from .context import StoreContext, open_context
from .models import CodeRecord, HistoryEntry, Snippet

__all__ = ["CodeStore"]

logger = logging.getLogger(__name__)


class CodeStore:
    """
    Synchronous facade over one open store.

    ``ctx`` is public so callers can mix facade calls with the module-level
    operations or with raw ``ctx.engine.transact`` blocks.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        name: Optional[str] = None,
        version: Optional[int] = None,
        clock: Optional[Callable[[], int]] = None,
        config: Optional[StoreConfig] = None,
    ) -> None:
        overrides = {"db_path": db_path, "name": name, "version": version}
        config = dataclasses.replace(
            config or StoreConfig.from_env(),
            **{k: v for k, v in overrides.items() if v is not None},
        )
        self.config = config
        self.ctx: StoreContext = open_context(config, clock=clock)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self.ctx.name

    @property
    def version(self) -> int:
        return self.ctx.version

    def close(self) -> None:
        self.ctx.close()

    def __enter__(self) -> "CodeStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Generic collection access ─────────────────────────────────────────

    def get(self, collection: str, key: Any) -> Optional[dict]:
        return self.ctx.engine.get(collection, key)

    def get_all(self, collection: str) -> list[dict]:
        return self.ctx.engine.get_all(collection)

    def clear(self, collection: str) -> bool:
        """Delete every record of *collection*."""
        removed = self.ctx.engine.clear(collection)
        logger.info("Cleared %s (%d records)", collection, removed)
        return True

    def transact(self, collections: Iterable[str], mode: str = READWRITE):
        return self.ctx.engine.transact(list(collections), mode)

    # ── Settings ──────────────────────────────────────────────────────────

    def save_setting(self, key: str, value: Any) -> bool:
        return settings.save_setting(self.ctx, key, value)

    def load_setting(self, key: str, fallback: Any = None) -> Any:
        return settings.load_setting(self.ctx, key, fallback)

    def delete_setting(self, key: str) -> bool:
        return settings.delete_setting(self.ctx, key)

    # ── Code documents ────────────────────────────────────────────────────

    def load_code_record(self, lang: str, filename: str) -> Optional[CodeRecord]:
        return documents.load_code_record(self.ctx, lang, filename)

    def load_code(self, lang: str, filename: str) -> Optional[str]:
        return documents.load_code(self.ctx, lang, filename)

    def save_code(self, lang: str, code: str, **options: Any) -> Optional[CodeRecord]:
        """See ``documents.save_code`` for the accepted keyword options."""
        return documents.save_code(self.ctx, lang, code, **options)

    def list_documents(self, lang: str) -> list[CodeRecord]:
        return documents.list_documents(self.ctx, lang)

    def delete_code(self, lang: str, filename: str) -> bool:
        return documents.delete_code(self.ctx, lang, filename)

    # ── History ───────────────────────────────────────────────────────────

    def get_history(
        self,
        lang: str,
        filename: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[HistoryEntry]:
        if limit is None:
            limit = self.config.history_limit
        return history.get_history(self.ctx, lang, filename, limit)

    def get_history_entry(self, history_id: int) -> Optional[HistoryEntry]:
        return history.get_history_entry(self.ctx, history_id)

    def restore_from_history(self, history_id: int) -> Optional[HistoryEntry]:
        return history.restore_from_history(self.ctx, history_id)

    # ── Snippets ──────────────────────────────────────────────────────────

    def save_snippet(
        self, lang: str, name: str, code: str, tags: Iterable[str] = ()
    ) -> Optional[int]:
        return snippets.save_snippet(self.ctx, lang, name, code, tags)

    def get_snippet(self, snippet_id: int) -> Optional[Snippet]:
        return snippets.get_snippet(self.ctx, snippet_id)

    def get_snippets_by_language(self, lang: str) -> list[Snippet]:
        return snippets.get_snippets_by_language(self.ctx, lang)

    def find_snippets(self, lang: str, name: str) -> list[Snippet]:
        return snippets.find_snippets(self.ctx, lang, name)

    def increment_snippet_usage(self, snippet_id: int) -> Optional[Snippet]:
        return snippets.increment_snippet_usage(self.ctx, snippet_id)

    def delete_snippet(self, snippet_id: int) -> bool:
        return snippets.delete_snippet(self.ctx, snippet_id)

    # ── Import / export / stats ───────────────────────────────────────────

    def export_database(self) -> dict:
        return transfer.export_database(self.ctx)

    def import_database(self, data: Optional[dict]) -> bool:
        return transfer.import_database(self.ctx, data)

    def get_stats(self) -> dict:
        return stats.get_stats(self.ctx)
