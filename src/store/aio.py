"""
AsyncCodeStore — asyncio front-end for CodeStore.

Each coroutine runs the matching synchronous operation in a worker thread
via ``asyncio.to_thread``; the shared engine serialises them, so awaiting
several operations concurrently is safe and each one still commits or fails
as a unit.  There is no cancellation: a cancelled await abandons the result
but the operation itself runs to completion.

Usage::

    store = await AsyncCodeStore.open("~/.codeide/CodeIDE.db")
    rec = await store.save_code("python", "print(1)", filename="hello")
    entries = await store.get_history("python", "hello", limit=5)
    await store.close()
"""

import asyncio
import logging
from typing import Any, Callable, Iterable, Optional

from .db import CodeStore
from .models import CodeRecord, HistoryEntry, Snippet

__all__ = ["AsyncCodeStore"]

logger = logging.getLogger(__name__)


class AsyncCodeStore:

    def __init__(self, store: CodeStore) -> None:
        self.store = store

    @classmethod
    async def open(
        cls,
        db_path: Optional[str] = None,
        name: Optional[str] = None,
        version: Optional[int] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "AsyncCodeStore":
        store = await asyncio.to_thread(CodeStore, db_path, name, version, clock)
        return cls(store)

    async def close(self) -> None:
        await asyncio.to_thread(self.store.close)

    async def __aenter__(self) -> "AsyncCodeStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ── Settings ──────────────────────────────────────────────────────────

    async def save_setting(self, key: str, value: Any) -> bool:
        return await asyncio.to_thread(self.store.save_setting, key, value)

    async def load_setting(self, key: str, fallback: Any = None) -> Any:
        return await asyncio.to_thread(self.store.load_setting, key, fallback)

    async def delete_setting(self, key: str) -> bool:
        return await asyncio.to_thread(self.store.delete_setting, key)

    # ── Code documents and history ────────────────────────────────────────

    async def load_code_record(self, lang: str, filename: str) -> Optional[CodeRecord]:
        return await asyncio.to_thread(self.store.load_code_record, lang, filename)

    async def load_code(self, lang: str, filename: str) -> Optional[str]:
        return await asyncio.to_thread(self.store.load_code, lang, filename)

    async def save_code(self, lang: str, code: str, **options: Any) -> Optional[CodeRecord]:
        return await asyncio.to_thread(self.store.save_code, lang, code, **options)

    async def get_history(
        self,
        lang: str,
        filename: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[HistoryEntry]:
        return await asyncio.to_thread(self.store.get_history, lang, filename, limit)

    async def list_documents(self, lang: str) -> list[CodeRecord]:
        return await asyncio.to_thread(self.store.list_documents, lang)

    async def delete_code(self, lang: str, filename: str) -> bool:
        return await asyncio.to_thread(self.store.delete_code, lang, filename)

    async def get_history_entry(self, history_id: int) -> Optional[HistoryEntry]:
        return await asyncio.to_thread(self.store.get_history_entry, history_id)

    async def restore_from_history(self, history_id: int) -> Optional[HistoryEntry]:
        return await asyncio.to_thread(self.store.restore_from_history, history_id)

    # ── Snippets ──────────────────────────────────────────────────────────

    async def save_snippet(
        self, lang: str, name: str, code: str, tags: Iterable[str] = ()
    ) -> Optional[int]:
        return await asyncio.to_thread(self.store.save_snippet, lang, name, code, tags)

    async def get_snippets_by_language(self, lang: str) -> list[Snippet]:
        return await asyncio.to_thread(self.store.get_snippets_by_language, lang)

    async def get_snippet(self, snippet_id: int) -> Optional[Snippet]:
        return await asyncio.to_thread(self.store.get_snippet, snippet_id)

    async def find_snippets(self, lang: str, name: str) -> list[Snippet]:
        return await asyncio.to_thread(self.store.find_snippets, lang, name)

    async def increment_snippet_usage(self, snippet_id: int) -> Optional[Snippet]:
        return await asyncio.to_thread(self.store.increment_snippet_usage, snippet_id)

    async def delete_snippet(self, snippet_id: int) -> bool:
        return await asyncio.to_thread(self.store.delete_snippet, snippet_id)

    # ── Import / export / stats ───────────────────────────────────────────

    async def export_database(self) -> dict:
        return await asyncio.to_thread(self.store.export_database)

    async def import_database(self, data: Optional[dict]) -> bool:
        return await asyncio.to_thread(self.store.import_database, data)

    async def get_stats(self) -> dict:
        return await asyncio.to_thread(self.store.get_stats)

    async def clear(self, collection: str) -> bool:
        return await asyncio.to_thread(self.store.clear, collection)
