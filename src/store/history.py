"""
History log — append-only revision snapshots, newest first.

Entries are only ever written by ``documents.save_code``.  Queries walk the
(lang, timestamp) or (lang, filename, timestamp) index backwards and stop
after ``limit`` entries, so a page costs the same however long the history
grows.  Entries with equal timestamps come newest-inserted first.
"""

import logging
from typing import Optional

from src.engine.db import READWRITE
from src.engine.models import Direction, KeyRange

from .context import StoreContext
from .models import CodeRecord, HistoryEntry, document_id

__all__ = ["MAX_TIMESTAMP", "DEFAULT_LIMIT", "get_history", "get_history_entry", "restore_from_history"]

logger = logging.getLogger(__name__)

# Largest integer exactly representable as a double; upper bound of timestamp ranges
MAX_TIMESTAMP = 2 ** 53 - 1
DEFAULT_LIMIT = 50


def get_history(
    ctx: StoreContext,
    lang: str,
    filename: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
) -> list[HistoryEntry]:
    """
    Most recent history entries of a language, or of one document.

    Args:
        lang:     Language identifier.  Empty → empty list.
        filename: Restrict to this document; None/empty → every document of
                  *lang*.
        limit:    Maximum number of entries returned.

    Returns:
        Up to *limit* entries ordered by descending timestamp.
    """
    if not lang or limit <= 0:
        return []
    if filename:
        index = "by_lang_filename_timestamp"
        key_range = KeyRange.bound((lang, filename, 0), (lang, filename, MAX_TIMESTAMP))
    else:
        index = "by_lang_timestamp"
        key_range = KeyRange.bound((lang, 0), (lang, MAX_TIMESTAMP))

    rows = ctx.engine.scan(
        ctx.collections.history,
        index=index,
        key_range=key_range,
        direction=Direction.PREV,
        limit=limit,
    )
    return [HistoryEntry.from_dict(r) for r in rows]


def get_history_entry(ctx: StoreContext, history_id: int) -> Optional[HistoryEntry]:
    record = ctx.engine.get(ctx.collections.history, history_id)
    return HistoryEntry.from_dict(record) if record else None


def restore_from_history(ctx: StoreContext, history_id: int) -> Optional[HistoryEntry]:
    """
    Make a past revision the current text of its document again.

    The restored record gets the next version number, author "restore" and
    a "Restore from version N" description.  The restore itself is not
    appended to the history.

    Returns:
        The HistoryEntry that was restored from, or None if *history_id*
        does not exist.
    """
    names = ctx.collections
    with ctx.engine.transact([names.history, names.code], READWRITE) as tx:
        stored = tx.get(names.history, history_id)
        if stored is None:
            return None
        entry = HistoryEntry.from_dict(stored)
        doc_id = document_id(entry.lang, entry.filename)

        current = tx.get(names.code, doc_id)
        current_version = current.get("version") if current else None
        version = current_version + 1 if current_version else 1
        record = CodeRecord(
            lang=entry.lang,
            filename=entry.filename,
            code=entry.code,
            version=version,
            updated_at=ctx.clock(),
            author="restore",
            description=f"Restore from version {entry.version}",
        )
        tx.put(names.code, record.to_dict())

    logger.info("Restored %s to v%d as v%d", doc_id, entry.version, version)
    return entry
