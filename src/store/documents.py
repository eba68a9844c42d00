"""
Code document store — current text of each (lang, filename) document.

Every save that changes a document bumps its version by one and, unless
disabled, appends a HistoryEntry snapshot.  The existing-record lookup, the
document write and the history append share one readwrite transaction, so
either both records land or neither does.
"""

import logging
from typing import Optional

from src.engine.db import READWRITE
from src.engine.models import KeyRange

from .context import StoreContext
from .models import CodeRecord, HistoryEntry, count_lines, document_id

__all__ = [
    "DEFAULT_FILENAME",
    "load_code_record",
    "load_code",
    "save_code",
    "list_documents",
    "delete_code",
]

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "main"


def load_code_record(ctx: StoreContext, lang: str, filename: str) -> Optional[CodeRecord]:
    """Return the stored CodeRecord, or None on a miss or an empty lang/filename."""
    if not lang or not filename:
        return None
    record = ctx.engine.get(ctx.collections.code, document_id(lang, filename))
    return CodeRecord.from_dict(record) if record else None


def load_code(ctx: StoreContext, lang: str, filename: str) -> Optional[str]:
    """
    Return the stored code text.

    Returns:
        The code, ``""`` if the document was never saved, or None when
        *lang* or *filename* is empty.
    """
    if not lang or not filename:
        return None
    record = load_code_record(ctx, lang, filename)
    return record.code if record else ""


def _history_message(message: str, description: str, auto: bool) -> str:
    return message or description or ("Auto-save" if auto else "Saved")


def save_code(
    ctx: StoreContext,
    lang: str,
    code: str,
    *,
    filename: str = DEFAULT_FILENAME,
    skip_if_unchanged: bool = True,
    save_history: bool = True,
    message: str = "",
    description: str = "",
    author: str = "",
    auto: bool = False,
) -> Optional[CodeRecord]:
    """
    Save *code* as the new current text of (lang, filename).

    Args:
        lang:              Language identifier.  Empty → nothing is written.
        code:              New document text.
        filename:          Document name (default "main").
        skip_if_unchanged: Return the existing record untouched when its code
                           is identical to *code*.
        save_history:      Append a HistoryEntry for this save.
        message:           History message; falls back to *description*,
                           then "Auto-save" / "Saved" depending on *auto*.
        description:       Stored on the record.
        author:            Stored on the record.
        auto:              The save was triggered automatically.

    Returns:
        The CodeRecord now stored (the unchanged existing one when skipped),
        or None when *lang* is empty.

    Raises:
        TransactionError: The write failed; neither record was applied.
    """
    if not lang:
        return None
    filename = filename or DEFAULT_FILENAME
    code = code if code is not None else ""
    names = ctx.collections
    doc_id = document_id(lang, filename)

    with ctx.engine.transact([names.code, names.history], READWRITE) as tx:
        stored = tx.get(names.code, doc_id)
        existing = CodeRecord.from_dict(stored) if stored else None
        if skip_if_unchanged and existing is not None and existing.code == code:
            logger.debug("%s unchanged at v%d; skipping save", doc_id, existing.version)
            return existing

        now = ctx.clock()
        previous = stored.get("version") if stored else None
        version = previous + 1 if previous else 1
        record = CodeRecord(
            lang=lang,
            filename=filename,
            code=code,
            version=version,
            updated_at=now,
            author=author or "",
            description=description or "",
        )
        tx.put(names.code, record.to_dict())

        if save_history:
            entry = HistoryEntry(
                lang=lang,
                filename=filename,
                version=version,
                code=code,
                message=_history_message(message, description, auto),
                timestamp=now,
                size=len(code),
                lines=count_lines(code),
            )
            tx.add(names.history, entry.to_dict())

    logger.debug("Saved %s v%d (%d chars)", doc_id, version, len(code))
    return record


def list_documents(ctx: StoreContext, lang: str) -> list[CodeRecord]:
    """All documents of *lang*, in id order."""
    if not lang:
        return []
    rows = ctx.engine.scan(ctx.collections.code, index="by_lang", key_range=KeyRange.only(lang))
    return [CodeRecord.from_dict(r) for r in rows]


def delete_code(ctx: StoreContext, lang: str, filename: str) -> bool:
    """
    Remove the current document.  Its history entries are kept.

    Returns:
        True if a document was deleted, False if none existed.
    """
    if not lang or not filename:
        return False
    deleted = ctx.engine.delete(ctx.collections.code, document_id(lang, filename))
    if deleted:
        logger.info("Deleted document %s", document_id(lang, filename))
    return deleted
