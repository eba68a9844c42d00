"""Store statistics — record counts and an approximate content size."""

import json
from typing import Optional

from src.engine.db import READONLY

from .context import StoreContext

__all__ = ["get_stats"]


def _text_size(records: list[dict], field: Optional[str]) -> int:
    """Sum of the lengths of *field* (or of each whole record as compact JSON)."""
    total = 0
    for record in records:
        if field is None:
            value = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
        else:
            value = record.get(field)
        if value:
            total += len(str(value))
    return total


def get_stats(ctx: StoreContext) -> dict:
    """
    Count the records of every collection.

    ``totalSize`` is an estimate in characters: the ``code`` text of
    documents, history entries and snippets, plus each setting serialised.
    """
    names = ctx.collections
    with ctx.engine.transact(names.all(), READONLY) as tx:
        settings = tx.get_all(names.settings)
        code = tx.get_all(names.code)
        history = tx.get_all(names.history)
        snippets = tx.get_all(names.snippets)

    total = (
        _text_size(code, "code")
        + _text_size(history, "code")
        + _text_size(snippets, "code")
        + _text_size(settings, None)
    )
    return {
        "totalSize": total,
        "settings":  {"count": len(settings)},
        "code":      {"count": len(code)},
        "history":   {"count": len(history)},
        "snippets":  {"count": len(snippets)},
    }
