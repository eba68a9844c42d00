"""Snippet store — named, tagged code fragments with a usage counter."""

import logging
from typing import Iterable, Optional

from src.engine.db import READWRITE
from src.engine.models import KeyRange

from .context import StoreContext
from .models import Snippet

__all__ = [
    "save_snippet",
    "get_snippet",
    "get_snippets_by_language",
    "find_snippets",
    "increment_snippet_usage",
    "delete_snippet",
]

logger = logging.getLogger(__name__)


def save_snippet(
    ctx: StoreContext,
    lang: str,
    name: str,
    code: str,
    tags: Iterable[str] = (),
) -> Optional[int]:
    """
    Append a new snippet with a zero usage count.

    Returns:
        The id assigned to the snippet, or None when *lang* is empty.
    """
    if not lang:
        return None
    snippet = Snippet(
        lang=lang,
        name=name,
        code=code,
        tags=list(dict.fromkeys(tags or ())),
        created_at=ctx.clock(),
    )
    snippet_id = ctx.engine.add(ctx.collections.snippets, snippet.to_dict())
    logger.debug("Saved snippet %d (%s/%s)", snippet_id, lang, name)
    return snippet_id


def get_snippet(ctx: StoreContext, snippet_id: int) -> Optional[Snippet]:
    record = ctx.engine.get(ctx.collections.snippets, snippet_id)
    return Snippet.from_dict(record) if record else None


def get_snippets_by_language(ctx: StoreContext, lang: str) -> list[Snippet]:
    """All snippets of *lang* in insertion (id) order."""
    if not lang:
        return []
    rows = ctx.engine.scan(ctx.collections.snippets, index="by_lang", key_range=KeyRange.only(lang))
    return [Snippet.from_dict(r) for r in rows]


def find_snippets(ctx: StoreContext, lang: str, name: str) -> list[Snippet]:
    """Snippets of *lang* called exactly *name*, in id order."""
    rows = ctx.engine.scan(
        ctx.collections.snippets,
        index="by_lang_name",
        key_range=KeyRange.only((lang, name)),
    )
    return [Snippet.from_dict(r) for r in rows]


def increment_snippet_usage(ctx: StoreContext, snippet_id: int) -> Optional[Snippet]:
    """
    Add one to a snippet's usage count.

    The read and the write happen in one transaction, so concurrent
    increments are never lost.

    Returns:
        The updated Snippet, or None if *snippet_id* does not exist.
    """
    name = ctx.collections.snippets
    with ctx.engine.transact(name, READWRITE) as tx:
        record = tx.get(name, snippet_id)
        if record is None:
            return None
        record["usageCount"] = (record.get("usageCount") or 0) + 1
        tx.put(name, record)
    return Snippet.from_dict(record)


def delete_snippet(ctx: StoreContext, snippet_id: int) -> bool:
    return ctx.engine.delete(ctx.collections.snippets, snippet_id)
