"""Settings store — one JSON-serialisable value per key."""

import logging
from typing import Any

from .context import StoreContext

__all__ = ["save_setting", "load_setting", "delete_setting"]

logger = logging.getLogger(__name__)


def save_setting(ctx: StoreContext, key: str, value: Any) -> bool:
    ctx.engine.put(ctx.collections.settings, {"key": key, "value": value})
    logger.debug("Saved setting %r", key)
    return True


def load_setting(ctx: StoreContext, key: str, fallback: Any = None) -> Any:
    """Return the stored value for *key*, or *fallback* when it was never saved."""
    record = ctx.engine.get(ctx.collections.settings, key)
    if record is None or "value" not in record:
        return fallback
    return record["value"]


def delete_setting(ctx: StoreContext, key: str) -> bool:
    ctx.engine.delete(ctx.collections.settings, key)
    return True
