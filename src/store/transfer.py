"""
Import / export of the whole store.

Export format::

    {
      "meta":     {"storeName": str, "version": int, "exportedAt": epoch-ms},
      "settings": [{"key": ..., "value": ...}, ...],
      "code":     [CodeRecord dicts],
      "history":  [HistoryEntry dicts],
      "snippets": [Snippet dicts]
    }

Import is a destructive wholesale replace: every collection is cleared and
refilled in a single transaction.  Records are written as given, ids
included.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from src.engine.db import READONLY, READWRITE
from src.exceptions import InvalidInputError

from .context import StoreContext

__all__ = ["export_database", "import_database", "dump_json", "load_json"]

logger = logging.getLogger(__name__)


def export_database(ctx: StoreContext) -> dict:
    """Snapshot every collection, in primary-key order, plus store metadata."""
    names = ctx.collections
    with ctx.engine.transact(names.all(), READONLY) as tx:
        data: dict[str, Any] = {
            "meta": {
                "storeName":  ctx.name,
                "version":    ctx.version,
                "exportedAt": ctx.clock(),
            },
            "settings": tx.get_all(names.settings),
            "code":     tx.get_all(names.code),
            "history":  tx.get_all(names.history),
            "snippets": tx.get_all(names.snippets),
        }
    logger.info(
        "Exported %s: %d settings, %d documents, %d history entries, %d snippets",
        ctx.name, len(data["settings"]), len(data["code"]),
        len(data["history"]), len(data["snippets"]),
    )
    return data


def _records(data: dict, key: str) -> list:
    value = data.get(key)
    return value if isinstance(value, list) else []


def import_database(ctx: StoreContext, data: Optional[dict]) -> bool:
    """
    Replace the whole store with the contents of *data*.

    Missing or non-list sections are imported as empty collections.

    Raises:
        InvalidInputError: *data* is missing or not a mapping.
        TransactionError:  A record could not be written; the store is left
                           exactly as it was.
    """
    if data is None:
        raise InvalidInputError("No data provided")
    if not isinstance(data, dict):
        raise InvalidInputError(f"Import data must be a mapping, got {type(data).__name__}")

    names = ctx.collections
    sections = {
        names.settings: _records(data, "settings"),
        names.code:     _records(data, "code"),
        names.history:  _records(data, "history"),
        names.snippets: _records(data, "snippets"),
    }
    with ctx.engine.transact(names.all(), READWRITE) as tx:
        for name in sections:
            tx.clear(name)
        for name, records in sections.items():
            for record in records:
                tx.put(name, record)

    logger.info(
        "Imported into %s: %s",
        ctx.name, ", ".join(f"{len(r)} {n}" for n, r in sections.items()),
    )
    return True


def dump_json(data: dict, path: Union[str, Path]) -> Path:
    """Write an export structure to *path* as UTF-8 JSON."""
    out_path = Path(path).expanduser()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    return out_path


def load_json(path: Union[str, Path]) -> Any:
    """
    Read an export structure written by ``dump_json``.

    Raises:
        InvalidInputError: The file is not valid JSON.
    """
    text = Path(path).expanduser().read_text(encoding="utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInputError(f"{path} is not valid JSON: {exc}") from exc
