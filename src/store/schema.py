"""
Schema bootstrap — declares the four collections and their indexes.

``ensure_schema`` is run on every open.  It only adds what is missing (new
collections, new index columns, new indexes) and never drops or recreates
anything, so re-running it against an initialised store writes nothing.
"""

import logging

from src.engine.db import StorageEngine
from src.engine.models import CollectionSpec, IndexSpec

__all__ = [
    "SETTINGS",
    "CODE",
    "HISTORY",
    "SNIPPETS",
    "COLLECTIONS",
    "ensure_schema",
]

logger = logging.getLogger(__name__)


SETTINGS = CollectionSpec(name="settings", key_path="key")

CODE = CollectionSpec(
    name="code",
    key_path="id",
    indexes=(
        IndexSpec("by_lang", ("lang",)),
        IndexSpec("by_lang_filename", ("lang", "filename"), unique=True),
    ),
)

HISTORY = CollectionSpec(
    name="history",
    key_path="id",
    auto_increment=True,
    indexes=(
        IndexSpec("by_lang", ("lang",)),
        IndexSpec("by_lang_timestamp", ("lang", "timestamp")),
        IndexSpec("by_lang_filename", ("lang", "filename")),
        IndexSpec("by_lang_filename_timestamp", ("lang", "filename", "timestamp")),
    ),
)

SNIPPETS = CollectionSpec(
    name="snippets",
    key_path="id",
    auto_increment=True,
    indexes=(
        IndexSpec("by_lang", ("lang",)),
        IndexSpec("by_lang_name", ("lang", "name")),
    ),
)

COLLECTIONS: tuple[CollectionSpec, ...] = (SETTINGS, CODE, HISTORY, SNIPPETS)


def ensure_schema(
    engine: StorageEngine,
    collections: tuple[CollectionSpec, ...] = COLLECTIONS,
) -> list[str]:
    """
    Create absent collections and indexes, and stamp the engine's version.

    Returns:
        Names of the objects created ("history", "history.by_lang", …).
        Empty when the store was already up to date and nothing was written.
    """
    existing = engine.collection_names()
    plan: list[tuple[CollectionSpec, bool, list[str], list[IndexSpec]]] = []
    for spec in collections:
        engine.register(spec)
        if spec.name not in existing:
            plan.append((spec, True, [], list(spec.indexes)))
            continue
        columns = engine.field_columns(spec.name)
        indexes = engine.index_names(spec.name)
        new_columns = [f for f in spec.indexed_fields if f not in columns]
        new_indexes = [i for i in spec.indexes if i.name not in indexes]
        if new_columns or new_indexes:
            plan.append((spec, False, new_columns, new_indexes))

    if not plan and engine.stored_version >= engine.version:
        logger.debug("Schema of %s is up to date (v%d)", engine.name, engine.stored_version)
        return []

    created: list[str] = []
    with engine.schema_change() as schema:
        for spec, is_new, new_columns, new_indexes in plan:
            if is_new:
                schema.create_collection(spec)
                created.append(spec.name)
            for column in new_columns:
                schema.add_field_column(spec, column)
            for index in new_indexes:
                schema.create_index(spec, index)
                created.append(f"{spec.name}.{index.name}")
    return created
