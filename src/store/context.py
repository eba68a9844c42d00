"""
StoreContext — the explicit handle passed to every store operation.

Usage::

    ctx = open_context(StoreConfig(db_path="~/.codeide/CodeIDE.db"))
    documents.save_code(ctx, "python", "print(1)")
    ctx.close()
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from src.engine.db import StorageEngine

from .config import StoreConfig
from .schema import CODE, HISTORY, SETTINGS, SNIPPETS, ensure_schema

__all__ = ["CollectionNames", "StoreContext", "open_context", "now_ms"]

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CollectionNames:
    settings: str = SETTINGS.name
    code:     str = CODE.name
    history:  str = HISTORY.name
    snippets: str = SNIPPETS.name

    def all(self) -> tuple[str, str, str, str]:
        return (self.settings, self.code, self.history, self.snippets)


@dataclass
class StoreContext:
    """Open engine + collection names + clock; owns nothing else."""
    engine:      StorageEngine
    collections: CollectionNames = field(default_factory=CollectionNames)
    clock:       Callable[[], int] = now_ms

    @property
    def name(self) -> str:
        return self.engine.name

    @property
    def version(self) -> int:
        return self.engine.version

    def close(self) -> None:
        self.engine.close()


def open_context(
    config: Optional[StoreConfig] = None,
    clock: Optional[Callable[[], int]] = None,
) -> StoreContext:
    """Open (creating if needed) the store described by *config* and bootstrap its schema."""
    config = config or StoreConfig.from_env()
    engine = StorageEngine(config.db_path, name=config.name, version=config.version).open()
    try:
        created = ensure_schema(engine)
    except Exception:
        engine.close()
        raise
    if created:
        logger.info("Initialised %s: created %s", config.name, ", ".join(created))
    return StoreContext(engine=engine, clock=clock or now_ms)
