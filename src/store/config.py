"""Runtime configuration for the code store."""

import os
from dataclasses import dataclass

__all__ = ["StoreConfig", "DEFAULT_DB_PATH"]

DEFAULT_DB_PATH = "~/.codeide/CodeIDE.db"


@dataclass
class StoreConfig:
    db_path:       str = DEFAULT_DB_PATH
    name:          str = "CodeIDE"
    version:       int = 1
    history_limit: int = 50          # default page size of get_history()

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Defaults overridden by CODEIDE_DB / CODEIDE_STORE_NAME when set."""
        return cls(
            db_path=os.environ.get("CODEIDE_DB") or DEFAULT_DB_PATH,
            name=os.environ.get("CODEIDE_STORE_NAME") or "CodeIDE",
        )
