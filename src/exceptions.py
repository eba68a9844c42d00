"""
Project-wide custom exception hierarchy.
All modules raise subclasses of CodeStoreError — never bare Exception.
"""

__all__ = [
    "CodeStoreError",
    "StoreError",
    "TransactionError",
    "InvalidInputError",
]


class CodeStoreError(Exception):
    """Root exception for all codeide-store errors."""


# ── Storage engine ────────────────────────────────────────────────────────────

class StoreError(CodeStoreError):
    """Raised on SQLite / store I/O errors (open, version mismatch, closed handle)."""


class TransactionError(StoreError):
    """Raised when a transaction aborts or one of its writes fails.

    Nothing written inside the aborted transaction is visible afterwards.
    """


# ── Input validation ──────────────────────────────────────────────────────────

class InvalidInputError(CodeStoreError, ValueError):
    """Raised when an operation receives input it cannot act on at all."""
