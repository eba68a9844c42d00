"""
StorageEngine — transactional collection store on top of SQLite.

Usage::

    engine = StorageEngine("~/.codeide/CodeIDE.db", name="CodeIDE", version=1).open()

    with engine.schema_change() as schema:
        schema.create_collection(spec)

    # One-shot operations run in their own transaction
    engine.put("settings", {"key": "theme", "value": "dark"})
    engine.get("settings", "theme")

    # Several writes, all-or-nothing
    with engine.transact(["code", "history"], "readwrite") as tx:
        tx.put("code", record)
        tx.add("history", entry)

Each collection is a table with a ``_pk`` primary-key column, one column per
indexed record field and a ``_doc`` column holding the JSON-encoded record
(without its primary key, which is re-attached on read).  Secondary indexes
are native SQLite indexes over the field columns, so bounded range scans in
either direction stop after ``limit`` rows without reading the rest.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Union

from src.exceptions import StoreError, TransactionError

from .models import CollectionSpec, Direction, IndexSpec, KeyRange, as_key_tuple

__all__ = ["StorageEngine", "Transaction", "SchemaTransaction", "READONLY", "READWRITE"]

logger = logging.getLogger(__name__)

READONLY = "readonly"
READWRITE = "readwrite"
_MODES = (READONLY, READWRITE)

_PK = "_pk"
_DOC = "_doc"


def _q(identifier: str) -> str:
    """Quote an SQL identifier."""
    return '"' + identifier.replace('"', '""') + '"'


def _index_value(value: Any) -> Any:
    """Value stored in an index column; non-scalar values are left out of the index."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (str, int, float)):
        return value
    return None


def _encode(record: dict, key_path: str) -> str:
    payload = {k: v for k, v in record.items() if k != key_path}
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _decode(row: sqlite3.Row, key_path: str) -> dict:
    record = {key_path: row[_PK]}
    record.update(json.loads(row[_DOC]))
    return record


# ── Transactions ──────────────────────────────────────────────────────────────


class Transaction:
    """
    Handle for the operations of one ``StorageEngine.transact`` block.

    Only the collections named when the transaction was opened may be touched,
    and only read operations are allowed in a readonly transaction.  A failed
    write dooms the transaction: it is rolled back on exit even if the caller
    caught the error.
    """

    def __init__(self, engine: "StorageEngine", collections: list[str], mode: str) -> None:
        self._engine = engine
        self._conn = engine._require_conn()
        self.collections = tuple(collections)
        self.mode = mode
        self.finished = False
        self.error: Optional[BaseException] = None

    # ── Internal helpers ──────────────────────────────────────────────────

    def _spec(self, collection: str, write: bool = False) -> CollectionSpec:
        if self.finished:
            raise TransactionError("Transaction has already finished")
        if collection not in self.collections:
            raise TransactionError(
                f"Collection {collection!r} is not part of this transaction "
                f"(scope: {', '.join(self.collections)})"
            )
        if write and self.mode != READWRITE:
            raise TransactionError(f"Cannot write to {collection!r} in a readonly transaction")
        return self._engine.collection(collection)

    def _execute(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, tuple(params))
        except sqlite3.Error as exc:
            self.error = exc
            raise TransactionError(str(exc)) from exc

    def _write_row(self, spec: CollectionSpec, record: dict, upsert: bool) -> Any:
        if not isinstance(record, dict):
            self.error = TransactionError(f"Records must be dicts, got {type(record).__name__}")
            raise self.error
        key = record.get(spec.key_path)
        if key is None and not spec.auto_increment:
            self.error = TransactionError(f"Record has no {spec.key_path!r} key")
            raise self.error
        try:
            doc = _encode(record, spec.key_path)
        except (TypeError, ValueError) as exc:
            self.error = exc
            raise TransactionError(f"Record is not JSON-serialisable: {exc}") from exc

        fields = spec.indexed_fields
        columns = [_PK] + fields + [_DOC]
        values = [key] + [_index_value(record.get(f)) for f in fields] + [doc]
        sql = (
            f"INSERT INTO {_q(spec.name)} ({', '.join(_q(c) for c in columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        if upsert:
            updates = ", ".join(f"{_q(c)}=excluded.{_q(c)}" for c in columns[1:])
            sql += f" ON CONFLICT({_q(_PK)}) DO UPDATE SET {updates}"
        cur = self._execute(sql, values)
        return key if key is not None else cur.lastrowid

    # ── Reads ─────────────────────────────────────────────────────────────

    def get(self, collection: str, key: Any) -> Optional[dict]:
        """Return the record stored under *key*, or None."""
        spec = self._spec(collection)
        row = self._execute(
            f"SELECT {_PK}, {_DOC} FROM {_q(spec.name)} WHERE {_PK} = ?", (key,)
        ).fetchone()
        return _decode(row, spec.key_path) if row else None

    def get_all(self, collection: str, key_range: Optional[KeyRange] = None) -> list[dict]:
        """All records in primary-key order, optionally restricted to *key_range*."""
        return self.scan(collection, key_range=key_range)

    def count(
        self,
        collection: str,
        index: Optional[str] = None,
        key_range: Optional[KeyRange] = None,
    ) -> int:
        spec = self._spec(collection)
        columns = self._scan_columns(spec, index)
        where, params = self._where(columns, key_range, index is not None)
        row = self._execute(f"SELECT COUNT(*) FROM {_q(spec.name)}{where}", params).fetchone()
        return int(row[0])

    def scan(
        self,
        collection: str,
        index: Optional[str] = None,
        key_range: Optional[KeyRange] = None,
        direction: Union[Direction, str] = Direction.NEXT,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """
        Ordered cursor scan over the primary key or a secondary index.

        Args:
            collection: Collection to scan.
            index:      Secondary index name; None walks the primary key.
            key_range:  Bounds on the (index) key.  Composite index keys are
                        tuples with one element per index field.
            direction:  ``Direction.NEXT`` (ascending) or ``Direction.PREV``
                        (descending).  Records sharing an index key come in
                        primary-key order, reversed for PREV.
            limit:      Stop after this many records; None means no limit.

        Returns:
            The matching records, in scan order.
        """
        spec = self._spec(collection)
        direction = Direction(direction)
        if limit is not None and limit <= 0:
            return []

        columns = self._scan_columns(spec, index)
        where, params = self._where(columns, key_range, index is not None)
        order = "DESC" if direction is Direction.PREV else "ASC"
        order_by = ", ".join(f"{_q(c)} {order}" for c in columns if c != _PK)
        order_by = f"{order_by}, {_PK} {order}" if order_by else f"{_PK} {order}"

        sql = f"SELECT {_PK}, {_DOC} FROM {_q(spec.name)}{where} ORDER BY {order_by}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        rows = self._execute(sql, params).fetchall()
        return [_decode(r, spec.key_path) for r in rows]

    @staticmethod
    def _scan_columns(spec: CollectionSpec, index: Optional[str]) -> list[str]:
        if index is None:
            return [_PK]
        try:
            idx: IndexSpec = spec.index(index)
        except KeyError as exc:
            raise TransactionError(str(exc)) from exc
        return list(idx.fields)

    @staticmethod
    def _where(
        columns: list[str],
        key_range: Optional[KeyRange],
        on_index: bool,
    ) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if on_index:
            # Records without a value for an index field are not in that index
            clauses.extend(f"{_q(c)} IS NOT NULL" for c in columns)
        if key_range is not None and not key_range.is_unbounded():
            width = len(columns)
            lhs = _q(columns[0]) if width == 1 else "(" + ", ".join(_q(c) for c in columns) + ")"
            rhs = "?" if width == 1 else "(" + ", ".join("?" for _ in columns) + ")"
            lower = as_key_tuple(key_range.lower, width)
            upper = as_key_tuple(key_range.upper, width)
            if (
                lower is not None
                and lower == upper
                and not key_range.lower_open
                and not key_range.upper_open
            ):
                clauses.append(f"{lhs} = {rhs}")
                params.extend(lower)
            else:
                if lower is not None:
                    clauses.append(f"{lhs} {'>' if key_range.lower_open else '>='} {rhs}")
                    params.extend(lower)
                if upper is not None:
                    clauses.append(f"{lhs} {'<' if key_range.upper_open else '<='} {rhs}")
                    params.extend(upper)
        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        return where, params

    # ── Writes ────────────────────────────────────────────────────────────

    def put(self, collection: str, record: dict) -> Any:
        """Insert or replace *record* by primary key.  Returns the key."""
        spec = self._spec(collection, write=True)
        return self._write_row(spec, record, upsert=True)

    def add(self, collection: str, record: dict) -> Any:
        """Insert *record*; fails if its primary key already exists.  Returns the key."""
        spec = self._spec(collection, write=True)
        return self._write_row(spec, record, upsert=False)

    def delete(self, collection: str, key: Any) -> bool:
        """Delete the record under *key*.  Returns True if one existed."""
        spec = self._spec(collection, write=True)
        cur = self._execute(f"DELETE FROM {_q(spec.name)} WHERE {_PK} = ?", (key,))
        return cur.rowcount > 0

    def clear(self, collection: str) -> int:
        """Delete every record of *collection*.  Returns the number removed."""
        spec = self._spec(collection, write=True)
        cur = self._execute(f"DELETE FROM {_q(spec.name)}")
        return cur.rowcount


class SchemaTransaction:
    """DDL handle yielded by ``StorageEngine.schema_change``; additive changes only."""

    def __init__(self, engine: "StorageEngine") -> None:
        self._engine = engine
        self._conn = engine._require_conn()

    def create_collection(self, spec: CollectionSpec) -> None:
        pk = (
            f"{_PK} INTEGER PRIMARY KEY AUTOINCREMENT"
            if spec.auto_increment
            else f"{_PK} PRIMARY KEY"
        )
        columns = [pk] + [_q(f) for f in spec.indexed_fields] + [f"{_DOC} TEXT NOT NULL"]
        self._conn.execute(f"CREATE TABLE {_q(spec.name)} ({', '.join(columns)})")
        logger.info("Created collection %s", spec.name)

    def add_field_column(self, spec: CollectionSpec, field_name: str) -> None:
        """Add an index column to an existing collection and backfill it from the records."""
        table = _q(spec.name)
        self._conn.execute(f"ALTER TABLE {table} ADD COLUMN {_q(field_name)}")
        self._conn.execute(
            f"UPDATE {table} SET {_q(field_name)} = json_extract({_DOC}, ?)",
            ("$." + json.dumps(field_name),),
        )
        logger.info("Added index column %s.%s", spec.name, field_name)

    def create_index(self, spec: CollectionSpec, index: IndexSpec) -> None:
        unique = "UNIQUE " if index.unique else ""
        columns = ", ".join(_q(f) for f in index.fields)
        self._conn.execute(
            f"CREATE {unique}INDEX {_q(_index_table_name(spec.name, index.name))} "
            f"ON {_q(spec.name)} ({columns})"
        )
        logger.info("Created index %s.%s (%s)", spec.name, index.name, columns)


def _index_table_name(collection: str, index: str) -> str:
    return f"{collection}__{index}"


# ── Engine ────────────────────────────────────────────────────────────────────


class StorageEngine:
    """
    Named, versioned store of collections backed by one SQLite file.

    The connection is opened once by ``open()`` and reused until ``close()``.
    Access is serialised by a re-entrant lock, so the engine may be shared
    with worker threads (see ``src.store.aio``).  Only one transaction is
    active at a time.
    """

    def __init__(self, db_path: str, name: str = "CodeIDE", version: int = 1) -> None:
        if int(version) < 1:
            raise ValueError(f"Store version must be a positive integer, got {version!r}")
        self.name = name
        self.version = int(version)
        self._db_path = db_path if db_path == ":memory:" else str(Path(db_path).expanduser())
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._specs: dict[str, CollectionSpec] = {}
        self._active: Optional[Transaction] = None
        self.stored_version = 0

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "StorageEngine":
        """
        Open the database file, creating it if needed.

        Raises:
            StoreError: The file cannot be opened, or it was written by a
                        newer version of the store than ``self.version``.
        """
        with self._lock:
            if self._conn is not None:
                return self
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(
                    self._db_path, isolation_level=None, check_same_thread=False
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                stored = int(conn.execute("PRAGMA user_version").fetchone()[0])
            except sqlite3.Error as exc:
                raise StoreError(f"Cannot open store {self._db_path}: {exc}") from exc
            if stored > self.version:
                conn.close()
                raise StoreError(
                    f"Store {self.name!r} is at version {stored}, "
                    f"newer than requested version {self.version}"
                )
            self._conn = conn
            self.stored_version = stored
            logger.debug("Opened store %s v%d at %s", self.name, stored, self._db_path)
            return self

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug("Closed store %s", self.name)

    def __enter__(self) -> "StorageEngine":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError(f"Store {self.name!r} is not open")
        return self._conn

    # ── Schema ────────────────────────────────────────────────────────────

    def register(self, spec: CollectionSpec) -> None:
        """Make *spec* known to the engine so its collection can be used."""
        self._specs[spec.name] = spec

    def collection(self, name: str) -> CollectionSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise TransactionError(f"Unknown collection {name!r}") from None

    def collection_names(self) -> set[str]:
        """Names of the collections (tables) present in the file."""
        with self._lock:
            rows = self._require_conn().execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            ).fetchall()
        return {r[0] for r in rows}

    def index_names(self, collection: str) -> set[str]:
        prefix = _index_table_name(collection, "")
        with self._lock:
            rows = self._require_conn().execute(
                f"PRAGMA index_list({_q(collection)})"
            ).fetchall()
        return {r["name"][len(prefix):] for r in rows if r["name"].startswith(prefix)}

    def field_columns(self, collection: str) -> set[str]:
        with self._lock:
            rows = self._require_conn().execute(
                f"PRAGMA table_info({_q(collection)})"
            ).fetchall()
        return {r["name"] for r in rows} - {_PK, _DOC}

    @contextmanager
    def schema_change(self) -> Iterator[SchemaTransaction]:
        """
        Apply DDL in one transaction and stamp ``self.version`` on commit.

        SQLite DDL is transactional, so a failed upgrade leaves the file as
        it was.
        """
        with self._lock:
            conn = self._require_conn()
            if self._active is not None:
                raise TransactionError("Cannot change the schema inside a transaction")
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise TransactionError(f"Cannot begin schema change: {exc}") from exc
            try:
                yield SchemaTransaction(self)
                conn.execute(f"PRAGMA user_version = {self.version:d}")
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback()
                raise TransactionError(f"Schema change failed: {exc}") from exc
            except BaseException:
                self._rollback()
                raise
            self.stored_version = self.version
            logger.info("Store %s upgraded to version %d", self.name, self.version)

    # ── Transactions ──────────────────────────────────────────────────────

    def _rollback(self) -> None:
        conn = self._conn
        if conn is not None and conn.in_transaction:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error:
                logger.exception("Rollback failed on store %s", self.name)

    @contextmanager
    def transact(
        self,
        collections: Union[str, Iterable[str]],
        mode: str = READONLY,
    ) -> Iterator[Transaction]:
        """
        Run a group of operations that commit together or not at all.

        Args:
            collections: Collection name(s) the transaction may touch.
            mode:        ``"readonly"`` or ``"readwrite"``.

        Raises:
            TransactionError: A write failed, the commit failed, or the
                              transaction was misused.  Nothing is applied.
            Exceptions raised by the ``with`` body propagate unchanged after
            the transaction has been rolled back.
        """
        if mode not in _MODES:
            raise ValueError(f"mode must be one of {_MODES}, got {mode!r}")
        names = [collections] if isinstance(collections, str) else list(collections)
        for n in names:
            self.collection(n)

        with self._lock:
            conn = self._require_conn()
            if self._active is not None:
                raise TransactionError("Another transaction is already active on this store")
            try:
                conn.execute("BEGIN IMMEDIATE" if mode == READWRITE else "BEGIN")
            except sqlite3.Error as exc:
                raise TransactionError(f"Cannot begin transaction: {exc}") from exc

            tx = Transaction(self, names, mode)
            self._active = tx
            try:
                try:
                    yield tx
                except BaseException:
                    self._rollback()
                    logger.warning(
                        "Transaction on %s rolled back", ", ".join(names), exc_info=True
                    )
                    raise
                if tx.error is not None:
                    self._rollback()
                    logger.warning("Transaction on %s aborted: %s", ", ".join(names), tx.error)
                    raise TransactionError(f"Transaction aborted: {tx.error}") from tx.error
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as exc:
                    self._rollback()
                    raise TransactionError(f"Commit failed: {exc}") from exc
            finally:
                tx.finished = True
                self._active = None

    # ── One-shot operations ───────────────────────────────────────────────

    def get(self, collection: str, key: Any) -> Optional[dict]:
        with self.transact(collection) as tx:
            return tx.get(collection, key)

    def get_all(self, collection: str) -> list[dict]:
        with self.transact(collection) as tx:
            return tx.get_all(collection)

    def count(self, collection: str) -> int:
        with self.transact(collection) as tx:
            return tx.count(collection)

    def scan(
        self,
        collection: str,
        index: Optional[str] = None,
        key_range: Optional[KeyRange] = None,
        direction: Union[Direction, str] = Direction.NEXT,
        limit: Optional[int] = None,
    ) -> list[dict]:
        with self.transact(collection) as tx:
            return tx.scan(collection, index, key_range, direction, limit)

    def put(self, collection: str, record: dict) -> Any:
        with self.transact(collection, READWRITE) as tx:
            return tx.put(collection, record)

    def add(self, collection: str, record: dict) -> Any:
        with self.transact(collection, READWRITE) as tx:
            return tx.add(collection, record)

    def delete(self, collection: str, key: Any) -> bool:
        with self.transact(collection, READWRITE) as tx:
            return tx.delete(collection, key)

    def clear(self, collection: str) -> int:
        with self.transact(collection, READWRITE) as tx:
            return tx.clear(collection)
