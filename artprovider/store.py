# artprovider/store.py
"""
SQLite-backed artwork store.

Reference implementation of the store a provider sits on:
- Auto-assigned, monotonically increasing ``_id``
- Upsert by token: inserting an existing non-null token updates that row
- Tokens are immutable once inserted
- ``date_added`` set on creation, ``date_modified`` on every content change
- ``apply_batch`` runs a list of operations in one transaction

Structure:
    <db_path>         # SQLite database holding the "artwork" table
"""

import logging
import re
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .contract import ALL_COLUMNS, WRITABLE_COLUMNS, Columns, ContentUri
from .cursor import RowCursor
from .errors import (
    OperationApplicationError,
    StoreError,
    StoreRejected,
    StoreUnavailable,
)
from .operations import DeleteOp, InsertOp, Operation, OperationResult, UpdateOp

logger = logging.getLogger(__name__)

TABLE = "artwork"

_CREATE_TABLE = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    {Columns.ID} INTEGER PRIMARY KEY AUTOINCREMENT,
    {Columns.TOKEN} TEXT UNIQUE,
    {Columns.TITLE} TEXT,
    {Columns.BYLINE} TEXT,
    {Columns.ATTRIBUTION} TEXT,
    {Columns.PERSISTENT_URI} TEXT,
    {Columns.WEB_URI} TEXT,
    {Columns.METADATA} TEXT,
    {Columns.DATA} TEXT,
    {Columns.DATE_ADDED} INTEGER NOT NULL,
    {Columns.DATE_MODIFIED} INTEGER NOT NULL
)
"""

_SORT_TERM = re.compile(r"^\s*(\w+)(?:\s+(ASC|DESC))?\s*$", re.IGNORECASE)


def _check_values(values: Dict[str, Any]) -> Dict[str, Any]:
    unknown = [key for key in values if key not in WRITABLE_COLUMNS]
    if unknown:
        raise StoreRejected(f"Columns are not writable: {', '.join(sorted(unknown))}")
    return {key: (None if value is None else str(value)) for key, value in values.items()}


def _check_projection(projection: Optional[Sequence[str]]) -> str:
    if not projection:
        return ", ".join(ALL_COLUMNS)
    unknown = [column for column in projection if column not in ALL_COLUMNS]
    if unknown:
        raise StoreError(f"Unknown columns in projection: {', '.join(unknown)}")
    return ", ".join(projection)


def _check_sort_order(sort_order: Optional[str]) -> str:
    if not sort_order:
        return ""
    terms = []
    for term in sort_order.split(","):
        match = _SORT_TERM.match(term)
        if not match or match.group(1) not in ALL_COLUMNS:
            raise StoreError(f"Invalid sort order: {sort_order!r}")
        direction = (match.group(2) or "ASC").upper()
        terms.append(f"{match.group(1)} {direction}")
    return " ORDER BY " + ", ".join(terms)


def _where(uri: ContentUri, selection: Optional[str], selection_args: Sequence[Any]) -> Tuple[str, List[Any]]:
    """Combine the row id in ``uri`` (if any) with the caller's selection."""
    clauses = []
    params: List[Any] = []
    if uri.row_id is not None:
        clauses.append(f"{Columns.ID} = ?")
        params.append(uri.row_id)
    elif uri.path:
        raise StoreError(f"Unsupported URI: {uri}")
    if selection:
        clauses.append(f"({selection})")
        params.extend(selection_args or [])
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


class ArtworkStore:
    """
    A provider's artwork table in SQLite.

    All access goes through one connection guarded by a lock, so a store
    can be shared between server threads.
    """

    def __init__(self, db_path: Path | str = ":memory:", clock: Callable[[], float] = time.time):
        """
        Initialize the store, creating the table if needed.

        Args:
            db_path: Database file, or ":memory:" for a private in-memory table
            clock: Source of timestamps (seconds since epoch)
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._lock = threading.RLock()
        # Autocommit mode; transactions are opened explicitly
        self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute(_CREATE_TABLE)

    def _now(self) -> int:
        return int(self._clock())

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailable(f"Store {self.db_path} is closed")
        return self._conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run the body in one write transaction, rolling back on any error."""
        with self._lock:
            conn = self._connection()
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                yield cursor
                cursor.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    cursor.execute("ROLLBACK")
                raise
            finally:
                cursor.close()

    def close(self):
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # Single operations

    def query(
        self,
        uri: ContentUri,
        projection: Optional[Sequence[str]] = None,
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
        sort_order: Optional[str] = None,
    ) -> RowCursor:
        """
        Query rows.

        Returns:
            A RowCursor; an empty one when nothing matches

        Raises:
            StoreError: If the projection, selection or sort order is invalid
        """
        columns = _check_projection(projection)
        where, params = _where(uri, selection, selection_args or [])
        order = _check_sort_order(sort_order)
        sql = f"SELECT {columns} FROM {TABLE}{where}{order}"
        with self._lock:
            try:
                cursor = self._connection().execute(sql, params)
                rows = [dict(row) for row in cursor.fetchall()]
            except sqlite3.Error as e:
                raise StoreError(f"Query failed: {e}") from e
        return RowCursor(rows)

    def insert(self, uri: ContentUri, values: Dict[str, Any]) -> ContentUri:
        """
        Insert a row, or update the row already holding ``values["token"]``.

        Returns:
            Address of the inserted or updated row

        Raises:
            StoreRejected: If the row violates a store constraint
        """
        try:
            with self._transaction() as cursor:
                row_id = self._insert(cursor, uri, values)
        except sqlite3.Error as e:
            raise StoreRejected(f"Insert failed: {e}") from e
        return uri.collection().with_appended_id(row_id)

    def update(
        self,
        uri: ContentUri,
        values: Dict[str, Any],
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
    ) -> int:
        """Update selected rows. Returns the number of rows updated."""
        try:
            with self._transaction() as cursor:
                return self._update(cursor, uri, values, selection, selection_args or [])
        except sqlite3.Error as e:
            raise StoreRejected(f"Update failed: {e}") from e

    def delete(
        self,
        uri: ContentUri,
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
    ) -> int:
        """Delete selected rows. Returns the number of rows deleted."""
        try:
            with self._transaction() as cursor:
                return self._delete(cursor, uri, selection, selection_args or [])
        except sqlite3.Error as e:
            raise StoreError(f"Delete failed: {e}") from e

    def count(self) -> int:
        with self._lock:
            return self._connection().execute(f"SELECT COUNT(*) FROM {TABLE}").fetchone()[0]

    # Batches

    def apply_batch(self, operations: List[Operation]) -> List[OperationResult]:
        """
        Apply operations in order as one transaction.

        Raises:
            OperationApplicationError: If any operation fails; nothing is applied
            StoreUnavailable: If the store is closed or fails mid-batch
        """
        results: List[OperationResult] = []
        index = 0
        try:
            with self._transaction() as cursor:
                for index, operation in enumerate(operations):
                    results.append(self._apply_operation(cursor, operation, results))
        except StoreUnavailable:
            raise
        except (StoreError, sqlite3.Error, ValueError) as e:
            logger.debug(f"Batch rolled back at operation {index}: {e}")
            raise OperationApplicationError(f"Operation {index} failed: {e}", index=index) from e
        logger.debug(f"Applied batch of {len(results)} operations to {self.db_path}")
        return results

    def _apply_operation(
        self,
        cursor: sqlite3.Cursor,
        operation: Operation,
        results: List[OperationResult],
    ) -> OperationResult:
        if isinstance(operation, InsertOp):
            row_id = self._insert(cursor, operation.uri, operation.values)
            return OperationResult(uri=operation.uri.collection().with_appended_id(row_id))
        if isinstance(operation, UpdateOp):
            args = operation.resolve_args(results)
            count = self._update(cursor, operation.uri, operation.values, operation.selection, args)
            return OperationResult(count=count)
        if isinstance(operation, DeleteOp):
            args = operation.resolve_args(results)
            count = self._delete(cursor, operation.uri, operation.selection, args)
            return OperationResult(count=count)
        raise OperationApplicationError(f"Unsupported operation: {type(operation).__name__}")

    # Statements, run inside an open transaction

    def _insert(self, cursor: sqlite3.Cursor, uri: ContentUri, values: Dict[str, Any]) -> int:
        if uri.path:
            raise StoreRejected(f"Inserts must target the collection URI, not {uri}")
        values = _check_values(values)
        token = values.get(Columns.TOKEN)
        if token is not None:
            cursor.execute(f"SELECT {Columns.ID} FROM {TABLE} WHERE {Columns.TOKEN} = ?", (token,))
            existing = cursor.fetchone()
            if existing is not None:
                row_id = existing[0]
                self._update(cursor, uri.with_appended_id(row_id), values, None, [])
                logger.debug(f"Token {token!r} already present, updated row {row_id}")
                return row_id

        now = self._now()
        row = dict(values)
        row[Columns.DATE_ADDED] = now
        row[Columns.DATE_MODIFIED] = now
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        cursor.execute(f"INSERT INTO {TABLE} ({columns}) VALUES ({placeholders})", list(row.values()))
        row_id = cursor.lastrowid
        logger.debug(f"Inserted row {row_id}")
        return row_id

    def _update(
        self,
        cursor: sqlite3.Cursor,
        uri: ContentUri,
        values: Dict[str, Any],
        selection: Optional[str],
        selection_args: Sequence[Any],
    ) -> int:
        values = _check_values(values)
        where, params = _where(uri, selection, selection_args)
        cursor.execute(f"SELECT * FROM {TABLE}{where}", params)
        rows = cursor.fetchall()
        if not values:
            return len(rows)

        now = self._now()
        updated = 0
        for row in rows:
            if Columns.TOKEN in values and values[Columns.TOKEN] != row[Columns.TOKEN]:
                raise StoreRejected(f"Token of row {row[Columns.ID]} cannot be changed")
            if all(row[column] == value for column, value in values.items()):
                updated += 1
                continue
            assignments = ", ".join(f"{column} = ?" for column in values)
            cursor.execute(
                f"UPDATE {TABLE} SET {assignments}, {Columns.DATE_MODIFIED} = ? WHERE {Columns.ID} = ?",
                list(values.values()) + [now, row[Columns.ID]],
            )
            updated += 1
        return updated

    def _delete(
        self,
        cursor: sqlite3.Cursor,
        uri: ContentUri,
        selection: Optional[str],
        selection_args: Sequence[Any],
    ) -> int:
        where, params = _where(uri, selection, selection_args)
        cursor.execute(f"DELETE FROM {TABLE}{where}", params)
        logger.debug(f"Deleted {cursor.rowcount} rows")
        return cursor.rowcount
