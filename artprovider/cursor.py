# artprovider/cursor.py
"""
Scoped access to query results.

Transports hand query results back as a ``RowCursor``. Callers use it as
a context manager so it is released on every exit path:

    with transport.query(uri, sort_order="_id DESC") as cursor:
        row = cursor.first()
"""

from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

Row = Dict[str, Any]


class RowCursor:
    """
    A releasable sequence of rows.

    Args:
        rows: The rows, in result order
        on_close: Called once when the cursor is closed
    """

    def __init__(self, rows: Iterable[Row], on_close: Optional[Callable[[], None]] = None):
        self._rows: Iterator[Row] = iter(rows)
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self):
        if self._closed:
            raise ValueError("Cursor is closed")

    def __iter__(self) -> Iterator[Row]:
        self._check_open()
        return self._rows

    def first(self) -> Optional[Row]:
        """Return the next row, or None if there are no more rows."""
        self._check_open()
        return next(self._rows, None)

    def fetchall(self) -> List[Row]:
        self._check_open()
        return list(self._rows)

    def close(self):
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            try:
                self._on_close()
            finally:
                self._on_close = None

    def __enter__(self) -> "RowCursor":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
