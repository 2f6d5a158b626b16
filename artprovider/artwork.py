# artprovider/artwork.py
"""
The artwork record and its row codec.

Rows are plain mappings keyed by column name (see ``Columns``). Encoding
is sparse: only populated fields are written, so an update leaves the
other columns of the stored row untouched.
"""

from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .contract import Columns
from .errors import MalformedRow

# Attribute name -> column name
_FIELD_COLUMNS = {
    "id": Columns.ID,
    "token": Columns.TOKEN,
    "title": Columns.TITLE,
    "byline": Columns.BYLINE,
    "attribution": Columns.ATTRIBUTION,
    "persistent_uri": Columns.PERSISTENT_URI,
    "web_uri": Columns.WEB_URI,
    "metadata": Columns.METADATA,
    "data": Columns.DATA,
    "date_added": Columns.DATE_ADDED,
    "date_modified": Columns.DATE_MODIFIED,
}

_INT_FIELDS = ("id", "date_added", "date_modified")
_STORE_FIELDS = ("id", "date_added", "date_modified")


def _coerce_int(name: str, value: Any) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp())
    if isinstance(value, bool):
        raise MalformedRow(f"Column {_FIELD_COLUMNS[name]} must be an integer, got bool")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MalformedRow(f"Column {_FIELD_COLUMNS[name]} must be an integer: {value!r}") from e


@dataclass
class Artwork:
    """
    One row of a provider's artwork table.

    All fields are optional. ``id``, ``date_added`` and ``date_modified``
    are assigned by the store and are never written back by ``to_row``.

    Attributes:
        id: Store-assigned identity
        token: Unique key; re-inserting the same token updates the row
        title: User-visible title
        byline: Secondary text such as author and date
        attribution: Attribution info
        persistent_uri: Persistent locator of the artwork
        web_uri: Web page for the artwork
        metadata: Provider-specific metadata
        data: Opaque path reference to the artwork file
        date_added: Seconds since epoch when the row was created
        date_modified: Seconds since epoch of the last content change
    """
    id: Optional[int] = None
    token: Optional[str] = None
    title: Optional[str] = None
    byline: Optional[str] = None
    attribution: Optional[str] = None
    persistent_uri: Optional[str] = None
    web_uri: Optional[str] = None
    metadata: Optional[str] = None
    data: Optional[str] = None
    date_added: Optional[int] = None
    date_modified: Optional[int] = None

    def __post_init__(self):
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, _coerce_int(name, value))

    def to_row(self) -> Dict[str, Any]:
        """
        Encode as a sparse row.

        Returns:
            Mapping of column name to value for every populated,
            caller-writable field
        """
        row = {}
        for name, column in _FIELD_COLUMNS.items():
            if name in _STORE_FIELDS:
                continue
            value = getattr(self, name)
            if value is not None:
                row[column] = str(value)
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Artwork":
        """
        Decode a row. Unknown columns are ignored, missing ones are None.

        Raises:
            MalformedRow: If the row is not a readable mapping or a value
                cannot be coerced to its column type
        """
        try:
            keys = set(row.keys())
        except (AttributeError, TypeError) as e:
            raise MalformedRow(f"Row is not a mapping: {type(row).__name__}") from e

        values = {}
        for name, column in _FIELD_COLUMNS.items():
            if column not in keys:
                continue
            value = row[column]
            if value is None:
                continue
            if name in _INT_FIELDS:
                values[name] = _coerce_int(name, value)
            else:
                values[name] = str(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly form, including store-managed columns."""
        data = self.to_row()
        for name in _STORE_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[_FIELD_COLUMNS[name]] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artwork":
        return cls.from_row(data)

    def replace(self, **changes) -> "Artwork":
        """Return a copy with the given fields changed."""
        return replace(self, **changes)

    def populated(self) -> Dict[str, Any]:
        """Populated fields by attribute name."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def same_content(self, other: "Artwork") -> bool:
        """Compare caller-writable fields only."""
        return self.to_row() == other.to_row()
