# artprovider/contract.py
"""
Column names and content addresses for artwork providers.

Every provider exposes a single table of artwork addressed as::

    content://<authority>           # the whole collection
    content://<authority>/<id>      # one row
"""

from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import urlparse

SCHEME_CONTENT = "content"


class Columns:
    """Column names of the artwork table."""
    ID = "_id"
    # Inserts with the same non-null token update the existing row
    TOKEN = "token"
    TITLE = "title"
    BYLINE = "byline"
    ATTRIBUTION = "attribution"
    PERSISTENT_URI = "persistent_uri"
    WEB_URI = "web_uri"
    METADATA = "metadata"
    DATA = "_data"
    # Seconds since 1970
    DATE_ADDED = "date_added"
    DATE_MODIFIED = "date_modified"


# Columns callers may write; the rest are managed by the store
WRITABLE_COLUMNS = (
    Columns.TOKEN,
    Columns.TITLE,
    Columns.BYLINE,
    Columns.ATTRIBUTION,
    Columns.PERSISTENT_URI,
    Columns.WEB_URI,
    Columns.METADATA,
    Columns.DATA,
)

STORE_COLUMNS = (Columns.ID, Columns.DATE_ADDED, Columns.DATE_MODIFIED)

ALL_COLUMNS = (Columns.ID,) + WRITABLE_COLUMNS + (Columns.DATE_ADDED, Columns.DATE_MODIFIED)


@dataclass(frozen=True)
class ContentUri:
    """
    Address of an artwork collection or a single artwork row.

    Attributes:
        authority: The provider's registered authority string
        path: Path segments (empty for the collection address)
        scheme: Always "content"
    """
    authority: str
    path: Tuple[str, ...] = ()
    scheme: str = SCHEME_CONTENT

    def __str__(self) -> str:
        uri = f"{self.scheme}://{self.authority}"
        if self.path:
            uri += "/" + "/".join(self.path)
        return uri

    @classmethod
    def parse(cls, uri: str) -> "ContentUri":
        """Parse a ``content://`` string."""
        parsed = urlparse(uri)
        if parsed.scheme != SCHEME_CONTENT or not parsed.netloc:
            raise ValueError(f"Not a content URI: {uri!r}")
        path = tuple(segment for segment in parsed.path.split("/") if segment)
        return cls(authority=parsed.netloc, path=path)

    @property
    def row_id(self) -> Optional[int]:
        """The row id when this addresses a single row, else None."""
        if len(self.path) == 1 and self.path[0].isdigit():
            return int(self.path[0])
        return None

    def collection(self) -> "ContentUri":
        """The collection address for the same authority."""
        return ContentUri(authority=self.authority)

    def with_appended_id(self, row_id: int) -> "ContentUri":
        """Address of row ``row_id`` in this collection."""
        return ContentUri(authority=self.authority, path=self.path + (str(int(row_id)),))


def get_content_uri(authority: str) -> ContentUri:
    """
    Build the collection address for a provider authority.

    No check is made that the authority belongs to a live provider.
    """
    if not authority:
        raise ValueError("authority must be a non-empty string")
    return ContentUri(authority=authority)
