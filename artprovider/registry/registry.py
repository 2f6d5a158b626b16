# artprovider/registry/registry.py
"""
Artwork registry client.

Operations against a provider's artwork table, addressed by component
name or content URI:
- Query the most recently added artwork
- Add artwork (upsert by token)
- Set artwork: replace the whole collection with one artwork, atomically
"""

import logging
from typing import List, Optional

from ..artwork import Artwork
from ..batch import BatchExecutor, BatchResult
from ..contract import Columns, ContentUri
from ..errors import StoreRejected
from ..operations import DeleteOp, InsertOp
from ..resolver import AddressResolver, ComponentLookup, ProviderRef
from ..transport import Transport

logger = logging.getLogger(__name__)

_NEWEST_FIRST = f"{Columns.ID} DESC"


class ArtworkRegistry:
    """
    Client for provider artwork tables.

    Every operation accepts a provider reference: a ``ContentUri``, a
    ``content://`` string, or a component name registered with the
    lookup. Unknown component names raise ``ProviderNotFound``.

    Usage:
        registry = ArtworkRegistry(transport, lookup)
        registry.set_artwork("featured", Artwork(token="t1", title="A"))
        latest = registry.get_last_added("featured")
    """

    def __init__(
        self,
        transport: Transport,
        lookup: Optional[ComponentLookup] = None,
        executor: Optional[BatchExecutor] = None,
    ):
        """
        Initialize the registry client.

        Args:
            transport: Transport used to reach provider stores
            lookup: Component lookup for resolving component names
            executor: Batch executor (defaults to one over ``transport``)
        """
        self.transport = transport
        self.resolver = AddressResolver(lookup)
        self.executor = executor or BatchExecutor(transport)

    def get_content_uri(self, provider: ProviderRef) -> ContentUri:
        """Collection address of a provider."""
        return self.resolver.resolve_address(provider).collection()

    def get_last_added(self, provider: ProviderRef) -> Optional[Artwork]:
        """
        Get the most recently added artwork.

        Returns:
            The artwork with the greatest id, or None if the table is empty
        """
        uri = self.get_content_uri(provider)
        with self.transport.query(uri, sort_order=_NEWEST_FIRST) as cursor:
            row = cursor.first()
            return Artwork.from_row(row) if row is not None else None

    def add_artwork(self, provider: ProviderRef, artwork: Artwork) -> Optional[ContentUri]:
        """
        Add artwork. An artwork whose token is already present updates
        the existing row instead.

        Returns:
            Address of the new (or updated) row, or None if the store
            declined the insert
        """
        uri = self.get_content_uri(provider)
        row_uri = self.transport.insert(uri, artwork.to_row())
        if row_uri is None:
            logger.warning(f"Artwork not added to {uri}")
        else:
            logger.debug(f"Added artwork {row_uri}")
        return row_uri

    def set_artwork(self, provider: ProviderRef, artwork: Artwork) -> Optional[ContentUri]:
        """
        Make ``artwork`` the only artwork of the provider.

        Other artwork is removed only when the insert succeeds: both
        steps run as one batch.

        Returns:
            Address of the set row, or None if the batch was not applied
        """
        result = self.apply_set(provider, artwork)
        if not result.success:
            return None
        return result.results[0].uri

    def apply_set(self, provider: ProviderRef, artwork: Artwork) -> BatchResult:
        """
        Like ``set_artwork`` but return the full batch result, including
        whether a failure was a rejection or a transport problem.
        """
        uri = self.get_content_uri(provider)
        operations = [
            InsertOp(uri=uri, values=artwork.to_row()),
            # Keep only the row the insert produced
            DeleteOp(uri=uri, selection=f"{Columns.ID} != ?", back_references={0: 0}),
        ]
        return self.executor.execute(uri.authority, operations)

    def list_artwork(self, provider: ProviderRef) -> List[Artwork]:
        """All artwork, most recently added first."""
        uri = self.get_content_uri(provider)
        with self.transport.query(uri, sort_order=_NEWEST_FIRST) as cursor:
            return [Artwork.from_row(row) for row in cursor]

    def get_artwork(self, row_uri: ContentUri | str) -> Optional[Artwork]:
        """Get a single artwork by its row address."""
        row_uri = self._row_uri(row_uri)
        with self.transport.query(row_uri) as cursor:
            row = cursor.first()
            return Artwork.from_row(row) if row is not None else None

    def update_artwork(self, row_uri: ContentUri | str, artwork: Artwork) -> int:
        """
        Update the populated fields of one row.

        Returns:
            Number of rows updated; 0 if the row is missing or the store
            declined the update
        """
        row_uri = self._row_uri(row_uri)
        try:
            return self.transport.update(row_uri, artwork.to_row())
        except StoreRejected as e:
            logger.warning(f"Update of {row_uri} declined: {e}")
            return 0

    def delete_artwork(self, row_uri: ContentUri | str) -> bool:
        """Delete one row. Returns True if it existed."""
        row_uri = self._row_uri(row_uri)
        return self.transport.delete(row_uri) > 0

    def clear(self, provider: ProviderRef) -> int:
        """Delete all artwork. Returns the number of rows deleted."""
        return self.transport.delete(self.get_content_uri(provider))

    def _row_uri(self, row_uri: ContentUri | str) -> ContentUri:
        if isinstance(row_uri, str):
            row_uri = ContentUri.parse(row_uri)
        if row_uri.row_id is None:
            raise ValueError(f"Not an artwork row URI: {row_uri}")
        return row_uri
