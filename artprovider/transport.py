# artprovider/transport.py
"""
Transports carry store requests to the provider behind an authority.

``Transport`` is the interface the registry client and batch executor
depend on. ``LocalTransport`` routes to in-process stores; the HTTP
transport lives in ``artprovider.client``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence

from .contract import ContentUri
from .cursor import RowCursor
from .errors import OperationApplicationError, StoreRejected, StoreUnavailable
from .operations import Operation, OperationResult
from .store import ArtworkStore

logger = logging.getLogger(__name__)


class Transport(ABC):
    """
    Access to provider stores by content address.

    ``insert`` returns None when the store declines the row. Batch
    failures raise ``OperationApplicationError`` (the store rejected the
    batch) or ``StoreUnavailable`` (the store could not be reached).
    """

    @abstractmethod
    def query(
        self,
        uri: ContentUri,
        projection: Optional[Sequence[str]] = None,
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
        sort_order: Optional[str] = None,
    ) -> RowCursor:
        pass

    @abstractmethod
    def insert(self, uri: ContentUri, values: Dict[str, Any]) -> Optional[ContentUri]:
        pass

    @abstractmethod
    def update(
        self,
        uri: ContentUri,
        values: Dict[str, Any],
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
    ) -> int:
        pass

    @abstractmethod
    def delete(
        self,
        uri: ContentUri,
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
    ) -> int:
        pass

    @abstractmethod
    def apply_batch(self, authority: str, operations: List[Operation]) -> List[OperationResult]:
        pass

    def close(self):
        """Release connections held by the transport."""
        pass


class LocalTransport(Transport):
    """
    Routes requests to in-process stores by authority.

    Args:
        stores: Mapping of authority to store
        store_factory: Optional callable creating a store for an authority
            that is not in ``stores``
    """

    def __init__(
        self,
        stores: Dict[str, ArtworkStore] = None,
        store_factory: Callable[[str], ArtworkStore] = None,
    ):
        self._stores: Dict[str, ArtworkStore] = dict(stores or {})
        self._store_factory = store_factory

    def register(self, authority: str, store: ArtworkStore):
        if authority in self._stores:
            logger.warning(f"Replacing store for {authority}")
        self._stores[authority] = store

    def authorities(self) -> List[str]:
        return sorted(self._stores)

    def store_for(self, authority: str) -> ArtworkStore:
        """
        Get the store behind an authority.

        Raises:
            StoreUnavailable: If no store serves the authority
        """
        store = self._stores.get(authority)
        if store is None and self._store_factory is not None:
            store = self._store_factory(authority)
            self._stores[authority] = store
        if store is None:
            raise StoreUnavailable(f"Unknown authority: {authority}")
        return store

    def query(self, uri, projection=None, selection=None, selection_args=None, sort_order=None) -> RowCursor:
        return self.store_for(uri.authority).query(uri, projection, selection, selection_args, sort_order)

    def insert(self, uri, values) -> Optional[ContentUri]:
        try:
            return self.store_for(uri.authority).insert(uri, values)
        except StoreRejected as e:
            logger.warning(f"Insert into {uri} declined: {e}")
            return None

    def update(self, uri, values, selection=None, selection_args=None) -> int:
        return self.store_for(uri.authority).update(uri, values, selection, selection_args)

    def delete(self, uri, selection=None, selection_args=None) -> int:
        return self.store_for(uri.authority).delete(uri, selection, selection_args)

    def apply_batch(self, authority: str, operations: List[Operation]) -> List[OperationResult]:
        store = self.store_for(authority)
        for operation in operations:
            if operation.uri.authority != authority:
                raise OperationApplicationError(
                    f"Operation for {operation.uri.authority} sent to {authority}"
                )
        return store.apply_batch(operations)

    def close(self):
        for store in self._stores.values():
            store.close()
