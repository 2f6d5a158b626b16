# artprovider - Artwork provider registry contract
#
# A contract layer between artwork providers and their consumers. Each
# provider exposes one table of artwork at a content address; consumers
# query, add, and atomically replace artwork through it.
#
# Core concepts:
# - ContentUri: content://<authority>[/<id>] address of a table or row
# - Artwork: One record, unique by token, with a sparse row codec
# - ArtworkRegistry: get-last-added, add (upsert by token), set (replace all)
# - BatchExecutor: Applies dependent operations as one all-or-nothing unit
# - Transport: Reaches the store behind an authority (local or HTTP)

from .contract import Columns, ContentUri, get_content_uri
from .artwork import Artwork
from .cursor import RowCursor
from .operations import InsertOp, UpdateOp, DeleteOp, OperationResult
from .batch import BatchExecutor, BatchResult, BatchFailure, FailureKind
from .resolver import AddressResolver, ComponentLookup, DictLookup
from .store import ArtworkStore
from .transport import Transport, LocalTransport
from .client import HttpTransport
from .config import ProviderManifest, ProviderEntry, ManifestLookup, load_manifest
from .registry import ArtworkRegistry
from .errors import (
    ArtProviderError,
    ComponentNotFound,
    ProviderNotFound,
    MalformedRow,
    StoreError,
    StoreRejected,
    StoreUnavailable,
    OperationApplicationError,
)

__all__ = [
    # Addressing
    "Columns",
    "ContentUri",
    "get_content_uri",
    "AddressResolver",
    "ComponentLookup",
    "DictLookup",
    # Model
    "Artwork",
    "RowCursor",
    # Batches
    "InsertOp",
    "UpdateOp",
    "DeleteOp",
    "OperationResult",
    "BatchExecutor",
    "BatchResult",
    "BatchFailure",
    "FailureKind",
    # Stores and transports
    "ArtworkStore",
    "Transport",
    "LocalTransport",
    "HttpTransport",
    # Configuration
    "ProviderManifest",
    "ProviderEntry",
    "ManifestLookup",
    "load_manifest",
    # Registry
    "ArtworkRegistry",
    # Errors
    "ArtProviderError",
    "ComponentNotFound",
    "ProviderNotFound",
    "MalformedRow",
    "StoreError",
    "StoreRejected",
    "StoreUnavailable",
    "OperationApplicationError",
]

__version__ = "0.1.0"
