# artprovider/errors.py
"""
Error taxonomy for the artwork provider contract.

Resolution errors are raised to the caller. Store declines and failed
batches are converted to ``None`` results by the registry client, so
only ``ProviderNotFound`` and ``MalformedRow`` normally reach callers of
``ArtworkRegistry``.
"""


class ArtProviderError(Exception):
    """Base class for all artprovider errors."""


class ComponentNotFound(ArtProviderError, KeyError):
    """Raised by a component lookup when a component is unknown or disabled."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class ProviderNotFound(ArtProviderError, ValueError):
    """The identifier does not resolve to a live, enabled provider."""


class MalformedRow(ArtProviderError, ValueError):
    """A row from the store cannot be decoded into an Artwork."""


class StoreError(ArtProviderError):
    """Store-level I/O or query failure."""


class StoreRejected(StoreError):
    """An insert or update violates a store-side constraint."""


class StoreUnavailable(StoreError, ConnectionError):
    """The store could not be reached (transport-level failure)."""


class OperationApplicationError(StoreError):
    """
    A batch could not be applied.

    Attributes:
        index: Position of the operation that failed, if known
    """

    def __init__(self, message: str, index: int = None):
        super().__init__(message)
        self.index = index
