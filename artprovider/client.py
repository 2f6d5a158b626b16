# artprovider/client.py
"""
HTTP transport for artwork providers served by ``artprovider.server``.

Usage:
    transport = HttpTransport("http://localhost:8080")
    registry = ArtworkRegistry(transport, lookup)
    registry.set_artwork(get_content_uri("com.example.art"), Artwork(token="t1"))
"""

import json
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .contract import ContentUri
from .cursor import RowCursor
from .errors import (
    ArtProviderError,
    OperationApplicationError,
    StoreError,
    StoreRejected,
    StoreUnavailable,
)
from .operations import Operation, OperationResult
from .transport import Transport

# Error "kind" sent by the server -> exception raised here
_ERROR_KINDS = {
    "application": OperationApplicationError,
    "rejected": StoreRejected,
    "store": StoreError,
    "not_found": StoreUnavailable,
}


class HttpTransport(Transport):
    """
    Transport talking JSON over HTTP to an artwork server.

    Args:
        base_url: Server URL (e.g., "http://localhost:8080")
        timeout: Request timeout in seconds
    """

    def __init__(self, base_url: str = "http://localhost:8080", timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, data: dict = None) -> dict:
        """
        Make HTTP request to server.

        Raises:
            StoreUnavailable: If the server cannot be reached, fails with a
                5xx status, or answers with something other than a JSON object
            StoreError: Or a subclass, for errors the server reports
        """
        url = f"{self.base_url}{path}"

        if data is not None:
            body = json.dumps(data).encode()
            headers = {"Content-Type": "application/json"}
        else:
            body = None
            headers = {}

        req = Request(url, data=body, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.timeout) as response:
                response_body = response.read().decode(errors="replace")
        except HTTPError as e:
            raise self._error_from_response(e)
        except URLError as e:
            raise StoreUnavailable(f"Failed to connect to server: {e}")
        except (ConnectionError, TimeoutError) as e:
            raise StoreUnavailable(f"Connection to server failed: {e}")

        try:
            result = json.loads(response_body)
        except json.JSONDecodeError:
            raise StoreUnavailable(f"Invalid response from {url}: {response_body[:200]}")
        if not isinstance(result, dict):
            raise StoreUnavailable(f"Invalid response from {url}: {response_body[:200]}")
        return result

    def _error_from_response(self, e: HTTPError) -> ArtProviderError:
        """Map an HTTP error reply to the exception it stands for."""
        error_body = e.read().decode(errors="replace")
        if e.code >= 500:
            return StoreUnavailable(f"HTTP {e.code}: {error_body[:200]}")
        try:
            error_data = json.loads(error_body)
        except json.JSONDecodeError:
            return StoreUnavailable(f"HTTP {e.code}: {error_body[:200]}")
        if not isinstance(error_data, dict) or error_data.get("kind") not in _ERROR_KINDS:
            return StoreUnavailable(f"HTTP {e.code}: {error_body[:200]}")

        error_cls = _ERROR_KINDS[error_data["kind"]]
        message = error_data.get("error", str(e))
        if error_cls is OperationApplicationError:
            return OperationApplicationError(message, index=error_data.get("index"))
        return error_cls(message)

    def _post(self, uri: Union[ContentUri, str], action: str, data: dict) -> dict:
        authority = uri.authority if isinstance(uri, ContentUri) else uri
        return self._request("POST", f"/{authority}/{action}", data)

    def health(self) -> bool:
        """Check if server is healthy."""
        try:
            result = self._request("GET", "/health")
            return result.get("status") == "ok"
        except ArtProviderError:
            return False

    def authorities(self) -> List[str]:
        """Authorities served by the server."""
        return self._request("GET", "/authorities")["authorities"]

    def query(
        self,
        uri: ContentUri,
        projection: Optional[Sequence[str]] = None,
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
        sort_order: Optional[str] = None,
    ) -> RowCursor:
        result = self._post(uri, "query", {
            "uri": str(uri),
            "projection": list(projection) if projection else None,
            "selection": selection,
            "selection_args": list(selection_args or []),
            "sort_order": sort_order,
        })
        return RowCursor(result.get("rows", []))

    def insert(self, uri: ContentUri, values: Dict[str, Any]) -> Optional[ContentUri]:
        try:
            result = self._post(uri, "insert", {"uri": str(uri), "values": values})
        except StoreRejected:
            return None
        row_uri = result.get("uri")
        return ContentUri.parse(row_uri) if row_uri else None

    def update(
        self,
        uri: ContentUri,
        values: Dict[str, Any],
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
    ) -> int:
        result = self._post(uri, "update", {
            "uri": str(uri),
            "values": values,
            "selection": selection,
            "selection_args": list(selection_args or []),
        })
        return result["count"]

    def delete(
        self,
        uri: ContentUri,
        selection: Optional[str] = None,
        selection_args: Optional[Sequence[Any]] = None,
    ) -> int:
        result = self._post(uri, "delete", {
            "uri": str(uri),
            "selection": selection,
            "selection_args": list(selection_args or []),
        })
        return result["count"]

    def apply_batch(self, authority: str, operations: List[Operation]) -> List[OperationResult]:
        result = self._post(authority, "batch", {
            "operations": [operation.to_dict() for operation in operations],
        })
        try:
            return [OperationResult.from_dict(r) for r in result["results"]]
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise StoreUnavailable(f"Malformed batch response from {self.base_url}: {e!r}")


__all__ = ["HttpTransport"]
