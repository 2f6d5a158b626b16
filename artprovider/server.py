# artprovider/server.py
"""
HTTP server exposing artwork stores.

Provides a JSON API that ``HttpTransport`` talks to.

Endpoints:
    GET  /health                - Health check
    GET  /authorities           - Authorities served
    POST /<authority>/query     - Query rows
    POST /<authority>/insert    - Insert (upsert by token) a row
    POST /<authority>/update    - Update rows
    POST /<authority>/delete    - Delete rows
    POST /<authority>/batch     - Apply a batch in one transaction

Errors are returned as {"error": ..., "kind": ...}: 404 "not_found" for
unknown authorities, 409 "rejected"/"application" for constraint
violations and rejected batches, 400 "store" for invalid requests.
"""

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .config import DEFAULT_DB_DIR, load_manifest
from .contract import ContentUri
from .errors import (
    OperationApplicationError,
    StoreError,
    StoreRejected,
    StoreUnavailable,
)
from .operations import operation_from_dict
from .transport import LocalTransport

logger = logging.getLogger(__name__)


class ArtworkServer:
    """
    HTTP server for artwork stores.

    Usage:
        server = ArtworkServer(manifest.local_transport(), port=8080)
        server.start()  # Blocking
    """

    def __init__(self, transport: LocalTransport, host: str = "127.0.0.1", port: int = 8080):
        self.transport = transport
        self.host = host
        self.port = port
        self._httpd: Optional[ThreadingHTTPServer] = None

    def handle(self, authority: str, action: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run one store request.

        Raises:
            StoreUnavailable: If the authority is not served
            StoreError: If the request is invalid or the store refuses it
        """
        store = self.transport.store_for(authority)

        if action == "batch":
            operations = [operation_from_dict(op) for op in data.get("operations", [])]
            for operation in operations:
                if operation.uri.authority != authority:
                    raise OperationApplicationError(
                        f"Operation for {operation.uri.authority} sent to {authority}"
                    )
            results = store.apply_batch(operations)
            return {"results": [r.to_dict() for r in results]}

        uri = ContentUri.parse(data["uri"])
        if uri.authority != authority:
            raise StoreError(f"URI {uri} does not belong to {authority}")

        if action == "query":
            with store.query(
                uri,
                projection=data.get("projection"),
                selection=data.get("selection"),
                selection_args=data.get("selection_args"),
                sort_order=data.get("sort_order"),
            ) as cursor:
                return {"rows": cursor.fetchall()}
        if action == "insert":
            return {"uri": str(store.insert(uri, data.get("values", {})))}
        if action == "update":
            count = store.update(uri, data.get("values", {}), data.get("selection"), data.get("selection_args"))
            return {"count": count}
        if action == "delete":
            return {"count": store.delete(uri, data.get("selection"), data.get("selection_args"))}
        raise StoreError(f"Unknown action: {action}")

    def _create_handler(server_instance):
        """Create request handler with access to server instance."""

        class RequestHandler(BaseHTTPRequestHandler):
            server_ref = server_instance

            def log_message(self, format, *args):
                logger.debug(format % args)

            def _send_json(self, data: Any, status: int = 200):
                body = json.dumps(data).encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _send_error(self, message: str, kind: str, status: int = 400, **extra):
                self._send_json({"error": message, "kind": kind, **extra}, status)

            def do_GET(self):
                path = urlparse(self.path).path

                if path == "/health":
                    self._send_json({"status": "ok"})
                elif path == "/authorities":
                    self._send_json({"authorities": self.server_ref.transport.authorities()})
                else:
                    self._send_error("Not found", "not_found", 404)

            def do_POST(self):
                parts = [p for p in urlparse(self.path).path.split("/") if p]
                if len(parts) != 2:
                    self._send_error("Not found", "not_found", 404)
                    return
                authority, action = parts

                try:
                    content_length = int(self.headers.get("Content-Length", 0))
                    body = self.rfile.read(content_length).decode()
                    data = json.loads(body) if body else {}
                except json.JSONDecodeError as e:
                    self._send_error(f"Invalid JSON: {e}", "store")
                    return

                try:
                    result = self.server_ref.handle(authority, action, data)
                except StoreUnavailable as e:
                    self._send_error(str(e), "not_found", 404)
                except OperationApplicationError as e:
                    self._send_error(str(e), "application", 409, index=e.index)
                except StoreRejected as e:
                    self._send_error(str(e), "rejected", 409)
                except (StoreError, KeyError, ValueError) as e:
                    self._send_error(str(e), "store", 400)
                except Exception as e:
                    logger.exception(f"Request {action} for {authority} failed")
                    self._send_error(str(e), "internal", 500)
                else:
                    self._send_json(result)

        return RequestHandler

    def _bind(self) -> ThreadingHTTPServer:
        handler = self._create_handler()
        self._httpd = ThreadingHTTPServer((self.host, self.port), handler)
        # Pick up the real port when bound to port 0
        self.port = self._httpd.server_address[1]
        return self._httpd

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self):
        """Start the HTTP server (blocking)."""
        httpd = self._bind()
        logger.info(f"Artwork server starting on {self.host}:{self.port}")
        print(f"Artwork server running on {self.url}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nShutting down...")
        finally:
            httpd.server_close()

    def start_background(self) -> threading.Thread:
        """Start the server in a background thread. Returns once bound."""
        httpd = self._bind()
        thread = threading.Thread(target=httpd.serve_forever)
        thread.daemon = True
        thread.start()
        logger.info(f"Artwork server running in background on {self.url}")
        return thread

    def stop(self):
        """Stop a server started with ``start_background``."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Artwork provider server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8080, help="Port to bind to")
    parser.add_argument("--manifest", help="Provider manifest YAML (default: $ARTPROVIDER_MANIFEST)")
    parser.add_argument("--db-dir", default=DEFAULT_DB_DIR, help="Database directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    manifest = load_manifest(args.manifest)
    if not manifest.enabled():
        parser.error("No enabled providers; pass --manifest or set $ARTPROVIDER_MANIFEST")

    transport = manifest.local_transport(Path(args.db_dir))
    server = ArtworkServer(transport=transport, host=args.host, port=args.port)
    try:
        server.start()
    finally:
        transport.close()


if __name__ == "__main__":
    main()
