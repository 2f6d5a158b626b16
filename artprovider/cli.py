#!/usr/bin/env python3
"""
artprovider CLI

Command-line interface for reading and writing provider artwork:
  artprovider last - Show the most recently added artwork
  artprovider list - List all artwork, newest first
  artprovider add - Add artwork (updates the row with the same token)
  artprovider set - Replace all artwork with one artwork
  artprovider delete - Delete one artwork row
  artprovider serve - Serve the manifest's providers over HTTP

Usage:
  artprovider last (-p <provider> | -a <authority>)
  artprovider add -p <provider> --token <token> --title <title>
  artprovider set -a <authority> --token <token> [--server <url>]
  artprovider delete <content://authority/id>
  artprovider serve --manifest providers.yaml [--port 8080]
"""

import argparse
import json
import logging
import os
import sys
from contextlib import contextmanager
from pathlib import Path

from .artwork import Artwork
from .client import HttpTransport
from .config import DEFAULT_DB_DIR, SERVER_ENV, ManifestLookup, load_manifest
from .contract import get_content_uri
from .errors import ArtProviderError
from .registry import ArtworkRegistry
from .store import ArtworkStore
from .transport import LocalTransport

# Artwork fields settable from the command line
_ARTWORK_FLAGS = (
    "token", "title", "byline", "attribution",
    "persistent_uri", "web_uri", "metadata", "data",
)


@contextmanager
def open_registry(args):
    """
    Create the registry client for the parsed arguments.

    Uses the HTTP transport when a server URL is given (--server or
    $ARTPROVIDER_SERVER), otherwise local stores under --db-dir. The
    transport and any stores it opened are closed on exit.
    """
    manifest = load_manifest(args.manifest)
    lookup = ManifestLookup(manifest)

    server_url = args.server or os.environ.get(SERVER_ENV)
    if server_url:
        transport = HttpTransport(server_url)
    else:
        db_dir = Path(args.db_dir)
        transport = LocalTransport(
            manifest.open_stores(db_dir),
            # Raw authorities get a store of their own
            store_factory=lambda authority: ArtworkStore(db_dir / f"{authority}.sqlite"),
        )
    try:
        yield ArtworkRegistry(transport, lookup)
    finally:
        transport.close()


def provider_address(registry: ArtworkRegistry, args):
    """Collection address from -p/--provider or -a/--authority."""
    if args.authority:
        return get_content_uri(args.authority)
    return registry.get_content_uri(args.provider)


def artwork_from_args(args) -> Artwork:
    return Artwork(**{name: getattr(args, name) for name in _ARTWORK_FLAGS})


def _print_json(data):
    print(json.dumps(data, indent=2))


def cmd_last(args):
    """Show the most recently added artwork."""
    with open_registry(args) as registry:
        artwork = registry.get_last_added(provider_address(registry, args))
    if artwork is None:
        print("No artwork")
        return 1
    _print_json(artwork.to_dict())
    return 0


def cmd_list(args):
    """List all artwork."""
    with open_registry(args) as registry:
        artworks = registry.list_artwork(provider_address(registry, args))
    _print_json([artwork.to_dict() for artwork in artworks])
    return 0


def cmd_add(args):
    """Add artwork."""
    with open_registry(args) as registry:
        row_uri = registry.add_artwork(provider_address(registry, args), artwork_from_args(args))
    if row_uri is None:
        print("Artwork was not added", file=sys.stderr)
        return 1
    print(row_uri)
    return 0


def cmd_set(args):
    """Replace all artwork with one artwork."""
    with open_registry(args) as registry:
        result = registry.apply_set(provider_address(registry, args), artwork_from_args(args))
    if not result.success:
        print(
            f"Artwork was not set ({result.failure.kind.value}): {result.failure.message}",
            file=sys.stderr,
        )
        return 1
    print(result.results[0].uri)
    return 0


def cmd_delete(args):
    """Delete one artwork row."""
    with open_registry(args) as registry:
        deleted = registry.delete_artwork(args.uri)
    if not deleted:
        print(f"No artwork at {args.uri}", file=sys.stderr)
        return 1
    print(f"Deleted {args.uri}")
    return 0


def cmd_serve(args):
    """Serve the manifest's providers over HTTP."""
    from .server import ArtworkServer

    manifest = load_manifest(args.manifest)
    if not manifest.enabled():
        print("No enabled providers; pass --manifest or set $ARTPROVIDER_MANIFEST", file=sys.stderr)
        return 1
    transport = manifest.local_transport(Path(args.db_dir))
    server = ArtworkServer(transport=transport, host=args.host, port=args.port)
    try:
        server.start()
    finally:
        transport.close()
    return 0


def _add_common(parser, provider_required: bool = True):
    parser.add_argument("--manifest", help="Provider manifest YAML (default: $ARTPROVIDER_MANIFEST)")
    parser.add_argument("--db-dir", default=DEFAULT_DB_DIR, help="Database directory")
    parser.add_argument("--server", help="Artwork server URL (default: $ARTPROVIDER_SERVER)")
    if provider_required:
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument("-p", "--provider", help="Registered provider name")
        group.add_argument("-a", "--authority", help="Provider authority")


def _add_artwork_flags(parser):
    for name in _ARTWORK_FLAGS:
        parser.add_argument(f"--{name.replace('_', '-')}", dest=name, help=f"Artwork {name}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artprovider",
        description="artprovider - Artwork provider registry",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # last command
    last_parser = subparsers.add_parser("last", help="Show the most recently added artwork")
    _add_common(last_parser)

    # list command
    list_parser = subparsers.add_parser("list", help="List all artwork, newest first")
    _add_common(list_parser)

    # add command
    add_parser = subparsers.add_parser("add", help="Add artwork")
    _add_common(add_parser)
    _add_artwork_flags(add_parser)

    # set command
    set_parser = subparsers.add_parser("set", help="Replace all artwork with one artwork")
    _add_common(set_parser)
    _add_artwork_flags(set_parser)

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete one artwork row")
    _add_common(delete_parser, provider_required=False)
    delete_parser.add_argument("uri", help="Row URI: content://<authority>/<id>")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Serve providers over HTTP")
    serve_parser.add_argument("--manifest", help="Provider manifest YAML (default: $ARTPROVIDER_MANIFEST)")
    serve_parser.add_argument("--db-dir", default=DEFAULT_DB_DIR, help="Database directory")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to")

    return parser


COMMANDS = {
    "last": cmd_last,
    "list": cmd_list,
    "add": cmd_add,
    "set": cmd_set,
    "delete": cmd_delete,
    "serve": cmd_serve,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    try:
        status = command(args)
    except (ArtProviderError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
