# tests/test_registry.py
"""Tests for the artwork registry client."""

import logging

import pytest

from artprovider.artwork import Artwork
from artprovider.batch import FailureKind
from artprovider.contract import get_content_uri
from artprovider.cursor import RowCursor
from artprovider.errors import MalformedRow, ProviderNotFound, StoreRejected, StoreUnavailable
from artprovider.operations import DeleteOp
from artprovider.registry import ArtworkRegistry
from artprovider.resolver import DictLookup
from artprovider.store import ArtworkStore
from artprovider.transport import LocalTransport

AUTHORITY = "com.example.featured"
URI = get_content_uri(AUTHORITY)


class CursorTrackingTransport(LocalTransport):
    """Local transport that keeps the cursors it hands out."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.cursors = []

    def query(self, *args, **kwargs):
        cursor = super().query(*args, **kwargs)
        self.cursors.append(cursor)
        return cursor


class BadRowTransport(CursorTrackingTransport):
    """Transport returning a row that cannot be decoded."""

    def query(self, *args, **kwargs):
        cursor = RowCursor([{"_id": "not-a-number"}])
        self.cursors.append(cursor)
        return cursor


class DroppingStore(ArtworkStore):
    """Store whose connection drops after a batch's insert has run."""

    def _apply_operation(self, cursor, operation, results):
        if isinstance(operation, DeleteOp):
            assert results, "insert should have been applied first"
            raise StoreUnavailable("connection lost")
        return super()._apply_operation(cursor, operation, results)


class RejectingDeleteStore(ArtworkStore):
    """Store that rejects deletes inside batches."""

    def _apply_operation(self, cursor, operation, results):
        if isinstance(operation, DeleteOp):
            raise StoreRejected("deletes are not allowed")
        return super()._apply_operation(cursor, operation, results)


def make_registry(store, transport_cls=CursorTrackingTransport):
    transport = transport_cls({AUTHORITY: store})
    lookup = DictLookup({"featured": AUTHORITY, "retired": "com.example.retired"}, disabled=["retired"])
    return ArtworkRegistry(transport, lookup)


def tokens(store):
    with store.query(URI, sort_order="_id ASC") as cursor:
        return [row["token"] for row in cursor]


@pytest.fixture
def store():
    store = ArtworkStore()
    yield store
    store.close()


@pytest.fixture
def registry(store):
    return make_registry(store)


class TestAddressing:
    """Test provider references."""

    def test_component_and_uri_are_equivalent(self, registry):
        """Test a component name and its content URI address the same table."""
        registry.add_artwork("featured", Artwork(token="t1"))
        assert registry.get_last_added(URI).token == "t1"
        assert registry.get_last_added("content://com.example.featured").token == "t1"

    def test_get_content_uri(self, registry):
        """Test the collection address of a component."""
        assert registry.get_content_uri("featured") == URI
        assert registry.get_content_uri(URI.with_appended_id(4)) == URI

    def test_unknown_provider(self, registry):
        """Test unknown providers raise ProviderNotFound."""
        with pytest.raises(ProviderNotFound):
            registry.add_artwork("missing", Artwork(token="t1"))

    def test_disabled_provider(self, registry):
        """Test disabled providers raise ProviderNotFound."""
        with pytest.raises(ProviderNotFound, match="disabled"):
            registry.get_last_added("retired")


class TestGetLastAdded:
    """Test get_last_added."""

    def test_empty_table(self, registry):
        """Test an empty table returns None and releases the cursor."""
        assert registry.get_last_added("featured") is None
        assert registry.transport.cursors[-1].closed

    def test_greatest_id(self, registry, store):
        """Test the row with the greatest id is returned."""
        registry.add_artwork("featured", Artwork(token="a", title="A"))
        second = registry.add_artwork("featured", Artwork(token="b", title="B"))
        registry.add_artwork("featured", Artwork(token="c", title="C"))

        latest = registry.get_last_added("featured")
        assert latest.title == "C"
        assert latest.id == 3
        assert registry.transport.cursors[-1].closed

        store.delete(URI.with_appended_id(3))
        assert registry.get_last_added("featured").id == second.row_id

    def test_updated_row_keeps_position(self, registry):
        """Test re-adding an older token does not make it the newest."""
        registry.add_artwork("featured", Artwork(token="a"))
        registry.add_artwork("featured", Artwork(token="b"))
        registry.add_artwork("featured", Artwork(token="a", title="Renamed"))
        assert registry.get_last_added("featured").token == "b"

    def test_malformed_row_propagates(self, store):
        """Test decode failures propagate and still release the cursor."""
        registry = make_registry(store, BadRowTransport)
        with pytest.raises(MalformedRow):
            registry.get_last_added("featured")
        assert registry.transport.cursors[-1].closed

    def test_store_errors_propagate(self, store):
        """Test store I/O errors are not swallowed."""
        registry = make_registry(store)
        store.close()
        with pytest.raises(StoreUnavailable):
            registry.get_last_added("featured")


class TestAddArtwork:
    """Test add_artwork."""

    def test_add(self, registry):
        """Test adding returns the new row address."""
        row_uri = registry.add_artwork("featured", Artwork(token="t1", title="A"))
        assert row_uri == URI.with_appended_id(1)
        assert registry.get_artwork(row_uri).title == "A"

    def test_same_token_updates_in_place(self, registry, store):
        """Test adding an existing token updates that row (same id)."""
        first = registry.add_artwork("featured", Artwork(token="t1", title="A"))
        second = registry.add_artwork("featured", Artwork(token="t1", title="B"))

        assert second == first
        assert store.count() == 1
        assert registry.get_artwork(first).title == "B"

    def test_repeated_tokens_keep_one_row_each(self, registry, store):
        """Test any sequence of inserts leaves one row per token with the latest content."""
        for title, token in [("1", "x"), ("2", "y"), ("3", "x"), ("4", None), ("5", "y"), ("6", "x")]:
            registry.add_artwork("featured", Artwork(token=token, title=title))

        artworks = {a.token: a for a in registry.list_artwork("featured") if a.token}
        assert sorted(artworks) == ["x", "y"]
        assert artworks["x"].title == "6"
        assert artworks["y"].title == "5"
        assert store.count() == 3

    def test_declined_insert_returns_none(self, registry, store, caplog):
        """Test a store decline is a None result, not an exception."""

        class DecliningStore(ArtworkStore):
            def insert(self, uri, values):
                raise StoreRejected("constraint violated")

        registry = make_registry(DecliningStore())
        with caplog.at_level(logging.WARNING):
            assert registry.add_artwork("featured", Artwork(token="t1")) is None
        assert "not added" in caplog.text


class TestSetArtwork:
    """Test set_artwork."""

    def test_empty_table(self, registry, store):
        """Test setting on an empty table leaves exactly that artwork."""
        row_uri = registry.set_artwork("featured", Artwork(token="t1", title="A"))

        assert row_uri == URI.with_appended_id(1)
        assert store.count() == 1
        assert registry.get_last_added("featured").title == "A"

    def test_replaces_existing(self, registry, store):
        """Test existing artwork is removed."""
        registry.add_artwork("featured", Artwork(token="t1"))

        row_uri = registry.set_artwork("featured", Artwork(token="t2", title="B"))

        assert row_uri == URI.with_appended_id(2)
        assert tokens(store) == ["t2"]
        assert registry.get_artwork(URI.with_appended_id(1)) is None

    def test_set_content_matches(self, registry):
        """Test the remaining row has the set content."""
        registry.add_artwork("featured", Artwork(token="old", title="Old"))
        artwork = Artwork(token="new", title="New", byline="Someone", web_uri="https://example.com")

        registry.set_artwork("featured", artwork)

        remaining = registry.list_artwork("featured")
        assert len(remaining) == 1
        assert remaining[0].same_content(artwork)
        assert remaining[0].date_added is not None

    def test_existing_token_is_kept(self, registry, store):
        """Test setting an existing token updates that row and removes the rest."""
        first = registry.add_artwork("featured", Artwork(token="t1", title="A"))
        registry.add_artwork("featured", Artwork(token="t2"))
        registry.add_artwork("featured", Artwork(title="untokened"))

        row_uri = registry.set_artwork("featured", Artwork(token="t1", title="Updated"))

        assert row_uri == first
        assert tokens(store) == ["t1"]
        assert registry.get_artwork(first).title == "Updated"

    def test_transport_failure_rolls_back(self):
        """Test a failure after the insert returns None and changes nothing."""
        store = DroppingStore()
        registry = make_registry(store)
        registry.add_artwork("featured", Artwork(token="t1", title="A"))
        registry.add_artwork("featured", Artwork(token="t2", title="B"))

        assert registry.set_artwork("featured", Artwork(token="t3", title="C")) is None

        assert tokens(store) == ["t1", "t2"]
        assert registry.get_last_added("featured").token == "t2"
        store.close()

    def test_failure_kinds(self):
        """Test apply_set distinguishes rejection from transport failure."""
        rejecting = RejectingDeleteStore()
        result = make_registry(rejecting).apply_set("featured", Artwork(token="t1"))
        assert not result.success
        assert result.failure.kind == FailureKind.APPLICATION
        assert rejecting.count() == 0
        rejecting.close()

        dropping = DroppingStore()
        result = make_registry(dropping).apply_set("featured", Artwork(token="t1"))
        assert not result.success
        assert result.failure.kind == FailureKind.TRANSPORT
        dropping.close()

    def test_unreachable_provider(self, store):
        """Test an authority with no store behind it returns None."""
        registry = make_registry(store)
        other = get_content_uri("com.example.elsewhere")
        assert registry.set_artwork(other, Artwork(token="t1")) is None
        assert registry.apply_set(other, Artwork(token="t1")).failure.kind == FailureKind.TRANSPORT

    def test_batch_shape(self, store):
        """Test set_artwork sends an insert and an id-excluding delete."""
        sent = []

        class SpyTransport(CursorTrackingTransport):
            def apply_batch(self, authority, operations):
                sent.append((authority, operations))
                return super().apply_batch(authority, operations)

        registry = make_registry(store, SpyTransport)
        registry.set_artwork("featured", Artwork(token="t1"))

        authority, operations = sent[0]
        assert authority == AUTHORITY
        assert [op.op_type for op in operations] == ["insert", "delete"]
        assert operations[0].values == {"token": "t1"}
        assert operations[1].selection == "_id != ?"
        assert operations[1].back_references == {0: 0}


class TestRowOperations:
    """Test row-level helpers."""

    def test_update_artwork(self, registry):
        """Test updating one row."""
        row_uri = registry.add_artwork("featured", Artwork(token="t1", title="A"))
        assert registry.update_artwork(row_uri, Artwork(byline="Someone")) == 1
        artwork = registry.get_artwork(row_uri)
        assert artwork.title == "A"
        assert artwork.byline == "Someone"

    def test_update_token_declined(self, registry):
        """Test changing a token is declined, not raised."""
        row_uri = registry.add_artwork("featured", Artwork(token="t1"))
        assert registry.update_artwork(row_uri, Artwork(token="t2")) == 0
        assert registry.get_artwork(row_uri).token == "t1"

    def test_delete_artwork(self, registry):
        """Test deleting one row."""
        row_uri = registry.add_artwork("featured", Artwork(token="t1"))
        assert registry.delete_artwork(str(row_uri))
        assert not registry.delete_artwork(row_uri)

    def test_row_uri_required(self, registry):
        """Test row helpers need a row address."""
        with pytest.raises(ValueError):
            registry.get_artwork(URI)

    def test_clear(self, registry):
        """Test clearing all artwork."""
        registry.add_artwork("featured", Artwork(token="t1"))
        registry.add_artwork("featured", Artwork(token="t2"))
        assert registry.clear("featured") == 2
        assert registry.get_last_added("featured") is None
