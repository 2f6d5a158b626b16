# tests/test_cli.py
"""Tests for the command-line interface."""

import argparse
import json
import tempfile
from pathlib import Path

import pytest

from artprovider.artwork import Artwork
from artprovider.cli import main, open_registry
from artprovider.config import MANIFEST_ENV, SERVER_ENV
from artprovider.contract import get_content_uri
from artprovider.errors import StoreUnavailable


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(MANIFEST_ENV, raising=False)
    monkeypatch.delenv(SERVER_ENV, raising=False)


@pytest.fixture
def db_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def run(capsys, *argv):
    """Run the CLI, returning (exit code, stdout, stderr)."""
    with pytest.raises(SystemExit) as excinfo:
        main(list(argv))
    captured = capsys.readouterr()
    return excinfo.value.code, captured.out, captured.err


class TestCli:
    """Test CLI commands against local stores."""

    def test_add_last_set_list(self, capsys, db_dir):
        """Test the main artwork workflow by authority."""
        common = ["-a", "com.example.art", "--db-dir", str(db_dir)]

        code, out, _ = run(capsys, "add", *common, "--token", "t1", "--title", "A")
        assert code == 0
        assert out.strip() == "content://com.example.art/1"

        code, out, _ = run(capsys, "last", *common)
        assert code == 0
        assert json.loads(out)["title"] == "A"

        code, out, _ = run(capsys, "set", *common, "--token", "t2", "--web-uri", "https://example.com")
        assert code == 0
        assert out.strip() == "content://com.example.art/2"

        code, out, _ = run(capsys, "list", *common)
        listed = json.loads(out)
        assert [artwork["token"] for artwork in listed] == ["t2"]
        assert listed[0]["web_uri"] == "https://example.com"

    def test_delete(self, capsys, db_dir):
        """Test deleting a row by URI."""
        common = ["-a", "com.example.art", "--db-dir", str(db_dir)]
        run(capsys, "add", *common, "--token", "t1")

        code, _, _ = run(capsys, "delete", "--db-dir", str(db_dir), "content://com.example.art/1")
        assert code == 0

        code, out, _ = run(capsys, "last", *common)
        assert code == 1
        assert "No artwork" in out

        code, _, err = run(capsys, "delete", "--db-dir", str(db_dir), "content://com.example.art/1")
        assert code == 1
        assert "No artwork" in err

    def test_provider_from_manifest(self, capsys, db_dir):
        """Test addressing a provider by its registered name."""
        manifest = db_dir / "providers.yaml"
        manifest.write_text("providers:\n  featured:\n    authority: com.example.featured\n")
        common = ["-p", "featured", "--manifest", str(manifest), "--db-dir", str(db_dir)]

        code, out, _ = run(capsys, "add", *common, "--token", "t1")
        assert code == 0
        assert out.strip() == "content://com.example.featured/1"

    def test_unknown_provider(self, capsys, db_dir):
        """Test unknown provider names are reported."""
        code, _, err = run(capsys, "last", "-p", "missing", "--db-dir", str(db_dir))
        assert code == 1
        assert "Invalid provider" in err

    def test_set_failure_reports_kind(self, capsys, db_dir):
        """Test a failed set reports why."""
        code, _, err = run(
            capsys, "set", "-a", "com.example.art", "--server", "http://127.0.0.1:1", "--token", "t1",
        )
        assert code == 1
        assert "transport" in err

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        code, out, _ = run(capsys)
        assert code == 1
        assert "usage" in out

    def test_serve_needs_providers(self, capsys, db_dir):
        """Test serve refuses to start without providers."""
        code, _, err = run(capsys, "serve", "--db-dir", str(db_dir))
        assert code == 1
        assert "No enabled providers" in err


class TestOpenRegistry:
    """Test registry setup for commands."""

    def test_stores_closed_on_exit(self, db_dir):
        """Test local stores are closed when the command finishes."""
        args = argparse.Namespace(manifest=None, server=None, db_dir=str(db_dir))
        uri = get_content_uri("com.example.art")

        with open_registry(args) as registry:
            registry.add_artwork(uri, Artwork(token="t1"))
            store = registry.transport.store_for("com.example.art")

        with pytest.raises(StoreUnavailable):
            store.count()

    def test_stores_closed_on_error(self, db_dir):
        """Test local stores are closed when the command fails."""
        args = argparse.Namespace(manifest=None, server=None, db_dir=str(db_dir))
        stores = []

        with pytest.raises(ValueError):
            with open_registry(args) as registry:
                stores.append(registry.transport.store_for("com.example.art"))
                raise ValueError("command failed")

        with pytest.raises(StoreUnavailable):
            stores[0].count()
