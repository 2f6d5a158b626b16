# artprovider/config.py
"""
Provider manifest.

A YAML file registering provider components, their authorities and the
database backing each one:

    providers:
      featured:
        authority: com.example.featured
        enabled: true
        database: featured.sqlite

The manifest serves as the component lookup and as the source of stores
for local and server use.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ComponentNotFound
from .resolver import ComponentLookup
from .store import ArtworkStore
from .transport import LocalTransport

logger = logging.getLogger(__name__)

MANIFEST_ENV = "ARTPROVIDER_MANIFEST"
SERVER_ENV = "ARTPROVIDER_SERVER"
DEFAULT_DB_DIR = "./artprovider_data"


@dataclass
class ProviderEntry:
    """
    One registered provider.

    Attributes:
        name: Component name callers use to address the provider
        authority: Authority string of the provider's content address
        enabled: Disabled providers do not resolve
        database: Database file, relative to the data directory
            (defaults to ``<authority>.sqlite``; ":memory:" allowed)
    """
    name: str
    authority: str
    enabled: bool = True
    database: Optional[str] = None

    def database_path(self, db_dir: Path | str) -> str:
        if self.database == ":memory:":
            return self.database
        return str(Path(db_dir) / (self.database or f"{self.authority}.sqlite"))

    def to_dict(self) -> Dict[str, Any]:
        data = {"authority": self.authority, "enabled": self.enabled}
        if self.database:
            data["database"] = self.database
        return data

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ProviderEntry":
        if not isinstance(data, dict):
            raise ValueError(f"Provider {name}: expected a mapping")
        authority = data.get("authority")
        if not authority or not isinstance(authority, str):
            raise ValueError(f"Provider {name}: 'authority' is required")
        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ValueError(f"Provider {name}: 'enabled' must be true or false")
        return cls(
            name=name,
            authority=authority,
            enabled=enabled,
            database=data.get("database"),
        )


@dataclass
class ProviderManifest:
    """Registered providers, keyed by component name."""
    providers: Dict[str, ProviderEntry] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "ProviderManifest":
        """Parse a manifest from YAML content."""
        data = yaml.safe_load(yaml_content) or {}
        if not isinstance(data, dict):
            raise ValueError("Manifest must be a mapping")
        providers_data = data.get("providers") or {}
        if not isinstance(providers_data, dict):
            raise ValueError("'providers' must be a mapping of name to provider")

        providers = {}
        authorities = {}
        for name, entry_data in providers_data.items():
            entry = ProviderEntry.from_dict(str(name), entry_data)
            if entry.authority in authorities:
                raise ValueError(
                    f"Provider {name}: authority {entry.authority} already used by {authorities[entry.authority]}"
                )
            authorities[entry.authority] = entry.name
            providers[entry.name] = entry
        return cls(providers=providers)

    @classmethod
    def from_file(cls, path: Path | str) -> "ProviderManifest":
        """Load a manifest from a YAML file."""
        with open(path, "r") as f:
            return cls.from_yaml(f.read())

    def to_yaml(self) -> str:
        data = {"providers": {name: entry.to_dict() for name, entry in self.providers.items()}}
        return yaml.safe_dump(data, sort_keys=True)

    def enabled(self) -> List[ProviderEntry]:
        return [entry for entry in self.providers.values() if entry.enabled]

    def open_stores(self, db_dir: Path | str = DEFAULT_DB_DIR) -> Dict[str, ArtworkStore]:
        """Open a store for every enabled provider, keyed by authority."""
        stores = {}
        for entry in self.enabled():
            stores[entry.authority] = ArtworkStore(entry.database_path(db_dir))
            logger.debug(f"Opened store for {entry.name} ({entry.authority})")
        return stores

    def local_transport(self, db_dir: Path | str = DEFAULT_DB_DIR) -> LocalTransport:
        return LocalTransport(self.open_stores(db_dir))


class ManifestLookup(ComponentLookup):
    """Component lookup backed by a provider manifest."""

    def __init__(self, manifest: ProviderManifest):
        self.manifest = manifest

    def resolve(self, component: str) -> str:
        entry = self.manifest.providers.get(component)
        if entry is None:
            raise ComponentNotFound(f"No provider registered as {component}")
        if not entry.enabled:
            raise ComponentNotFound(f"Provider {component} is disabled")
        return entry.authority


def load_manifest(path: Union[Path, str] = None) -> ProviderManifest:
    """
    Load the provider manifest.

    Args:
        path: Manifest file; falls back to $ARTPROVIDER_MANIFEST

    Returns:
        The manifest, or an empty one when no file is configured
    """
    path = path or os.environ.get(MANIFEST_ENV)
    if not path:
        return ProviderManifest()
    return ProviderManifest.from_file(path)
