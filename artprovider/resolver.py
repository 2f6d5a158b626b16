# artprovider/resolver.py
"""
Resolution of provider identifiers to content addresses.

A provider is identified either by a registered component name, looked
up through a ``ComponentLookup``, or by its raw authority string. Both
paths are pure: no store or network access happens here.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

from .contract import SCHEME_CONTENT, ContentUri, get_content_uri
from .errors import ComponentNotFound, ProviderNotFound

logger = logging.getLogger(__name__)

ProviderRef = Union[str, ContentUri]


class ComponentLookup(ABC):
    """Looks up the authority registered for a provider component."""

    @abstractmethod
    def resolve(self, component: str) -> str:
        """
        Get the authority of an enabled component.

        Raises:
            ComponentNotFound: If the component is unregistered or disabled
        """
        pass


class DictLookup(ComponentLookup):
    """
    In-memory component lookup.

    Args:
        authorities: Mapping of component name to authority
        disabled: Component names that are registered but disabled
    """

    def __init__(self, authorities: Dict[str, str] = None, disabled=()):
        self.authorities = dict(authorities or {})
        self.disabled = set(disabled)

    def resolve(self, component: str) -> str:
        if component not in self.authorities:
            raise ComponentNotFound(f"No provider registered as {component}")
        if component in self.disabled:
            raise ComponentNotFound(f"Provider {component} is disabled")
        return self.authorities[component]


class AddressResolver:
    """
    Resolves provider identifiers to collection addresses.

    Args:
        lookup: Component lookup used for component names; without one
            only content URIs and raw authorities can be resolved
    """

    def __init__(self, lookup: Optional[ComponentLookup] = None):
        self.lookup = lookup

    def resolve(self, component: str) -> ContentUri:
        """
        Resolve a registered component to its collection address.

        Raises:
            ProviderNotFound: If the component is unregistered or disabled
        """
        if self.lookup is None:
            raise ProviderNotFound(f"Invalid provider: {component}, no component lookup configured")
        try:
            authority = self.lookup.resolve(component)
        except ComponentNotFound as e:
            raise ProviderNotFound(
                f"Invalid provider: {component}, is your provider disabled?"
            ) from e
        return get_content_uri(authority)

    def for_authority(self, authority: str) -> ContentUri:
        """Collection address for a raw authority. The authority is not validated."""
        return get_content_uri(authority)

    def resolve_address(self, provider: ProviderRef, allow_authority: bool = False) -> ContentUri:
        """
        Resolve any supported provider reference.

        Args:
            provider: A ContentUri, a ``content://`` string, or a component name
            allow_authority: Treat names the lookup does not know as raw
                authorities instead of failing

        Returns:
            The collection address, or the row address when ``provider``
            already addressed a row
        """
        if isinstance(provider, ContentUri):
            return provider
        if provider.startswith(f"{SCHEME_CONTENT}://"):
            return ContentUri.parse(provider)
        try:
            return self.resolve(provider)
        except ProviderNotFound:
            if not allow_authority:
                raise
            logger.debug(f"{provider} is not a registered component, using it as an authority")
            return self.for_authority(provider)
