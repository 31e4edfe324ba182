"""
Registry module: the provider routing table.

This module contains:
- models.py: ProviderDescriptor and the persisted document shape
- persistence.py: atomic JSON file storage
- store.py: copy-on-write DescriptorStore

Public API:
- ProviderStatus: configured / stub / offline
- ProviderConfigEntry: operator-facing provider entry
- ProviderDescriptor: entry plus derived credential presence
- DescriptorStore: the routing table container
- get_descriptor_store: Singleton accessor function
"""

from llm_relay.registry.models import (
    DEFAULT_PROVIDER_ENTRIES,
    ProviderConfigEntry,
    ProviderDescriptor,
    ProviderStatus,
    RegistryError,
    RoutingConfigDocument,
    build_descriptors,
)
from llm_relay.registry.persistence import RoutingConfigError, RoutingConfigRepository
from llm_relay.registry.store import (
    DescriptorNotFound,
    DescriptorSnapshot,
    DescriptorStore,
    DuplicateProviderError,
    get_descriptor_store,
    reset_descriptor_store,
)

__all__ = [
    "DEFAULT_PROVIDER_ENTRIES",
    "ProviderStatus",
    "ProviderConfigEntry",
    "ProviderDescriptor",
    "RoutingConfigDocument",
    "RegistryError",
    "build_descriptors",
    "RoutingConfigError",
    "RoutingConfigRepository",
    "DescriptorNotFound",
    "DescriptorSnapshot",
    "DescriptorStore",
    "DuplicateProviderError",
    "get_descriptor_store",
    "reset_descriptor_store",
]
