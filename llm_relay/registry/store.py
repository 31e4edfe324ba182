"""
Provider Descriptor Store

Holds the routing table as a single immutable DescriptorSnapshot. Readers
take the current snapshot reference without locking; the administrative
writer builds a complete replacement, persists it, and only then swaps the
reference under a lock. A reader therefore sees either the old table in
full or the new one in full, never a mix.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from llm_relay.config import Settings, get_settings
from llm_relay.registry.models import (
    DEFAULT_PROVIDER_ENTRIES,
    ProviderDescriptor,
    RegistryError,
    RoutingConfigDocument,
    build_descriptors,
)
from llm_relay.registry.persistence import RoutingConfigError, RoutingConfigRepository

logger = logging.getLogger(__name__)


class DescriptorNotFound(RegistryError, KeyError):
    """Raised when a provider id is not in the routing table."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(provider_id)
        self.provider_id = provider_id

    def __str__(self) -> str:
        return f"Provider not found: {self.provider_id}"


class DuplicateProviderError(RegistryError, ValueError):
    """Raised when a replacement set contains the same id more than once."""

    def __init__(self, duplicates: list[str]) -> None:
        super().__init__(f"Duplicate provider ids: {', '.join(duplicates)}")
        self.duplicates = duplicates


@dataclass(frozen=True)
class DescriptorSnapshot:
    """
    One complete, internally consistent routing table.

    Attributes:
        descriptors: Providers in registration order
        global_fallback: Whether a failed provider falls through to the next
        last_updated: Time of the administrative write that produced it
    """

    descriptors: tuple[ProviderDescriptor, ...] = ()
    global_fallback: bool = True
    last_updated: datetime | None = None

    def get(self, provider_id: str) -> ProviderDescriptor | None:
        for descriptor in self.descriptors:
            if descriptor.id == provider_id:
                return descriptor
        return None

    def to_document(self) -> RoutingConfigDocument:
        return RoutingConfigDocument(
            providers=[d.to_entry() for d in self.descriptors],
            global_fallback=self.global_fallback,
            last_updated=self.last_updated,
        )


def _find_duplicates(ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for provider_id in ids:
        if provider_id in seen and provider_id not in duplicates:
            duplicates.append(provider_id)
        seen.add(provider_id)
    return duplicates


class DescriptorStore:
    """
    Copy-on-write container for the provider routing table.

    Example:
        store = DescriptorStore(descriptors)
        store.list_descriptors()          # lock-free read
        store.replace_all(new_set)        # validated, persisted, swapped

    Attributes:
        repository: Optional file persistence for administrative writes
    """

    def __init__(
        self,
        descriptors: Iterable[ProviderDescriptor] = (),
        *,
        global_fallback: bool = True,
        last_updated: datetime | None = None,
        repository: RoutingConfigRepository | None = None,
        credential_check: Callable[[str], bool] | None = None,
    ) -> None:
        descriptors = tuple(descriptors)
        duplicates = _find_duplicates(d.id for d in descriptors)
        if duplicates:
            raise DuplicateProviderError(duplicates)

        self.repository = repository
        self._credential_check = credential_check or (lambda _provider_id: False)
        self._write_lock = threading.Lock()
        self._snapshot = DescriptorSnapshot(
            descriptors=descriptors,
            global_fallback=global_fallback,
            last_updated=last_updated,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DescriptorStore":
        """
        Build the store from the persisted routing table.

        Falls back to the built-in defaults when no file exists or the file
        is invalid; an invalid file is logged, not fatal, so the service
        still starts.
        """
        repository = RoutingConfigRepository(settings.routing_config_path)
        document: RoutingConfigDocument | None = None

        try:
            document = repository.load()
        except RoutingConfigError as e:
            logger.warning(f"{e}. Using default provider set.")

        if document is None:
            document = RoutingConfigDocument(providers=list(DEFAULT_PROVIDER_ENTRIES))
            logger.info("No persisted routing config, using default provider set")

        descriptors = build_descriptors(document.providers, settings.has_credentials)

        try:
            return cls(
                descriptors,
                global_fallback=document.global_fallback,
                last_updated=document.last_updated,
                repository=repository,
                credential_check=settings.has_credentials,
            )
        except DuplicateProviderError as e:
            logger.warning(f"Persisted routing config rejected: {e}. Using defaults.")
            return cls(
                build_descriptors(DEFAULT_PROVIDER_ENTRIES, settings.has_credentials),
                repository=repository,
                credential_check=settings.has_credentials,
            )

    def snapshot(self) -> DescriptorSnapshot:
        """Return the current immutable routing table."""
        return self._snapshot

    def list_descriptors(self) -> tuple[ProviderDescriptor, ...]:
        """Return every provider in registration order."""
        return self._snapshot.descriptors

    def get_descriptor(self, provider_id: str) -> ProviderDescriptor:
        """
        Look up a provider by id.

        Raises:
            DescriptorNotFound: If the id is not registered.
        """
        descriptor = self._snapshot.get(provider_id)
        if descriptor is None:
            raise DescriptorNotFound(provider_id)
        return descriptor

    def replace_all(
        self,
        new_set: Iterable[ProviderDescriptor],
        global_fallback: bool | None = None,
    ) -> DescriptorSnapshot:
        """
        Replace the whole routing table.

        The update is all-or-nothing: duplicate ids or a failed write to
        the repository leave the previous table in effect.

        Args:
            new_set: Complete replacement set in registration order.
            global_fallback: New fallback flag; None keeps the current one.

        Returns:
            The snapshot now in effect.

        Raises:
            DuplicateProviderError: If any id appears more than once.
            RoutingConfigError: If persisting the new table fails.
        """
        descriptors = tuple(new_set)
        duplicates = _find_duplicates(d.id for d in descriptors)
        if duplicates:
            logger.warning(f"Rejected routing table update: duplicate ids {duplicates}")
            raise DuplicateProviderError(duplicates)

        with self._write_lock:
            current = self._snapshot
            snapshot = DescriptorSnapshot(
                descriptors=descriptors,
                global_fallback=(
                    current.global_fallback
                    if global_fallback is None
                    else global_fallback
                ),
                last_updated=datetime.now(timezone.utc),
            )

            if self.repository is not None:
                self.repository.save(snapshot.to_document())

            self._snapshot = snapshot

        logger.info(
            f"Routing table replaced: providers={[d.id for d in descriptors]}, "
            f"global_fallback={snapshot.global_fallback}"
        )
        return snapshot

    def reload(self) -> DescriptorSnapshot:
        """
        Re-read the persisted routing table and swap it in.

        Lets operators edit the file on disk and apply it without a restart.
        Credential presence is re-derived from the current settings.

        Raises:
            RoutingConfigError: If there is no repository, no file, or the
                file is invalid. The current table stays in effect.
            DuplicateProviderError: If the file repeats a provider id.
        """
        if self.repository is None:
            raise RoutingConfigError("Store has no persisted routing config")

        document = self.repository.load()
        if document is None:
            raise RoutingConfigError(
                f"No routing config found at {self.repository.path}"
            )

        descriptors = tuple(
            build_descriptors(document.providers, self._credential_check)
        )
        duplicates = _find_duplicates(d.id for d in descriptors)
        if duplicates:
            raise DuplicateProviderError(duplicates)

        with self._write_lock:
            snapshot = DescriptorSnapshot(
                descriptors=descriptors,
                global_fallback=document.global_fallback,
                last_updated=document.last_updated,
            )
            self._snapshot = snapshot

        logger.info(f"Routing table reloaded from {self.repository.path}")
        return snapshot

    def build_descriptors(self, entries) -> list[ProviderDescriptor]:
        """Derive descriptors for operator entries using this store's credentials."""
        return build_descriptors(entries, self._credential_check)


_store_instance: DescriptorStore | None = None


def get_descriptor_store() -> DescriptorStore:
    """
    Get the global descriptor store instance.

    Uses lazy initialization so the routing table is loaded from disk once,
    on first use or at application startup.

    Returns:
        The singleton DescriptorStore instance
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = DescriptorStore.from_settings(get_settings())
    return _store_instance


def reset_descriptor_store() -> None:
    """
    Reset the global descriptor store instance.

    Primarily useful for testing to force a fresh load.
    """
    global _store_instance
    _store_instance = None
