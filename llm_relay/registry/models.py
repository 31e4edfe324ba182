"""
Provider Descriptors

This module defines the data model for the provider routing table:
- ProviderStatus: configured / stub / offline
- ProviderConfigEntry: the operator-facing shape of one provider
- ProviderDescriptor: an entry plus the credential presence derived at load time
- RoutingConfigDocument: the persisted routing table

Credential presence is never taken from operator input. It is derived from
the environment each time entries are turned into descriptors, so an
operator cannot mark a provider as credentialed by editing the config file.
"""

from collections.abc import Callable, Iterable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProviderStatus(str, Enum):
    """Declared availability of a provider."""

    CONFIGURED = "configured"  # Real backend, serves traffic
    STUB = "stub"  # Placeholder, last resort only
    OFFLINE = "offline"  # Never selected


class RegistryError(Exception):
    """Base exception for routing table errors."""


class ProviderConfigEntry(BaseModel):
    """
    One provider as written and read by operators.

    All fields are required on write so that a full replacement can never
    silently fall back to defaults for a field the operator forgot.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        pattern=r"^[a-z0-9][a-z0-9_-]*$",
        description="Stable provider identifier (e.g. 'claude')",
    )

    display_name: str = Field(
        ...,
        min_length=1,
        description="Human-readable provider name",
    )

    priority: int = Field(
        ...,
        description="Routing priority, lower is tried first",
    )

    enabled: bool = Field(
        ...,
        description="Administrative kill-switch, independent of health",
    )

    status: ProviderStatus = Field(
        ...,
        description="Declared provider status",
    )

    supported_models: list[str] = Field(
        ...,
        description="Model identifiers offered by this provider, preferred first",
    )


class ProviderDescriptor(ProviderConfigEntry):
    """
    A provider as seen by the router.

    Adds has_credentials, derived from settings rather than operator input.
    Instances are immutable; the routing table is only ever replaced whole.
    """

    has_credentials: bool = Field(
        default=False,
        description="Whether an API key for this provider is present",
    )

    @property
    def is_stub(self) -> bool:
        return self.status == ProviderStatus.STUB

    def to_entry(self) -> ProviderConfigEntry:
        """Strip derived fields for persistence or the admin API."""
        return ProviderConfigEntry(**self.model_dump(exclude={"has_credentials"}))


class RoutingConfigDocument(BaseModel):
    """
    The persisted routing table.

    Example:
        {
            "providers": [
                {"id": "claude", "display_name": "Claude", "priority": 1,
                 "enabled": true, "status": "configured",
                 "supported_models": ["claude-3-5-sonnet-20241022"]}
            ],
            "global_fallback": true,
            "last_updated": "2024-05-01T12:00:00+00:00"
        }
    """

    providers: list[ProviderConfigEntry] = Field(
        default_factory=list,
        description="Full provider set in registration order",
    )

    global_fallback: bool = Field(
        default=True,
        description="When false, a request makes a single provider attempt",
    )

    last_updated: datetime | None = Field(
        default=None,
        description="UTC time of the last successful administrative write",
    )


DEFAULT_PROVIDER_ENTRIES: tuple[ProviderConfigEntry, ...] = (
    ProviderConfigEntry(
        id="claude",
        display_name="Claude",
        priority=1,
        enabled=True,
        status=ProviderStatus.CONFIGURED,
        supported_models=["claude-3-5-sonnet-20241022", "claude-3-haiku-20240307"],
    ),
    ProviderConfigEntry(
        id="openai",
        display_name="OpenAI",
        priority=2,
        enabled=True,
        status=ProviderStatus.CONFIGURED,
        supported_models=["gpt-4o", "gpt-4-turbo", "gpt-3.5-turbo"],
    ),
    ProviderConfigEntry(
        id="mistral",
        display_name="Mistral",
        priority=3,
        enabled=True,
        status=ProviderStatus.CONFIGURED,
        supported_models=["mistral-large-latest", "mistral-medium-latest"],
    ),
    ProviderConfigEntry(
        id="groq",
        display_name="Groq (Llama)",
        priority=4,
        enabled=True,
        status=ProviderStatus.CONFIGURED,
        supported_models=["llama-3.1-8b-instant", "llama-3.3-70b-versatile"],
    ),
)


def build_descriptors(
    entries: Iterable[ProviderConfigEntry],
    credential_check: Callable[[str], bool],
) -> list[ProviderDescriptor]:
    """
    Turn operator entries into descriptors, preserving their order.

    Args:
        entries: Provider entries in registration order.
        credential_check: Returns True when a provider id has an API key.

    Returns:
        Descriptors with has_credentials filled in. Stub entries need no
        key since the stub adapter never calls a backend.
    """
    return [
        ProviderDescriptor(
            **entry.model_dump(),
            has_credentials=(
                entry.status == ProviderStatus.STUB or credential_check(entry.id)
            ),
        )
        for entry in entries
    ]
