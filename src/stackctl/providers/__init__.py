"""Database provider registry.

Each provider describes the packages it needs, the generated client and
migration config sources, the env variables it declares, its local
development options, and a ``setup`` routine that derives or asks for
connection strings. Adding a provider means adding one record here.
"""

from __future__ import annotations

from stackctl.errors import LocalDevOptionError, ProviderNotFoundError
from stackctl.providers.base import (
    FIXED_SCRIPTS,
    MANAGED_SCRIPT_KEYS,
    NOOP_SCRIPT,
    LocalDevOption,
    LocalDevType,
    ProviderDefinition,
    SetupContext,
    SetupResult,
)
from stackctl.providers.neon import NEON
from stackctl.providers.postgres import POSTGRES
from stackctl.providers.prisma_postgres import PRISMA_POSTGRES
from stackctl.providers.sqlite import SQLITE
from stackctl.providers.supabase import SUPABASE
from stackctl.providers.turso import TURSO

PROVIDERS: dict[str, ProviderDefinition] = {
    p.id: p for p in (SQLITE, PRISMA_POSTGRES, POSTGRES, TURSO, SUPABASE, NEON)
}


def get_provider(provider_id: str) -> ProviderDefinition | None:
    """Look up a provider by id."""
    return PROVIDERS.get(provider_id)


def get_provider_ids() -> list[str]:
    return list(PROVIDERS)


def get_all_providers() -> list[ProviderDefinition]:
    return list(PROVIDERS.values())


def is_valid_provider(provider_id: str) -> bool:
    return provider_id in PROVIDERS


def get_provider_choices() -> list[dict[str, str]]:
    """Choices for interactive selection: name, value and description."""
    return [
        {"name": p.display_name, "value": p.id, "description": p.description}
        for p in PROVIDERS.values()
    ]


def require_provider(provider_id: str) -> ProviderDefinition:
    """Look up a provider, treating an unknown id as fatal.

    Raises:
        ProviderNotFoundError: If the id is not registered
    """
    provider = PROVIDERS.get(provider_id)
    if provider is None:
        raise ProviderNotFoundError(provider_id, known=get_provider_ids())
    return provider


def find_local_dev_option(
    provider: ProviderDefinition, dev_type: str | LocalDevType
) -> LocalDevOption | None:
    """The provider's option of the given type, or None."""
    try:
        wanted = LocalDevType(dev_type)
    except ValueError:
        return None
    for option in provider.local_dev_options:
        if option.type == wanted:
            return option
    return None


def require_local_dev_option(
    provider: ProviderDefinition, dev_type: str | LocalDevType
) -> LocalDevOption:
    """Raises:
        LocalDevOptionError: If the provider has no option of that type
    """
    option = find_local_dev_option(provider, dev_type)
    if option is None:
        value = dev_type.value if isinstance(dev_type, LocalDevType) else dev_type
        raise LocalDevOptionError(provider.id, value, known=provider.local_dev_types)
    return option


def all_database_env_var_names() -> set[str]:
    """Every env schema variable some provider manages."""
    return {v.name for p in PROVIDERS.values() for v in p.schema_env_vars}


__all__ = [
    "FIXED_SCRIPTS",
    "MANAGED_SCRIPT_KEYS",
    "NOOP_SCRIPT",
    "PROVIDERS",
    "LocalDevOption",
    "LocalDevType",
    "ProviderDefinition",
    "SetupContext",
    "SetupResult",
    "all_database_env_var_names",
    "find_local_dev_option",
    "get_all_providers",
    "get_provider",
    "get_provider_choices",
    "get_provider_ids",
    "is_valid_provider",
    "require_local_dev_option",
    "require_provider",
]
