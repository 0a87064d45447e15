"""Object store factory.

Provides :func:`store_factory`, the single entry-point for creating
provider transports, and :func:`store_connector`, which adapts it to the
session manager's ``(account_id, container_name)`` connector signature.
"""

from typing import Callable, overload, Literal

from blobjack.base import ObjectStoreBlueprint, existing_providers
from blobjack.base.config import validate_config
from blobjack.aws.store import S3ObjectStore
from blobjack.azure.store import AzureObjectStore
from blobjack.gcp.store import GCSObjectStore
from blobjack.memory.store import MemoryObjectStore


# Provider name -> store implementation
_FACTORY_REGISTRY: dict[str, type[ObjectStoreBlueprint]] = {
    "aws": S3ObjectStore,
    "gcp": GCSObjectStore,
    "azure": AzureObjectStore,
    "memory": MemoryObjectStore,
}


@overload
def store_factory(provider: Literal["aws"], config: dict) -> S3ObjectStore: ...


@overload
def store_factory(provider: Literal["gcp"], config: dict) -> GCSObjectStore: ...


@overload
def store_factory(provider: Literal["azure"], config: dict) -> AzureObjectStore: ...


@overload
def store_factory(provider: Literal["memory"], config: dict) -> MemoryObjectStore: ...


def store_factory(provider: existing_providers, config: dict) -> ObjectStoreBlueprint:
    """
    Create an object store for a provider.
    Args:
        provider: The provider name (e.g., 'aws', 'azure').
        config: Configuration dictionary to initialize the store.
    Returns:
        A connected object store.
    Raises:
        ValueError: If the provider is not supported.
        pydantic.ValidationError: If the config is invalid.
    """
    if provider not in _FACTORY_REGISTRY:
        raise ValueError(f"Unsupported provider: {provider}")

    store_class = _FACTORY_REGISTRY[provider]
    configObj = validate_config(provider, config)
    return store_class(configObj)


def store_connector(
    provider: existing_providers, config: dict
) -> tuple[Callable[[str, str], ObjectStoreBlueprint], str]:
    """Validate *config* once and return ``(connector, account_id)``.

    The connector builds a fresh store for each session it is asked for.
    """
    if provider not in _FACTORY_REGISTRY:
        raise ValueError(f"Unsupported provider: {provider}")

    store_class = _FACTORY_REGISTRY[provider]
    configObj = validate_config(provider, config)

    def connect(account_id: str, container_name: str) -> ObjectStoreBlueprint:
        return store_class(configObj)

    return connect, configObj.account_id  # type: ignore[attr-defined]
