"""Storage provider factory with registry pattern."""
from typing import Awaitable, Callable
import importlib

from core.logging_config import get_logger
from .base import StorageProvider
from .config import StorageConfig, StorageType
from .exceptions import ConfigurationError

logger = get_logger(__name__)

ProviderBuilder = Callable[[StorageConfig], Awaitable[StorageProvider]]

_provider_registry: dict[str, ProviderBuilder] = {}

_BUILTIN_PROVIDERS = (
    (StorageType.S3, "infrastructure.external.storage.providers.s3", "build_s3_provider"),
    (StorageType.LOCAL, "infrastructure.external.storage.providers.local", "build_local_provider"),
)


def register_provider(storage_type: StorageType, builder: ProviderBuilder) -> None:
    """Register a storage provider builder."""
    _provider_registry[StorageType(storage_type).value] = builder
    logger.info("storage_provider_registered", provider=StorageType(storage_type).value)


async def create_provider(config: StorageConfig) -> StorageProvider:
    """Create storage provider instance based on config.

    Raises:
        ConfigurationError: If provider type not registered or creation fails
    """
    storage_type = StorageType(config.type).value
    if storage_type not in _provider_registry:
        _auto_register_providers()

        if storage_type not in _provider_registry:
            raise ConfigurationError(
                f"Storage provider '{storage_type}' not registered. "
                f"Available: {list(_provider_registry.keys())}"
            )

    builder = _provider_registry[storage_type]

    try:
        provider = await builder(config)
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error("storage_provider_create_failed", provider=storage_type, error=str(e))
        raise ConfigurationError(
            f"Failed to create storage provider '{storage_type}': {e}"
        ) from e

    logger.info("storage_provider_created", provider=storage_type, bucket=config.bucket)
    return provider


def _auto_register_providers() -> None:
    """Auto-register built-in storage providers."""
    for storage_type, module_path, builder_name in _BUILTIN_PROVIDERS:
        if storage_type.value in _provider_registry:
            continue
        try:
            module = importlib.import_module(module_path)
            register_provider(storage_type, getattr(module, builder_name))
        except (ImportError, AttributeError) as e:
            logger.debug("storage_provider_unavailable", provider=storage_type.value, error=str(e))
