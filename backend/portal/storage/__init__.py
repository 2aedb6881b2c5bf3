"""Object storage for deliverable assets and contract signatures."""

from fastapi import Depends

from ..config import Settings, get_settings
from .ports import ObjectStoragePort, StorageError, StoredObject, build_asset_key, build_signature_key
from .s3_storage_adapter import S3StorageAdapter
from .storage_config import StorageConfig, load_storage_config, validate_storage_config


def get_storage(settings: Settings = Depends(get_settings)) -> ObjectStoragePort:
    """FastAPI dependency returning the configured storage adapter."""
    config = load_storage_config(settings)
    validate_storage_config(config)
    return S3StorageAdapter.from_config(config)


__all__ = [
    "ObjectStoragePort",
    "StorageError",
    "StoredObject",
    "S3StorageAdapter",
    "StorageConfig",
    "build_asset_key",
    "build_signature_key",
    "get_storage",
    "load_storage_config",
    "validate_storage_config",
]
