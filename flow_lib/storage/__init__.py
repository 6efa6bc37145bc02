"""Storage abstraction package for the Flow console."""

from .base import StorageAdapter
from .errors import StorageError, StorageNotConfiguredError, error_code
from .local_adapter import LocalStorageAdapter
from .cloud_adapter import CloudTableAdapter
from .factory import create_adapter

__all__ = [
    "StorageAdapter",
    "StorageError",
    "StorageNotConfiguredError",
    "error_code",
    "LocalStorageAdapter",
    "CloudTableAdapter",
    "create_adapter",
]
