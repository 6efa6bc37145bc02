"""Resolve a tagged backend configuration into a concrete adapter.

This is the only place that looks at the backend tag; everything else
works against `StorageAdapter`.
"""
from __future__ import annotations
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from .base import CorruptEntryHandler, StorageAdapter
from .cloud_adapter import CloudTableAdapter
from .errors import BACKEND_UNKNOWN, StorageNotConfiguredError
from .local_adapter import LocalStorageAdapter
from .medium import FileMedium, LocalMedium, MemoryMedium

logger = logging.getLogger(__name__)

# Media are process-wide, like the browser store they stand in for: every
# adapter opened on the same file shares one medium and one lock.
_media_lock = Lock()
_file_media: Dict[Path, FileMedium] = {}
_memory_medium = MemoryMedium()


def shared_medium(path: Optional[str] = None) -> LocalMedium:
    if path is None:
        return _memory_medium
    resolved = Path(path).resolve()
    with _media_lock:
        medium = _file_media.get(resolved)
        if medium is None:
            medium = FileMedium(resolved)
            _file_media[resolved] = medium
        return medium


def create_adapter(
    config: Any,
    *,
    on_corrupt: Optional[CorruptEntryHandler] = None,
    client: Any = None,
    medium: Optional[LocalMedium] = None,
) -> StorageAdapter:
    """Build the adapter described by `config`.

    `client` and `medium` let callers (tests, embedding apps) supply the
    underlying cloud client or local medium explicitly.
    """
    # Imported here to avoid a cycle: settings imports adapter defaults.
    from flow_lib.config.settings import CloudBackendConfig, LocalBackendConfig

    if isinstance(config, LocalBackendConfig):
        logger.info("Using local storage (prefix=%r, path=%s)", config.prefix, config.path or "<memory>")
        return LocalStorageAdapter(
            medium=medium if medium is not None else shared_medium(config.path),
            prefix=config.prefix,
            on_corrupt=on_corrupt,
        )
    if isinstance(config, CloudBackendConfig):
        logger.info("Using cloud storage (table=%r, url=%s)", config.table, config.url)
        return CloudTableAdapter(
            url=config.url,
            key=config.key,
            table=config.table,
            client=client,
            on_corrupt=on_corrupt,
        )
    raise StorageNotConfiguredError(
        f"Unsupported backend configuration {type(config).__name__}",
        BACKEND_UNKNOWN,
    )
