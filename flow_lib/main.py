"""Application factory for the Flow console storage server.

This module exposes `create_app(config: Config) -> FastAPI` which performs
all setup (logging, settings, storage provider and service composition,
middleware and router registration). Nothing happens at import time so
tests can construct isolated apps.

    from flow_lib.main import create_app, Config
    app = create_app(Config())
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from flow_lib.logging_config import configure_logging
from flow_lib.config.settings import SelectionStore, StorageSettings, load_settings
from flow_lib.storage.errors import StorageError, StorageNotConfiguredError
from flow_lib.storage.factory import create_adapter


@dataclass
class Config:
    data_dir: str = "data"
    # Overrides the backend named in the settings file/environment
    storage_backend: Optional[str] = None
    settings_path: Optional[str] = None
    # If None, the selection is kept under data_dir/config
    selection_path: Optional[str] = None
    persist_selection: bool = True
    log_config_path: Optional[str] = None
    # Prebuilt settings win over settings_path (used by tests)
    settings: Optional[StorageSettings] = None
    # Builds an adapter from a backend config; defaults to create_adapter
    adapter_factory: Optional[Callable[[Any], Any]] = None


def storage_error_status(exc: StorageError) -> int:
    """HTTP status for a storage error: 503 when unusable, 502 on I/O failure."""
    return 503 if isinstance(exc, StorageNotConfiguredError) else 502


def create_app(config: Config) -> FastAPI:
    """Create and return a configured FastAPI application."""
    data_dir = Path(config.data_dir)
    logger = configure_logging(
        Path(config.log_config_path) if config.log_config_path else data_dir / 'config' / 'server_config.yml'
    )

    settings = config.settings or load_settings(
        config.settings_path or data_dir / 'config' / 'storage.yml'
    )
    if config.storage_backend:
        settings = settings.with_backend(config.storage_backend)

    selection_store = None
    if config.persist_selection:
        selection_store = SelectionStore(
            config.selection_path or data_dir / 'config' / 'storage_selection.yml'
        )

    # Compose storage
    from flow_lib.storage.provider import StorageProvider, StorageScopeMiddleware
    provider = StorageProvider(
        settings,
        selection_store=selection_store,
        factory=config.adapter_factory or create_adapter,
    )

    # Compose services
    from flow_lib.backup.service import BackupService
    backup_service = BackupService()

    from flow_lib.services import ServiceContainer
    container = ServiceContainer()
    container.register_singleton("storage_settings", settings)
    container.register_singleton("storage_provider", provider)
    container.register_singleton("backup_service", backup_service)

    app = FastAPI(title="Flow Storage Server")
    # Runtime code resolves services from this container.
    app.state.container = container

    # Every request runs inside the provider's storage scope
    app.add_middleware(StorageScopeMiddleware, provider=provider)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        status = storage_error_status(exc)
        if not isinstance(exc, StorageNotConfiguredError):
            logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content={'error': exc.code, 'message': exc.message})

    # Router registration: import routers here to avoid import-time side-effects
    from flow_lib.server.api import router as server_router
    from flow_lib.storage_api.api import router as storage_router
    from flow_lib.backup.api import router as backup_router

    app.include_router(server_router, prefix='/api')
    app.include_router(storage_router, prefix='/api')
    app.include_router(backup_router, prefix='/api')

    logger.info("Storage backend %s active", provider.backend.value)
    return app
