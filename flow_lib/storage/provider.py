"""Process-wide injection point for the active storage adapter.

`StorageProvider` owns exactly one adapter at a time and swaps it when the
backend selection changes. Code that runs inside `storage_scope(provider)`
(every HTTP request, via `StorageScopeMiddleware`) obtains the adapter with
`use_storage()` instead of building one.

Swapping does not drain or cancel operations already issued against the
previous adapter; they run to completion against the old medium. The
`generation` counter lets callers notice that a swap happened.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from threading import RLock
from typing import Any, Callable, Iterator, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from flow_lib.config.settings import BackendConfig, BackendKind, SelectionStore, StorageSettings, parse_backend
from .errors import StorageNotConfiguredError
from .base import StorageAdapter
from .factory import create_adapter

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[BackendConfig], StorageAdapter]

_current: ContextVar[Optional["StorageProvider"]] = ContextVar("flow_storage_provider", default=None)


class StorageProvider:
    def __init__(
        self,
        settings: StorageSettings,
        selection_store: Optional[SelectionStore] = None,
        factory: AdapterFactory = create_adapter,
    ) -> None:
        self._lock = RLock()
        self._factory = factory
        self._selection_store = selection_store
        self.settings = settings
        self._adapter = self._restore(settings)
        self._generation = 1

    def _restore(self, settings: StorageSettings) -> StorageAdapter:
        """Build the adapter for the persisted selection, else for `settings`.

        A persisted backend that can no longer be built (credentials removed
        since it was chosen) falls back to the configured default so the
        server still starts and the user can switch again.
        """
        persisted = self._selection_store.load() if self._selection_store is not None else None
        if persisted is not None and persisted is not settings.backend:
            restored = settings.with_backend(persisted)
            try:
                adapter = self._factory(restored.active())
            except StorageNotConfiguredError as e:
                logger.warning(
                    "Persisted storage backend %s is unusable (%s); falling back to %s",
                    persisted.value, e.message, settings.backend.value,
                )
            else:
                logger.info("Restoring persisted storage backend selection: %s", persisted.value)
                self.settings = restored
                return adapter
        return self._factory(settings.active())

    @property
    def adapter(self) -> StorageAdapter:
        with self._lock:
            return self._adapter

    @property
    def backend(self) -> BackendKind:
        with self._lock:
            return self.settings.backend

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def select(self, backend: Any) -> StorageAdapter:
        """Make `backend` the active backend and return its adapter.

        The new adapter is built and the selection persisted before anything
        changes, so a failed construction or save leaves the previous
        adapter in place.
        """
        kind = parse_backend(backend)
        with self._lock:
            if kind is self.settings.backend:
                return self._adapter
            settings = self.settings.with_backend(kind)
            adapter = self._factory(settings.active())
            if self._selection_store is not None:
                self._selection_store.save(kind)
            previous = self._adapter
            self.settings = settings
            self._adapter = adapter
            self._generation += 1
            logger.info(
                "Switched storage backend to %s (%r replaces %r, generation %d)",
                kind.value, adapter, previous, self._generation,
            )
            return adapter


@contextmanager
def storage_scope(provider: StorageProvider) -> Iterator[StorageProvider]:
    """Bind `provider` to the current context for the duration of the block."""
    token = _current.set(provider)
    try:
        yield provider
    finally:
        _current.reset(token)


def current_provider() -> StorageProvider:
    provider = _current.get()
    if provider is None:
        raise RuntimeError("use_storage must be used within a storage_scope")
    return provider


def use_storage() -> StorageAdapter:
    """Return the active adapter of the provider bound to this context."""
    return current_provider().adapter


class StorageScopeMiddleware(BaseHTTPMiddleware):
    """Run every request inside `storage_scope` of the app's provider.

    The provider is taken from the constructor or, when omitted, resolved
    from the service container on `app.state` as 'storage_provider'.
    """

    def __init__(self, app, provider: Optional[StorageProvider] = None):
        super().__init__(app)
        self.provider = provider

    async def dispatch(self, request: Request, call_next):
        provider = self.provider
        if provider is None:
            container = getattr(request.app.state, "container", None)
            if container is not None:
                try:
                    provider = container.get("storage_provider")
                except KeyError:
                    provider = None
        if provider is None:
            return await call_next(request)
        with storage_scope(provider):
            return await call_next(request)
